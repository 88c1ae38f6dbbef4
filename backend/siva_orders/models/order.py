from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field as PydanticField, field_validator, model_validator
from sqlmodel import SQLModel, Field

from siva_orders.errors import OrderNotFound

IMAGE_SLOTS = 4
MAX_ALTERNATES = 3


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    generating = "generating"
    images_ready = "images_ready"
    pdf_ready = "pdf_ready"
    sent = "sent"

    @property
    def rank(self) -> int:
        return list(OrderStatus).index(self)


def effective_status(stored: Optional[str], images: List[Optional[str]], pdf_url: Optional[str]) -> OrderStatus:
    """Highest of the stored status and the status implied by populated fields.

    Unknown stored values are treated as `generating`.
    """
    try:
        status = OrderStatus(stored) if stored else OrderStatus.generating
    except ValueError:
        status = OrderStatus.generating

    implied = OrderStatus.generating
    if pdf_url:
        implied = OrderStatus.pdf_ready
    elif any(images):
        implied = OrderStatus.images_ready

    return status if status.rank >= implied.rank else implied


class OrderRow(SQLModel, table=True):
    """Local table layout used by the SQL record store."""

    __tablename__ = "siva_order"

    id: str = Field(primary_key=True)
    client: str
    demande: str
    email: Optional[str] = None
    phone: Optional[str] = None
    boutique: Optional[str] = None
    image_1: Optional[str] = None
    image_2: Optional[str] = None
    image_3: Optional[str] = None
    image_4: Optional[str] = None
    image_collection: Optional[str] = None
    pdf_url: Optional[str] = None
    status: str = OrderStatus.generating.value
    selected_image: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow, index=True)


class OrderCreate(SQLModel):
    client: str
    email: str
    demande: str
    phone: Optional[str] = None
    boutique: Optional[str] = None


class OrderUpdate(SQLModel):
    """Partial update. Only fields that are explicitly set are written."""

    status: Optional[OrderStatus] = None
    selected_image: Optional[int] = None
    pdf_url: Optional[str] = None
    image_collection: Optional[str] = None
    # full replacement of the four slots
    images: Optional[List[Optional[str]]] = None

    @field_validator("images")
    @classmethod
    def _four_slots(cls, v):
        if v is not None and len(v) != IMAGE_SLOTS:
            raise ValueError(f"images must have exactly {IMAGE_SLOTS} slots")
        return v


class Order(BaseModel):
    id: str
    client: str
    demande: str
    email: Optional[str] = None
    phone: Optional[str] = None
    boutique: Optional[str] = None
    images: List[Optional[str]] = PydanticField(default_factory=lambda: [None] * IMAGE_SLOTS)
    image_collection: Optional[str] = None
    pdf_url: Optional[str] = None
    status: OrderStatus = OrderStatus.generating
    selected_image: Optional[int] = None
    created_at: Optional[datetime] = None

    @field_validator("images")
    @classmethod
    def _four_slots(cls, v):
        if len(v) != IMAGE_SLOTS:
            raise ValueError(f"images must have exactly {IMAGE_SLOTS} slots")
        return [url or None for url in v]

    @model_validator(mode="after")
    def _derive_status(self):
        self.status = effective_status(self.status.value, self.images, self.pdf_url)
        return self

    def populated_images(self) -> List[Tuple[int, str]]:
        return [(i, url) for i, url in enumerate(self.images) if url]

    def image_at(self, index: int) -> str:
        if index < 0 or index >= IMAGE_SLOTS or not self.images[index]:
            raise OrderNotFound("Image not found")
        return self.images[index]

    def alternates_for(self, index: int) -> List[str]:
        """Populated slots other than `index`, in slot order."""
        return [url for i, url in self.populated_images() if i != index]


class SelectedImage(BaseModel):
    url: str
    index: int


class ProposalData(BaseModel):
    """Input of the proposal document generator."""

    client: str
    email: str = ""
    demande: str
    selected_image: SelectedImage
    other_images: List[str] = PydanticField(default_factory=list)
    order_id: str

    @classmethod
    def from_order(cls, order: Order, selected_index: int) -> "ProposalData":
        return cls(
            client=order.client,
            email=order.email or "",
            demande=order.demande,
            selected_image=SelectedImage(url=order.image_at(selected_index), index=selected_index),
            other_images=order.alternates_for(selected_index)[:MAX_ALTERNATES],
            order_id=order.id,
        )
