import re
from typing import List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

JewelryType = Literal["Bague", "Collier", "Bracelet", "Boucles d'oreilles", "Pendentif", "Autre"]
JEWELRY_TYPES = get_args(JewelryType)
MAX_INSPIRATION_IMAGES = 3
MAX_NAME = 80
MAX_TEXT = 1000

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class IntakeForm(BaseModel):
    """Custom-order form as submitted by the intake wizard.

    Rules:
    - first/last name: at least 2 characters
    - email: must look like an address
    - jewelryType: one of JEWELRY_TYPES
    - styleDescription >= 10 chars, materials >= 3 chars
    - free text (style, materials, notes) at most MAX_TEXT chars, names at most MAX_NAME
    - at most 3 inspiration image URLs
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    firstName: str = Field(..., min_length=2, max_length=MAX_NAME)
    lastName: str = Field(..., min_length=2, max_length=MAX_NAME)
    email: str
    phone: Optional[str] = Field(None, max_length=40)
    boutiqueName: Optional[str] = Field(None, max_length=MAX_NAME)
    jewelryType: JewelryType
    styleDescription: str = Field(..., min_length=10, max_length=MAX_TEXT)
    materials: str = Field(..., min_length=3, max_length=MAX_TEXT)
    otherNotes: Optional[str] = Field(None, max_length=MAX_TEXT)
    inspirationImageUrls: List[str] = Field(default_factory=list, max_length=MAX_INSPIRATION_IMAGES)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        if not EMAIL_RE.match(v):
            raise ValueError("Veuillez saisir une adresse email valide")
        return v

    @field_validator("phone", "boutiqueName", "otherNotes")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def client(self) -> str:
        return f"{self.firstName} {self.lastName}"

    def demande(self) -> str:
        return build_demande(self.jewelryType, self.styleDescription, self.materials, self.otherNotes)


def build_demande(jewelry_type: str, style: str, materials: str, notes: Optional[str] = None) -> str:
    lines = [f"Type: {jewelry_type}", f"Style: {style}", f"Matériaux: {materials}"]
    if notes:
        lines.append(f"Notes: {notes}")
    return "\n".join(lines)


class EditImageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    orderId: str = Field(..., min_length=1)
    imageIndex: int
    instruction: str = Field(..., min_length=5)


class SelectImageRequest(BaseModel):
    orderId: str = Field(..., min_length=1)
    selectedImageIndex: int


class SendProposalRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    orderId: str = Field(..., min_length=1)
    recipientEmail: str

    @field_validator("recipientEmail")
    @classmethod
    def _email(cls, v: str) -> str:
        if not EMAIL_RE.match(v):
            raise ValueError("Veuillez saisir une adresse email valide")
        return v
