import logging
import re
import time
import unicodedata
from typing import Tuple
from urllib.parse import quote

from siva_orders.errors import OrderNotFound
from siva_orders.models.order import Order, OrderCreate, OrderStatus, OrderUpdate, ProposalData
from siva_orders.services.order_store import OrderStore
from siva_orders.services.proposal_pdf import ProposalGenerator
from siva_orders.services.relay import RelayClient, RelayResult
from siva_orders.services.validation import IntakeForm

logger = logging.getLogger(__name__)


def proposal_filename(client: str, timestamp_ms: int = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    # header-safe: whitespace becomes "_", quotes and separators are dropped
    name = re.sub(r"\s+", "_", client.strip())
    name = re.sub(r'["\\/;]', "", name)
    return f"proposition_{name}_{timestamp_ms}.pdf"


def attachment_disposition(filename: str) -> str:
    """Content-Disposition for `filename`, with an RFC 5987 form for non-ASCII names.

    Header values go out as latin-1, so the plain `filename` parameter carries
    an ASCII transliteration and `filename*` carries the exact UTF-8 name.
    """
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = re.sub(r"_+", "_", re.sub(r"[^A-Za-z0-9_.\-]", "", fallback))
    header = f'attachment; filename="{fallback}"'
    if fallback != filename:
        header += f"; filename*=UTF-8''{quote(filename, safe='')}"
    return header


class OrderLifecycle:
    """Order lifecycle steps: intake, image selection, edits, proposal delivery.

    Store errors propagate (`OrderNotFound`, `StoreError`); relay outcomes are
    returned as `RelayResult` for the caller to branch on.
    """

    def __init__(self, store: OrderStore, relay: RelayClient, generator: ProposalGenerator = None):
        self.store = store
        self.relay = relay
        self.generator = generator or ProposalGenerator()

    def create(self, form: IntakeForm) -> Tuple[Order, RelayResult]:
        order = self.store.create_order(OrderCreate(
            client=form.client,
            email=form.email,
            demande=form.demande(),
            phone=form.phone,
            boutique=form.boutiqueName,
        ))
        logger.info("Created order id=%s client=%s", order.id, order.client)

        # the order stays even when the relay is down; no images will arrive for it
        result = self.relay.generate_images(
            order.id, order.client, order.email or "", order.demande, form.inspirationImageUrls,
        )
        if not result.success:
            logger.warning("Image generation not triggered for order id=%s: %s", order.id, result.error)
        return order, result

    def select(self, order_id: str, selected_index: int) -> Tuple[Order, ProposalData]:
        """Resolve the chosen slot and record it on the order."""
        order = self.store.get_order(order_id)
        proposal = ProposalData.from_order(order, selected_index)
        order = self.store.update_order(order_id, OrderUpdate(selected_image=selected_index))
        logger.info("Order id=%s selected image=%s alternates=%s",
                    order_id, selected_index, len(proposal.other_images))
        return order, proposal

    def render_pdf(self, order_id: str, selected_index: int) -> Tuple[Order, bytes]:
        order, proposal = self.select(order_id, selected_index)
        return order, self.generator.generate(proposal)

    def request_pdf(self, order_id: str, selected_index: int) -> RelayResult:
        order, proposal = self.select(order_id, selected_index)
        return self.relay.generate_pdf(
            order.id, selected_index, proposal.selected_image.url, proposal.other_images,
            order.client, order.email or "",
        )

    def edit_image(self, order_id: str, image_index: int, instruction: str) -> RelayResult:
        order = self.store.get_order(order_id)
        current_url = order.image_at(image_index)
        logger.info("Edit requested order id=%s image=%s", order_id, image_index)
        return self.relay.edit_image(order_id, image_index, instruction, current_url)

    def send_proposal(self, order_id: str, recipient_email: str) -> RelayResult:
        order = self.store.get_order(order_id)
        if not order.pdf_url:
            raise OrderNotFound("PDF not found for this order")

        result = self.relay.send_proposal(order_id, recipient_email, order.client, order.pdf_url)
        if result.success:
            self.store.update_order(order_id, OrderUpdate(status=OrderStatus.sent))
            logger.info("Proposal sent order id=%s to=%s", order_id, recipient_email)
        else:
            logger.warning("Proposal not sent order id=%s: %s", order_id, result.error)
        return result
