import requests
import logging
from typing import Dict, Any, List, Optional

from pydantic import BaseModel

from siva_orders.config import settings

logger = logging.getLogger(__name__)


class RelayResult(BaseModel):
    success: bool
    data: Any = None
    error: Optional[str] = None


class RelayClient:
    """Outbound notifications to the automation relay.

    Each call is a single POST to its own webhook URL. Calls never raise:
    callers branch on `RelayResult.success`. No retries are attempted.
    """

    def __init__(self, image_generation_url: Optional[str] = None, image_edit_url: Optional[str] = None,
                 pdf_generation_url: Optional[str] = None, send_proposal_url: Optional[str] = None,
                 timeout: float = 10.0):
        self.image_generation_url = image_generation_url
        self.image_edit_url = image_edit_url
        self.pdf_generation_url = pdf_generation_url
        self.send_proposal_url = send_proposal_url
        self.timeout = timeout
        logger.debug("RelayClient initialized generate=%s edit=%s pdf=%s send=%s",
                     bool(image_generation_url), bool(image_edit_url),
                     bool(pdf_generation_url), bool(send_proposal_url))

    @classmethod
    def from_settings(cls) -> "RelayClient":
        return cls(
            image_generation_url=settings.WEBHOOK_IMAGE_GENERATION,
            image_edit_url=settings.WEBHOOK_IMAGE_EDIT,
            pdf_generation_url=settings.WEBHOOK_PDF_GENERATION,
            send_proposal_url=settings.WEBHOOK_SEND_PROPOSAL,
            timeout=settings.WEBHOOK_TIMEOUT,
        )

    def _post(self, name: str, url: Optional[str], payload: Dict[str, Any]) -> RelayResult:
        if not url:
            logger.warning("Relay %s skipped: webhook URL not configured", name)
            return RelayResult(success=False, error="Webhook URL not configured")

        try:
            logger.debug("Calling relay %s url=%s orderId=%s", name, url, payload.get("orderId"))
            resp = requests.post(url, json=payload, timeout=self.timeout,
                                 headers={"Content-Type": "application/json"})
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Relay %s failed orderId=%s: %s", name, payload.get("orderId"), e)
            return RelayResult(success=False, error=str(e))

        # relay bodies are opaque; keep text when it is not JSON
        try:
            data = resp.json()
        except ValueError:
            data = resp.text or None
        logger.info("Relay %s triggered orderId=%s status=%s", name, payload.get("orderId"), resp.status_code)
        return RelayResult(success=True, data=data)

    def generate_images(self, order_id: str, client: str, email: str, demande: str,
                        inspiration_images: Optional[List[str]] = None) -> RelayResult:
        return self._post("image_generation", self.image_generation_url, {
            "orderId": order_id,
            "client": client,
            "email": email,
            "demande": demande,
            "inspirationImages": list(inspiration_images or []),
        })

    def edit_image(self, order_id: str, image_index: int, edit_instruction: str,
                   current_image_url: str) -> RelayResult:
        return self._post("image_edit", self.image_edit_url, {
            "orderId": order_id,
            "imageIndex": image_index,
            "editInstruction": edit_instruction,
            "currentImageUrl": current_image_url,
        })

    def generate_pdf(self, order_id: str, selected_image_index: int, selected_image_url: str,
                     other_images: List[str], client_name: str, client_email: str) -> RelayResult:
        return self._post("pdf_generation", self.pdf_generation_url, {
            "orderId": order_id,
            "selectedImageIndex": selected_image_index,
            "selectedImageUrl": selected_image_url,
            "otherImages": list(other_images),
            "clientData": {"name": client_name, "email": client_email},
        })

    def send_proposal(self, order_id: str, recipient_email: str, client_name: str, pdf_url: str) -> RelayResult:
        return self._post("send_proposal", self.send_proposal_url, {
            "orderId": order_id,
            "recipientEmail": recipient_email,
            "clientName": client_name,
            "pdfUrl": pdf_url,
        })


class NullRelayClient(RelayClient):
    """Mock-mode relay: records payloads instead of sending them."""

    def __init__(self):
        super().__init__()
        self.calls: List[Dict[str, Any]] = []

    def _post(self, name: str, url: Optional[str], payload: Dict[str, Any]) -> RelayResult:
        logger.info("Mock relay %s orderId=%s", name, payload.get("orderId"))
        self.calls.append({"name": name, "payload": payload})
        return RelayResult(success=True, data={"mock": True})
