import logging

from fastapi import APIRouter, Depends

from siva_orders.api.deps import get_lifecycle, is_mock_mode
from siva_orders.api.errors import failure
from siva_orders.errors import OrderNotFound, StoreError
from siva_orders.services.lifecycle import OrderLifecycle
from siva_orders.services.validation import EditImageRequest, SelectImageRequest, SendProposalRequest

logger = logging.getLogger(__name__)
router = APIRouter()


def _ack(message: str, mock: bool) -> dict:
    body = {"success": True, "message": message}
    if mock:
        body["mockMode"] = True
    return body


@router.post("/generate-pdf")
def generate_pdf(req: SelectImageRequest, lifecycle: OrderLifecycle = Depends(get_lifecycle),
                 mock: bool = Depends(is_mock_mode)):
    """Record the selected image and hand PDF production to the relay."""
    try:
        result = lifecycle.request_pdf(req.orderId, req.selectedImageIndex)
    except OrderNotFound as e:
        logger.warning("PDF generation for order id=%s: %s", req.orderId, e.message)
        raise failure(404, "Selected image not found" if e.message == "Image not found" else e.message)
    except StoreError as e:
        raise failure(500, "Failed to generate PDF", e)

    if not result.success:
        raise failure(500, "Failed to generate PDF", RuntimeError(result.error))
    return _ack("PDF generation requested", mock)


@router.post("/edit-image")
def edit_image(req: EditImageRequest, lifecycle: OrderLifecycle = Depends(get_lifecycle),
               mock: bool = Depends(is_mock_mode)):
    try:
        result = lifecycle.edit_image(req.orderId, req.imageIndex, req.instruction)
    except OrderNotFound as e:
        raise failure(404, e.message)
    except StoreError as e:
        raise failure(500, "Failed to edit image", e)

    if not result.success:
        raise failure(500, "Failed to edit image", RuntimeError(result.error))
    return _ack("Image edit request sent successfully", mock)


@router.post("/send-proposal")
def send_proposal(req: SendProposalRequest, lifecycle: OrderLifecycle = Depends(get_lifecycle),
                  mock: bool = Depends(is_mock_mode)):
    try:
        result = lifecycle.send_proposal(req.orderId, req.recipientEmail)
    except OrderNotFound as e:
        raise failure(404, e.message)
    except StoreError as e:
        raise failure(500, "Failed to send proposal", e)

    if not result.success:
        raise failure(500, "Failed to send proposal", RuntimeError(result.error))
    return _ack("Proposal sent successfully", mock)
