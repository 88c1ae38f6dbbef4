import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from siva_orders.api.deps import get_lifecycle
from siva_orders.api.errors import failure
from siva_orders.errors import OrderNotFound, StoreError
from siva_orders.services.lifecycle import OrderLifecycle, attachment_disposition, proposal_filename
from siva_orders.services.validation import SelectImageRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/download")
def download_pdf(req: SelectImageRequest, lifecycle: OrderLifecycle = Depends(get_lifecycle)):
    """Generate the proposal for the selected image and stream it back as a PDF attachment."""
    try:
        order, pdf = lifecycle.render_pdf(req.orderId, req.selectedImageIndex)
    except OrderNotFound as e:
        logger.warning("PDF download for order id=%s: %s", req.orderId, e.message)
        raise failure(404, "Selected image not found" if e.message == "Image not found" else e.message)
    except StoreError as e:
        raise failure(500, "Failed to generate PDF", e)

    filename = proposal_filename(order.client)
    logger.info("Serving proposal %s (%s bytes)", filename, len(pdf))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": attachment_disposition(filename)},
    )
