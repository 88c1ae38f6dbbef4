import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from siva_orders.api.deps import get_lifecycle, get_store, get_watcher, is_mock_mode
from siva_orders.api.errors import failure
from siva_orders.errors import OrderNotFound, StoreError
from siva_orders.models.order import OrderStatus
from siva_orders.services.lifecycle import OrderLifecycle
from siva_orders.services.order_store import OrderStore
from siva_orders.services.validation import IntakeForm
from siva_orders.services.watcher import OrderWatcher

logger = logging.getLogger(__name__)
router = APIRouter()


def _with_mock_flag(body: dict, mock: bool) -> dict:
    if mock:
        body["mockMode"] = True
    return body


@router.post("")
def create_order(form: IntakeForm, lifecycle: OrderLifecycle = Depends(get_lifecycle),
                 mock: bool = Depends(is_mock_mode)):
    """Record a new custom order and ask the relay to generate candidate images."""
    logger.info("Received intake: client=%s type=%s inspirations=%s",
                form.client, form.jewelryType, len(form.inspirationImageUrls))
    try:
        order, relay_result = lifecycle.create(form)
    except StoreError as e:
        raise failure(500, "Failed to create order", e)

    return _with_mock_flag({
        "success": True,
        "orderId": order.id,
        "webhookTriggered": relay_result.success,
    }, mock)


@router.get("")
def list_orders(id: Optional[str] = Query(None), store: OrderStore = Depends(get_store),
                mock: bool = Depends(is_mock_mode)):
    if id:
        return read_order(id, store, mock)
    try:
        orders = store.get_orders()
    except StoreError as e:
        raise failure(500, "Failed to fetch orders", e)
    return _with_mock_flag({"success": True, "orders": [o.model_dump(mode="json") for o in orders]}, mock)


@router.get("/{order_id}")
def read_order(order_id: str, store: OrderStore = Depends(get_store), mock: bool = Depends(is_mock_mode)):
    try:
        order = store.get_order(order_id)
    except OrderNotFound:
        logger.warning("Order not found id=%s", order_id)
        raise failure(404, "Order not found")
    except StoreError as e:
        raise failure(500, "Failed to fetch order", e)
    return _with_mock_flag({"success": True, "order": order.model_dump(mode="json")}, mock)


@router.get("/{order_id}/wait")
async def wait_for_order(
    order_id: str,
    request: Request,
    since: Optional[OrderStatus] = Query(None, description="Last status seen by the caller"),
    known: int = Query(0, ge=0, le=4, description="Number of images the caller already has"),
    timeout: Optional[float] = Query(None, gt=0, le=60),
    watcher: OrderWatcher = Depends(get_watcher),
):
    """Long-poll until the order moves past `since` or gains images beyond `known`."""
    try:
        order, changed = await watcher.wait(
            order_id, since=since, known_images=known,
            is_cancelled=request.is_disconnected, timeout=timeout,
        )
    except OrderNotFound:
        raise failure(404, "Order not found")
    except StoreError as e:
        raise failure(500, "Failed to fetch order", e)
    return {"success": True, "changed": changed, "order": order.model_dump(mode="json")}


@router.delete("/{order_id}")
def delete_order(order_id: str, store: OrderStore = Depends(get_store)):
    try:
        store.delete_order(order_id)
    except OrderNotFound:
        raise failure(404, "Order not found")
    except StoreError as e:
        raise failure(500, "Failed to delete order", e)
    logger.info("Order deleted id=%s", order_id)
    return {"success": True}
