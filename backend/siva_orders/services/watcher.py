import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from siva_orders.models.order import Order, OrderStatus
from siva_orders.services.order_store import OrderStore

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], Awaitable[bool]]


def has_changed(order: Order, since: Optional[OrderStatus], known_images: int) -> bool:
    if since is not None and order.status.rank > since.rank:
        return True
    return len(order.populated_images()) > known_images


class OrderWatcher:
    """Long-poll over the record store until an order moves past a known state.

    The relay fills image slots out of band, so the only way to observe it is
    to re-read the order every `poll_interval` seconds. The wait ends on a
    change, on timeout, or when `is_cancelled()` reports the caller is gone.
    """

    def __init__(self, store: OrderStore, poll_interval: float = 3.0, timeout: float = 25.0):
        self.store = store
        self.poll_interval = poll_interval
        self.timeout = timeout

    async def wait(self, order_id: str, since: Optional[OrderStatus] = None, known_images: int = 0,
                   is_cancelled: Optional[CancelCheck] = None,
                   timeout: Optional[float] = None) -> Tuple[Order, bool]:
        deadline = time.monotonic() + (self.timeout if timeout is None else timeout)
        order = await run_in_threadpool(self.store.get_order, order_id)

        while not has_changed(order, since, known_images):
            if time.monotonic() >= deadline:
                return order, False
            await asyncio.sleep(self.poll_interval)
            if is_cancelled is not None and await is_cancelled():
                logger.debug("Wait cancelled order_id=%s", order_id)
                return order, False
            order = await run_in_threadpool(self.store.get_order, order_id)

        logger.info("Order changed order_id=%s status=%s images=%s",
                    order_id, order.status.value, len(order.populated_images()))
        return order, True
