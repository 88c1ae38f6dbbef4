import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from siva_orders.db.session import get_session, init_db
from siva_orders.errors import OrderNotFound, StoreError
from siva_orders.models.order import IMAGE_SLOTS, Order, OrderCreate, OrderRow, OrderStatus, OrderUpdate, utcnow
from siva_orders.services.fixtures import FIXTURE_ORDERS

logger = logging.getLogger(__name__)


def gen_record_id() -> str:
    # same shape as Airtable record ids: rec + 14 chars
    return "rec" + uuid.uuid4().hex[:14]


class OrderStore(ABC):
    """Record store contract for Order records.

    Every call is a single remote (or local) round trip; there is no
    transaction across calls. Failures surface as `OrderNotFound` or
    `StoreError`, nothing else.
    """

    @abstractmethod
    def create_order(self, data: OrderCreate) -> Order: ...

    @abstractmethod
    def get_order(self, order_id: str) -> Order: ...

    @abstractmethod
    def get_orders(self) -> List[Order]: ...

    @abstractmethod
    def update_order(self, order_id: str, update: OrderUpdate) -> Order: ...

    @abstractmethod
    def delete_order(self, order_id: str) -> None: ...


def _row_to_order(row: OrderRow) -> Order:
    return Order(
        id=row.id,
        client=row.client,
        demande=row.demande,
        email=row.email,
        phone=row.phone,
        boutique=row.boutique,
        images=[row.image_1, row.image_2, row.image_3, row.image_4],
        image_collection=row.image_collection,
        pdf_url=row.pdf_url,
        status=row.status,
        selected_image=row.selected_image,
        created_at=row.created_at,
    )


class SQLOrderStore(OrderStore):
    """Order store backed by a local SQL database through SQLModel."""

    def __init__(self, engine=None):
        self.engine = engine
        init_db(engine)

    def create_order(self, data: OrderCreate) -> Order:
        session = get_session(self.engine)
        try:
            row = OrderRow(id=gen_record_id(), status=OrderStatus.generating.value, **data.model_dump())
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.info("SQL order created id=%s client=%s", row.id, row.client)
            return _row_to_order(row)
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("Failed to create order: %s", e)
            raise StoreError("Failed to create order") from e
        finally:
            session.close()

    def get_order(self, order_id: str) -> Order:
        session = get_session(self.engine)
        try:
            row = session.get(OrderRow, order_id)
            if row is None:
                raise OrderNotFound()
            return _row_to_order(row)
        except SQLAlchemyError as e:
            logger.exception("Failed to read order id=%s: %s", order_id, e)
            raise StoreError("Failed to fetch order") from e
        finally:
            session.close()

    def get_orders(self) -> List[Order]:
        session = get_session(self.engine)
        try:
            rows = session.exec(select(OrderRow).order_by(OrderRow.created_at.desc())).all()
            return [_row_to_order(r) for r in rows]
        except SQLAlchemyError as e:
            logger.exception("Failed to list orders: %s", e)
            raise StoreError("Failed to fetch orders") from e
        finally:
            session.close()

    def update_order(self, order_id: str, update: OrderUpdate) -> Order:
        session = get_session(self.engine)
        try:
            row = session.get(OrderRow, order_id)
            if row is None:
                raise OrderNotFound()
            changes = update.model_dump(exclude_unset=True)
            images = changes.pop("images", None)
            if images is not None:
                for i in range(IMAGE_SLOTS):
                    setattr(row, f"image_{i + 1}", images[i])
            if "status" in changes and changes["status"] is not None:
                changes["status"] = OrderStatus(changes["status"]).value
            for key, value in changes.items():
                setattr(row, key, value)
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.debug("SQL order updated id=%s fields=%s", order_id, sorted(update.model_fields_set))
            return _row_to_order(row)
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("Failed to update order id=%s: %s", order_id, e)
            raise StoreError("Failed to update order") from e
        finally:
            session.close()

    def delete_order(self, order_id: str) -> None:
        session = get_session(self.engine)
        try:
            row = session.get(OrderRow, order_id)
            if row is None:
                raise OrderNotFound()
            session.delete(row)
            session.commit()
            logger.info("SQL order deleted id=%s", order_id)
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("Failed to delete order id=%s: %s", order_id, e)
            raise StoreError("Failed to delete order") from e
        finally:
            session.close()


class FixtureOrderStore(OrderStore):
    """Mock-mode store seeded with static fixture orders.

    Writes live in memory for the lifetime of the instance.
    """

    def __init__(self, seed: Optional[List[Dict]] = None):
        self._lock = threading.Lock()
        self._orders: Dict[str, Dict] = {}
        for rec in copy.deepcopy(FIXTURE_ORDERS if seed is None else seed):
            self._orders[rec["id"]] = rec

    def _get(self, order_id: str) -> Dict:
        rec = self._orders.get(order_id)
        if rec is None:
            raise OrderNotFound()
        return rec

    def create_order(self, data: OrderCreate) -> Order:
        rec = data.model_dump()
        rec.update(
            id=gen_record_id(),
            images=[None] * IMAGE_SLOTS,
            status=OrderStatus.generating.value,
            created_at=utcnow().isoformat(),
        )
        with self._lock:
            self._orders[rec["id"]] = rec
        logger.info("Fixture order created id=%s client=%s", rec["id"], rec["client"])
        return Order(**rec)

    def get_order(self, order_id: str) -> Order:
        with self._lock:
            return Order(**copy.deepcopy(self._get(order_id)))

    def get_orders(self) -> List[Order]:
        with self._lock:
            orders = [Order(**copy.deepcopy(rec)) for rec in self._orders.values()]
        return sorted(orders, key=lambda o: o.created_at.timestamp() if o.created_at else 0, reverse=True)

    def update_order(self, order_id: str, update: OrderUpdate) -> Order:
        changes = update.model_dump(exclude_unset=True)
        if changes.get("status") is not None:
            changes["status"] = OrderStatus(changes["status"]).value
        with self._lock:
            rec = self._get(order_id)
            rec.update(changes)
            return Order(**copy.deepcopy(rec))

    def delete_order(self, order_id: str) -> None:
        with self._lock:
            self._get(order_id)
            del self._orders[order_id]
        logger.info("Fixture order deleted id=%s", order_id)
