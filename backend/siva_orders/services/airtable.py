import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from siva_orders.errors import OrderNotFound, StoreError
from siva_orders.models.order import IMAGE_SLOTS, Order, OrderCreate, OrderStatus, OrderUpdate
from siva_orders.services.order_store import OrderStore

logger = logging.getLogger(__name__)

# Field names of the Airtable "Orders" table. Existing data depends on them.
F_CLIENT = "Client"
F_DEMANDE = "Demande"
F_EMAIL = "Email"
F_IMAGES = [f"Image {i}" for i in range(1, IMAGE_SLOTS + 1)]
F_IMAGE_COLLECTION = "Image collection"
F_PDF = "PDF"
F_STATUS = "Status"
F_SELECTED_IMAGE = "Selected Image"


def _attachment_url(value: Any) -> Optional[str]:
    """First url of an attachment field ([{url: ...}, ...]); plain strings pass through."""
    if isinstance(value, list) and value:
        first = value[0]
        if isinstance(first, dict):
            return first.get("url") or None
        return first or None
    if isinstance(value, str):
        return value or None
    return None


def _attachment(url: Optional[str]) -> List[Dict[str, str]]:
    return [{"url": url}] if url else []


def record_to_order(record: Dict[str, Any], phone_field: Optional[str] = None,
                    boutique_field: Optional[str] = None) -> Order:
    fields = record.get("fields") or {}
    selected = fields.get(F_SELECTED_IMAGE)
    try:
        selected = int(selected) if selected is not None else None
    except (TypeError, ValueError):
        selected = None
    return Order(
        id=record["id"],
        client=fields.get(F_CLIENT) or "",
        demande=fields.get(F_DEMANDE) or "",
        email=fields.get(F_EMAIL),
        phone=fields.get(phone_field) if phone_field else None,
        boutique=fields.get(boutique_field) if boutique_field else None,
        images=[_attachment_url(fields.get(name)) for name in F_IMAGES],
        image_collection=_attachment_url(fields.get(F_IMAGE_COLLECTION)),
        pdf_url=_attachment_url(fields.get(F_PDF)),
        status=fields.get(F_STATUS) or OrderStatus.generating.value,
        selected_image=selected,
        created_at=record.get("createdTime"),
    )


def update_to_fields(update: OrderUpdate) -> Dict[str, Any]:
    changes = update.model_dump(exclude_unset=True)
    fields: Dict[str, Any] = {}
    if "status" in changes and changes["status"] is not None:
        fields[F_STATUS] = OrderStatus(changes["status"]).value
    if "selected_image" in changes:
        fields[F_SELECTED_IMAGE] = changes["selected_image"]
    if "pdf_url" in changes:
        fields[F_PDF] = _attachment(changes["pdf_url"])
    if "image_collection" in changes:
        fields[F_IMAGE_COLLECTION] = _attachment(changes["image_collection"])
    if changes.get("images") is not None:
        for name, url in zip(F_IMAGES, changes["images"]):
            fields[name] = _attachment(url)
    return fields


class AirtableOrderStore(OrderStore):
    """Order store backed by an Airtable table, spoken to over its REST API.

    `phone_field` and `boutique_field` name optional columns. When they are not
    set the base is assumed to have only the core order fields, and phone and
    boutique are not stored.
    """

    def __init__(self, api_key: str, base_id: str, table_name: str,
                 api_url: str = "https://api.airtable.com/v0", timeout: float = 10.0,
                 session: Optional[requests.Session] = None,
                 phone_field: Optional[str] = None, boutique_field: Optional[str] = None):
        if not (api_key and base_id and table_name):
            raise ValueError("Airtable store requires api key, base id and table name")
        self.url = f"{api_url.rstrip('/')}/{base_id}/{quote(table_name, safe='')}"
        self.timeout = timeout
        self.phone_field = phone_field
        self.boutique_field = boutique_field
        self.http = session or requests.Session()
        self.http.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        })

    def _request(self, method: str, order_id: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        """Call the table endpoint, or the record endpoint when `order_id` is given.

        Only a 404 on a record endpoint means the order is missing; on the table
        endpoint it means the base or table is misconfigured.
        """
        path = "/" + quote(order_id, safe="") if order_id is not None else ""
        try:
            resp = self.http.request(method, self.url + path, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("Airtable %s %s failed: %s", method, path or "/", e)
            raise StoreError(str(e)) from e
        if resp.status_code == 404 and order_id is not None:
            raise OrderNotFound()
        if resp.status_code >= 400:
            logger.warning("Airtable %s %s returned status=%s body=%s", method, path or "/", resp.status_code, resp.text[:300])
            raise StoreError(f"Airtable error: status {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise StoreError("Airtable returned invalid JSON") from e

    def _to_order(self, record: Dict[str, Any]) -> Order:
        return record_to_order(record, self.phone_field, self.boutique_field)

    def create_order(self, data: OrderCreate) -> Order:
        fields = {F_CLIENT: data.client, F_DEMANDE: data.demande, F_EMAIL: data.email,
                  F_STATUS: OrderStatus.generating.value}
        optional = (("phone", self.phone_field, data.phone), ("boutique", self.boutique_field, data.boutique))
        for label, column, value in optional:
            if value and column:
                fields[column] = value
            elif value:
                logger.info("No Airtable column configured for %s; not stored for client=%s", label, data.client)
        body = self._request("POST", json={"records": [{"fields": fields}]})
        records = body.get("records") or []
        if not records:
            raise StoreError("Airtable create returned no record")
        order = self._to_order(records[0])
        logger.info("Airtable order created id=%s client=%s", order.id, order.client)
        return order

    def get_order(self, order_id: str) -> Order:
        if not order_id:
            raise OrderNotFound()
        return self._to_order(self._request("GET", order_id))

    def get_orders(self) -> List[Order]:
        records: List[Dict[str, Any]] = []
        params: Dict[str, str] = {}
        while True:
            body = self._request("GET", params=params)
            records.extend(body.get("records") or [])
            offset = body.get("offset")
            if not offset:
                break
            params = {"offset": offset}
        orders = [self._to_order(r) for r in records]
        # createdTime is ISO-8601 UTC, so it sorts correctly as text too
        orders.sort(key=lambda o: o.created_at.isoformat() if o.created_at else "", reverse=True)
        return orders

    def update_order(self, order_id: str, update: OrderUpdate) -> Order:
        fields = update_to_fields(update)
        record = self._request("PATCH", order_id, json={"fields": fields})
        logger.debug("Airtable order updated id=%s fields=%s", order_id, sorted(fields))
        return self._to_order(record)

    def delete_order(self, order_id: str) -> None:
        self._request("DELETE", order_id)
        logger.info("Airtable order deleted id=%s", order_id)
