import logging
from functools import lru_cache

from fastapi import Depends

from siva_orders.config import settings
from siva_orders.db.session import get_engine
from siva_orders.services.airtable import AirtableOrderStore
from siva_orders.services.lifecycle import OrderLifecycle
from siva_orders.services.order_store import FixtureOrderStore, OrderStore, SQLOrderStore
from siva_orders.services.proposal_pdf import ProposalGenerator
from siva_orders.services.relay import NullRelayClient, RelayClient
from siva_orders.services.watcher import OrderWatcher

logger = logging.getLogger(__name__)


@lru_cache()
def get_store() -> OrderStore:
    backend = settings.store_backend
    logger.info("Using %s order store", backend)
    if backend == "fixtures":
        return FixtureOrderStore()
    if backend == "sql":
        return SQLOrderStore(get_engine())
    if backend == "airtable":
        return AirtableOrderStore(
            api_key=settings.AIRTABLE_API_KEY,
            base_id=settings.AIRTABLE_BASE_ID,
            table_name=settings.AIRTABLE_TABLE_NAME,
            api_url=settings.AIRTABLE_API_URL,
            phone_field=settings.AIRTABLE_PHONE_FIELD,
            boutique_field=settings.AIRTABLE_BOUTIQUE_FIELD,
        )
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


@lru_cache()
def get_relay() -> RelayClient:
    if is_mock_mode():
        return NullRelayClient()
    return RelayClient.from_settings()


@lru_cache()
def get_generator() -> ProposalGenerator:
    return ProposalGenerator()


def is_mock_mode() -> bool:
    return settings.mock_mode


def get_lifecycle(
    store: OrderStore = Depends(get_store),
    relay: RelayClient = Depends(get_relay),
    generator: ProposalGenerator = Depends(get_generator),
) -> OrderLifecycle:
    return OrderLifecycle(store, relay, generator)


def get_watcher(store: OrderStore = Depends(get_store)) -> OrderWatcher:
    return OrderWatcher(store, poll_interval=settings.POLL_INTERVAL, timeout=settings.WAIT_TIMEOUT)
