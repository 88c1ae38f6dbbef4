"""
Pytest fixtures for the order service tests.

The app is wired to a local in-memory SQLite store and a recording relay
through FastAPI dependency overrides; nothing leaves the process.
"""
import os

import pytest

# Set test environment before importing the app
os.environ["ENVIRONMENT"] = "development"
os.environ["STORE_BACKEND"] = "sql"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MOCK_MODE"] = "false"
os.environ["POLL_INTERVAL"] = "0.01"
os.environ["WAIT_TIMEOUT"] = "0.2"
for name in ("WEBHOOK_IMAGE_GENERATION", "WEBHOOK_IMAGE_EDIT", "WEBHOOK_PDF_GENERATION", "WEBHOOK_SEND_PROPOSAL"):
    os.environ.pop(name, None)

from fastapi.testclient import TestClient  # noqa: E402

from siva_orders.api import deps  # noqa: E402
from siva_orders.db.session import make_engine  # noqa: E402
from siva_orders.main import app  # noqa: E402
from siva_orders.models.order import OrderCreate, OrderUpdate  # noqa: E402
from siva_orders.services.order_store import SQLOrderStore  # noqa: E402
from siva_orders.services.proposal_pdf import ProposalGenerator  # noqa: E402
from siva_orders.services.watcher import OrderWatcher  # noqa: E402

from factories import RecordingRelay, gold_square  # noqa: E402


@pytest.fixture
def store():
    return SQLOrderStore(make_engine("sqlite://"))


@pytest.fixture
def relay():
    return RecordingRelay()


@pytest.fixture
def fetched_urls():
    return []


@pytest.fixture
def generator(fetched_urls):
    """Generator whose image fetcher never touches the network."""

    def fetch(url):
        fetched_urls.append(url)
        if "unreachable" in url:
            return None
        return gold_square()

    return ProposalGenerator(image_fetcher=fetch)


@pytest.fixture
def client(store, relay, generator):
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_relay] = lambda: relay
    app.dependency_overrides[deps.get_generator] = lambda: generator
    app.dependency_overrides[deps.is_mock_mode] = lambda: False
    app.dependency_overrides[deps.get_watcher] = lambda: OrderWatcher(store, poll_interval=0.01, timeout=0.2)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def intake_payload():
    return {
        "firstName": "Jeanne",
        "lastName": "Dupont",
        "email": "jeanne.dupont@example.com",
        "jewelryType": "Bague",
        "styleDescription": "Bague solitaire, monture fine",
        "materials": "or blanc, diamant",
    }


@pytest.fixture
def make_order(store):
    """Create an order directly in the store, optionally with images and a PDF."""

    def _make(client="Jeanne Dupont", demande="Bague solitaire, or blanc, diamant",
              email="jeanne.dupont@example.com", images=None, pdf_url=None):
        order = store.create_order(OrderCreate(client=client, email=email, demande=demande))
        fields = {}
        if images is not None:
            fields["images"] = images
        if pdf_url is not None:
            fields["pdf_url"] = pdf_url
        if fields:
            order = store.update_order(order.id, OrderUpdate(**fields))
        return order

    return _make
