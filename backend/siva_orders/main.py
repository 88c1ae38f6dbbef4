import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from siva_orders.api import orders, pdf, webhooks, pages
from siva_orders.api.errors import register_exception_handlers
from siva_orders.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Siva Créations - Custom Orders")

    # CORS for frontend dev
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(orders.router, prefix="/orders", tags=["orders"])
    app.include_router(pdf.router, prefix="/pdf", tags=["pdf"])
    app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
    app.include_router(pages.router, prefix="", tags=["pages"])

    logger.info("Siva orders app ready env=%s store=%s mock=%s",
                settings.ENVIRONMENT, settings.store_backend, settings.mock_mode)
    return app


app = create_app()
