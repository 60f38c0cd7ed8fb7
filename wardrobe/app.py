"""
Application factory.

``create_app(settings)`` wires CORS, the auth gate, error handlers and the
routers. The Mongo client, image service and AI client are built once in the
lifespan and shared by every request through ``app.state``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .ai import CompletionClient
from .config import Settings
from .db import connect, ensure_indexes
from .errors import install_error_handlers
from .images import ImageService
from .routers import auth_router, items_router, outfits_router, suggestions_router
from .security import auth_gate

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Starting wardrobe service (%s)", settings.environment)

    client = connect(settings)
    app.state.mongo = client
    app.state.db = client[settings.mongo_db]
    ensure_indexes(app.state.db)

    app.state.images = ImageService(settings)
    app.state.completions = CompletionClient(settings)
    if not settings.ai_api_keys:
        logger.warning("No AI API keys configured; suggestions are disabled")

    try:
        yield
    finally:
        logger.info("Shutting down wardrobe service")
        client.close()


def create_app(settings: Settings) -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title="Wardrobe Catalog API", version=__version__, lifespan=lifespan)
    app.state.settings = settings

    app.middleware("http")(auth_gate)
    # added last so it wraps the gate: 401s still carry CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(items_router)
    app.include_router(outfits_router)
    app.include_router(suggestions_router)
    return app
