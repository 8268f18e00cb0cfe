"""Card Sync Gateway — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map CardSyncError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - One anonymous CardSyncClient per process, started and closed by the lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - The gateway reuses the client core: share links resolve through the same
      Entity Store → cache → service cascade, and the cache is shared across requests
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cardsync.api.error_handlers import register_error_handlers
from cardsync.api.routes import health, share
from cardsync.config import get_settings
from cardsync.infrastructure.observability import setup_logging
from cardsync.services.client import build_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    client = build_client(settings)
    await client.start()
    app.state.client = client
    logger.info("Card sync gateway started")
    yield
    logger.info("Card sync gateway shutting down")
    await client.aclose()


app = FastAPI(
    title="Card Sync Gateway", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(share.router)

register_error_handlers(app)
