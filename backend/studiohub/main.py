# backend/studiohub/main.py
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, FastAPI
from starlette.middleware.gzip import GZipMiddleware
from starlette.types import Receive, Scope, Send

from .core.broadcast import connect_broadcast, disconnect_broadcast
from .core.config import is_running_tests, settings
from .core.constants import BRAND_NAME, SSE_PATH_PREFIX
from .database import init_db
from .errors import register_error_handlers
from .routes import metrics
from .routes.v1 import cart as cart_v1
from .routes.v1 import events as events_v1
from .routes.v1 import items as items_v1
from .routes.v1 import reservations as reservations_v1
from .services.notifications.change_notifier import ChangeNotifier
from .workers.reservation_scheduler import ReservationScheduler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    init_db()

    notifier = ChangeNotifier()
    app.state.change_notifier = notifier
    try:
        broadcast = await connect_broadcast()
        notifier.bind(broadcast, asyncio.get_running_loop())
        logger.info("[BROADCAST] SSE multiplexer initialized")
    except Exception as e:
        # Reservations keep working; change events are dropped until restart
        logger.error(f"[BROADCAST] Failed to initialize broadcaster: {e}")

    scheduler: Optional[ReservationScheduler] = None
    if settings.scheduler_enabled and not settings.is_testing:
        scheduler = ReservationScheduler(notifier=notifier)
        scheduler.start()
    app.state.reservation_scheduler = scheduler

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")

    if scheduler is not None:
        await asyncio.to_thread(scheduler.stop)

    notifier.unbind()
    try:
        await disconnect_broadcast()
        logger.info("[BROADCAST] SSE multiplexer disconnected")
    except Exception as e:
        logger.error(f"[BROADCAST] Error disconnecting broadcaster: {e}")


app = FastAPI(
    title=f"{BRAND_NAME} API",
    description="Studio rental reservations: slot holds, confirmation and expiry",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

register_error_handlers(app)


class SSEAwareGZipMiddleware(GZipMiddleware):
    """GZip everything except the event stream, which must not be buffered."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope.get("path", "").startswith(SSE_PATH_PREFIX):
            await self.app(scope, receive, send)
        else:
            await super().__call__(scope, receive, send)


app.add_middleware(SSEAwareGZipMiddleware, minimum_size=500)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(reservations_v1.router, prefix="/reservations")
api_v1.include_router(items_v1.router, prefix="/items")
api_v1.include_router(cart_v1.router, prefix="/cart")
api_v1.include_router(events_v1.router, prefix="/events")

app.include_router(api_v1)
app.include_router(metrics.router)


@app.get("/health", tags=["monitoring"])
async def health() -> dict:
    scheduler = getattr(app.state, "reservation_scheduler", None)
    return {
        "status": "ok",
        "environment": settings.environment,
        "scheduler_running": bool(scheduler and scheduler.is_running),
    }
