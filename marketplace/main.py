import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace.config import get_settings
from marketplace.database import SessionLocal
from marketplace.errors import register_exception_handlers
from marketplace.realtime import SubscriptionRegistry, run_pump
from marketplace.services import notification_service

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: realtime registry owned by the application instance
    registry = SubscriptionRegistry()
    app.state.realtime = registry
    app.state.session_factory = SessionLocal
    notification_service.register_listeners(registry, SessionLocal)

    pump = asyncio.create_task(
        run_pump(
            registry,
            interval_seconds=settings.REALTIME_PUMP_INTERVAL_SECONDS,
            cleanup_interval_seconds=settings.REALTIME_CLEANUP_INTERVAL_SECONDS,
        )
    )
    logger.info("Realtime registry started (max %d subscriptions)", registry.max_subscriptions)
    yield

    # Shutdown
    registry.close()
    pump.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await pump
    logger.info("Realtime registry stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

from marketplace.routers import auth  # noqa: E402

app.include_router(auth.router, prefix="/api/auth")

# Catalog and bookings
from marketplace.routers import bookings, services  # noqa: E402

app.include_router(services.router, prefix="/api/services")
app.include_router(bookings.router, prefix="/api/bookings")

# Milestones, tasks and progress rollup
from marketplace.routers import milestones, progress, tasks  # noqa: E402

app.include_router(milestones.router, prefix="/api/milestones")
app.include_router(tasks.router, prefix="/api/tasks")
app.include_router(progress.router, prefix="/api/progress")

# Automation and messaging
from marketplace.routers import notifications, realtime, webhooks  # noqa: E402

app.include_router(webhooks.router, prefix="/api/webhooks")
app.include_router(notifications.router, prefix="/api/notifications")
app.include_router(realtime.router, prefix="/api/realtime")

# Billing and reporting
from marketplace.routers import invoices, reports  # noqa: E402

app.include_router(invoices.router, prefix="/api/invoices")
app.include_router(reports.router, prefix="/api/reports")
