import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from stockkeeper.core.db import init_db, close_db
from stockkeeper.api.v1.items import router as items_router
from stockkeeper.api.v1.usage import router as usage_router
from stockkeeper.api.v1.purchase_orders import router as purchase_orders_router
from stockkeeper.api.v1.alerts import router as alerts_router
from stockkeeper.api.v1.users import router as users_router
from stockkeeper.api.v1.stats import router as stats_router
from stockkeeper.core.config import PROJECT_NAME, VERSION, LOG_LEVEL, OUTBOX_POLLER_ENABLED, DIGEST_ENABLED
from stockkeeper.core.exception_handlers import setup_exception_handlers
from stockkeeper.consumers.outbox_poller import run_outbox_poller
from stockkeeper.consumers.digest_scheduler import build_digest_scheduler

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db() # Connect to DB and generate schemas

    poller_task = None
    if OUTBOX_POLLER_ENABLED:
        poller_task = asyncio.create_task(run_outbox_poller())

    scheduler = None
    if DIGEST_ENABLED:
        scheduler = build_digest_scheduler()
        scheduler.start()
        log.info("Alert digest scheduler started.")

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
    if poller_task is not None:
        poller_task.cancel()
        try:
            await poller_task
        except asyncio.CancelledError:
            pass
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")

app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    # Configure API documentation and paths
    docs_url="/docs",
    redoc_url="/redoc"
)

# Include routers for modular API structure
app.include_router(items_router, prefix="/api/v1/items", tags=["Items"])
app.include_router(usage_router, prefix="/api/v1/usage", tags=["Usage"])
app.include_router(purchase_orders_router, prefix="/api/v1", tags=["Purchase Orders"])
app.include_router(alerts_router, prefix="/api/v1/alerts", tags=["Alerts"])
app.include_router(users_router, prefix="/api/v1/users", tags=["Users"])
app.include_router(stats_router, prefix="/api/v1/stats", tags=["Stats"])


setup_exception_handlers(app)

@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}
