from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from washdesk.config import get_settings
from washdesk.dependencies.services import (
    get_metrics_registry_cached,
    get_store_client_cached,
)
from washdesk.health import router as health_router
from washdesk.routes.dashboard import router as dashboard_router
from washdesk.routes.metrics import router as metrics_router


def configure_logging() -> None:
    """Ensure application logs use the INFO level by default."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)


configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    settings_snapshot = settings.model_dump(exclude={"store_api_key"})
    logger.info("Application settings on startup: %s", settings_snapshot)

    client = get_store_client_cached()
    logger.info(
        "Application startup complete (%s data).",
        "mock" if client.use_mock_data else "live",
    )

    try:
        yield
    finally:
        logger.info("Releasing metrics subscriptions.")
        get_metrics_registry_cached().close()
        logger.info("Closing data store client connection.")
        await client.close()
        logger.info("Application shutdown complete.")


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(metrics_router, prefix="/metrics")
app.include_router(dashboard_router, prefix="/dashboard")
app.include_router(health_router)
