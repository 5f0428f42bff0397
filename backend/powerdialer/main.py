"""
FastAPI Application Entry Point
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from powerdialer.api.v1.routes import api_router
from powerdialer.core.config import get_settings

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan - startup and shutdown events.

    Startup:
    - Resolves the lead store so misconfiguration fails early in production

    Shutdown:
    - Closes the Redis connection used for lead reservations
    """
    from powerdialer.api.v1.dependencies import get_lead_store, get_reservation_service

    settings = get_settings()
    logger.info(f"Starting Power Dialer ({settings.environment}, store={settings.store_backend})...")

    try:
        get_lead_store()
    except RuntimeError as e:
        if settings.environment == "production":
            logger.error(f"Startup failed: {e}")
            raise
        logger.warning(f"Lead store not configured (non-fatal in {settings.environment}): {e}")

    logger.info("Power Dialer started successfully")

    yield  # Application is running

    logger.info("Shutting down Power Dialer...")

    reservations = get_reservation_service()
    if reservations:
        try:
            await reservations.close()
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

    logger.info("Power Dialer shutdown complete")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Power Dialer",
        description="Outbound calling queue, dispositions and lead reconciliation",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        return {"message": "Power Dialer API", "status": "running"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
