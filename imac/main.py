"""FastAPI application entrypoint: wiring, middleware and error handlers only."""

import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from imac.api.error_handling import register_exception_handlers
from imac.api.v1 import router as v1_router
from imac.core.config import Settings, settings

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(cfg: Settings) -> FastAPI:
    application = FastAPI(
        title="IMAC API",
        version="0.1.0",
        docs_url="/docs" if cfg.APP_ENV == "dev" else None,
        redoc_url="/redoc" if cfg.APP_ENV == "dev" else None,
    )
    # Browsers send the access token in the Authorization header, not cookies.
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if cfg.APP_ENV == "dev" else [cfg.FRONTEND_URL],
        allow_credentials=cfg.APP_ENV != "dev",
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )
    register_exception_handlers(application)
    application.include_router(v1_router, prefix=cfg.API_V1_PREFIX)

    @application.get("/")
    def root() -> dict[str, str]:
        return {"message": "IMAC API"}

    logger.info("IMAC API configured", extra={"environment": cfg.APP_ENV})
    return application


app = create_app(settings)
