import logging
from logging.config import dictConfig

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.infrastructure.config.settings import settings
from src.application.lifecycle import lifespan
from src.application.module_registry import register_modules

dictConfig(settings.get_logging_config())
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    register_modules(app)
    return app


app = create_app()


if __name__ == "__main__":
    logger.info(f"🚀 {settings.app_name} listening on port {settings.port}")
    uvicorn.run("src.main:app", host="0.0.0.0", port=settings.port, reload=settings.is_development)
