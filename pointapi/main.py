import logging
from typing import Optional

from dependency_injector import providers
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from mangum import Mangum

from pointapi import containers
from pointapi.config import Settings
from pointapi.core.exception_handlers import (
    handle_point_error,
    handle_unexpected_error,
    handle_validation_error,
)
from pointapi.core.exceptions import PointError
from pointapi.core.logging_middleware import LoggingMiddleware
from pointapi.logging_config import setup_logging
from pointapi.routers import health_router, point_router

load_dotenv("pointapi/.env")
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """FastAPI 앱 생성

    settings를 넘기면 컨테이너의 설정을 해당 인스턴스로 교체한다 (테스트용).
    """
    container = containers.Container()
    if settings is not None:
        container.config.config.override(providers.Object(settings))
    settings = container.config.config()

    setup_logging(settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    app = FastAPI(title=settings.APP_NAME)
    app.container = container  # type: ignore

    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(PointError, handle_point_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(health_router.router)
    app.include_router(point_router.router, prefix=settings.API_V1_STR)

    logger.info(
        f"{settings.APP_NAME} started (environment={settings.ENVIRONMENT}, storage={settings.STORAGE_BACKEND})"
    )
    return app


app = create_app()

handler = Mangum(app)
