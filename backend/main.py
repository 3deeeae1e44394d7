from fastapi import FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional
import asyncio
import logging
import sys

from api import delivery, presign
from config.app_config import AppConfig
from constants import HTTPStatus
from dependencies import ServiceContainer, build_container
from exceptions import ConfigurationError
from services.websocket import websocket_endpoint
from utils.error_handlers import error_response

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(log_dir: Path, level: str = "INFO") -> Path:
    """
    Configure root logging with a rotating file handler and a console handler.

    Returns:
        Path of the active log file
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "backend.log"
    log_formatter = logging.Formatter(LOG_FORMAT)

    # File handler with rotation (10MB per file, keep 5 backups)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(log_formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logger.info(f"Logging initialized: {log_file}")
    return log_file


def _build_lifespan(container: ServiceContainer):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan - startup and shutdown"""
        logger.info("Starting background services...")
        container.config.log_summary()

        # Connectivity check only; the service starts even if storage is down
        storage_check = asyncio.create_task(container.gateway.check_connection())

        logger.info("✅ Application startup complete")
        yield

        logger.info("Stopping background services...")
        if not storage_check.done():
            storage_check.cancel()
            try:
                await storage_check
            except asyncio.CancelledError:
                pass

        await container.pool.stop()
        await container.connections.close_all()
        await container.transfer.aclose()
        logger.info("Application shutdown complete")

    return lifespan


def create_app(config: Optional[AppConfig] = None, container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application.

    With no arguments the configuration is read from the environment and
    logging is configured (the `uvicorn main:create_app --factory` path).
    Tests pass a prepared container.
    """
    if container is None:
        if config is None:
            config = AppConfig.from_env()
            configure_logging(config.log_dir, config.log_level)
        container = build_container(config)
    config = container.config

    app = FastAPI(
        title="Moderated Capture API",
        description="Signaling relay, signed storage URLs and mirrored video delivery",
        version="1.0.0",
        lifespan=_build_lifespan(container),
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.allowed_origin],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
        return error_response(HTTPStatus.BAD_REQUEST, "Bad Request")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")

    app.include_router(presign.router, prefix="/api")
    app.include_router(delivery.router)

    @app.websocket(config.socket_path)
    async def websocket_route(websocket: WebSocket):
        """Signaling channel for recorders and moderators"""
        await websocket_endpoint(websocket, container.connections, container.relay)

    @app.get("/health", response_class=PlainTextResponse)
    def health_check():
        """Liveness check"""
        return "ok"

    # Static pages last so API routes win
    if config.public_dir and Path(config.public_dir).is_dir():
        app.mount("/", StaticFiles(directory=str(config.public_dir), html=True), name="public")
        logger.info(f"Serving static files from {config.public_dir}")
    else:
        logger.info("No public directory found - running in API-only mode")

    return app


if __name__ == "__main__":
    import uvicorn

    try:
        app_config = AppConfig.from_env()
    except ConfigurationError as e:
        logging.basicConfig(format=LOG_FORMAT)
        logger.error(f"❌ {e.message}")
        sys.exit(1)

    configure_logging(app_config.log_dir, app_config.log_level)
    application = create_app(container=build_container(app_config))

    logger.info(f"🚀 Starting signaling server on http://{app_config.host}:{app_config.port}{app_config.socket_path}")
    uvicorn.run(application, host=app_config.host, port=app_config.port)
