"""
Library Catalog HTTP Server

The FastAPI application serving the catalog, availability and circulation
endpoints to the browser frontend.

Application lifecycle:
1. ``create_app`` builds the app: CORS, exception mapping, routers
2. Startup (lifespan) creates the process-wide ``DatabaseManager`` and,
   when configured, the tables
3. Requests each get their own session from the manager
4. Shutdown disposes of the engine and its connection pool

Domain errors raised by the repositories are translated here, once:
NotFoundError -> 404, UnavailableError -> 400, anything else from the
store -> 500 with a generic message.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import CatalogConfig, get_config
from .database.errors import NotFoundError, RepositoryException, UnavailableError
from .database.session import DatabaseManager
from .dependencies import get_db_manager, get_settings
from .observability import initialize_observability
from .resources import resource_routers
from .tools import tool_routers

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


def configure_logging(config: CatalogConfig) -> None:
    """Configure root logging once for the process."""
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if not config.is_development:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(UnavailableError)
    async def unavailable_handler(request: Request, exc: UnavailableError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(RepositoryException)
    async def repository_error_handler(request: Request, exc: RepositoryException) -> JSONResponse:
        logger.error(
            "Store failure on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": INTERNAL_ERROR}
        )


def create_app(
    config: CatalogConfig | None = None, db_manager: DatabaseManager | None = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service configuration; the process-wide config when omitted
        db_manager: Pre-built manager (tests); otherwise one is created at
            startup from ``config`` and disposed at shutdown

    Returns:
        The application, ready for uvicorn or ``TestClient``
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owns_manager = db_manager is None
        manager = db_manager or DatabaseManager(
            config.get_database_url(),
            pool_size=config.database_pool_size,
            max_overflow=config.database_max_overflow,
        )
        if config.create_tables_on_startup:
            manager.init_database()
        app.state.db_manager = manager
        logger.info("%s %s started", config.service_name, config.service_version)
        try:
            yield
        finally:
            if owns_manager:
                manager.close()
            logger.info("%s stopped", config.service_name)

    app = FastAPI(
        title="Library Catalog",
        version=config.service_version,
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    for router in resource_routers + tool_routers:
        app.include_router(router)

    @app.get("/health", tags=["health"])
    def health(
        settings: CatalogConfig = Depends(get_settings),
        manager: DatabaseManager = Depends(get_db_manager),
    ) -> dict:
        connected = manager.verify_connection()
        return {
            "status": "ok" if connected else "degraded",
            "database": "connected" if connected else "unavailable",
            "service": settings.service_info,
        }

    return app


def main() -> None:
    """Entry point for the ``library-catalog`` console script."""
    config = get_config()
    configure_logging(config)
    initialize_observability()

    logger.info("=" * 60)
    logger.info("Library Catalog")
    logger.info("Version: %s", config.service_version)
    logger.info("Database: %s", "external URL" if config.database_url else config.database_path)
    logger.info("Listening on %s:%s", config.http_host, config.http_port)
    logger.info("=" * 60)

    try:
        uvicorn.run(
            create_app(config),
            host=config.http_host,
            port=config.http_port,
            log_level=config.log_level.lower(),
        )
    except Exception:
        logger.exception("Failed to start Library Catalog server")
        sys.exit(1)


if __name__ == "__main__":
    main()
