"""
FastAPI application entrypoint.
"""
import argparse
import os
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.orm import Session

from api.router import api_router, page_router
from core.config import get_settings, initialize_settings
from core.exceptions import register_exception_handlers
from core.logger import get_logger, initialize_logging
from core.response import success_response
from database.db import DatabaseManager, get_db_session, init_db
from middleware.auth_middleware import AuthMiddleware
from services.content_generator import get_content_generator, set_content_generator
from services.translation_gateway import close_translation_gateway

initialize_settings()
initialize_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app_local: FastAPI):
    """Startup: tables. Shutdown: upstream HTTP clients and the engine."""
    settings = get_settings()
    logger.info("LiveOps portal booting", env=settings.ENV, port=settings.PORT)
    init_db()
    yield
    await close_translation_gateway()
    await get_content_generator().aclose()
    set_content_generator(None)
    DatabaseManager.dispose()
    logger.info("LiveOps portal shutdown complete")


def create_app() -> FastAPI:
    settings = get_settings()

    app_temp = FastAPI(
        title=settings.APP_NAME,
        description=f"{settings.APP_NAME} - env: {settings.ENV}",
        version="1.0.0",
        docs_url=f"{settings.API_DOC_PREFIX}/docs" if settings.DEBUG else None,
        redoc_url=f"{settings.API_DOC_PREFIX}/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    app_temp.state.debug = settings.DEBUG

    app_temp.add_middleware(AuthMiddleware)
    app_temp.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS__ALLOW_ORIGINS,
        allow_credentials=settings.CORS__ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app_temp)

    app_temp.include_router(page_router)
    app_temp.include_router(api_router)

    # 本地对象存储的公网访问路径
    storage_root = Path(settings.STORAGE__ROOT)
    storage_root.mkdir(parents=True, exist_ok=True)
    app_temp.mount(settings.STORAGE__PUBLIC_BASE_URL, StaticFiles(directory=storage_root), name="storage")

    @app_temp.get("/health")
    def health_check(db: Session = Depends(get_db_session)):
        db.execute(text("SELECT 1"))
        return success_response({"status": "healthy", "app": settings.APP_NAME, "env": settings.ENV})

    return app_temp


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the LiveOps portal API.")
    parser.add_argument("--host", default=settings.HOST, help="Host interface (default 0.0.0.0)")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Port (default 8000)")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable development auto-reload (do not use in production).",
    )
    parser.add_argument("--workers", type=int, default=1, help="Number of Uvicorn workers (default 1).")
    args = parser.parse_args()

    os.environ.setdefault("UVICORN_NO_UVLOOP", "1")
    reload_dirs = ["api", "core", "database", "schemas", "services", "middleware"]
    enable_reload = args.reload and settings.DEBUG

    uvicorn.run(
        "main:app",
        host=args.host,
        port=args.port,
        reload=enable_reload,
        workers=args.workers,
        loop="asyncio",
        http="h11",
        reload_dirs=[str(Path(dir_path)) for dir_path in reload_dirs] if enable_reload else None,
        reload_excludes=["data/*", "logs/*"] if enable_reload else None,
    )
