"""FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, settings
from .database import Database
from .problem_details import register_problem_handlers
from .routers import auth, categories, daily_logs, media, projects, share_links, tasks, transactions, users

API_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def configure_logging(cfg: Settings = settings) -> None:
    logging.basicConfig(
        level=getattr(logging, cfg.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def check_production_settings(cfg: Settings = settings) -> None:
    """Fail closed on insecure configuration in production."""
    if not cfg.is_production:
        return
    if not cfg.cors_origins:
        raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
    if any(origin.strip() == "*" for origin in cfg.cors_origins):
        raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")
    if any(
        origin.startswith("http://localhost") or origin.startswith("http://127.0.0.1") for origin in cfg.cors_origins
    ):
        raise RuntimeError("ALLOWED_ORIGINS contains localhost in production; set it to your real frontend origin.")
    if cfg.E2E_BYPASS_ENABLED:
        raise RuntimeError("E2E_BYPASS_ENABLED must be false in production.")
    if cfg.JWT_SECRET_KEY == "change-me-in-production":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")


def create_app(database: Database | None = None) -> FastAPI:
    check_production_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database.from_settings()
        db.init()
        app.state.database = db
        logger.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)
        try:
            yield
        finally:
            db.dispose()

    app = FastAPI(
        title="SiteFlow",
        version=API_VERSION,
        description="Backend API for construction project management",
        lifespan=lifespan,
    )
    register_problem_handlers(app)

    cors_methods = ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
    cors_headers = ["Authorization", "Content-Type"]
    if not settings.is_production:
        cors_headers = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=cors_methods,
        allow_headers=cors_headers,
    )

    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(projects.router, prefix="/api/v1")
    app.include_router(categories.router, prefix="/api/v1")
    app.include_router(tasks.router, prefix="/api/v1")
    app.include_router(daily_logs.router, prefix="/api/v1")
    app.include_router(transactions.router, prefix="/api/v1")
    app.include_router(share_links.router, prefix="/api/v1")
    app.include_router(share_links.public_router, prefix="/api/v1")
    app.include_router(media.router, prefix="/api/v1")

    @app.get("/api/v1/system/health")
    def health_check():
        """Health check endpoint."""
        database_status = "ok"
        try:
            with app.state.database.session() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Health check: database unreachable")
            database_status = "error"
        return {
            "status": "ok" if database_status == "ok" else "degraded",
            "version": API_VERSION,
            "database": database_status,
        }

    @app.get("/")
    def root():
        """Root endpoint."""
        return {
            "message": "SiteFlow API",
            "version": API_VERSION,
            "docs": "/docs"
        }

    return app


configure_logging()
app = create_app()
