import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import Settings
from app.database import dispose_db, init_db
from app.cms.router import router as cms_router
from app.registry.registry import load_module_registry
from app.revisions.router import router as revisions_router
from shared.middleware.error_handler import error_envelope_middleware
from shared.middleware.request_id import request_id_middleware

logger = logging.getLogger(__name__)

# Swagger tag groups displayed in the OpenAPI docs sidebar
_OPENAPI_TAGS = [
    {
        "name": "CMS",
        "description": (
            "Module-based post composition with source, review and ai-review versions. "
            "Snapshots are applied to one version at a time; drafts are promoted, "
            "published or rejected through the workflow endpoints."
        ),
    },
    {
        "name": "Revisions",
        "description": (
            "Point-in-time active-versions snapshots recorded before workflow transitions, "
            "and exact-state rollback to any of them."
        ),
    },
    {
        "name": "Health",
        "description": "Liveness check.",
    },
]


def get_settings() -> Settings:
    return Settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.state.module_registry = load_module_registry(settings.module_schemas_path)
    app.state.session_factory = init_db(settings.content_database_url)
    logger.info(
        "Content service started (%s) with module types: %s",
        settings.env_name,
        ", ".join(app.state.module_registry.types()),
    )

    yield

    await dispose_db()


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(levelname)s:%(name)s: %(message)s",
    )

    app = FastAPI(
        title="Content Service",
        description=(
            "Posts composed of reusable modules, with pending human and AI review drafts, "
            "snapshot reconciliation and revision history."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=_OPENAPI_TAGS,
        lifespan=lifespan,
    )

    # CORS must be registered first (runs last in middleware stack)
    # so that preflight OPTIONS requests get CORS headers before any auth check.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)

    app.include_router(cms_router, prefix="/api/v1")
    app.include_router(revisions_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        """Lightweight liveness check. Does not hit the database."""
        return {"status": "ok", "service": "content"}

    return app


app = create_app()
