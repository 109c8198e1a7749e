import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.database import create_tables, init_db
from app.dependencies import get_settings
from app.listing.router import router as listing_router
from shared.database.redis_client import close_redis_client, get_redis_client
from shared.middleware.error_handler import error_envelope_middleware, http_exception_handler
from shared.middleware.request_id import request_id_middleware

logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Swagger tag groups displayed in the OpenAPI docs sidebar
_OPENAPI_TAGS = [
    {
        "name": "Listing",
        "description": (
            "Homepage trick list and trick comment lists loaded batch by batch "
            "(\"load more\"), plus the page-number trick list. Every item carries "
            "its rank, 0 being the oldest item of the list."
        ),
    },
    {
        "name": "Health",
        "description": "Liveness probe.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    init_db(settings.community_database_url)
    if settings.auto_create_tables:
        logger.info("Creating missing tables (%s)", settings.env_name)
        await create_tables()
    redis_client = get_redis_client(
        settings.redis_url, socket_timeout=settings.redis_socket_timeout_seconds
    )
    app.state.redis = redis_client

    yield

    await close_redis_client(redis_client)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Community Listing Service",
        description=(
            "Serves the trick list and the trick comment lists of the community "
            "site. Windows are clamped to the current total count and lists are "
            "reinitialized when the count changed since the visitor's last batch."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=_OPENAPI_TAGS,
        lifespan=lifespan,
    )

    # CORS must be registered first (runs last in middleware stack)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
        max_age=600,
    )
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Registered before the listing routes so "/health" is never read as a locale
    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        """Lightweight liveness probe. Does not hit the database."""
        return {"status": "ok", "service": "community"}

    app.include_router(listing_router)

    return app


app = create_app()
