import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.deps import Settings, get_field_registry, get_rules, get_settings
from src.api.routes import public_listings

logger = logging.getLogger(__name__)

FRONTEND_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def prepare_storage(settings: Settings) -> list[str]:
    """Create the data directory and bring the schema up to date."""
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    try:
        rules = get_rules()
        get_field_registry()
        applied = prepare_storage(settings)
    except (OSError, ValueError, RuntimeError):
        # Refuse to serve with broken rules or an unmigrated database
        logger.critical("Listing intake failed to start", exc_info=True)
        sys.exit(1)

    logger.info(
        "Listing intake ready: rules %s (%s), %d migration(s) applied",
        rules.project.slug,
        settings.rules_path,
        len(applied),
    )
    yield


def create_app() -> FastAPI:
    application = FastAPI(title="Listing Intake API", version="0.1.0", lifespan=lifespan)
    application.include_router(
        public_listings.router, prefix="/api/public", tags=["Public Listings"]
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=FRONTEND_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @application.get("/health")
    def health_check() -> dict[str, str]:
        return {"status": "ok", "service": "listing-intake"}

    return application


app = create_app()
