from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from catalog_authz.api import ingestion_pipelines, test_cases
from catalog_authz.api.errors import register_exception_handlers
from catalog_authz.db.init_db import init_db
from catalog_authz.engine.authorizer import AuthorizationEngine
from catalog_authz.logging_config import configure_app_logging
from catalog_authz.policy.loader import load_policy_model
from catalog_authz.policy.store import PolicySnapshotStore
from catalog_authz.redaction import DecisionGatedRedactor
from catalog_authz.secrets import SecretsManager, build_secrets_manager
from catalog_authz.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_state(
    app: FastAPI,
    store: PolicySnapshotStore,
    settings: Settings,
    secrets: SecretsManager | None = None,
) -> None:
    """Attach the engine and its collaborators to ``app.state``."""
    app.state.policy_store = store
    app.state.authz_engine = AuthorizationEngine(store, owner_bypass=settings.owner_bypass)
    app.state.redactor = DecisionGatedRedactor(settings.sensitive_field)
    app.state.secrets_manager = secrets or build_secrets_manager(settings.secrets_key)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        policy_path = settings.resolved_policy_path()
        store = PolicySnapshotStore(load_policy_model(policy_path))
        logger.info("Loaded policy snapshot: %s", policy_path)

        configure_state(app, store, settings)
        init_db(app.state.secrets_manager)
        logger.info("Database initialized (tables ensured + seed if needed)")

        yield
        # Shutdown (nothing to clean up)

    app = FastAPI(title="catalog-authz", lifespan=lifespan)
    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    def health() -> dict[str, object]:
        store = getattr(app.state, "policy_store", None)
        return {"status": "ok", "policy_generation": store.generation if store else None}

    app.include_router(test_cases.router)
    app.include_router(ingestion_pipelines.router)

    return app


app = create_app()
