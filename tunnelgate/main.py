"""
tunnelgate - FastAPI Application

Authorization plugin for a reverse-proxy server plus the administrative API
for its per-user token and allow-list store.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from .acl import TokenStore
from .acl import router as acl_router
from .core.config import Settings, settings as default_settings
from .core.logging import configure_logging
from .plugin import PluginDispatcher, PolicyEvaluator
from .plugin import router as plugin_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[TokenStore] = None
) -> FastAPI:
    """
    Build the application

    Args:
        settings: configuration, defaults to the environment-derived settings
        store: pre-built store, otherwise loaded from settings.TOKENS_FILE
    """
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    if store is None:
        store = TokenStore.load(settings.TOKENS_FILE)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s v%s", settings.APP_NAME, settings.APP_VERSION)
        logger.info("User store: %s (%d users)", store.path, len(store))
        if not settings.admin_auth_enabled:
            logger.warning("Admin endpoints are not protected, set ADMIN_USER and ADMIN_PASSWORD")
        yield
        logger.info("Shutting down %s", settings.APP_NAME)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Per-user port/domain admission control for reverse-proxy servers",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.store = store
    app.state.dispatcher = PluginDispatcher(PolicyEvaluator(store))

    app.mount("/metrics", make_asgi_app())

    @app.get("/healthz")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "users": len(app.state.store)
        }

    app.include_router(plugin_router)
    app.include_router(acl_router)
    return app


def run() -> None:
    """Console entry point"""
    uvicorn.run(
        create_app(),
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
