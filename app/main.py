from fastapi import FastAPI
from fastapi_pagination import add_pagination

from app.config import get_settings
from app.infra.logging_config import LoggingConfig, get_logger
from app.routers import (
    conversations_router,
    labels_router,
    system,
    webhook_events_router,
    webhooks,
)


def create_app(testing: bool = False) -> FastAPI:
    settings = get_settings()
    LoggingConfig(level="WARNING" if testing else settings.log_level)
    logger = get_logger("main")

    app = FastAPI(
        title=settings.app_name,
        description="Synchronizes Chatwoot and UAZAPI webhooks into the CRM",
    )

    app.include_router(webhooks.router)
    app.include_router(webhook_events_router.router)
    app.include_router(conversations_router.router)
    app.include_router(labels_router.router)
    app.include_router(system.router)

    add_pagination(app)

    if settings.relay_enabled:
        logger.info("Message relay enabled for %s", settings.chatwoot_api_url)
    else:
        logger.warning("CHATWOOT_API_URL not set, gateway messages will not be relayed")

    return app


app = create_app()
