# surveydesk/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from surveydesk.core.config import Settings, get_settings
from surveydesk.core.logging import setup_logging
from surveydesk.db import Base
from surveydesk.db import models  # noqa: F401  (registers tables)
from surveydesk.db.session import make_engine, make_sessionmaker
from surveydesk.routers import responses, surveys
from surveydesk.services.delivery import ReportDelivery
from surveydesk.services.notification import NotificationDispatcher
from surveydesk.services.telegram import TelegramChannel, TextChannel, DocumentChannel

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    notify_channel: Optional[TextChannel] = None,
    report_channel: Optional[DocumentChannel] = None,
) -> FastAPI:
    """Build the application from one configuration value.

    Channels default to Telegram chats from `settings`; callers may pass their
    own implementations instead.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    engine = make_engine(settings)
    if notify_channel is None:
        notify_channel = TelegramChannel(settings.BOT_TOKEN, settings.NOTIFY_CHAT_ID)
    if report_channel is None:
        report_channel = TelegramChannel(settings.BOT_TOKEN, settings.REPORT_CHAT_ID)
    dispatcher = NotificationDispatcher(notify_channel, timeout=settings.NOTIFY_TIMEOUT)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=engine)
        await dispatcher.start()
        logger.info("%s started", settings.APP_NAME)
        yield
        await dispatcher.stop()
        for channel in (notify_channel, report_channel):
            close = getattr(channel, "close", None)
            if close is not None:
                await close()
        engine.dispose()
        logger.info("%s stopped", settings.APP_NAME)

    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_sessionmaker(engine)
    app.state.dispatcher = dispatcher
    app.state.delivery = ReportDelivery(report_channel, timeout=settings.DELIVERY_TIMEOUT)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(responses.router)
    app.include_router(surveys.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
