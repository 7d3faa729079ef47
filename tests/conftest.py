import asyncio
import logging
import time

import pytest
from fastapi.testclient import TestClient

from surveydesk.core.config import Settings
from surveydesk.core.logging import PACKAGE_LOGGER
from surveydesk.core.security import issue_admin_token
from surveydesk.db import Base
from surveydesk.db.session import make_engine, make_sessionmaker
from surveydesk.main import create_app
from surveydesk.schemas.survey import SurveyIn
from surveydesk.services.surveys import create_survey

SECRET = "test-secret"


class FakeChannel:
    """In-memory stand-in for a Telegram chat."""

    def __init__(self, configured: bool = True, error: Exception | None = None, delay: float = 0.0):
        self._configured = configured
        self.error = error
        self.delay = delay
        self.messages: list[str] = []
        self.documents: list[tuple[bytes, str, str]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def _maybe_fail(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def send_message(self, text: str) -> None:
        await self._maybe_fail()
        self.messages.append(text)

    async def send_document(self, payload: bytes, filename: str, caption: str) -> None:
        await self._maybe_fail()
        self.documents.append((payload, filename, caption))


def wait_until(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        DB_TIMEOUT=30.0,
        SECRET_KEY=SECRET,
        LOG_PATH=str(tmp_path / "logs"),
        NOTIFY_TIMEOUT=0.5,
        DELIVERY_TIMEOUT=0.5,
    )


@pytest.fixture
def session_factory(settings):
    engine = make_engine(settings)
    Base.metadata.create_all(bind=engine)
    yield make_sessionmaker(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def survey_in():
    return SurveyIn.model_validate({
        "title": "Customer feedback",
        "description": "Autumn event",
        "questions": [
            {"text": "How did you hear about us?", "type": "choice", "options": ["Friend", "Ad"]},
            {"text": "Rate the event", "type": "rating"},
            {"text": "Anything else?", "type": "text"},
        ],
    })


@pytest.fixture
def survey(db, survey_in):
    return create_survey(db, survey_in)


@pytest.fixture
def notify_channel():
    return FakeChannel()


@pytest.fixture
def report_channel():
    return FakeChannel()


@pytest.fixture
def app(settings, notify_channel, report_channel):
    return create_app(settings, notify_channel=notify_channel, report_channel=report_channel)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {issue_admin_token(SECRET, 3600)}"}
