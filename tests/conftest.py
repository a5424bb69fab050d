import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

# Must be set before yamifit_chatbot.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CLEANUP_SECRET"] = "test-cleanup-secret"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_KEY"] = ""
os.environ["GOOGLE_CHAT_BOT_API_KEY"] = ""
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "yamifit_chatbot_test.log"))

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio  # noqa: E402

import pytest  # noqa: E402

from yamifit_chatbot.database import Base, SessionLocal, engine  # noqa: E402
import yamifit_chatbot.models  # noqa: E402,F401
from yamifit_chatbot.services.auth import IdentityVerifier  # noqa: E402
from yamifit_chatbot.services.message_store import MessageStore  # noqa: E402
from yamifit_chatbot.services.model_client import ModelClient  # noqa: E402

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeModels:
    """Stands in for `client.aio.models` of the model SDK."""

    def __init__(self, reply="Try Greek yogurt with berries.", error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = []

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.reply, candidates=None)


class FakeGenAIClient:
    def __init__(self, **kwargs):
        self.models = FakeModels(**kwargs)
        self.aio = SimpleNamespace(models=self.models)


class FakeSupabaseAuth:
    def __init__(self, tokens):
        self.tokens = tokens

    def get_user(self, jwt):
        if jwt not in self.tokens:
            raise Exception("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=SimpleNamespace(id=self.tokens[jwt]))


class FakeSupabaseClient:
    def __init__(self, tokens):
        self.auth = FakeSupabaseAuth(tokens)


USER_A = "11111111-1111-1111-1111-111111111111"
USER_B = "22222222-2222-2222-2222-222222222222"
TOKENS = {"token-a": USER_A, "token-b": USER_B}


@pytest.fixture
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(db_session, clock):
    return MessageStore(db_session, clock=clock)


@pytest.fixture
def fake_genai():
    return FakeGenAIClient()


@pytest.fixture
def model_client(fake_genai):
    return ModelClient(api_key=None, model_name="test-model", timeout_seconds=1.0, client=fake_genai)


@pytest.fixture
def verifier():
    return IdentityVerifier(FakeSupabaseClient(TOKENS), timeout_seconds=1.0)
