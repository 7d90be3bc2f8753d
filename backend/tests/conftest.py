import asyncio
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="folio-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["CELERY_ENABLED"] = "false"
os.environ["YOUTUBE_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["ADMIN_PASSWORD"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from folio import models  # noqa: E402,F401
from folio.db import Base, engine, get_session_factory  # noqa: E402
from folio.services import extension_bridge  # noqa: E402
from folio.services.llm_provider import LLMProvider, LLMUnavailableError, set_llm_provider  # noqa: E402


class FakeLLM(LLMProvider):
    """Scripted model: pops queued replies, otherwise behaves as unconfigured."""

    def __init__(self):
        self.replies: list[str] = []
        self.prompts: list[str] = []

    async def complete(self, prompt: str, *, max_tokens: int | None = None) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise LLMUnavailableError("no scripted reply")
        return self.replies.pop(0)


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.published: list[tuple[str, str]] = []

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def delete(self, key: str) -> int:
        return 1 if self.store.pop(key, None) is not None else 0

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 1


async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def db():
    asyncio.run(_reset_schema())
    yield get_session_factory()


@pytest.fixture(autouse=True)
def fake_llm():
    llm = FakeLLM()
    set_llm_provider(llm)
    yield llm
    set_llm_provider(None)


@pytest.fixture
def fake_redis(monkeypatch):
    redis = FakeRedis()
    monkeypatch.setattr(extension_bridge, "_get_redis", lambda: redis)
    return redis


@pytest.fixture
def client(db):
    from folio.main import app

    with TestClient(app) as test_client:
        yield test_client


def login(client: TestClient, email: str = "ana@example.com") -> dict[str, str]:
    response = client.post("/api/auth/login", json={"email": email})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return login(client)


async def create_user(session, email: str = "ana@example.com") -> int:
    user = models.User(email=email, display_name=email.split("@")[0])
    session.add(user)
    await session.commit()
    return user.id
