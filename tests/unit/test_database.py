"""Tests for engine and session factory construction."""

import os

import pytest

from src.services import get_async_session, get_session_factory, to_async_url
from src.services.config import load_config


@pytest.fixture(autouse=True)
def dotenv_database(monkeypatch, tmp_path):
    """DATABASE_URL only in a .env file of the working directory."""
    environment = {k: v for k, v in os.environ.items() if k != "DATABASE_URL"}
    monkeypatch.setattr(os, "environ", environment)
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("DATABASE_URL=sqlite:///./from_dotenv.db\n")
    get_session_factory.cache_clear()
    yield
    get_session_factory.cache_clear()


def test_engine_is_built_from_dotenv_url():
    factory = get_session_factory(load_config().database_url)

    assert str(factory.kw["bind"].url) == "sqlite+aiosqlite:///./from_dotenv.db"


async def test_request_sessions_use_dotenv_database():
    sessions = get_async_session()
    session = await sessions.__anext__()
    try:
        assert str(session.bind.url) == "sqlite+aiosqlite:///./from_dotenv.db"
    finally:
        await sessions.aclose()


def test_one_factory_per_url():
    assert get_session_factory("sqlite:///:memory:") is get_session_factory("sqlite:///:memory:")
    assert get_session_factory("sqlite:///:memory:") is not get_session_factory("sqlite:///./other.db")


@pytest.mark.parametrize(
    "url, expected",
    [
        ("sqlite:///./condo_billing.db", "sqlite+aiosqlite:///./condo_billing.db"),
        ("sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
        ("postgresql+asyncpg://db/billing", "postgresql+asyncpg://db/billing"),
    ],
)
def test_to_async_url(url, expected):
    assert to_async_url(url) == expected
