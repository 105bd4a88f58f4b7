"""Shared fixtures: isolated settings and a throwaway SQLite database per test."""

import asyncio
from typing import Awaitable, Callable, TypeVar

import pytest

from clutch.config import get_settings
from clutch.database import close_db, init_db
from clutch.services import Actor, topic_service

T = TypeVar("T")


@pytest.fixture
def settings_env(tmp_path, monkeypatch):
    """Point settings at a temporary data directory with no config.yaml."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("DATABASE__URL", f"sqlite+aiosqlite:///{tmp_path / 'clutch-test.db'}")
    monkeypatch.setenv("DATABASE__RETRY_BACKOFF_SECONDS", "0.01")
    monkeypatch.setenv("IDENTITY__SECRET", "test-secret")
    monkeypatch.setenv("LOGFIRE_TOKEN", "")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def run_db(settings_env) -> Callable[[Callable[[], Awaitable[T]]], T]:
    """
    Run an async scenario against a fresh database.

    The engine is created and disposed inside the same event loop as the
    scenario, so every test gets one asyncio.run call.
    """

    def run(scenario: Callable[[], Awaitable[T]]) -> T:
        async def _run() -> T:
            await init_db(settings_env.database.url)
            try:
                return await scenario()
            finally:
                await close_db()

        return asyncio.run(_run())

    return run


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id=1, role="admin")


@pytest.fixture
def make_topic(admin):
    """Factory for topics created by the admin fixture."""

    async def _make(db, topic_type="bet", options=None, **kwargs):
        return await topic_service.create(
            db,
            admin,
            topic_type=topic_type,
            title=kwargs.pop("title", f"Who wins? ({topic_type})"),
            options=options if options is not None else ["Team A", "Team B"],
            **kwargs,
        )

    return _make
