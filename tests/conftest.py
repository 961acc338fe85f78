"""
Pytest configuration for the user directory.

Provides fixtures for:
- Settings override for tests
- A scripted identity resolver and an in-memory store
- A started directory wired to both
- PostgreSQL availability for integration tests
"""

from __future__ import annotations

import asyncio
import os
from typing import AsyncGenerator, Dict, List, Optional, Tuple

import psycopg
import pytest
import pytest_asyncio
from psycopg import sql

from user_directory.config import Settings, build_dsn
from user_directory.directory import UserDirectory
from user_directory.domain.errors import ResolutionError
from user_directory.domain.models import IdentityKind, Profile, ResolvedIdentity
from user_directory.infrastructure.store import InMemoryStore


class FakeResolver:
    """
    Scripted IdentityResolver recording every call.

    `strings` maps identity strings to (kind, id); `individuals` and
    `collectives` map ids to profile names.
    """

    def __init__(
        self,
        strings: Optional[Dict[str, Tuple[str, int]]] = None,
        individuals: Optional[Dict[int, Tuple[str, str]]] = None,
        collectives: Optional[Dict[int, str]] = None,
    ) -> None:
        self.strings = dict(strings or {})
        self.individuals = dict(individuals or {})
        self.collectives = dict(collectives or {})
        self.calls: List[Tuple[str, object]] = []

    async def resolve_string(self, text: str) -> ResolvedIdentity:
        self.calls.append(("resolve_string", text))
        await asyncio.sleep(0)
        if text not in self.strings:
            raise ResolutionError(text, "unknown")
        kind, identity = self.strings[text]
        return ResolvedIdentity(kind=IdentityKind(kind), id=identity)

    async def fetch_individual_profile(self, identity: int) -> Profile:
        self.calls.append(("individual", identity))
        await asyncio.sleep(0)
        if identity not in self.individuals:
            raise ResolutionError(identity, "user not found")
        first, last = self.individuals[identity]
        return Profile(display_name=first, secondary_name=last)

    async def fetch_collective_profile(self, group_id: int) -> Profile:
        self.calls.append(("collective", group_id))
        await asyncio.sleep(0)
        if group_id not in self.collectives:
            raise ResolutionError(-group_id, "group not found")
        return Profile(display_name=self.collectives[group_id])

    def profile_calls(self) -> List[Tuple[str, object]]:
        return [call for call in self.calls if call[0] in ("individual", "collective")]


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Database values can be overridden via environment variables in CI.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "user_directory"),
        users_table="users_test",
        log_level="DEBUG",
        autosave_interval_seconds=0,
        dedupe_inflight_creations=True,
    )


@pytest.fixture
def resolver_factory() -> type:
    return FakeResolver


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver(
        strings={
            "https://vk.com/ann": ("individual", 100),
            "[id100|Ann]": ("individual", 100),
            "vk.com/bob": ("individual", 200),
            "some-collective-handle": ("collective", -42),
            "vk.com/wall1_1": ("other", 1),
        },
        individuals={100: ("Ann", "Lee"), 200: ("Bob", "Stone")},
        collectives={5: "Group5", 42: "Group42"},
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def directory(store: InMemoryStore, resolver: FakeResolver, test_settings: Settings) -> UserDirectory:
    """A directory that has not been started yet, so extensions can still be declared."""
    return UserDirectory(store, resolver, settings=test_settings)


@pytest_asyncio.fixture
async def started_directory(directory: UserDirectory) -> AsyncGenerator[UserDirectory, None]:
    await directory.start()
    yield directory
    await directory.close()


@pytest.fixture(scope="session")
def test_dsn() -> str:
    """
    Database connection string for integration tests.
    """
    return build_dsn(
        Settings(
            db_host=os.getenv("DB_HOST", "localhost"),
            db_port=int(os.getenv("DB_PORT", "5432")),
            db_user=os.getenv("DB_USER", "postgres"),
            db_password=os.getenv("DB_PASSWORD", "postgres"),
            db_name=os.getenv("DB_NAME", "user_directory"),
        )
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except Exception:
        return False


@pytest.fixture
def clean_users_table(test_dsn: str, db_connection_available: bool, test_settings: Settings):
    """
    Drop the test table before and after each integration test.

    Skips the test if the database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    def _drop() -> None:
        with psycopg.connect(test_dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("DROP TABLE IF EXISTS {}").format(
                        sql.Identifier(test_settings.users_table)
                    )
                )

    _drop()
    yield test_settings.users_table
    _drop()
