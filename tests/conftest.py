"""Shared fixtures for autoenv tests."""

from __future__ import annotations

import itertools
import os
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest

from autoenv.data.db import REGISTRY_SCHEMA, SESSIONS_SCHEMA, Database
from autoenv.data.envfile import EnvFileLoader
from autoenv.data.repositories import ProjectRepository, SessionRepository, SettingsRepository
from autoenv.services.export_service import ExportService
from autoenv.services.shell import PosixRenderer

# Well-separated fake mtimes so rewrites within one clock tick still look changed.
_BASE_MTIME_NS = 1_700_000_000_000_000_000
_MTIME_STEP_NS = 1_000_000_000


@pytest.fixture
async def registry_db() -> AsyncGenerator[Database]:
    """In-memory project registry."""
    db = Database(Path(":memory:"), REGISTRY_SCHEMA)
    await db.__aenter__()
    yield db  # type: ignore[misc]
    await db.__aexit__(None, None, None)


@pytest.fixture
async def sessions_db() -> AsyncGenerator[Database]:
    """In-memory per-shell session store."""
    db = Database(Path(":memory:"), SESSIONS_SCHEMA)
    await db.__aenter__()
    yield db  # type: ignore[misc]
    await db.__aexit__(None, None, None)


@pytest.fixture
def projects(registry_db: Database) -> ProjectRepository:
    return ProjectRepository(registry_db)


@pytest.fixture
def sessions(sessions_db: Database) -> SessionRepository:
    """Session store that treats every fake shell pid as running."""
    return SessionRepository(sessions_db, is_alive=lambda _pid: True)


@pytest.fixture
def settings(registry_db: Database) -> SettingsRepository:
    return SettingsRepository(registry_db)


@pytest.fixture
def export_service(projects: ProjectRepository, sessions: SessionRepository) -> ExportService:
    return ExportService(projects, sessions, EnvFileLoader(), PosixRenderer())


@pytest.fixture
def write_env() -> Callable[[Path, str], Path]:
    """Write a .env file into a directory, giving it a fresh, strictly later mtime."""
    counter = itertools.count(1)

    def _write(directory: Path, content: str) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / ".env"
        path.write_text(content, encoding="utf-8")
        mtime_ns = _BASE_MTIME_NS + next(counter) * _MTIME_STEP_NS
        os.utime(path, ns=(mtime_ns, mtime_ns))
        return path

    return _write
