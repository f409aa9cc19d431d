"""Repository layer for SQL persistence and query access."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from autoenv.models.projects import DefaultSetting, Project
from autoenv.models.sessions import Session

if TYPE_CHECKING:
    from autoenv.data.protocols import DatabaseProtocol

logger = logging.getLogger(__name__)


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Absolute, normalized form used as a project's identity."""
    return os.path.abspath(os.fspath(path))


def is_process_alive(pid: int) -> bool:
    """Check if a process is still running via kill -0."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True  # Exists but different user
    return True


def is_within(directory: str, root: str) -> bool:
    """True when ``directory`` is ``root`` or lies below it on a separator boundary."""
    if directory == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return directory.startswith(prefix)


class ProjectRepository:
    """SQL repository for the project registry."""

    def __init__(self, db: DatabaseProtocol) -> None:
        self._db = db

    async def upsert(self, path: str, name: str = "") -> Project:
        """Register ``path``; an empty name keeps the existing one."""
        abs_path = normalize_path(path)
        async with self._db.transaction():
            await self._db.execute(
                """INSERT INTO projects (path, name) VALUES (?, ?)
                   ON CONFLICT(path) DO UPDATE SET
                     name = CASE WHEN excluded.name != '' THEN excluded.name ELSE projects.name END""",
                (abs_path, name),
            )
        project = await self.find_by_path(abs_path)
        if project is None:
            raise LookupError(f"project {abs_path} missing after upsert")
        return project

    async def find_by_path(self, path: str) -> Project | None:
        row = await self._db.fetch_one(
            "SELECT path, name, created_at FROM projects WHERE path = ?",
            (normalize_path(path),),
        )
        return _row_to_project(row) if row is not None else None

    async def list_all(self) -> list[Project]:
        rows = await self._db.fetch_all(
            "SELECT path, name, created_at FROM projects ORDER BY name, path"
        )
        return [_row_to_project(row) for row in rows]

    async def delete(self, path: str) -> bool:
        """Remove a project; returns False when it was not registered."""
        async with self._db.transaction():
            cursor = await self._db.execute(
                "DELETE FROM projects WHERE path = ?", (normalize_path(path),)
            )
        return cursor.rowcount > 0

    async def match(self, directory: str) -> Project | None:
        """Most specific registered project containing ``directory``."""
        abs_dir = normalize_path(directory)
        rows = await self._db.fetch_all(
            "SELECT path, name, created_at FROM projects ORDER BY length(path) DESC"
        )
        for row in rows:
            if is_within(abs_dir, str(row["path"])):
                return _row_to_project(row)
        return None

    async def insert_missing(self, projects: list[Project]) -> int:
        """Add projects not yet registered, keeping their creation time."""
        added = 0
        async with self._db.transaction():
            for project in projects:
                cursor = await self._db.execute(
                    """INSERT INTO projects (path, name, created_at) VALUES (?, ?, ?)
                       ON CONFLICT(path) DO NOTHING""",
                    (project.path, project.name, project.created_at),
                )
                added += cursor.rowcount
        return added


class SessionRepository:
    """SQL repository for per-shell activation state.

    Rows of shells that have exited are dropped whenever another shell records
    an activation.
    """

    def __init__(
        self,
        db: DatabaseProtocol,
        *,
        is_alive: Callable[[int], bool] = is_process_alive,
    ) -> None:
        self._db = db
        self._is_alive = is_alive

    async def get(self, shell_pid: int) -> Session | None:
        row = await self._db.fetch_one(
            """SELECT shell_pid, project_path, env_file_mtime, loaded_at
               FROM sessions WHERE shell_pid = ?""",
            (shell_pid,),
        )
        if row is None:
            return None
        return Session(
            shell_pid=int(row["shell_pid"]),
            project_path=str(row["project_path"]),
            env_file_mtime=int(row["env_file_mtime"]),
            loaded_at=str(row["loaded_at"] or ""),
        )

    async def get_keys(self, shell_pid: int) -> dict[str, str]:
        """Activated variable names mapped to their value fingerprints."""
        rows = await self._db.fetch_all(
            "SELECT key_name, key_hash FROM session_keys WHERE shell_pid = ?",
            (shell_pid,),
        )
        return {str(row["key_name"]): str(row["key_hash"]) for row in rows}

    async def upsert(self, shell_pid: int, project_path: str, env_file_mtime: int) -> None:
        async with self._db.transaction():
            await self._upsert(shell_pid, project_path, env_file_mtime)

    async def replace_keys(self, shell_pid: int, keys: Mapping[str, str]) -> None:
        """Swap the whole key set for ``shell_pid`` in one transaction."""
        async with self._db.transaction():
            await self._replace_keys(shell_pid, keys)

    async def record_activation(
        self,
        shell_pid: int,
        project_path: str,
        env_file_mtime: int,
        keys: Mapping[str, str],
    ) -> None:
        """Update the session row and its key set together."""
        async with self._db.transaction():
            await self._prune_exited(keep=shell_pid)
            await self._upsert(shell_pid, project_path, env_file_mtime)
            await self._replace_keys(shell_pid, keys)

    async def delete(self, shell_pid: int) -> None:
        async with self._db.transaction():
            await self._db.execute("DELETE FROM session_keys WHERE shell_pid = ?", (shell_pid,))
            await self._db.execute("DELETE FROM sessions WHERE shell_pid = ?", (shell_pid,))

    async def _prune_exited(self, keep: int) -> None:
        rows = await self._db.fetch_all(
            "SELECT shell_pid FROM sessions WHERE shell_pid != ?", (keep,)
        )
        pids = [int(row["shell_pid"]) for row in rows]
        exited = [(pid,) for pid in pids if not self._is_alive(pid)]
        if not exited:
            return
        await self._db.execute_many("DELETE FROM session_keys WHERE shell_pid = ?", exited)
        await self._db.execute_many("DELETE FROM sessions WHERE shell_pid = ?", exited)
        logger.debug("Pruned %d sessions of exited shells", len(exited))

    async def _upsert(self, shell_pid: int, project_path: str, env_file_mtime: int) -> None:
        await self._db.execute(
            """INSERT INTO sessions (shell_pid, project_path, env_file_mtime)
               VALUES (?, ?, ?)
               ON CONFLICT(shell_pid) DO UPDATE SET
                 project_path = excluded.project_path,
                 env_file_mtime = excluded.env_file_mtime,
                 loaded_at = strftime('%Y-%m-%dT%H:%M:%SZ', 'now')""",
            (shell_pid, project_path, env_file_mtime),
        )

    async def _replace_keys(self, shell_pid: int, keys: Mapping[str, str]) -> None:
        await self._db.execute("DELETE FROM session_keys WHERE shell_pid = ?", (shell_pid,))
        await self._db.execute_many(
            "INSERT INTO session_keys (shell_pid, key_name, key_hash) VALUES (?, ?, ?)",
            [(shell_pid, name, key_hash) for name, key_hash in sorted(keys.items())],
        )


class SettingsRepository:
    """SQL repository for administrative defaults."""

    def __init__(self, db: DatabaseProtocol) -> None:
        self._db = db

    async def get(self, key: str) -> str | None:
        row = await self._db.fetch_one("SELECT value FROM defaults WHERE key = ?", (key,))
        return str(row["value"]) if row is not None else None

    async def set(self, key: str, value: str) -> None:
        async with self._db.transaction():
            await self._db.execute(
                """INSERT INTO defaults (key, value) VALUES (?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                     value = excluded.value,
                     updated_at = strftime('%Y-%m-%dT%H:%M:%SZ', 'now')""",
                (key, value),
            )

    async def list_all(self) -> list[DefaultSetting]:
        rows = await self._db.fetch_all(
            "SELECT key, value, updated_at FROM defaults ORDER BY key"
        )
        return [
            DefaultSetting(
                key=str(row["key"]),
                value=str(row["value"]),
                updated_at=str(row["updated_at"] or ""),
            )
            for row in rows
        ]

    async def merge_newer(self, settings: list[DefaultSetting]) -> int:
        """Adopt settings that are missing locally or newer than the local copy."""
        changed = 0
        async with self._db.transaction():
            for setting in settings:
                cursor = await self._db.execute(
                    """INSERT INTO defaults (key, value, updated_at) VALUES (?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                         value = excluded.value,
                         updated_at = excluded.updated_at
                       WHERE excluded.updated_at > defaults.updated_at""",
                    (setting.key, setting.value, setting.updated_at),
                )
                changed += cursor.rowcount
        return changed


def _row_to_project(row: object) -> Project:
    r: dict[str, object] = dict(row)  # type: ignore[call-overload]
    return Project(
        path=str(r.get("path", "") or ""),
        name=str(r.get("name", "") or ""),
        created_at=str(r.get("created_at", "") or ""),
    )
