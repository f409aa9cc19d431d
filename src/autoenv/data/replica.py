"""Explicit reconciliation of the project registry with a remote libSQL replica."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from autoenv.data.db import REGISTRY_SCHEMA
from autoenv.models.diff import ReplicaSyncResult
from autoenv.models.projects import DefaultSetting, Project

if TYPE_CHECKING:
    from autoenv.services.protocols import ProjectRegistryProtocol, SettingsStoreProtocol

logger = logging.getLogger(__name__)


class ReplicaNotConfiguredError(RuntimeError):
    """No remote URL/token is available for replica sync."""


class ReplicaSyncError(RuntimeError):
    """The remote replica could not be reached or updated."""


class LibsqlReplica:
    """Embedded libSQL replica kept beside the local registry database.

    Only :meth:`sync` talks to the network. The local registry stays the
    source of reads on the hot path.
    """

    def __init__(self, replica_path: Path, url: str, auth_token: str) -> None:
        self._replica_path = replica_path
        self._url = url
        self._auth_token = auth_token

    @property
    def configured(self) -> bool:
        return bool(self._url and self._auth_token)

    async def sync(
        self, projects: ProjectRegistryProtocol, settings: SettingsStoreProtocol
    ) -> ReplicaSyncResult:
        """Pull remote rows into the local registry and push local-only rows out."""
        if not self.configured:
            msg = (
                "replica sync not configured "
                "(set AUTOENV_TURSO_URL and AUTOENV_TURSO_AUTH_TOKEN)"
            )
            raise ReplicaNotConfiguredError(msg)

        local_projects = await projects.list_all()
        local_settings = await settings.list_all()
        try:
            remote_projects, remote_settings, pushed = await asyncio.to_thread(
                self._exchange, local_projects, local_settings
            )
        except Exception as exc:
            raise ReplicaSyncError(f"sync with {self._url}: {exc}") from exc

        result = ReplicaSyncResult(
            projects_pushed=pushed[0],
            settings_pushed=pushed[1],
        )
        result.projects_pulled = await projects.insert_missing(remote_projects)
        result.settings_pulled = await settings.merge_newer(remote_settings)
        logger.info("Replica sync finished: %s", result)
        return result

    def _exchange(
        self,
        local_projects: list[Project],
        local_settings: list[DefaultSetting],
    ) -> tuple[list[Project], list[DefaultSetting], tuple[int, int]]:
        import libsql

        self._replica_path.parent.mkdir(parents=True, exist_ok=True)
        conn = libsql.connect(
            str(self._replica_path),
            sync_url=self._url,
            auth_token=self._auth_token,
        )
        try:
            conn.sync()
            for statement in REGISTRY_SCHEMA.statements:
                conn.execute(statement)
            conn.commit()

            remote_projects = [
                Project(path=str(path), name=str(name or ""), created_at=str(created_at or ""))
                for path, name, created_at in _fetch(
                    conn, "SELECT path, name, created_at FROM projects"
                )
            ]
            remote_settings = [
                DefaultSetting(key=str(key), value=str(value), updated_at=str(updated_at or ""))
                for key, value, updated_at in _fetch(
                    conn, "SELECT key, value, updated_at FROM defaults"
                )
            ]

            remote_paths = {p.path for p in remote_projects}
            remote_stamps = {s.key: s.updated_at for s in remote_settings}
            new_projects = [p for p in local_projects if p.path not in remote_paths]
            newer_settings = [
                s
                for s in local_settings
                if s.key not in remote_stamps or s.updated_at > remote_stamps[s.key]
            ]
            for project in new_projects:
                conn.execute(
                    "INSERT INTO projects (path, name, created_at) VALUES (?, ?, ?)",
                    (project.path, project.name, project.created_at),
                )
            for setting in newer_settings:
                conn.execute(
                    """INSERT INTO defaults (key, value, updated_at) VALUES (?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                         value = excluded.value,
                         updated_at = excluded.updated_at""",
                    (setting.key, setting.value, setting.updated_at),
                )
            conn.commit()
            conn.sync()
        finally:
            conn.close()
        return remote_projects, remote_settings, (len(new_projects), len(newer_settings))


def _fetch(conn: Any, sql: str) -> list[tuple[Any, ...]]:
    return list(conn.execute(sql).fetchall())
