"""Capability contracts the services are wired against."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from autoenv.models.diff import ReplicaSyncResult
    from autoenv.models.envfile import EnvSnapshot
    from autoenv.models.projects import DefaultSetting, Project
    from autoenv.models.sessions import Session
    from autoenv.services.shell import ShellKind


class EnvLoaderProtocol(Protocol):
    """Reads a directory's configuration file."""

    def stat(self, directory: str | Path) -> int | None: ...

    def load(self, directory: str | Path) -> EnvSnapshot | None: ...


class ProjectRegistryProtocol(Protocol):
    """Registered project roots."""

    async def match(self, directory: str) -> Project | None: ...

    async def upsert(self, path: str, name: str = "") -> Project: ...

    async def find_by_path(self, path: str) -> Project | None: ...

    async def list_all(self) -> list[Project]: ...

    async def delete(self, path: str) -> bool: ...

    async def insert_missing(self, projects: list[Project]) -> int: ...


class SessionStoreProtocol(Protocol):
    """Per-shell activation state."""

    async def get(self, shell_pid: int) -> Session | None: ...

    async def get_keys(self, shell_pid: int) -> dict[str, str]: ...

    async def upsert(self, shell_pid: int, project_path: str, env_file_mtime: int) -> None: ...

    async def replace_keys(self, shell_pid: int, keys: Mapping[str, str]) -> None: ...

    async def record_activation(
        self,
        shell_pid: int,
        project_path: str,
        env_file_mtime: int,
        keys: Mapping[str, str],
    ) -> None: ...

    async def delete(self, shell_pid: int) -> None: ...


class ShellRendererProtocol(Protocol):
    """Turns a diff into shell commands."""

    def render(self, shell: ShellKind, unset: Iterable[str], export: Mapping[str, str]) -> str: ...


class SettingsStoreProtocol(Protocol):
    """Administrative key/value defaults."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def list_all(self) -> list[DefaultSetting]: ...

    async def merge_newer(self, settings: list[DefaultSetting]) -> int: ...


class SecretSyncerProtocol(Protocol):
    """Uploads variables to an external secret store."""

    async def sync(self, repo: str, secrets: Mapping[str, str]) -> int: ...


class ReplicaSyncerProtocol(Protocol):
    """Out-of-band reconciliation of the registry with a remote copy."""

    @property
    def configured(self) -> bool: ...

    async def sync(
        self, projects: ProjectRegistryProtocol, settings: SettingsStoreProtocol
    ) -> ReplicaSyncResult: ...
