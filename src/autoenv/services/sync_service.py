"""Sync service: secret upload and explicit registry replication."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from result import Err, Ok, Result

from autoenv.data.envfile import EnvFileParseError
from autoenv.services.settings_service import GITHUB_DEFAULT_OWNER

if TYPE_CHECKING:
    from autoenv.models.diff import ReplicaSyncResult
    from autoenv.services.protocols import (
        EnvLoaderProtocol,
        ProjectRegistryProtocol,
        ReplicaSyncerProtocol,
        SecretSyncerProtocol,
        SettingsStoreProtocol,
    )

logger = logging.getLogger(__name__)

_GITHUB_PREFIXES = ("https://github.com/", "github.com/")


class SyncService:
    """Pushes ``.env`` values to external targets and reconciles the registry.

    Neither operation touches per-shell session state.
    """

    def __init__(
        self,
        projects: ProjectRegistryProtocol,
        settings: SettingsStoreProtocol,
        env_loader: EnvLoaderProtocol,
        secret_syncer: SecretSyncerProtocol,
        replica: ReplicaSyncerProtocol,
    ) -> None:
        self._projects = projects
        self._settings = settings
        self._env_loader = env_loader
        self._secret_syncer = secret_syncer
        self._replica = replica

    async def resolve_target(self, target: str) -> Result[str, str]:
        """Turn ``github.com/owner/repo``, ``owner/repo`` or ``repo`` into ``owner/repo``."""
        repo = target.strip()
        for prefix in _GITHUB_PREFIXES:
            repo = repo.removeprefix(prefix)
        repo = repo.removesuffix(".git").strip("/")
        if not repo:
            return Err("sync target cannot be empty")
        if "/" in repo:
            return Ok(repo)

        owner = await self._settings.get(GITHUB_DEFAULT_OWNER)
        if not owner:
            return Err(
                "no default owner configured; use a full path (e.g. github.com/owner/repo) "
                f"or run: autoenv configure set {GITHUB_DEFAULT_OWNER} <owner>"
            )
        return Ok(f"{owner}/{repo}")

    async def sync_secrets(self, directory: str, target: str) -> Result[tuple[str, int], str]:
        """Upload the directory's ``.env`` values as secrets of ``target``."""
        resolved = await self.resolve_target(target)
        if isinstance(resolved, Err):
            return resolved
        repo = resolved.ok_value

        try:
            snapshot = self._env_loader.load(directory)
        except EnvFileParseError as exc:
            return Err(f"sync {directory}: {exc}")
        if snapshot is None:
            return Err(f"no .env file found in {directory}")

        try:
            count = await self._secret_syncer.sync(repo, snapshot.values)
        except Exception as exc:
            return Err(f"sync to {repo} failed: {exc}")
        logger.info("Uploaded %d secrets from %s to %s", count, snapshot.file_path, repo)
        return Ok((repo, count))

    async def sync_registry(self) -> Result[ReplicaSyncResult, str]:
        """Reconcile the local project registry with its remote replica."""
        try:
            return Ok(await self._replica.sync(self._projects, self._settings))
        except Exception as exc:
            return Err(f"registry sync failed: {exc}")
