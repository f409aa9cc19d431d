"""Upload ``.env`` values as GitHub Actions secrets through the ``gh`` CLI."""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
from collections.abc import Mapping

logger = logging.getLogger(__name__)

_GH_TIMEOUT_SECONDS = 30


class SecretSyncError(RuntimeError):
    """A secret could not be uploaded."""


class GhSecretSyncer:
    """Sets repository secrets one by one with ``gh secret set``.

    Values are fed on stdin so they never appear in the process table.
    Upload stops at the first failure; nothing is retried.
    """

    def __init__(self, executable: str = "gh") -> None:
        self._executable = executable

    async def sync(self, repo: str, secrets: Mapping[str, str]) -> int:
        """Upload every secret to ``repo``; returns how many were set."""
        gh = shutil.which(self._executable)
        if gh is None:
            msg = f"{self._executable} CLI not found: install from https://cli.github.com"
            raise SecretSyncError(msg)

        for name in sorted(secrets):
            await asyncio.to_thread(self._set_secret, gh, repo, name, secrets[name])
            logger.info("Set secret %s on %s", name, repo)
        return len(secrets)

    def _set_secret(self, gh: str, repo: str, name: str, value: str) -> None:
        try:
            proc = subprocess.run(
                [gh, "secret", "set", name, "--repo", repo],
                input=value,
                capture_output=True,
                text=True,
                timeout=_GH_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise SecretSyncError(f"set secret {name}: {exc}") from exc
        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout).strip()
            raise SecretSyncError(f"set secret {name}: {detail or f'exit status {proc.returncode}'}")
