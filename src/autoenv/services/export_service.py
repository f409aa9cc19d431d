"""Export service: the hot path run on every prompt or directory change."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from result import Err, Ok, Result

from autoenv.data.envfile import EnvFileParseError
from autoenv.data.repositories import normalize_path
from autoenv.models.diff import ExportPlan, SessionAction
from autoenv.services.diff import is_unchanged, plan_export

if TYPE_CHECKING:
    from autoenv.models.projects import Project
    from autoenv.services.protocols import (
        EnvLoaderProtocol,
        ProjectRegistryProtocol,
        SessionStoreProtocol,
        ShellRendererProtocol,
    )
    from autoenv.services.shell import ShellKind

logger = logging.getLogger(__name__)


class ExportService:
    """Matches the directory, diffs its ``.env`` against the shell's session, persists.

    Session state is written before any output is returned, so a failed write
    never leaves the shell holding variables the store does not know about.
    """

    def __init__(
        self,
        projects: ProjectRegistryProtocol,
        sessions: SessionStoreProtocol,
        env_loader: EnvLoaderProtocol,
        renderer: ShellRendererProtocol,
        *,
        adhoc: bool = False,
    ) -> None:
        self._projects = projects
        self._sessions = sessions
        self._env_loader = env_loader
        self._renderer = renderer
        self._adhoc = adhoc

    async def export(self, shell: ShellKind, shell_pid: int, cwd: str) -> Result[str, str]:
        """Shell commands bringing ``shell_pid`` in line with ``cwd``."""
        try:
            return Ok(await self._export(shell, shell_pid, cwd))
        except EnvFileParseError as exc:
            return Err(f"export {cwd}: {exc}")
        except Exception as exc:
            logger.debug("Export failed for %s", cwd, exc_info=True)
            return Err(f"export {cwd}: {exc}")

    async def register(
        self,
        shell: ShellKind,
        shell_pid: int,
        directory: str,
        name: str = "",
    ) -> Result[tuple[Project, str], str]:
        """Register ``directory`` as a project and activate it as if just entered."""
        try:
            project = await self._projects.upsert(directory, name)
        except Exception as exc:
            return Err(f"register {directory}: {exc}")
        logger.info("Registered project %s", project.path)

        output = await self.export(shell, shell_pid, project.path)
        if isinstance(output, Err):
            return output
        return Ok((project, output.ok_value))

    async def clear(self, shell: ShellKind, shell_pid: int) -> Result[str, str]:
        """Deactivate everything the shell has loaded and forget its session."""
        try:
            keys = await self._sessions.get_keys(shell_pid)
            await self._sessions.delete(shell_pid)
        except Exception as exc:
            return Err(f"clear session {shell_pid}: {exc}")
        return Ok(self._renderer.render(shell, keys, {}))

    async def _export(self, shell: ShellKind, shell_pid: int, cwd: str) -> str:
        origin = await self._resolve_origin(cwd)
        session = await self._sessions.get(shell_pid)

        # Unchanged file in the same place: decided from a stat, no parsing.
        if origin is not None and is_unchanged(origin, self._env_loader.stat(origin), session):
            return ""

        prior_keys = await self._sessions.get_keys(shell_pid)
        snapshot = self._env_loader.load(origin) if origin is not None else None
        plan = plan_export(origin, snapshot, session, prior_keys)
        await self._apply(shell_pid, plan)
        return self._renderer.render(shell, plan.diff.unset, plan.diff.export)

    async def _resolve_origin(self, cwd: str) -> str | None:
        project = await self._projects.match(cwd)
        if project is not None:
            return project.path
        if self._adhoc and self._env_loader.stat(cwd) is not None:
            return normalize_path(cwd)
        return None

    async def _apply(self, shell_pid: int, plan: ExportPlan) -> None:
        match plan.action:
            case SessionAction.RECORD:
                if plan.origin is None:
                    raise ValueError("cannot record an activation without an origin")
                await self._sessions.record_activation(
                    shell_pid, plan.origin, plan.mtime_ns, plan.fingerprints
                )
                logger.debug(
                    "Shell %s activated %s (%d keys)", shell_pid, plan.origin, len(plan.fingerprints)
                )
            case SessionAction.DELETE:
                await self._sessions.delete(shell_pid)
                logger.debug("Shell %s session deleted", shell_pid)
            case SessionAction.KEEP:
                pass
