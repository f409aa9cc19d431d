"""Project service: administrative access to the registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

from result import Err, Ok, Result

if TYPE_CHECKING:
    from autoenv.models.projects import Project
    from autoenv.services.protocols import ProjectRegistryProtocol


class ProjectService:
    """Service for listing and removing registered projects."""

    def __init__(self, projects: ProjectRegistryProtocol) -> None:
        self._projects = projects

    async def list_projects(self) -> Result[list[Project], str]:
        """List all projects sorted by name, then path."""
        try:
            return Ok(await self._projects.list_all())
        except Exception as exc:
            return Err(f"list projects: {exc}")

    async def remove_project(self, path: str) -> Result[str, str]:
        """Unregister a project. Shells that activated it clean up on their next prompt."""
        try:
            removed = await self._projects.delete(path)
        except Exception as exc:
            return Err(f"remove {path}: {exc}")
        if not removed:
            return Err(f"Project {path} not found")
        return Ok(path)
