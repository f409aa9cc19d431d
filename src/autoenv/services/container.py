"""Service container with DI wiring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from autoenv.data.db import REGISTRY_SCHEMA, SESSIONS_SCHEMA, Database
from autoenv.data.envfile import EnvFileLoader
from autoenv.data.github import GhSecretSyncer
from autoenv.data.replica import LibsqlReplica
from autoenv.data.repositories import ProjectRepository, SessionRepository, SettingsRepository
from autoenv.services.export_service import ExportService
from autoenv.services.project_service import ProjectService
from autoenv.services.settings_service import SettingsService
from autoenv.services.shell import PosixRenderer
from autoenv.services.sync_service import SyncService

if TYPE_CHECKING:
    from autoenv.config import Config


@dataclass
class ServiceContainer:
    """Holds all application services. Built once per invocation, immutable."""

    registry_db: Database
    sessions_db: Database
    export_service: ExportService
    project_service: ProjectService
    settings_service: SettingsService
    sync_service: SyncService

    @classmethod
    async def create(cls, config: Config) -> ServiceContainer:
        """Async factory that opens both local stores and wires all dependencies.

        Raises ``StoreUnavailableError`` when either store cannot be opened.
        """
        registry_db = Database(
            config.projects_db_path, REGISTRY_SCHEMA, busy_timeout_ms=config.busy_timeout_ms
        )
        sessions_db = Database(
            config.sessions_db_path, SESSIONS_SCHEMA, busy_timeout_ms=config.busy_timeout_ms
        )
        await registry_db.connect()
        try:
            await sessions_db.connect()
        except BaseException:
            await registry_db.close()
            raise

        projects = ProjectRepository(registry_db)
        sessions = SessionRepository(sessions_db)
        settings = SettingsRepository(registry_db)
        env_loader = EnvFileLoader(config.env_filename)

        export_service = ExportService(
            projects,
            sessions,
            env_loader,
            PosixRenderer(),
            adhoc=config.adhoc,
        )
        project_service = ProjectService(projects)
        settings_service = SettingsService(settings)
        sync_service = SyncService(
            projects,
            settings,
            env_loader,
            GhSecretSyncer(),
            LibsqlReplica(config.replica_db_path, config.turso_url, config.turso_auth_token),
        )

        return cls(
            registry_db=registry_db,
            sessions_db=sessions_db,
            export_service=export_service,
            project_service=project_service,
            settings_service=settings_service,
            sync_service=sync_service,
        )

    async def close(self) -> None:
        """Shut down all services."""
        await self.sessions_db.close()
        await self.registry_db.close()
