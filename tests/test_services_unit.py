"""Unit tests for services using fakes/mocks (no filesystem, no real DB files)."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from result import Err, Ok

from autoenv.config import Config
from autoenv.data.envfile import EnvFileParseError
from autoenv.data.replica import LibsqlReplica
from autoenv.models.diff import ReplicaSyncResult
from autoenv.models.envfile import EnvSnapshot
from autoenv.models.projects import DefaultSetting, Project
from autoenv.services.container import ServiceContainer
from autoenv.services.project_service import ProjectService
from autoenv.services.settings_service import GITHUB_DEFAULT_OWNER, SettingsService
from autoenv.services.sync_service import SyncService


class FakeSettings:
    def __init__(self, values: dict[str, str] | None = None) -> None:
        self.values = dict(values or {})

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def set(self, key: str, value: str) -> None:
        self.values[key] = value

    async def list_all(self) -> list[DefaultSetting]:
        return [DefaultSetting(key=k, value=v) for k, v in sorted(self.values.items())]

    async def merge_newer(self, settings: list[DefaultSetting]) -> int:
        return 0


def _snapshot(values: dict[str, str]) -> EnvSnapshot:
    return EnvSnapshot(directory="/p", file_path="/p/.env", mtime_ns=1, values=values)


def _sync_service(
    *,
    settings: FakeSettings | None = None,
    loader: object | None = None,
    syncer: object | None = None,
    replica: object | None = None,
) -> SyncService:
    return SyncService(
        SimpleNamespace(),  # type: ignore[arg-type]
        settings or FakeSettings(),  # type: ignore[arg-type]
        loader or SimpleNamespace(load=MagicMock(return_value=_snapshot({"A": "1"}))),  # type: ignore[arg-type]
        syncer or SimpleNamespace(sync=AsyncMock(return_value=1)),  # type: ignore[arg-type]
        replica or SimpleNamespace(configured=False),  # type: ignore[arg-type]
    )


class TestSettingsService:
    @pytest.mark.asyncio
    async def test_set_get_list(self) -> None:
        service = SettingsService(FakeSettings())  # type: ignore[arg-type]
        assert await service.set(GITHUB_DEFAULT_OWNER, "octo") == Ok(None)
        assert await service.get(GITHUB_DEFAULT_OWNER) == Ok("octo")
        listed = await service.list_settings()
        assert isinstance(listed, Ok)
        assert [s.key for s in listed.ok_value] == [GITHUB_DEFAULT_OWNER]

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        service = SettingsService(FakeSettings())  # type: ignore[arg-type]
        result = await service.get("nope")
        assert isinstance(result, Err)
        assert "no default set" in result.err_value

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self) -> None:
        service = SettingsService(FakeSettings())  # type: ignore[arg-type]
        assert isinstance(await service.set("  ", "x"), Err)

    @pytest.mark.asyncio
    async def test_store_errors_become_err(self) -> None:
        store = SimpleNamespace(list_all=AsyncMock(side_effect=RuntimeError("locked")))
        result = await SettingsService(store).list_settings()  # type: ignore[arg-type]
        assert isinstance(result, Err)
        assert "locked" in result.err_value


class TestProjectService:
    @pytest.mark.asyncio
    async def test_list_projects(self) -> None:
        store = SimpleNamespace(list_all=AsyncMock(return_value=[Project(path="/p", name="p")]))
        result = await ProjectService(store).list_projects()  # type: ignore[arg-type]
        assert isinstance(result, Ok)
        assert result.ok_value[0].display_name == "p"

    @pytest.mark.asyncio
    async def test_remove_missing_project(self) -> None:
        store = SimpleNamespace(delete=AsyncMock(return_value=False))
        result = await ProjectService(store).remove_project("/nope")  # type: ignore[arg-type]
        assert result == Err("Project /nope not found")

    @pytest.mark.asyncio
    async def test_remove_project(self) -> None:
        store = SimpleNamespace(delete=AsyncMock(return_value=True))
        assert await ProjectService(store).remove_project("/p") == Ok("/p")  # type: ignore[arg-type]

    def test_display_name_placeholder(self) -> None:
        assert Project(path="/p").display_name == "-"


class TestResolveTarget:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "target",
        [
            "github.com/acme/api",
            "https://github.com/acme/api",
            "https://github.com/acme/api.git",
            "acme/api",
            "acme/api/",
        ],
    )
    async def test_full_paths(self, target: str) -> None:
        assert await _sync_service().resolve_target(target) == Ok("acme/api")

    @pytest.mark.asyncio
    async def test_bare_repo_uses_default_owner(self) -> None:
        service = _sync_service(settings=FakeSettings({GITHUB_DEFAULT_OWNER: "acme"}))
        assert await service.resolve_target("api") == Ok("acme/api")

    @pytest.mark.asyncio
    async def test_bare_repo_without_default_owner(self) -> None:
        result = await _sync_service().resolve_target("api")
        assert isinstance(result, Err)
        assert "no default owner configured" in result.err_value

    @pytest.mark.asyncio
    async def test_empty_target(self) -> None:
        assert isinstance(await _sync_service().resolve_target("github.com/"), Err)


class TestSyncSecrets:
    @pytest.mark.asyncio
    async def test_uploads_snapshot_values(self) -> None:
        syncer = SimpleNamespace(sync=AsyncMock(return_value=2))
        loader = SimpleNamespace(load=MagicMock(return_value=_snapshot({"A": "1", "B": "2"})))
        service = _sync_service(loader=loader, syncer=syncer)

        result = await service.sync_secrets("/p", "acme/api")
        assert result == Ok(("acme/api", 2))
        syncer.sync.assert_awaited_once_with("acme/api", {"A": "1", "B": "2"})

    @pytest.mark.asyncio
    async def test_missing_file(self) -> None:
        loader = SimpleNamespace(load=MagicMock(return_value=None))
        result = await _sync_service(loader=loader).sync_secrets("/p", "acme/api")
        assert result == Err("no .env file found in /p")

    @pytest.mark.asyncio
    async def test_parse_error(self) -> None:
        error = EnvFileParseError(Path("/p/.env"), 3, "invalid line")
        loader = SimpleNamespace(load=MagicMock(side_effect=error))
        result = await _sync_service(loader=loader).sync_secrets("/p", "acme/api")
        assert isinstance(result, Err)
        assert "/p/.env:3" in result.err_value

    @pytest.mark.asyncio
    async def test_syncer_failure(self) -> None:
        syncer = SimpleNamespace(sync=AsyncMock(side_effect=RuntimeError("HTTP 404")))
        result = await _sync_service(syncer=syncer).sync_secrets("/p", "acme/api")
        assert result == Err("sync to acme/api failed: HTTP 404")

    @pytest.mark.asyncio
    async def test_bad_target_skips_file(self) -> None:
        loader = SimpleNamespace(load=MagicMock())
        result = await _sync_service(loader=loader).sync_secrets("/p", "api")
        assert isinstance(result, Err)
        loader.load.assert_not_called()


class TestSyncRegistry:
    @pytest.mark.asyncio
    async def test_not_configured(self, tmp_path: Path) -> None:
        replica = LibsqlReplica(tmp_path / "replica.db", "", "")
        result = await _sync_service(replica=replica).sync_registry()
        assert isinstance(result, Err)
        assert "not configured" in result.err_value

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        summary = ReplicaSyncResult(projects_pulled=1)
        replica = SimpleNamespace(configured=True, sync=AsyncMock(return_value=summary))
        assert await _sync_service(replica=replica).sync_registry() == Ok(summary)


@pytest.mark.asyncio
async def test_service_container_create_and_close(tmp_path: Path) -> None:
    config = Config(config_dir=tmp_path / "cfg")
    container = await ServiceContainer.create(config)
    try:
        assert config.projects_db_path.exists()
        assert config.sessions_db_path.exists()
        listed = await container.project_service.list_projects()
        assert listed == Ok([])
    finally:
        await container.close()


@pytest.mark.asyncio
async def test_service_container_closes_registry_when_sessions_fail(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    from autoenv.data.db import StoreUnavailableError

    events: list[str] = []

    class FakeDatabase:
        def __init__(self, db_path: Path, schema: object, **_kwargs: object) -> None:
            self.db_path = db_path

        async def connect(self) -> FakeDatabase:
            if self.db_path.name == "sessions.db":
                raise StoreUnavailableError("sessions locked")
            events.append("registry connected")
            return self

        async def close(self) -> None:
            events.append(f"closed {self.db_path.name}")

    monkeypatch.setattr("autoenv.services.container.Database", FakeDatabase)
    with pytest.raises(StoreUnavailableError):
        await ServiceContainer.create(Config(config_dir=tmp_path))
    assert events == ["registry connected", "closed projects.db"]
