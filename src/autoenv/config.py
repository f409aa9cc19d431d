"""Configuration for autoenv."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

_TRUTHY = {"1", "true", "yes", "on"}


def _default_config_dir() -> Path:
    return Path.home() / ".config" / "autoenv"


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    config_dir: Path = field(default_factory=_default_config_dir)
    turso_url: str = ""
    turso_auth_token: str = ""
    env_filename: str = ".env"
    adhoc: bool = False
    busy_timeout_ms: int = 5000
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """Build a config from ``AUTOENV_*`` and XDG environment variables."""
        env = os.environ if environ is None else environ

        if env.get("AUTOENV_CONFIG_DIR"):
            config_dir = Path(env["AUTOENV_CONFIG_DIR"])
        elif env.get("XDG_CONFIG_HOME"):
            config_dir = Path(env["XDG_CONFIG_HOME"]) / "autoenv"
        else:
            config_dir = _default_config_dir()

        return cls(
            config_dir=config_dir,
            turso_url=env.get("AUTOENV_TURSO_URL") or env.get("AUTOENV_TURSO_DATABASE_URL", ""),
            turso_auth_token=env.get("AUTOENV_TURSO_AUTH_TOKEN", ""),
            adhoc=env.get("AUTOENV_ADHOC", "").strip().lower() in _TRUTHY,
            log_level=env.get("AUTOENV_LOG_LEVEL", "WARNING").upper(),
        )

    @property
    def projects_db_path(self) -> Path:
        return self.config_dir / "projects.db"

    @property
    def sessions_db_path(self) -> Path:
        return self.config_dir / "sessions.db"

    @property
    def replica_db_path(self) -> Path:
        return self.config_dir / "projects-replica.db"

    @property
    def replica_configured(self) -> bool:
        return bool(self.turso_url and self.turso_auth_token)
