"""Pydantic models for autoenv."""

from autoenv.models.diff import DiffResult, ExportPlan, ReplicaSyncResult, SessionAction
from autoenv.models.envfile import EnvSnapshot
from autoenv.models.projects import DefaultSetting, Project
from autoenv.models.sessions import Session, SessionKey

__all__ = [
    "DefaultSetting",
    "DiffResult",
    "EnvSnapshot",
    "ExportPlan",
    "Project",
    "ReplicaSyncResult",
    "Session",
    "SessionAction",
    "SessionKey",
]
