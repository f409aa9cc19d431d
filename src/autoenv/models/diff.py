"""Diff engine result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class SessionAction(StrEnum):
    """What the orchestrator must do with the stored session after a diff."""

    KEEP = "keep"
    RECORD = "record"
    DELETE = "delete"


@dataclass(slots=True)
class DiffResult:
    """Variables to activate (with values) and names to deactivate."""

    export: dict[str, str] = field(default_factory=dict)
    unset: set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not self.export and not self.unset


@dataclass(slots=True)
class ExportPlan:
    """A diff plus the session bookkeeping that must follow it."""

    diff: DiffResult
    action: SessionAction
    origin: str | None = None
    fingerprints: dict[str, str] = field(default_factory=dict)
    mtime_ns: int = 0


@dataclass(slots=True)
class ReplicaSyncResult:
    """Counts from one registry/replica reconciliation."""

    projects_pulled: int = 0
    projects_pushed: int = 0
    settings_pulled: int = 0
    settings_pushed: int = 0
