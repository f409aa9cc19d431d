"""Parsed configuration file models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EnvSnapshot(BaseModel):
    """The parsed contents of a ``.env`` file at one point in time."""

    model_config = ConfigDict(frozen=True)

    directory: str
    file_path: str
    mtime_ns: int
    values: dict[str, str] = Field(default_factory=dict)
