"""Project registry models."""

from __future__ import annotations

from pydantic import BaseModel


class Project(BaseModel):
    """A registered project root."""

    path: str
    name: str = ""
    created_at: str = ""

    @property
    def display_name(self) -> str:
        return self.name or "-"


class DefaultSetting(BaseModel):
    """An administrative key/value setting stored beside the registry."""

    key: str
    value: str
    updated_at: str = ""
