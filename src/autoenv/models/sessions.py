"""Per-shell session models."""

from __future__ import annotations

from pydantic import BaseModel


class Session(BaseModel):
    """What a shell process last activated."""

    shell_pid: int
    project_path: str
    env_file_mtime: int
    loaded_at: str = ""


class SessionKey(BaseModel):
    """A variable activated in a shell, stored as a fingerprint only."""

    shell_pid: int
    key_name: str
    key_hash: str
