"""Read ``.env`` files into immutable snapshots."""

from __future__ import annotations

import logging
import re
from io import StringIO
from pathlib import Path

from dotenv.parser import parse_stream

from autoenv.models.envfile import EnvSnapshot

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILENAME = ".env"

# Names are written unquoted into eval'd shell code.
_VARIABLE_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class EnvFileParseError(ValueError):
    """A configuration file exists but cannot be parsed."""

    def __init__(self, path: Path, line: int, reason: str) -> None:
        super().__init__(f"parse {path}:{line}: {reason}")
        self.path = path
        self.line = line
        self.reason = reason


def parse_env_text(text: str, path: Path) -> dict[str, str]:
    """Parse dotenv text, rejecting anything python-dotenv would skip over.

    Values are taken literally; ``${VAR}`` references are not expanded.
    """
    values: dict[str, str] = {}
    for binding in parse_stream(StringIO(text)):
        if binding.error:
            snippet = binding.original.string.strip()
            raise EnvFileParseError(path, binding.original.line, f"invalid line {snippet!r}")
        if binding.key is None:
            continue
        if not _VARIABLE_NAME.fullmatch(binding.key):
            raise EnvFileParseError(
                path, binding.original.line, f"invalid variable name {binding.key!r}"
            )
        if binding.value is None:
            raise EnvFileParseError(path, binding.original.line, f"missing '=' for {binding.key}")
        values[binding.key] = binding.value
    return values


class EnvFileLoader:
    """Loads the configuration file of a directory."""

    def __init__(self, filename: str = DEFAULT_ENV_FILENAME) -> None:
        self._filename = filename

    def env_path(self, directory: str | Path) -> Path:
        return Path(directory).absolute() / self._filename

    def stat(self, directory: str | Path) -> int | None:
        """Return the file's mtime in nanoseconds, or None when there is no file."""
        try:
            return self.env_path(directory).stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def load(self, directory: str | Path) -> EnvSnapshot | None:
        """Read and parse the directory's file; None when it does not exist."""
        path = self.env_path(directory)
        try:
            mtime_ns = path.stat().st_mtime_ns
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise EnvFileParseError(path, 0, f"not valid UTF-8 ({exc.reason})") from exc

        values = parse_env_text(text, path)
        logger.debug("Loaded %d variables from %s", len(values), path)
        return EnvSnapshot(
            directory=str(path.parent),
            file_path=str(path),
            mtime_ns=mtime_ns,
            values=values,
        )
