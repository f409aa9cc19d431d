"""Tests for .env loading and parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from autoenv.data.envfile import EnvFileLoader, EnvFileParseError, parse_env_text


class TestEnvFileLoader:
    def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        loader = EnvFileLoader()
        assert loader.load(tmp_path) is None
        assert loader.stat(tmp_path) is None

    def test_load_parses_values(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text(
            "FOO=1\n# a comment\nexport BAR='two words'\nBAZ=\"x\"\n\nEMPTY=\n"
        )
        snapshot = EnvFileLoader().load(tmp_path)
        assert snapshot is not None
        assert snapshot.values == {"FOO": "1", "BAR": "two words", "BAZ": "x", "EMPTY": ""}
        assert snapshot.directory == str(tmp_path)
        assert snapshot.file_path == str(tmp_path / ".env")

    def test_mtime_matches_stat(self, tmp_path: Path, write_env) -> None:  # type: ignore[no-untyped-def]
        write_env(tmp_path, "A=1\n")
        loader = EnvFileLoader()
        snapshot = loader.load(tmp_path)
        assert snapshot is not None
        assert snapshot.mtime_ns == loader.stat(tmp_path)

    def test_values_are_not_interpolated(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("A=1\nB=${A}-x\n")
        snapshot = EnvFileLoader().load(tmp_path)
        assert snapshot is not None
        assert snapshot.values["B"] == "${A}-x"

    def test_custom_filename(self, tmp_path: Path) -> None:
        (tmp_path / ".env.local").write_text("LOCAL=yes\n")
        snapshot = EnvFileLoader(".env.local").load(tmp_path)
        assert snapshot is not None
        assert snapshot.values == {"LOCAL": "yes"}

    def test_snapshot_is_frozen(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("A=1\n")
        snapshot = EnvFileLoader().load(tmp_path)
        assert snapshot is not None
        with pytest.raises(ValueError):
            snapshot.mtime_ns = 0  # type: ignore[misc]


class TestParseErrors:
    def test_invalid_line_reports_line_number(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("FOO=1\nNOT A VALID LINE\n")
        with pytest.raises(EnvFileParseError) as exc_info:
            EnvFileLoader().load(tmp_path)
        assert exc_info.value.line == 2
        assert str(tmp_path / ".env") in str(exc_info.value)

    def test_unterminated_quote(self) -> None:
        with pytest.raises(EnvFileParseError):
            parse_env_text("FOO='abc\n", Path("/p/.env"))

    def test_bare_key_without_equals(self) -> None:
        with pytest.raises(EnvFileParseError, match="missing '=' for FOO"):
            parse_env_text("FOO\n", Path("/p/.env"))

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_bytes(b"FOO=\xff\xfe\n")
        with pytest.raises(EnvFileParseError, match="UTF-8"):
            EnvFileLoader().load(tmp_path)

    @pytest.mark.parametrize(
        "line",
        [
            "X;touch${IFS}/tmp/owned;Y=1",
            "'A B'=2",
            "A-B=1",
            "1ABC=x",
            "$(id)=1",
        ],
    )
    def test_names_unsafe_for_the_shell_are_rejected(self, line: str) -> None:
        with pytest.raises(EnvFileParseError, match="invalid variable name") as exc_info:
            parse_env_text(f"OK=1\n{line}\n", Path("/p/.env"))
        assert exc_info.value.line == 2

    def test_plain_names_are_accepted(self) -> None:
        values = parse_env_text("_private=1\nCamel_Case9=2\n", Path("/p/.env"))
        assert values == {"_private": "1", "Camel_Case9": "2"}
