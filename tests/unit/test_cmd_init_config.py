"""Unit tests for the init-config command."""

from __future__ import annotations

import stat
import tomllib
from pathlib import Path
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from genre_backfill.commands.init_config import _load_example_config, cli


class TestLoadExampleConfig:
    def test_loads_non_empty_content(self) -> None:
        content = _load_example_config()
        assert len(content) > 0

    def test_contains_all_sections(self) -> None:
        content = _load_example_config()
        for section in (
            "[database]",
            "[spotify]",
            "[lastfm]",
            "[musicbrainz]",
            "[backfill]",
            "[display]",
        ):
            assert section in content, f"Missing section {section}"

    def test_example_parses_to_defaults(self) -> None:
        data = tomllib.loads(_load_example_config())
        assert data["spotify"]["client_id"] == ""
        assert data["backfill"]["limit"] == 0
        assert data["backfill"]["request_timeout"] == 15.0
        assert data["musicbrainz"]["user_agent"] == "GenreBackfill/0.1 (local)"


class TestInitConfigCommand:
    def test_creates_config_file(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["--output", "test-config.toml"], standalone_mode=False)
            assert result.exit_code == 0 or result.exception is None
            assert Path("test-config.toml").exists()
            content = Path("test-config.toml").read_text()
            assert "[spotify]" in content

    def test_created_file_matches_example(self) -> None:
        example = _load_example_config()
        runner = CliRunner()
        with runner.isolated_filesystem():
            runner.invoke(cli, ["--output", "test-config.toml"], standalone_mode=False)
            content = Path("test-config.toml").read_text()
            assert content == example

    def test_fails_if_exists_without_force(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("test-config.toml").write_text("existing")
            result = runner.invoke(cli, ["--output", "test-config.toml"], standalone_mode=False)
            # Should fail with SystemExit(1)
            assert isinstance(result.exception, SystemExit)
            assert result.exception.code == 1
            # Original content should be preserved
            assert Path("test-config.toml").read_text() == "existing"

    def test_force_overwrites_existing(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("test-config.toml").write_text("old content")
            result = runner.invoke(
                cli, ["--output", "test-config.toml", "--force"], standalone_mode=False
            )
            assert result.exception is None or result.exit_code == 0
            content = Path("test-config.toml").read_text()
            assert "[spotify]" in content
            assert "old content" not in content

    def test_creates_parent_directories(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(
                cli, ["--output", "deep/nested/dir/config.toml"], standalone_mode=False
            )
            assert result.exception is None or result.exit_code == 0
            assert Path("deep/nested/dir/config.toml").exists()

    def test_default_path_used_when_no_output(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            mock_path = MagicMock(return_value=Path("default-config.toml"))
            with patch("genre_backfill.commands.init_config.get_default_config_path", mock_path):
                result = runner.invoke(cli, [], standalone_mode=False)
                assert result.exception is None or result.exit_code == 0
                assert Path("default-config.toml").exists()

    def test_created_file_is_owner_only(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            runner.invoke(cli, ["--output", "test-config.toml"], standalone_mode=False)
            assert stat.S_IMODE(Path("test-config.toml").stat().st_mode) == 0o600
