"""Tests for CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from blogsync.cli import _setup_logging, app
from blogsync.sync import Poller
from blogsync.utils.text import INLINE_META_MARKER


runner = CliRunner()


@pytest.fixture
def blog_dir(tmp_path: Path) -> Path:
    posts = tmp_path / "blog" / "posts"
    posts.mkdir(parents=True)
    (posts / "a.md").write_text("# Plain heading\n\nA body.\n")
    (posts / "b.md").write_text(
        f"title: Hidden Title\npublished: false\n{INLINE_META_MARKER}\nB body\n"
    )
    (posts / "my-post.md").write_text("No heading here.\n")
    return tmp_path / "blog"


def memory_args(blog_dir: Path) -> list[str]:
    return ["--provider", "memory", "--source", str(blog_dir)]


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        """Verbose mode sets DEBUG level."""
        with patch("blogsync.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        """Normal mode sets INFO level."""
        with patch("blogsync.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestBuildCommand:
    """Tests for the build command."""

    def test_build_lists_published(self, blog_dir: Path) -> None:
        """Lists published posts only by default."""
        result = runner.invoke(app, ["build", *memory_args(blog_dir)])

        assert result.exit_code == 0
        assert "Plain heading" in result.stdout
        assert "My Post" in result.stdout
        assert "Hidden Title" not in result.stdout

    def test_build_all(self, blog_dir: Path) -> None:
        """Includes unpublished posts with --all."""
        result = runner.invoke(app, ["build", "--all", *memory_args(blog_dir)])

        assert result.exit_code == 0
        assert "Hidden Title" in result.stdout

    def test_build_with_config_file(self, blog_dir: Path, tmp_path: Path) -> None:
        """Reads options from a YAML config file."""
        config_file = tmp_path / "blogsync.yml"
        config_file.write_text(
            f"repository_provider: memory\nsource_location: {blog_dir}\npolling_enabled: false\n"
        )

        result = runner.invoke(app, ["build", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Plain heading" in result.stdout

    def test_invalid_config(self, tmp_path: Path) -> None:
        """Rejects unknown configuration keys."""
        config_file = tmp_path / "blogsync.yml"
        config_file.write_text("unknown_option: 1\n")

        result = runner.invoke(app, ["build", "--config", str(config_file)])

        assert result.exit_code == 2

    def test_invalid_provider(self, blog_dir: Path) -> None:
        result = runner.invoke(app, ["build", "--provider", "svn", "--source", str(blog_dir)])

        assert result.exit_code == 2

    def test_initial_build_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Exits with an error when the repository cannot be cloned."""
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["build", "--source", str(tmp_path / "no-such-repo")])

        assert result.exit_code == 1
        assert "Initial build failed" in result.stdout


class TestShowCommand:
    """Tests for the show command."""

    def test_show_post(self, blog_dir: Path) -> None:
        result = runner.invoke(app, ["show", "a", *memory_args(blog_dir)])

        assert result.exit_code == 0
        assert "Plain heading" in result.stdout
        assert "<p>A body.</p>" in result.stdout

    def test_show_unpublished_post(self, blog_dir: Path) -> None:
        """Shows unpublished posts by identity."""
        result = runner.invoke(app, ["show", "b", *memory_args(blog_dir)])

        assert result.exit_code == 0
        assert "Hidden Title" in result.stdout
        assert "Published: no" in result.stdout

    def test_show_missing(self, blog_dir: Path) -> None:
        result = runner.invoke(app, ["show", "nope", *memory_args(blog_dir)])

        assert result.exit_code == 1
        assert "No post" in result.stdout


class TestWatchCommand:
    """Tests for the watch command."""

    def test_watch_polling_disabled(self, blog_dir: Path, tmp_path: Path) -> None:
        config_file = tmp_path / "blogsync.yml"
        config_file.write_text(
            f"repository_provider: memory\nsource_location: {blog_dir}\npolling_enabled: false\n"
        )

        result = runner.invoke(app, ["watch", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Polling is disabled" in result.stdout

    def test_watch_stops_on_interrupt(self, blog_dir: Path) -> None:
        """Stops the poller on Ctrl+C."""
        def stop(poller: Poller, timeout: float | None = None) -> None:
            poller._stop_event.set()

        with patch.object(Poller, "join", side_effect=KeyboardInterrupt) as mock_join:
            with patch.object(Poller, "stop", autospec=True, side_effect=stop) as mock_stop:
                result = runner.invoke(app, ["watch", *memory_args(blog_dir)])

        assert result.exit_code == 0
        assert "Stopping" in result.stdout
        mock_join.assert_called()
        mock_stop.assert_called_once()
