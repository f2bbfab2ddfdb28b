"""Tests for the emwin-tg command line."""

from __future__ import annotations

from typer.testing import CliRunner

from emwin_tg import __version__
from emwin_tg.cli import app

runner = CliRunner()


class TestCli:
    """Tests for CLI commands."""

    def test_version(self):
        """version prints the package version."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert f"emwin-tg {__version__}" in result.output

    def test_info(self):
        """info shows the identity string."""
        result = runner.invoke(app, ["info"])

        assert result.exit_code == 0
        assert "User-Agent" in result.output

    def test_feeds_text(self):
        """feeds lists the text feed table by default."""
        result = runner.invoke(app, ["feeds"])

        assert result.exit_code == 0
        assert "text-2min" in result.output
        assert "text-3hour" in result.output

    def test_feeds_image(self):
        """feeds --source image lists the image feeds."""
        result = runner.invoke(app, ["feeds", "--source", "image"])

        assert result.exit_code == 0
        assert "image-15min" in result.output
        assert "text-2min" not in result.output

    def test_unknown_source(self):
        """An unknown source is a usage error."""
        result = runner.invoke(app, ["feeds", "--source", "radar"])

        assert result.exit_code != 0

    def test_watch_rejects_unknown_source(self):
        """watch validates the source before connecting."""
        result = runner.invoke(app, ["watch", "--source", "radar"])

        assert result.exit_code != 0
