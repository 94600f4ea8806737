"""Tests for the umbrella ``flagged`` CLI."""

from pathlib import Path

from typer.testing import CliRunner

from flagged.main import app

runner = CliRunner()


class TestUmbrella:
    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "gen" in result.output
        assert "show" in result.output

    def test_show(self) -> None:
        result = runner.invoke(app, ["show", "3"])
        assert result.exit_code == 0
        assert result.stdout.splitlines()[0] == "00000011"

    def test_gen(self, tmp_path: Path) -> None:
        (tmp_path / "opts.py").write_text("class Opts:\n    on: bool\n    off: bool\n")
        result = runner.invoke(app, ["gen", "--type", "Opts", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "opts_flagged.py").exists()

    def test_gen_requires_type(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["gen", str(tmp_path)])
        assert result.exit_code == 2
