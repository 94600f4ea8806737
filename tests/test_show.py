"""Tests for the ``flagged show`` command."""

import json

from typer.testing import CliRunner

from flagged.show import app

runner = CliRunner()


class TestShow:
    def test_default_width(self) -> None:
        result = runner.invoke(app, ["5"])
        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["00000101", "O|O|O|O|O|I|O|I", "set: 0, 2"]

    def test_size_16(self) -> None:
        result = runner.invoke(app, ["--size", "16", "1092"])
        assert result.exit_code == 0
        assert "O|O|O|O|O|I|O|O_O|I|O|O|O|I|O|O" in result.stdout

    def test_hex_value(self) -> None:
        result = runner.invoke(app, ["0x80"])
        assert result.exit_code == 0
        assert result.stdout.splitlines()[0] == "10000000"

    def test_no_bits_set(self) -> None:
        result = runner.invoke(app, ["0"])
        assert "set: none" in result.stdout

    def test_json(self) -> None:
        result = runner.invoke(app, ["--json", "0b101"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "value": 5,
            "size": 8,
            "binary": "00000101",
            "pretty": "O|O|O|O|O|I|O|I",
            "set": [0, 2],
        }

    def test_value_too_wide(self) -> None:
        result = runner.invoke(app, ["256"])
        assert result.exit_code == 1
        assert "does not fit in 8 bits" in result.output

    def test_unsupported_size(self) -> None:
        result = runner.invoke(app, ["--size", "12", "1"])
        assert result.exit_code == 1
        assert "unsupported width 12" in result.output

    def test_invalid_value(self) -> None:
        result = runner.invoke(app, ["lots"])
        assert result.exit_code == 1
        assert "Invalid integer" in result.output

    def test_missing_value(self) -> None:
        result = runner.invoke(app, [])
        assert result.exit_code == 1
