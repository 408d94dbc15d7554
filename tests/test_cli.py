"""Tests for the command line interface."""

import json
from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from stepbind.cli import cli, parse_step
from stepbind.core.domain.types import StepKeyword


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestCliGroup:
    """Test the top-level group."""

    def test_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "detect" in result.output
        assert "bindings" in result.output
        assert "resolve" in result.output


class TestDetectCommand:
    """Test the detect command."""

    def test_text_report(self, runner: CliRunner, reqnroll_workspace: Path) -> None:
        result = runner.invoke(cli, ["detect", str(reqnroll_workspace)])

        assert result.exit_code == 0
        assert "PROVIDER DETECTION REPORT" in result.output
        assert "Reqnroll (csharp-reqnroll)" in result.output
        assert "Primary Provider: Reqnroll" in result.output

    def test_json_report(self, runner: CliRunner, specflow_workspace: Path) -> None:
        result = runner.invoke(
            cli, ["detect", str(specflow_workspace), "--output-format", "json"]
        )

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["active"] == ["csharp-specflow"]
        assert payload["primary"] == "csharp-specflow"
        assert payload["providers"][0]["id"] == "csharp-specflow"

    def test_threshold_option(self, runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / "Hooks.cs").write_text("[Binding]\npublic class Hooks { }\n")

        result = runner.invoke(
            cli,
            ["detect", str(tmp_path), "--threshold", "0.5", "--output-format", "json"],
        )

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["active"] == []
        assert payload["active_threshold"] == 0.5

    def test_threshold_out_of_range(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["detect", str(tmp_path), "--threshold", "1.5"])

        assert result.exit_code == 2

    def test_invalid_config_file(self, runner: CliRunner, tmp_path: Path) -> None:
        config_dir = tmp_path / ".stepbind"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("- not\n- a mapping\n")

        result = runner.invoke(cli, ["detect", str(tmp_path)])

        assert result.exit_code == 1
        assert "must contain a mapping" in result.output

    def test_config_file_threshold(self, runner: CliRunner, tmp_path: Path) -> None:
        config_dir = tmp_path / ".stepbind"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("active_threshold: 0.9\n")

        result = runner.invoke(
            cli, ["detect", str(tmp_path), "--output-format", "json"]
        )

        assert result.exit_code == 0
        assert json.loads(result.output)["active_threshold"] == 0.9


class TestBindingsCommand:
    """Test the bindings command."""

    def test_json_listing(self, runner: CliRunner, reqnroll_workspace: Path) -> None:
        result = runner.invoke(
            cli, ["bindings", str(reqnroll_workspace), "--output-format", "json"]
        )

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["stats"]["bindings"] == 10
        assert payload["bindings"][0]["symbol"] == (
            "CalculatorSteps.GivenTheCalculatorIsInitialized"
        )

    def test_table_listing(self, runner: CliRunner, reqnroll_workspace: Path) -> None:
        result = runner.invoke(cli, ["bindings", str(reqnroll_workspace)])

        assert result.exit_code == 0
        assert "10 bindings in 1 files" in result.output

    def test_empty_workspace(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["bindings", str(tmp_path)])

        assert result.exit_code == 0
        assert "No bindings found" in result.output


class TestResolveCommand:
    """Test the resolve command."""

    def test_unique(self, runner: CliRunner, reqnroll_workspace: Path) -> None:
        result = runner.invoke(
            cli,
            [
                "resolve",
                str(reqnroll_workspace),
                "--step",
                'Given a user with name "Alice"',
            ],
        )

        assert result.exit_code == 0
        assert "unique: Given a user with name" in result.output
        assert "UserSteps.GivenAUserWithName" in result.output
        assert "arguments: 'Alice'" in result.output

    def test_ambiguous_exits_one(
        self, runner: CliRunner, reqnroll_workspace: Path
    ) -> None:
        result = runner.invoke(
            cli,
            [
                "resolve",
                str(reqnroll_workspace),
                "--step",
                "Then the result should be 120 on the screen",
            ],
        )

        assert result.exit_code == 1
        assert "ambiguous" in result.output
        assert "ThenTheResultShouldBeAnything" in result.output

    def test_unmatched_exits_one(
        self, runner: CliRunner, reqnroll_workspace: Path
    ) -> None:
        result = runner.invoke(
            cli,
            ["resolve", str(reqnroll_workspace), "--step", "When nothing matches"],
        )

        assert result.exit_code == 1
        assert "unmatched: When nothing matches" in result.output

    def test_conjunction_rejected(
        self, runner: CliRunner, reqnroll_workspace: Path
    ) -> None:
        result = runner.invoke(
            cli,
            ["resolve", str(reqnroll_workspace), "--step", "And something else"],
        )

        assert result.exit_code == 2
        assert "needs a preceding step" in result.output


class TestParseStep:
    """Test step text parsing."""

    def test_keyword_is_case_insensitive(self) -> None:
        step = parse_step("  when the user logs in ")

        assert step.keyword is StepKeyword.WHEN
        assert step.effective_keyword is StepKeyword.WHEN
        assert step.text == "the user logs in"

    def test_missing_keyword(self) -> None:
        with pytest.raises(click.BadParameter):
            parse_step("the user logs in")
