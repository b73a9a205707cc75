"""
Smoke Tests for CLI Commands.

These tests run the neurolearn CLI in a subprocess against a throwaway
database and check that commands succeed and print something sensible.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import os
import re
import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent

CREATED_RE = re.compile(r"Created\s+([0-9a-f]{32})")


@pytest.fixture
def cli(tmp_path):
    """Run a neurolearn command against a fresh database."""
    db_path = tmp_path / "cards.db"

    def run_cli_command(*args: str, stdin: str = "", timeout: int = 30) -> tuple[int, str, str]:
        """
        Run a CLI command and return exit code, stdout, stderr.

        Args:
            args: Arguments after 'python -m src.cli.neurolearn_cli'
            stdin: Text fed to interactive prompts
            timeout: Maximum time to wait
        """
        env = {
            **os.environ,
            "NEUROLEARN_DB_PATH": str(db_path),
            "NEUROLEARN_LOG_LEVEL": "WARNING",
            "PYTHONIOENCODING": "utf-8",
        }
        result = subprocess.run(
            [sys.executable, "-m", "src.cli.neurolearn_cli", *args],
            cwd=PROJECT_ROOT,
            env=env,
            input=stdin,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode, result.stdout, result.stderr

    return run_cli_command


def _created_id(stdout: str) -> str:
    match = CREATED_RE.search(stdout)
    assert match, f"No card id in output: {stdout}"
    return match.group(1)


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, cli):
        code, stdout, stderr = cli("--help")

        assert code == 0, f"Help failed: {stderr}"
        assert "neurolearn" in stdout.lower()
        assert "study" in stdout

    @pytest.mark.parametrize("command", ["add", "list", "edit", "delete", "due", "at-risk", "stats", "study"])
    def test_command_help(self, cli, command):
        code, stdout, stderr = cli(command, "--help")

        assert code == 0, f"{command} --help failed: {stderr}"


class TestCardCommands:
    def test_add_and_list(self, cli):
        code, stdout, stderr = cli("add", "What is LTP?", "Long-term potentiation", "-c", "neuro")
        assert code == 0, stderr
        _created_id(stdout)

        code, stdout, stderr = cli("list")
        assert code == 0, stderr
        assert "Flashcards (1)" in stdout

    def test_empty_list(self, cli):
        code, stdout, _ = cli("list")

        assert code == 0
        assert "No flashcards yet" in stdout

    def test_add_rejects_blank_front(self, cli):
        code, stdout, _ = cli("add", "   ", "answer")

        assert code == 1
        assert "must not be empty" in stdout

    def test_edit_and_delete(self, cli):
        _, stdout, _ = cli("add", "Q", "A")
        card_id = _created_id(stdout)

        code, stdout, stderr = cli("edit", card_id, "--back", "Better answer")
        assert code == 0, stderr
        assert "Updated" in stdout

        code, stdout, stderr = cli("delete", card_id, "--yes")
        assert code == 0, stderr
        assert "Deleted" in stdout

        code, stdout, _ = cli("delete", card_id, "--yes")
        assert code == 1
        assert "not found" in stdout


class TestQueueCommands:
    def test_due_after_add(self, cli):
        cli("add", "Q1", "A1")
        cli("add", "Q2", "A2")

        code, stdout, stderr = cli("due")

        assert code == 0, stderr
        assert "Due now (2)" in stdout

    def test_at_risk_on_new_deck(self, cli):
        cli("add", "Q", "A")

        code, stdout, stderr = cli("at-risk")

        assert code == 0, stderr
        assert "No cards at risk" in stdout

    def test_stats(self, cli):
        cli("add", "Q", "A")

        code, stdout, stderr = cli("stats")

        assert code == 0, stderr
        assert "Total cards" in stdout
        assert "Cognitive load" in stdout


class TestStudyCommand:
    def test_study_with_nothing_due(self, cli):
        code, stdout, stderr = cli("study")

        assert code == 0, stderr
        assert "No cards due" in stdout

    def test_study_rates_every_card(self, cli):
        cli("add", "Q1", "A1")
        cli("add", "Q2", "A2")

        # Reveal + rate for each card
        code, stdout, stderr = cli("study", stdin="\n3\n\n1\n")

        assert code == 0, stderr
        assert "Session complete!" in stdout
        assert "Reviewed 2 cards" in stdout

        code, stdout, _ = cli("due")
        assert "All cards are up to date" in stdout

    def test_quit_early_keeps_progress(self, cli):
        cli("add", "Q1", "A1")
        cli("add", "Q2", "A2")

        code, stdout, stderr = cli("study", stdin="\n4\nq\n")

        assert code == 0, stderr
        assert "Reviewed 1 cards" in stdout

        code, stdout, _ = cli("due")
        assert "Due now (1)" in stdout

    def test_minutes_limit_session(self, cli):
        for i in range(3):
            cli("add", f"Q{i}", f"A{i}")

        code, stdout, stderr = cli("study", "--minutes", "1.5", stdin="\n3\n")

        assert code == 0, stderr
        assert "Cards: 1" in stdout
        assert "Reviewed 1 cards" in stdout

    def test_stats_show_retention_and_suggestion(self, cli):
        cli("add", "Q", "A")
        cli("study", stdin="\n3\n")

        code, stdout, stderr = cli("stats")

        assert code == 0, stderr
        assert "Retention" in stdout
        assert "100%" in stdout
        assert "Excellent retention" in stdout
