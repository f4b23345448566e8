"""
Tests for utils.console module - dual-mode CLI output utilities.

This module tests:
- OutputMode format validation and JSON buffering
- Output functions (success, error, warning, info) in every mode
- Table and summary printers adapting to text / json / quiet
"""

import json
from unittest.mock import patch

import pytest

from mongo_schema_manager.utils.console import (
    OutputMode,
    error,
    info,
    output_mode,
    print_banner,
    print_final_summary,
    print_plan_table,
    print_transitions_table,
    spinner,
    success,
    warning,
)

# ========================================================================
# Fixtures
# ========================================================================


@pytest.fixture(autouse=True)
def reset_output_mode():
    """Reset global output_mode to default state after each test."""
    original_format = output_mode.format
    original_quiet = output_mode.quiet
    output_mode._json_buffer.clear()

    yield

    output_mode.format = original_format
    output_mode.quiet = original_quiet
    output_mode._json_buffer.clear()


@pytest.fixture
def transitions():
    return [
        {
            "collection": "sample",
            "from_version": "0.0.0.0",
            "to_version": "1.0.0.1",
            "steps": ["REMOVING_VALIDATION", "APPLYING_SCHEMA", "UPDATING_VERSION_MARKER"],
        }
    ]


def agent_mode():
    output_mode.format = "json"
    output_mode.quiet = False


def quiet_mode():
    output_mode.format = "text"
    output_mode.quiet = True


# ========================================================================
# OutputMode
# ========================================================================


class TestOutputMode:
    """Test OutputMode class."""

    def test_defaults(self):
        mode = OutputMode()
        assert mode.is_human()
        assert not mode.is_agent()
        assert mode.quiet is False

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid format"):
            OutputMode("xml")

    def test_flush_writes_json_and_clears(self, capsys):
        mode = OutputMode("json")
        mode.add_json("valid", True)
        mode.flush_json()

        assert json.loads(capsys.readouterr().out) == {"valid": True}
        mode.flush_json()
        assert capsys.readouterr().out == ""

    def test_flush_noop_in_human_mode(self, capsys):
        mode = OutputMode("text")
        mode.add_json("valid", True)
        mode.flush_json()
        assert capsys.readouterr().out == ""


# ========================================================================
# Output functions
# ========================================================================


class TestOutputFunctions:
    """Test success / error / warning / info."""

    def test_human_mode_uses_rich(self):
        with patch("mongo_schema_manager.utils.console.console") as mock_console:
            success("done")
            info("note")
            warning("careful")
        assert mock_console.print.call_count == 3

    def test_error_goes_to_stderr_even_when_quiet(self):
        quiet_mode()
        with patch("mongo_schema_manager.utils.console.console_err") as mock_err:
            error("failed")
        mock_err.print.assert_called_once()

    def test_quiet_suppresses_success_and_info(self):
        quiet_mode()
        with patch("mongo_schema_manager.utils.console.console") as mock_console:
            success("done")
            info("note")
            warning("careful")
        mock_console.print.assert_not_called()

    def test_agent_mode_buffers(self):
        agent_mode()
        success("Configuration is valid")
        warning("no enumerators")
        assert output_mode._json_buffer == {
            "status": "success",
            "message": "Configuration is valid",
            "warning": "no enumerators",
        }

    def test_agent_mode_error(self):
        agent_mode()
        error("boom")
        assert output_mode._json_buffer == {"status": "error", "error": "boom"}

    def test_spinner_silent_in_agent_mode(self):
        agent_mode()
        with spinner("Working...") as status:
            assert status is None

    def test_banner_only_in_human_mode(self):
        agent_mode()
        with patch("mongo_schema_manager.utils.console.console") as mock_console:
            print_banner("0.1.0")
        mock_console.print.assert_not_called()


# ========================================================================
# Tables and summary
# ========================================================================


class TestTables:
    """Test print_transitions_table / print_plan_table / print_final_summary."""

    def test_transitions_human(self, transitions):
        with patch("mongo_schema_manager.utils.console.console") as mock_console:
            print_transitions_table(transitions)
        table = mock_console.print.call_args.args[0]
        assert table.title == "Applied Versions"
        assert table.row_count == 1

    def test_transitions_empty_human(self):
        with patch("mongo_schema_manager.utils.console.console") as mock_console:
            print_transitions_table([])
        mock_console.print.assert_not_called()

    def test_transitions_quiet(self, transitions, capsys):
        quiet_mode()
        print_transitions_table(transitions)
        assert capsys.readouterr().out == "sample\t0.0.0.0\t1.0.0.1\n"

    def test_transitions_agent(self, transitions):
        agent_mode()
        print_transitions_table(transitions)
        assert output_mode._json_buffer["transitions"] == transitions

    def test_plan_quiet(self, capsys):
        quiet_mode()
        print_plan_table(
            [
                {"collection": "a", "current_version": "1.0.0.0", "pending": []},
                {"collection": "b", "current_version": "0.0.0.0", "pending": ["1.0.0.0", "1.0.1.0"]},
            ]
        )
        assert capsys.readouterr().out == "a\t1.0.0.0\t\nb\t0.0.0.0\t1.0.0.0,1.0.1.0\n"

    def test_plan_human(self):
        with patch("mongo_schema_manager.utils.console.console") as mock_console:
            print_plan_table([{"collection": "a", "current_version": "1.0.0.0", "pending": []}])
        assert mock_console.print.call_args.args[0].row_count == 1

    def test_final_summary_agent_flushes(self, transitions, capsys):
        agent_mode()
        print_transitions_table(transitions)
        print_final_summary(
            collections=1, applied=1, enumerator_snapshots=3, duration_seconds=0.12345
        )

        data = json.loads(capsys.readouterr().out)
        assert data["collections_processed"] == 1
        assert data["versions_applied"] == 1
        assert data["enumerator_snapshots"] == 3
        assert data["duration_seconds"] == 0.123
        assert data["transitions"] == transitions

    def test_final_summary_quiet_is_silent(self, capsys):
        quiet_mode()
        print_final_summary(collections=1, applied=0, enumerator_snapshots=0, duration_seconds=1)
        assert capsys.readouterr().out == ""
