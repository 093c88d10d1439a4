"""Tests for the output formatting system and the logging bridge.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline, quiet and verbose modes
- print_table in all three modes
- OutputLogHandler / configure_logging routing of library log records
"""

from __future__ import annotations

import json
import logging

import pytest

from templex import output as output_module
from templex.output import (
    OutputFormat,
    OutputLogHandler,
    OutputManager,
    _should_disable_color,
    configure_logging,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("templex.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("templex.output._is_tty", lambda: True)


@pytest.fixture()
def templex_logger():
    """The package logger, with any installed OutputLogHandler removed afterwards."""
    logger = logging.getLogger("templex")
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        if isinstance(handler, OutputLogHandler):
            logger.removeHandler(handler)
    logger.setLevel(level)


# ------------------------------------------------------------------ #
# Format resolution and colour
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager().format == OutputFormat.RICH

    def test_auto_resolves_to_plain_when_no_color(self, tty):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, non_tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_disables_color(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout / stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(no_color=True).print_data("/work/build.xml")
        captured = capfd.readouterr()
        assert captured.out == "/work/build.xml\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        getattr(OutputManager(no_color=True), method)("message")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "message" in captured.err

    def test_error_prefix(self, capfd, non_tty):
        OutputManager(no_color=True).error("broken")
        assert capfd.readouterr().err == "Error: broken\n"

    def test_suggest_has_arrow(self, capfd, non_tty):
        OutputManager(no_color=True).suggest("try again")
        assert capfd.readouterr().err.startswith("→ ")


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_and_success(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.info("info")
        mgr.success("done")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warnings_and_errors(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.warning("w")
        mgr.error("e")
        err = capfd.readouterr().err
        assert "Warning: w" in err
        assert "Error: e" in err

    def test_debug_hidden_by_default(self, capfd, non_tty):
        OutputManager(no_color=True).debug("hidden")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        OutputManager(no_color=True, verbose=True).debug("shown")
        assert capfd.readouterr().err == "[debug] shown\n"


# ------------------------------------------------------------------ #
# Structured output
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"separator": ","})
        assert json.loads(capfd.readouterr().out) == {"separator": ","}

    def test_plain_dict(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response(
            {"separator": ",", "actions": {"enabled": []}}
        )
        lines = capfd.readouterr().out.splitlines()
        assert lines == ["separator\t,", 'actions\t{"enabled": []}']

    def test_rich_dict_produces_output(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).format_response({"a": 1})
        assert "a" in capfd.readouterr().out


class TestPrintTable:
    HEADERS = ["Identifier", "Form"]
    ROWS = [["templex.actions.InsertAction", "element"]]

    def test_json_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(self.HEADERS, self.ROWS)
        assert json.loads(capfd.readouterr().out) == [
            {"Identifier": "templex.actions.InsertAction", "Form": "element"}
        ]

    def test_plain_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_table(self.HEADERS, self.ROWS)
        assert capfd.readouterr().out == (
            "Identifier\tForm\ntemplex.actions.InsertAction\telement\n"
        )

    def test_rich_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_table(
            self.HEADERS, self.ROWS, title="Actions"
        )
        out = capfd.readouterr().out
        assert "Identifier" in out
        assert "InsertAction" in out


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_output_overrides(self):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr

    def test_convenience_functions_use_global(self, capfd, non_tty):
        set_output(OutputManager(no_color=True))
        output_module.print_data("out")
        output_module.warning("careful")
        captured = capfd.readouterr()
        assert captured.out == "out\n"
        assert captured.err == "Warning: careful\n"


# ------------------------------------------------------------------ #
# Logging bridge
# ------------------------------------------------------------------ #


class TestLoggingBridge:
    def test_warning_record_becomes_warning(self, capfd, non_tty, templex_logger):
        set_output(OutputManager(no_color=True))
        configure_logging()
        logging.getLogger("templex.filter").warning("File %s does not exist", "a.xml")
        assert capfd.readouterr().err == "Warning: File a.xml does not exist\n"

    def test_error_record_becomes_error(self, capfd, non_tty, templex_logger):
        set_output(OutputManager(no_color=True))
        configure_logging()
        logging.getLogger("templex.filter").error("action failed")
        assert capfd.readouterr().err == "Error: action failed\n"

    def test_info_only_with_verbose(self, capfd, non_tty, templex_logger):
        set_output(OutputManager(no_color=True))
        configure_logging()
        logging.getLogger("templex.generator").info("Generated x")
        assert capfd.readouterr().err == ""

        set_output(OutputManager(no_color=True, verbose=True))
        configure_logging(verbose=True)
        logging.getLogger("templex.generator").info("Generated x")
        assert capfd.readouterr().err == "[debug] Generated x\n"

    def test_traceback_only_with_verbose(self, capfd, non_tty, templex_logger):
        set_output(OutputManager(no_color=True))
        configure_logging()
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logging.getLogger("templex.filter").error("failed", exc_info=True)
        assert capfd.readouterr().err == "Error: failed\n"

        configure_logging(verbose=True)
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logging.getLogger("templex.filter").error("failed", exc_info=True)
        err = capfd.readouterr().err
        assert "Traceback" in err
        assert "RuntimeError: boom" in err

    def test_reconfiguring_replaces_handler(self, templex_logger):
        configure_logging()
        configure_logging(verbose=True)
        handlers = [h for h in templex_logger.handlers if isinstance(h, OutputLogHandler)]
        assert len(handlers) == 1
        assert templex_logger.level == logging.DEBUG
