"""Shared test fixtures for templex.

Provides isolated config environments, output state management, a CLI
runner, and helpers to run the document filter over an XML string.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Optional
from xml.sax.saxutils import XMLGenerator

import pytest

from templex.actions.base import Action, empty_attributes, write_element
from templex.actions.registry import ActionRegistry
from templex.events import create_parser
from templex.filter import DocumentFilter
from templex.output import (
    OutputFormat,
    OutputLogHandler,
    OutputManager,
    reset_output,
    set_output,
)

DITA_NS_DECL = 'xmlns:dita="http://dita-ot.sourceforge.net"'
XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>\n'


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test, the cached references go stale once the test finishes.
    """
    yield
    reset_output()
    package_logger = logging.getLogger("templex")
    for handler in list(package_logger.handlers):
        if isinstance(handler, OutputLogHandler):
            package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Test actions
# ---------------------------------------------------------------------------


class EchoAction(Action):
    """Writes one ``<value>`` element per input item; joins them with ``+`` as a string."""

    identifier = "test.Echo"

    def get_result(self) -> str:
        return "+".join(self.input)

    def write_result(self, sink) -> None:
        for value in self.input:
            write_element(sink, "value", text=value)


class SizeAction(Action):
    """Joins input with ``x`` (``["10", "20"]`` -> ``"10x20"``)."""

    identifier = "test.Size"

    def get_result(self) -> str:
        return "x".join(self.input)


class FailingAction(Action):
    """Emits part of an element, then raises."""

    identifier = "test.Failing"

    def get_result(self) -> str:
        raise RuntimeError("cannot compute")

    def write_result(self, sink) -> None:
        write_element(sink, "partial")
        sink.startElementNS((None, "half"), "half", empty_attributes())
        raise RuntimeError("cannot finish")


class UnbalancedAction(Action):
    """Opens an element it never closes, without raising."""

    identifier = "test.Unbalanced"

    def get_result(self) -> str:
        return ""

    def write_result(self, sink) -> None:
        sink.startElementNS((None, "open"), "open", empty_attributes())


class NoneAction(Action):
    """Returns ``None`` from the string form."""

    identifier = "test.None"

    def get_result(self) -> Any:
        return None


@pytest.fixture
def created_actions() -> list[Action]:
    """Every action created through the ``registry`` fixture, in order."""
    return []


@pytest.fixture
def registry(created_actions: list[Action]) -> ActionRegistry:
    """Registry holding the test actions; creation is recorded in ``created_actions``."""
    reg = ActionRegistry()
    for action_cls in (EchoAction, SizeAction, FailingAction, UnbalancedAction, NoneAction):

        def factory(cls: type[Action] = action_cls) -> Action:
            action = cls()
            created_actions.append(action)
            return action

        reg.register(action_cls.identifier, factory)
    return reg


# ---------------------------------------------------------------------------
# Filter helpers
# ---------------------------------------------------------------------------


def run_filter(
    xml: str,
    registry: ActionRegistry,
    features: Optional[dict[str, list[str]]] = None,
    plugins: Optional[dict[str, Any]] = None,
    template: str | Path = "/work/doc_template.xml",
    **kwargs: Any,
) -> str:
    """Run *xml* through a :class:`DocumentFilter` and return the serialised output."""
    out = io.StringIO()
    writer = XMLGenerator(out, encoding="utf-8", short_empty_elements=True)
    document_filter = DocumentFilter(
        writer, registry, features or {}, plugins or {}, template, **kwargs
    )
    parser = create_parser()
    parser.setContentHandler(document_filter)
    parser.parse(io.BytesIO(xml.encode("utf-8")))
    return out.getvalue()


@pytest.fixture
def write_file(tmp_path: Path):
    """Write text to a file under tmp_path and return its path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at subdirectories of tmp_path, clears the
    TEMPLEX_* environment variables, and changes into tmp_path.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("templex.config._is_xdg_platform", lambda: True)
    for var in ["TEMPLEX_FEATURES", "TEMPLEX_SEPARATOR"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def filter_xml(registry: ActionRegistry):
    """Run an XML string through the filter with the test ``registry``."""

    def _filter(xml: str, **kwargs: Any) -> str:
        return run_filter(xml, registry, **kwargs)

    return _filter
