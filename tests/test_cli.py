"""End-to-end tests for the templex command line."""

from __future__ import annotations

import importlib.metadata
import json
from pathlib import Path

import pytest

from conftest import DITA_NS_DECL
from templex import __version__
from templex.app import app, register_commands
from templex.exit_codes import EXIT_DOCUMENT_STRUCTURE, EXIT_EXTENSION_CONFIG


@pytest.fixture(autouse=True)
def _commands(isolated_config: Path) -> None:
    register_commands()


@pytest.fixture
def features_file(write_file) -> Path:
    return write_file(
        "features.json",
        json.dumps(
            {
                "features": {"dita.conductor.target": ["init"]},
                "plugins": {
                    "org.a": {
                        "id": "org.a",
                        "features": {"dita.conductor.target": ["build-a"]},
                    }
                },
            }
        ),
    )


class TestVersion:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip() == f"templex {__version__}"

    def test_register_commands_is_idempotent(self) -> None:
        register_commands()
        register_commands()
        names = [info.name for info in app.registered_commands]
        assert names.count("generate") == 1


class TestGenerateCommand:
    def test_generates_and_prints_path(self, cli_runner, write_file, features_file, isolated_config) -> None:
        template = write_file(
            "build_template.xml",
            f'<project {DITA_NS_DECL}><target name="all" '
            'dita:extension="depends templex.actions.InsertDependsAction" '
            'dita:depends="{dita.conductor.target}"/></project>',
        )
        result = cli_runner.invoke(
            app, ["--plain", "generate", str(template), "--features", str(features_file)]
        )

        assert result.exit_code == 0, result.output
        output = isolated_config / "build.xml"
        assert str(output) in result.stdout
        assert '<target name="all" depends="build-a"/>' in output.read_text()

    def test_features_from_environment(
        self, cli_runner, write_file, features_file, isolated_config, monkeypatch
    ) -> None:
        monkeypatch.setenv("TEMPLEX_FEATURES", str(features_file))
        template = write_file(
            "t_template.xml",
            f'<x {DITA_NS_DECL}><dita:extension id="dita.conductor.target" '
            'behavior="templex.actions.ImportStringsAction"/></x>',
        )
        result = cli_runner.invoke(app, ["--plain", "generate", str(template)])

        assert result.exit_code == 0, result.output
        assert (isolated_config / "t.xml").read_text().endswith(
            "<x><stringfile>init</stringfile><stringfile>build-a</stringfile></x>"
        )

    def test_unknown_action_exit_code(self, cli_runner, write_file, isolated_config) -> None:
        template = write_file(
            "build_template.xml",
            f'<project {DITA_NS_DECL}><dita:extension id="x" behavior="no.Such"/></project>',
        )
        result = cli_runner.invoke(app, ["--no-color", "generate", str(template)])

        assert result.exit_code == EXIT_EXTENSION_CONFIG
        assert "Unknown action 'no.Such'" in result.output
        assert not (isolated_config / "build.xml").exists()

    def test_first_failure_decides_exit_code(self, cli_runner, write_file) -> None:
        broken = write_file("a_template.xml", "<a>")
        good = write_file("b_template.xml", "<b/>")
        result = cli_runner.invoke(app, ["--no-color", "generate", str(broken), str(good)])

        assert result.exit_code == EXIT_DOCUMENT_STRUCTURE
        assert good.with_name("b.xml").is_file()

    def test_requires_template(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["generate"])
        assert result.exit_code == 2


class TestActionsCommand:
    def test_json_list(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--json", "actions", "list"])
        assert result.exit_code == 0, result.output
        rows = {row["Identifier"]: row["Form"] for row in json.loads(result.stdout)}
        assert rows["templex.actions.InsertAction"] == "element"
        assert rows["templex.actions.InsertDependsAction"] == "attribute"
        assert len(rows) == 6

    def test_broken_entry_point_factory_does_not_break_listing(
        self, cli_runner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken_factory():
            raise RuntimeError("cannot build")

        class _EntryPoint:
            name = "ext.Broken"

            def load(self):
                return broken_factory

        monkeypatch.setattr(
            importlib.metadata, "entry_points", lambda **kwargs: [_EntryPoint()]
        )

        result = cli_runner.invoke(app, ["--json", "actions", "list"])

        assert result.exit_code == 0, result.output
        rows = {row["Identifier"]: row["Form"] for row in json.loads(result.stdout)}
        assert rows["ext.Broken"] == "unknown"
        assert rows["templex.actions.InsertAction"] == "element"
        assert len(rows) == 7


class TestConfigCommands:
    def test_set_and_show(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["config", "set", "separator", ";"])
        assert result.exit_code == 0, result.output

        result = cli_runner.invoke(app, ["--json", "-q", "config", "show"])
        assert json.loads(result.stdout)["separator"] == ";"

    def test_set_list_field(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["config", "set", "actions.disabled", "a.B, c.D"])
        assert result.exit_code == 0, result.output

        from templex.config import load_global_config

        assert load_global_config().actions.disabled == ["a.B", "c.D"]

    def test_unknown_key(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["config", "set", "nope", "x"])
        assert result.exit_code == 2

    def test_invalid_value(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["config", "set", "separator", ""])
        assert result.exit_code == 2

    def test_reset_force(self, cli_runner) -> None:
        cli_runner.invoke(app, ["config", "set", "encoding", "iso-8859-1"])
        result = cli_runner.invoke(app, ["config", "reset", "--force"])
        assert result.exit_code == 0

        from templex.config import load_global_config

        assert load_global_config().encoding == "utf-8"
