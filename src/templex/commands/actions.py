"""Actions commands -- inspect the registered action handlers."""

from __future__ import annotations

import typer

from templex.output import print_table


actions_app = typer.Typer(no_args_is_help=True)


def build_registry():
    """Return the built-in registry extended with discovered entry-point actions."""
    from templex.actions import create_default_registry
    from templex.config import load_global_config

    registry = create_default_registry()
    registry.discover(load_global_config().actions)
    return registry


@actions_app.command("list")
def actions_list() -> None:
    """List every action identifier usable in ``behavior`` or ``extension``.

    Actions are not instantiated. The form is read from the registered
    class; a plain factory function is listed as ``unknown``.

    Example::

        templex actions list
        templex --json actions list
    """
    registry = build_registry()
    rows = [
        [identifier, _action_form(registry.get_factory(identifier))]
        for identifier in registry.list_identifiers()
    ]
    print_table(["Identifier", "Form"], rows, title="Actions")


def _action_form(factory) -> str:
    from templex.actions import Action

    if not (isinstance(factory, type) and issubclass(factory, Action)):
        return "unknown"
    return "element" if factory.write_result is not Action.write_result else "attribute"
