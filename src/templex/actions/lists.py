"""String-form actions that fold feature values into one attribute value."""

from __future__ import annotations

from typing import Iterable

from templex.actions.base import Action


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class ListTranstypeAction(Action):
    """Join contributed transformation types with the ``separator`` param.

    The separator defaults to ``|``. Duplicates are dropped, first
    occurrence wins.
    """

    identifier = "templex.actions.ListTranstypeAction"

    def get_result(self) -> str:
        separator = self.params.get("separator", "|")
        return separator.join(_unique(v.strip() for v in self.input if v.strip()))


class InsertDependsAction(Action):
    """Build an Ant ``depends`` list from target names.

    A value written as ``{extension.point}`` is replaced by every target
    the installed plugins contribute to that extension point, in plugin
    order; an extension point nobody extends contributes nothing.
    """

    identifier = "templex.actions.InsertDependsAction"

    def get_result(self) -> str:
        targets = []
        for value in self.input:
            value = value.strip()
            if value.startswith("{") and value.endswith("}"):
                targets.extend(self._contributed(value[1:-1].strip()))
            elif value:
                targets.append(value)
        return ",".join(_unique(targets))

    def _contributed(self, extension_point: str) -> list[str]:
        values = []
        for plugin in self.plugins.values():
            for value in plugin.features.get(extension_point, []):
                if value.strip():
                    values.append(value.strip())
        return values
