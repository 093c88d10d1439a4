"""Element-form actions that turn feature values into import declarations."""

from __future__ import annotations

import os
from pathlib import Path
from xml.sax.handler import ContentHandler

from templex.actions.base import Action, write_element

XSL_NS = "http://www.w3.org/1999/XSL/Transform"


class ImportStringsAction(Action):
    """Emit one ``<stringfile>`` element per contributed strings file."""

    identifier = "templex.actions.ImportStringsAction"

    def get_result(self) -> str:
        return ",".join(self.input)

    def write_result(self, sink: ContentHandler) -> None:
        for value in self.input:
            write_element(sink, "stringfile", text=value)


class ImportXSLAction(Action):
    """Emit ``<xsl:import>`` for each contributed stylesheet.

    Hrefs are made relative to the template's directory when possible and
    always use forward slashes.
    """

    identifier = "templex.actions.ImportXSLAction"

    def get_result(self) -> str:
        return " ".join(self._href(value) for value in self.input)

    def write_result(self, sink: ContentHandler) -> None:
        for value in self.input:
            write_element(
                sink,
                "import",
                {"href": self._href(value)},
                namespace=XSL_NS,
                prefix="xsl",
            )

    def _href(self, value: str) -> str:
        base = self.template_dir()
        path = Path(value)
        if base is not None and path.is_absolute():
            try:
                value = os.path.relpath(path, base)
            except ValueError:
                # Different drive on Windows; keep the absolute path.
                value = str(path)
        return value.replace(os.sep, "/")


class ImportPluginInfoAction(Action):
    """Emit Ant ``<property>`` elements describing every installed plugin.

    For each plugin two properties are written:
    ``dita.plugin.<id>.dir`` (when the plugin has a directory) and
    ``dita.plugin.<id>.version``.
    """

    identifier = "templex.actions.ImportPluginInfoAction"

    def get_result(self) -> str:
        return ",".join(self.plugins)

    def write_result(self, sink: ContentHandler) -> None:
        for plugin_id, plugin in self.plugins.items():
            if plugin.dir is not None:
                write_element(
                    sink,
                    "property",
                    {"name": f"dita.plugin.{plugin_id}.dir", "location": plugin.dir},
                )
            write_element(
                sink,
                "property",
                {"name": f"dita.plugin.{plugin_id}.version", "value": plugin.version},
            )
