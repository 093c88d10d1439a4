"""Abstract base class for template actions.

An *action* computes replacement content for one extension point found in
a template. The :class:`~templex.filter.DocumentFilter` creates a fresh
instance for every occurrence, feeds it parameters and input through the
setter methods, asks for the result, and discards it.

Two result forms exist:

* :meth:`Action.get_result` -- a single string, used for attribute
  extensions (``dita:extension="depends templex.actions.InsertDependsAction"``).
* :meth:`Action.write_result` -- SAX events written straight into the
  outgoing stream, used for element extensions
  (``<dita:extension id="..." behavior="..."/>``). The default
  implementation writes :meth:`get_result` as character data.

Example:
    Minimal action implementation::

        class UpperAction(Action):
            identifier = "example.UpperAction"

            def get_result(self) -> str:
                return " ".join(v.upper() for v in self.input)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional, Sequence
from xml.sax.handler import ContentHandler
from xml.sax.xmlreader import AttributesNSImpl

from templex.models import PluginTable

PARAM_TEMPLATE = "template"
"""Parameter carrying the absolute path of the template being processed."""

PARAM_LOCALNAME = "localname"
"""Parameter carrying the attribute name an attribute extension fills in."""


class Action(ABC):
    """Base class for all template actions.

    Subclasses must implement :meth:`get_result`. Element-form actions
    override :meth:`write_result` as well.

    The action lifecycle is:

    1. Instantiation -- the registry calls the zero-argument factory.
    2. :meth:`set_logger`, :meth:`add_param`, :meth:`set_input`,
       :meth:`set_features` -- called by the filter, in any order.
    3. :meth:`get_result` or :meth:`write_result` -- called exactly once.

    Attributes:
        identifier: Fully-qualified name the action is registered under.
    """

    identifier: str = ""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self._params: dict[str, str] = {}
        self._input: list[str] = []
        self._plugins: PluginTable = {}

    # ------------------------------------------------------------------
    # Setters called by the filter
    # ------------------------------------------------------------------

    def set_logger(self, logger: logging.Logger) -> None:
        """Set the logger used for diagnostics during this invocation."""
        self._logger = logger

    def set_features(self, plugins: PluginTable) -> None:
        """Attach the read-only plugin table.

        Args:
            plugins: Plugin id -> :class:`~templex.models.PluginInfo`.
        """
        self._plugins = plugins

    def add_param(self, name: str, value: str) -> None:
        """Add a named parameter. A later value for the same name wins."""
        self._params[name] = value

    def set_input(self, values: Sequence[str]) -> None:
        """Set the ordered input values. The order is kept verbatim."""
        self._input = list(values)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @abstractmethod
    def get_result(self) -> str:
        """Compute the replacement value for an attribute extension.

        Returns:
            The string substituted for the data attribute's value.
        """
        ...

    def write_result(self, sink: ContentHandler) -> None:
        """Write the replacement content for an element extension.

        Args:
            sink: Content handler receiving the events in place of the
                extension element.
        """
        text = self.get_result()
        if text:
            sink.characters(text)

    # ------------------------------------------------------------------
    # Accessors for subclasses
    # ------------------------------------------------------------------

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def params(self) -> Mapping[str, str]:
        return self._params

    @property
    def input(self) -> list[str]:
        return self._input

    @property
    def plugins(self) -> PluginTable:
        return self._plugins

    def template_dir(self) -> Optional[Path]:
        """Directory of the template being processed, if the param is set."""
        template = self._params.get(PARAM_TEMPLATE)
        if template is None:
            return None
        return Path(template).parent


def empty_attributes() -> AttributesNSImpl:
    """Return an empty namespace-aware attribute set."""
    return AttributesNSImpl({}, {})


def write_element(
    sink: ContentHandler,
    name: str,
    attributes: Optional[dict[str, str]] = None,
    text: Optional[str] = None,
    namespace: Optional[str] = None,
    prefix: Optional[str] = None,
) -> None:
    """Write one complete element with unqualified attributes and optional text.

    When *namespace* is given the element is written in that namespace
    under *prefix*, and the prefix mapping is declared around it so the
    output stays well-formed even if the template never bound the prefix.
    """
    attributes = attributes or {}
    attrs = AttributesNSImpl(
        {(None, key): value for key, value in attributes.items()},
        {(None, key): key for key in attributes},
    )
    qname = f"{prefix}:{name}" if prefix else name
    if namespace is not None:
        sink.startPrefixMapping(prefix, namespace)
    sink.startElementNS((namespace, name), qname, attrs)
    if text:
        sink.characters(text)
    sink.endElementNS((namespace, name), qname)
    if namespace is not None:
        sink.endPrefixMapping(prefix)
