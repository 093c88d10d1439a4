"""Document filter -- recognises extension constructs in a SAX event stream.

:class:`DocumentFilter` is a content handler placed between a SAX reader
and a downstream handler (usually an :class:`xml.sax.saxutils.XMLGenerator`).
Plain markup passes through untouched. Two constructs in the reserved
namespace :data:`DITA_OT_NS` are replaced by action output:

* **Element extensions** -- ``<dita:extension id="point" behavior="action"/>``.
  The element and everything inside it are replaced by the events the
  action writes via :meth:`~templex.actions.base.Action.write_result`.
  The action's input is the feature table entry for ``id``.
* **Attribute extensions** -- an ordinary element carrying
  ``dita:extension="name action ..."`` plus ``dita:name="v1,v2"`` data
  attributes. Each data attribute is emitted unqualified as ``name`` with
  the value returned by :meth:`~templex.actions.base.Action.get_result`;
  its literal value, split on the feature separator, is the action's input.

The reserved namespace never reaches the output: its prefix mappings,
``xmlns:`` attributes and the ``extension`` declaration are dropped.

Errors are split in two classes. Configuration problems
(:class:`~templex.exceptions.ExtensionConfigError`) and broken action
output (:class:`~templex.exceptions.DocumentStructureError`) propagate and
abort the document. Any other exception from an action is logged and the
element or attribute it was computing is left out.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional
from xml.sax.handler import ContentHandler
from xml.sax.xmlreader import AttributesNSImpl

from templex.actions.base import PARAM_LOCALNAME, PARAM_TEMPLATE, Action
from templex.actions.registry import (
    ActionRegistry,
    find_handler,
    parse_extension_declaration,
)
from templex.events import EventRecorder
from templex.exceptions import DocumentStructureError, ExtensionConfigError
from templex.models import FeatureTable, Location, PluginTable

DITA_OT_NS = "http://dita-ot.sourceforge.net"
"""The reserved extension namespace."""

EXTENSION_ELEM = "extension"
EXTENSION_ATTR = "extension"
EXTENSION_ID_ATTR = "id"
BEHAVIOR_ATTR = "behavior"

FEATURE_VALUE_SEPARATOR = ","
"""Default separator between values of an attribute extension."""

# Exceptions from an action that are never downgraded to a logged drop.
_FATAL_ERRORS = (ExtensionConfigError, DocumentStructureError)


def split_feature_value(value: str, separator: str = FEATURE_VALUE_SEPARATOR) -> list[str]:
    """Split an attribute extension value into action input.

    Trailing empty fields are dropped (``"a,b,"`` -> ``["a", "b"]``), while
    a value without any separator is returned as a single item, even when
    empty.
    """
    if separator not in value:
        return [value]
    parts = value.split(separator)
    while parts and parts[-1] == "":
        parts.pop()
    return parts


class DocumentFilter(ContentHandler):
    """Rewrites extension constructs on their way to *downstream*.

    One filter serves exactly one document: it remembers the template path
    and the position inside an element extension. Feature table, plugin
    table and registry are only read, so they may be shared.

    Args:
        downstream: Handler receiving the filtered events.
        registry: Resolves action identifiers to fresh actions.
        features: Extension point id -> ordered contributed values.
        plugins: Plugin table handed to every action unchanged.
        template: Path of the document being filtered; passed to actions
            as the absolute ``template`` param.
        logger: Receives action failures. Defaults to this module's logger.
        separator: Feature value separator for attribute extensions.
    """

    def __init__(
        self,
        downstream: ContentHandler,
        registry: ActionRegistry,
        features: FeatureTable,
        plugins: PluginTable,
        template: str | Path,
        *,
        logger: Optional[logging.Logger] = None,
        separator: str = FEATURE_VALUE_SEPARATOR,
    ) -> None:
        super().__init__()
        self._downstream = downstream
        self._registry = registry
        self._features = features
        self._plugins = plugins
        self._template = str(Path(template).absolute())
        self._logger = logger or logging.getLogger(__name__)
        self._separator = separator
        self._locator: Any = None
        # Depth inside an element extension; its content is never emitted.
        self._skip_depth = 0
        # Per prefix, whether each open mapping was suppressed.
        self._prefix_stack: dict[Optional[str], list[bool]] = {}
        # Mappings announced for the next element start, not yet forwarded.
        self._pending_prefixes: list[tuple[Optional[str], str]] = []

    @property
    def downstream(self) -> ContentHandler:
        return self._downstream

    # ------------------------------------------------------------------
    # Document-level events
    # ------------------------------------------------------------------

    def setDocumentLocator(self, locator):
        self._locator = locator
        self._downstream.setDocumentLocator(locator)

    def startDocument(self):
        self._downstream.startDocument()

    def endDocument(self):
        self._downstream.endDocument()

    def startPrefixMapping(self, prefix, uri):
        suppressed = uri == DITA_OT_NS or self._skip_depth > 0
        self._prefix_stack.setdefault(prefix, []).append(suppressed)
        if not suppressed:
            # Held back until we know the element is not an extension marker.
            self._pending_prefixes.append((prefix, uri))

    def endPrefixMapping(self, prefix):
        stack = self._prefix_stack.get(prefix)
        suppressed = stack.pop() if stack else False
        if not suppressed:
            self._downstream.endPrefixMapping(prefix)

    def _flush_pending_prefixes(self) -> None:
        for prefix, uri in self._pending_prefixes:
            self._downstream.startPrefixMapping(prefix, uri)
        self._pending_prefixes.clear()

    def _drop_pending_prefixes(self) -> None:
        # Declared on an extension marker; scoped to content that is never emitted.
        for prefix, _ in self._pending_prefixes:
            self._prefix_stack[prefix][-1] = True
        self._pending_prefixes.clear()

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    def startElementNS(self, name, qname, attrs):
        if self._skip_depth:
            self._skip_depth += 1
            return
        uri, localname = name
        if uri == DITA_OT_NS:
            if localname != EXTENSION_ELEM:
                raise ExtensionConfigError(
                    f"Unknown extension element '{qname or localname}'",
                    location=self._location(),
                )
            self._drop_pending_prefixes()
            self._skip_depth = 1
            self._element_extension(attrs)
            return
        attrs = self._filter_attributes(attrs)
        self._flush_pending_prefixes()
        self._downstream.startElementNS(name, qname, attrs)

    def endElementNS(self, name, qname):
        if self._skip_depth:
            # The element extension's start already wrote its replacement.
            self._skip_depth -= 1
            return
        self._downstream.endElementNS(name, qname)

    def startElement(self, name, attrs):
        if self._skip_depth:
            self._skip_depth += 1
            return
        self._flush_pending_prefixes()
        self._downstream.startElement(name, attrs)

    def endElement(self, name):
        if self._skip_depth:
            self._skip_depth -= 1
            return
        self._downstream.endElement(name)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def characters(self, content):
        if not self._skip_depth:
            self._downstream.characters(content)

    def ignorableWhitespace(self, whitespace):
        if not self._skip_depth:
            self._downstream.ignorableWhitespace(whitespace)

    def processingInstruction(self, target, data):
        if not self._skip_depth:
            self._downstream.processingInstruction(target, data)

    def skippedEntity(self, name):
        if not self._skip_depth:
            self._downstream.skippedEntity(name)

    # ------------------------------------------------------------------
    # Extensions
    # ------------------------------------------------------------------

    def _element_extension(self, attrs) -> None:
        location = self._location()
        behavior = attrs.get((None, BEHAVIOR_ATTR))
        extension_id = attrs.get((None, EXTENSION_ID_ATTR))

        recorder = EventRecorder()
        try:
            action = self._registry.resolve(behavior, location)
            action.set_logger(self._logger)
            action.add_param(PARAM_TEMPLATE, self._template)
            for (_, attr_name), value in attrs.items():
                action.add_param(attr_name, value)
            if extension_id is not None and extension_id in self._features:
                action.set_input(self._features[extension_id])
            action.set_features(self._plugins)
            action.write_result(recorder)
        except _FATAL_ERRORS:
            raise
        except Exception as exc:
            self._logger.error(
                "%s: action '%s' failed for extension '%s', element dropped: %s",
                location,
                behavior,
                extension_id,
                exc,
                exc_info=True,
            )
            return
        recorder.replay(self._downstream, location)

    def _filter_attributes(self, attrs) -> AttributesNSImpl:
        values: dict[tuple[Optional[str], str], str] = {}
        qnames: dict[tuple[Optional[str], str], str] = {}
        pairs: Optional[list[tuple[str, str]]] = None
        names = list(attrs.getNames())
        plain = {localname for uri, localname in names if uri is None}

        for name in names:
            uri, localname = name
            qname = attrs.getQNameByName(name)
            value = attrs.getValue(name)
            if uri == DITA_OT_NS:
                if localname == EXTENSION_ATTR:
                    continue
                location = self._location()
                if pairs is None:
                    pairs = parse_extension_declaration(
                        attrs.get((DITA_OT_NS, EXTENSION_ATTR)), location
                    )
                identifier = find_handler(pairs, localname, location)
                if localname in plain:
                    raise ExtensionConfigError(
                        f"Extension attribute '{qname}' collides with attribute "
                        f"'{localname}' on the same element",
                        location=location,
                    )
                result = self._attribute_extension(identifier, localname, value, location)
                if result is not None:
                    values[(None, localname)] = result
                    qnames[(None, localname)] = localname
            elif _is_reserved_declaration(qname, value):
                continue
            else:
                values[name] = value
                qnames[name] = qname

        return AttributesNSImpl(values, qnames)

    def _attribute_extension(
        self, identifier: str, localname: str, value: str, location: Location
    ) -> Optional[str]:
        try:
            action: Action = self._registry.resolve(identifier, location)
            action.set_logger(self._logger)
            action.set_features(self._plugins)
            action.add_param(PARAM_TEMPLATE, self._template)
            action.add_param(PARAM_LOCALNAME, localname)
            action.set_input(split_feature_value(value, self._separator))
            result = action.get_result()
        except _FATAL_ERRORS:
            raise
        except Exception as exc:
            self._logger.error(
                "%s: action '%s' failed for attribute '%s', attribute dropped: %s",
                location,
                identifier,
                localname,
                exc,
                exc_info=True,
            )
            return None
        if result is None:
            self._logger.error(
                "%s: action '%s' returned no value for attribute '%s', attribute dropped",
                location,
                identifier,
                localname,
            )
            return None
        return str(result)

    def _location(self) -> Location:
        if self._locator is None:
            return Location(self._template)
        return Location(
            self._locator.getSystemId() or self._template,
            self._locator.getLineNumber(),
            self._locator.getColumnNumber(),
        )


def _is_reserved_declaration(qname: str, value: str) -> bool:
    """True for an ``xmlns``/``xmlns:*`` attribute binding the reserved namespace."""
    return (qname == "xmlns" or qname.startswith("xmlns:")) and value == DITA_OT_NS
