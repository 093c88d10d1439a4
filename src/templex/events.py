"""SAX plumbing shared by the filter, the generator and the built-in actions.

* :func:`create_parser` -- a namespace-aware SAX reader, configured the
  same way everywhere a template or an inserted fragment is parsed.
* :class:`EventRecorder` -- a content handler that buffers the events one
  action emits so they can be checked and replayed as a unit.
"""

from __future__ import annotations

from typing import Any, Optional
from xml.sax import make_parser
from xml.sax.handler import ContentHandler, feature_external_ges, feature_namespaces
from xml.sax.xmlreader import AttributesImpl, AttributesNSImpl, XMLReader

from templex.exceptions import DocumentStructureError
from templex.models import Location


def create_parser() -> XMLReader:
    """Return a namespace-aware SAX reader that does not fetch external entities."""
    parser = make_parser()
    parser.setFeature(feature_namespaces, True)
    parser.setFeature(feature_external_ges, False)
    return parser


def copy_attributes(attrs: Any) -> Any:
    """Return a detached copy of a SAX attribute set.

    Readers are free to reuse attribute objects between events, so anything
    kept past the current callback is copied first.
    """
    if isinstance(attrs, AttributesNSImpl):
        names = list(attrs.getNames())
        return AttributesNSImpl(
            {name: attrs.getValue(name) for name in names},
            {name: attrs.getQNameByName(name) for name in names},
        )
    return AttributesImpl(dict(attrs.items()))


class EventRecorder(ContentHandler):
    """Buffers content events for a later :meth:`replay`.

    Document start/end and locator events are ignored: a recorded fragment
    is spliced into an enclosing document and must not open one of its own.
    Element nesting is tracked so an unbalanced fragment is rejected before
    any of it reaches the real output.
    """

    def __init__(self) -> None:
        super().__init__()
        self._events: list[tuple[str, tuple[Any, ...]]] = []
        self._open: list[Any] = []
        self._broken: Optional[str] = None

    @property
    def events(self) -> list[tuple[str, tuple[Any, ...]]]:
        return list(self._events)

    @property
    def balanced(self) -> bool:
        return self._broken is None and not self._open

    # -- recording -----------------------------------------------------

    def startPrefixMapping(self, prefix, uri):
        self._events.append(("startPrefixMapping", (prefix, uri)))

    def endPrefixMapping(self, prefix):
        self._events.append(("endPrefixMapping", (prefix,)))

    def startElement(self, name, attrs):
        self._open.append(name)
        self._events.append(("startElement", (name, copy_attributes(attrs))))

    def endElement(self, name):
        self._close(name)
        self._events.append(("endElement", (name,)))

    def startElementNS(self, name, qname, attrs):
        self._open.append(name)
        self._events.append(("startElementNS", (name, qname, copy_attributes(attrs))))

    def endElementNS(self, name, qname):
        self._close(name)
        self._events.append(("endElementNS", (name, qname)))

    def characters(self, content):
        self._events.append(("characters", (content,)))

    def ignorableWhitespace(self, whitespace):
        self._events.append(("ignorableWhitespace", (whitespace,)))

    def processingInstruction(self, target, data):
        self._events.append(("processingInstruction", (target, data)))

    def skippedEntity(self, name):
        self._events.append(("skippedEntity", (name,)))

    def _close(self, name: Any) -> None:
        if not self._open:
            self._broken = self._broken or f"end of {name!r} without a start"
        elif self._open[-1] != name:
            self._broken = self._broken or (
                f"end of {name!r} while {self._open[-1]!r} is open"
            )
            self._open.pop()
        else:
            self._open.pop()

    # -- replay --------------------------------------------------------

    def replay(self, handler: ContentHandler, location: Optional[Location] = None) -> None:
        """Send every recorded event to *handler* in order.

        Raises:
            DocumentStructureError: If the recorded events do not form a
                balanced fragment. Nothing is sent in that case.
        """
        if self._broken is not None:
            raise DocumentStructureError(
                f"Action output is not well-formed: {self._broken}", location=location
            )
        if self._open:
            raise DocumentStructureError(
                f"Action output leaves {self._open[-1]!r} unclosed", location=location
            )
        for method, args in self._events:
            getattr(handler, method)(*args)
