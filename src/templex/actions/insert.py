"""Insert the content of XML fragment files into the output.

Each input value of :class:`InsertAction` names a file (relative paths are
resolved against the template's directory). The file is parsed and every
child of its root element is streamed into the output in place of the
extension element. Plugins use this to contribute whole blocks of markup,
such as extra targets in a build file or extra templates in a stylesheet.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from xml.sax import SAXParseException
from xml.sax.handler import ContentHandler

from templex.actions.base import Action
from templex.events import create_parser
from templex.exceptions import ActionError


class _RootContentForwarder(ContentHandler):
    """Forwards everything below a document's root element to *sink*.

    Prefix mappings declared on the root are re-declared around each
    forwarded top-level child so the fragment stays namespace-well-formed
    wherever it lands.
    """

    def __init__(self, sink: ContentHandler) -> None:
        super().__init__()
        self._sink = sink
        self._depth = 0
        self._root_mappings: list[tuple[Optional[str], str]] = []

    def startPrefixMapping(self, prefix, uri):
        if self._depth == 0:
            self._root_mappings.append((prefix, uri))
        else:
            self._sink.startPrefixMapping(prefix, uri)

    def endPrefixMapping(self, prefix):
        if self._depth > 0:
            self._sink.endPrefixMapping(prefix)

    def startElementNS(self, name, qname, attrs):
        if self._depth == 1:
            for prefix, uri in self._root_mappings:
                self._sink.startPrefixMapping(prefix, uri)
        if self._depth > 0:
            self._sink.startElementNS(name, qname, attrs)
        self._depth += 1

    def endElementNS(self, name, qname):
        self._depth -= 1
        if self._depth > 0:
            self._sink.endElementNS(name, qname)
        if self._depth == 1:
            for prefix, _ in reversed(self._root_mappings):
                self._sink.endPrefixMapping(prefix)

    def characters(self, content):
        if self._depth > 0:
            self._sink.characters(content)

    def ignorableWhitespace(self, whitespace):
        if self._depth > 0:
            self._sink.ignorableWhitespace(whitespace)

    def processingInstruction(self, target, data):
        if self._depth > 0:
            self._sink.processingInstruction(target, data)


class InsertAction(Action):
    """Stream the root content of every input file into the output."""

    identifier = "templex.actions.InsertAction"

    def get_result(self) -> str:
        raise ActionError("InsertAction only supports element extensions")

    def write_result(self, sink: ContentHandler) -> None:
        for value in self.input:
            path = self._resolve(value)
            if not path.is_file():
                self.logger.warning("File %s does not exist, skipping insert", path)
                continue
            self.logger.debug("Inserting %s", path)
            parser = create_parser()
            parser.setContentHandler(_RootContentForwarder(sink))
            try:
                parser.parse(str(path))
            except SAXParseException as exc:
                raise ActionError(
                    f"Cannot insert {path}: {exc.getMessage()} "
                    f"(line {exc.getLineNumber()})"
                ) from exc

    def _resolve(self, value: str) -> Path:
        path = Path(value)
        if not path.is_absolute():
            base = self.template_dir()
            if base is not None:
                path = base / path
        return path
