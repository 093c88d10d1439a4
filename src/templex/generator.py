"""Template generator -- drives one template through the document filter.

:class:`FileGenerator` reads a template such as ``build_template.xml``,
runs it through a :class:`~templex.filter.DocumentFilter` and serialises
the result next to it as ``build.xml``. The output name is derived by
removing :data:`TEMPLATE_PREFIX`; a template without it is rejected before
anything is opened.

Output is written to a temporary file in the output directory and renamed
over the target only after the whole document was filtered, so a failed
run never leaves a truncated file behind (an older output, if any, stays
as it was).
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional
from xml.sax import SAXParseException
from xml.sax.saxutils import XMLGenerator
from xml.sax.xmlreader import InputSource

from templex.actions.registry import ActionRegistry, create_default_registry
from templex.events import create_parser
from templex.exceptions import (
    DocumentStructureError,
    ExtensionConfigError,
    TemplateIOError,
    TemplexError,
)
from templex.filter import FEATURE_VALUE_SEPARATOR, DocumentFilter
from templex.models import FeatureTable, Location, PluginTable

logger = logging.getLogger(__name__)

TEMPLATE_PREFIX = "_template."
"""Marker removed from a template's path to get its output path."""


def remove_template_prefix(template: str | Path) -> Path:
    """Derive the output path of *template*.

    The last occurrence of :data:`TEMPLATE_PREFIX` in the absolute path is
    removed, keeping its trailing dot: ``/x/build_template.xml`` becomes
    ``/x/build.xml``.

    Raises:
        ExtensionConfigError: If the path does not contain the marker.
    """
    path = str(Path(template).absolute())
    index = path.rfind(TEMPLATE_PREFIX)
    if index == -1:
        raise ExtensionConfigError(
            f"File {template} does not contain template prefix '{TEMPLATE_PREFIX}'"
        )
    return Path(path[:index] + path[index + len(TEMPLATE_PREFIX) - 1 :])


@dataclass
class GenerationReport:
    """Outcome of :meth:`FileGenerator.generate_all`.

    Attributes:
        generated: Output paths written, in template order.
        failures: Template path -> the error that aborted it.
    """

    generated: list[Path] = field(default_factory=list)
    failures: dict[Path, TemplexError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def exit_code(self) -> int:
        """Exit code of the first failure, or ``0`` when everything succeeded."""
        for error in self.failures.values():
            return error.exit_code
        return 0


class FileGenerator:
    """Generates output documents from templates.

    A generator holds only read-only collaborators; every call to
    :meth:`generate` builds its own filter, parser and writer, so one
    generator can process any number of templates.

    Args:
        features: Extension point id -> ordered contributed values.
        plugins: Plugin table passed through to actions.
        registry: Action registry. Defaults to the built-in actions.
        logger: Logger handed to the filter and to every action.
        separator: Feature value separator for attribute extensions.
        encoding: Output document encoding.

    Example::

        generator = FileGenerator(feature_set.merged(), feature_set.plugins)
        output = generator.generate(Path("build_template.xml"))
    """

    def __init__(
        self,
        features: FeatureTable,
        plugins: PluginTable,
        registry: Optional[ActionRegistry] = None,
        *,
        logger: Optional[logging.Logger] = None,
        separator: str = FEATURE_VALUE_SEPARATOR,
        encoding: str = "utf-8",
    ) -> None:
        self._features = features
        self._plugins = plugins
        self._registry = registry if registry is not None else create_default_registry()
        self._logger = logger or logging.getLogger("templex.filter")
        self._separator = separator
        self._encoding = encoding

    @property
    def registry(self) -> ActionRegistry:
        return self._registry

    def generate(self, template: str | Path) -> Path:
        """Filter *template* and write the output document.

        Args:
            template: Path of the template file.

        Returns:
            The path of the written output document.

        Raises:
            ExtensionConfigError: If the path lacks the template marker or
                the template declares an unusable extension.
            DocumentStructureError: If the template is not well-formed XML
                or an action produced unbalanced output.
            TemplateIOError: If the template cannot be read or the output
                cannot be written.
        """
        template = Path(template)
        output = remove_template_prefix(template)
        if not template.is_file():
            raise TemplateIOError(f"Template not found: {template}")

        logger.debug("Generating %s from %s", output, template)
        tmp_path: Optional[str] = None
        try:
            with open(template, "rb") as in_stream, tempfile.NamedTemporaryFile(
                mode="wb",
                dir=output.parent,
                prefix=f".{output.name}.",
                suffix=".tmp",
                delete=False,
            ) as out_stream:
                tmp_path = out_stream.name
                self._transform(template, in_stream, out_stream)
                out_stream.flush()
                os.fsync(out_stream.fileno())
            os.replace(tmp_path, output)
            tmp_path = None
        except SAXParseException as exc:
            raise DocumentStructureError(
                f"Failed to parse template: {exc.getMessage()}",
                location=Location(
                    str(template), exc.getLineNumber(), exc.getColumnNumber()
                ),
            ) from exc
        except OSError as exc:
            raise TemplateIOError(f"Failed to transform {template}: {exc}") from exc
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning("Could not remove temporary file %s", tmp_path)

        logger.info("Generated %s", output)
        return output

    def generate_all(self, templates: Iterable[str | Path]) -> GenerationReport:
        """Generate every template independently.

        A template that fails with a :class:`~templex.exceptions.TemplexError`
        is recorded in the report and logged; the remaining templates are
        still processed.
        """
        report = GenerationReport()
        for template in templates:
            try:
                report.generated.append(self.generate(template))
            except TemplexError as exc:
                logger.debug("Failed to transform %s: %s", template, exc)
                report.failures[Path(template)] = exc
        return report

    def _transform(self, template: Path, in_stream, out_stream) -> None:
        writer = XMLGenerator(out_stream, encoding=self._encoding, short_empty_elements=True)
        document_filter = DocumentFilter(
            writer,
            self._registry,
            self._features,
            self._plugins,
            template,
            logger=self._logger,
            separator=self._separator,
        )
        parser = create_parser()
        parser.setContentHandler(document_filter)

        source = InputSource(template.absolute().as_uri())
        source.setByteStream(in_stream)
        parser.parse(source)
