"""templex -- expand plugin extension points in XML templates.

A *template* is an XML document whose file name contains ``_template.``.
Inside it, constructs in the ``http://dita-ot.sourceforge.net`` namespace
mark extension points that installed plugins contribute to. templex streams
the template through a SAX filter that replaces each construct with the
output of an *action* and writes the result next to the template, with the
marker removed from the name (``build_template.xml`` -> ``build.xml``).

Typical workflow::

    templex generate build_template.xml --features features.json

Modules:
    app: Typer application factory and CLI entry point.
    models: Feature/plugin tables and configuration models.
    config: XDG-aware configuration and feature file loading.
    filter: The SAX document filter.
    generator: Drives one template from input file to output file.
    actions: The action contract, registry, and built-in actions.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
