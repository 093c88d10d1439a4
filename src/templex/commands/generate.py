"""Generate command -- turn templates into output documents.

Implements ``templex generate``: resolves the effective configuration and
feature tables, builds a :class:`~templex.generator.FileGenerator` and runs
every template through it. Each generated path is printed to stdout; each
failure is reported on stderr and the command exits with the exit code of
the first failure.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from templex.output import error, print_data, success, suggest


def generate_command(
    templates: List[Path] = typer.Argument(
        ..., help="Template files (their names must contain '_template.')."
    ),
    features: Optional[str] = typer.Option(
        None, "--features", "-F", help="Features JSON file with feature and plugin tables."
    ),
    separator: Optional[str] = typer.Option(
        None, "--separator", help="Separator for attribute extension values."
    ),
) -> None:
    """Generate output documents from templates.

    Example::

        templex generate build_template.xml --features features.json
        templex generate xsl/*_template.xsl
    """
    import logging

    from templex.commands.actions import build_registry
    from templex.config import resolve_config
    from templex.generator import FileGenerator

    config, feature_set = resolve_config(cli_features=features, cli_separator=separator)
    generator = FileGenerator(
        feature_set.merged(),
        feature_set.plugins,
        build_registry(),
        logger=logging.getLogger("templex.filter"),
        separator=config.separator,
        encoding=config.encoding,
    )

    report = generator.generate_all(templates)
    for output in report.generated:
        print_data(str(output))

    if report.ok:
        success(f"Generated {len(report.generated)} file(s).")
        return

    for template, exc in report.failures.items():
        error(f"{template}: {exc}")
    suggest("Run 'templex actions list' to see the available actions.")
    raise typer.Exit(code=report.exit_code)
