"""Canonical models shared across all templex modules.

The models fall into three groups:

**Plugin data** -- what the surrounding plugin system hands to the filter:
    :data:`FeatureTable`, :data:`PluginTable`, :class:`PluginInfo`, and the
    on-disk container :class:`FeatureSet`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`ActionsConfig` and :class:`GlobalConfig`.

**Diagnostics** -- :class:`Location`, a position inside a template.

All pydantic models use Pydantic v2. :class:`PluginInfo` uses
``extra="allow"`` so that plugin metadata the filter does not know about is
preserved in ``model_extra`` and still reaches the actions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


FeatureTable = Mapping[str, Sequence[str]]
"""Extension point id -> ordered values contributed by installed plugins."""


# --- Plugin data ---


class PluginInfo(BaseModel):
    """Metadata describing one installed plugin.

    The filter never interprets these fields itself; the whole plugin table
    is passed through to every action via
    :meth:`~templex.actions.base.Action.set_features`.

    Example::

        PluginInfo(
            id="org.example.pdf",
            version="1.2.0",
            dir="/opt/plugins/org.example.pdf",
            features={"dita.conductor.target": ["build_pdf.xml"]},
        )
    """

    model_config = ConfigDict(extra="allow")

    id: str
    version: str = "0.0.0"
    dir: Optional[str] = Field(
        default=None, description="Absolute plugin directory"
    )
    features: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Extension point id -> values this plugin contributes",
    )


PluginTable = Mapping[str, PluginInfo]
"""Plugin id -> :class:`PluginInfo`."""


class FeatureSet(BaseModel):
    """Feature and plugin tables as stored in a features JSON file.

    ``features`` holds values contributed outside any plugin (they come
    first); each plugin's own ``features`` follow in plugin declaration
    order. :meth:`merged` produces the flat table the filter consumes.
    """

    features: dict[str, list[str]] = Field(default_factory=dict)
    plugins: dict[str, PluginInfo] = Field(default_factory=dict)

    def merged(self) -> dict[str, list[str]]:
        """Fold every plugin's features into one ordered feature table.

        Returns:
            A new dict; neither this model nor its plugins are modified.
        """
        table: dict[str, list[str]] = {
            key: list(values) for key, values in self.features.items()
        }
        for plugin in self.plugins.values():
            for key, values in plugin.features.items():
                table.setdefault(key, []).extend(values)
        return table


# --- Configuration ---


class ActionsConfig(BaseModel):
    """Allow/deny lists for actions discovered through entry points."""

    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/templex/config.json``.

    Loaded and saved by :func:`~templex.config.load_global_config` and
    :func:`~templex.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~templex.config.resolve_config`
    for the full precedence chain.
    """

    separator: str = Field(
        default=",",
        min_length=1,
        description="Separator splitting attribute extension values into action input",
    )
    encoding: str = Field(default="utf-8", description="Output document encoding")
    features_file: Optional[str] = Field(
        default=None, description="Default features JSON file"
    )
    actions: ActionsConfig = Field(default_factory=ActionsConfig)


# --- Diagnostics ---


@dataclass(frozen=True)
class Location:
    """A position inside a template, as reported by the SAX locator.

    Attributes:
        system_id: URI or path of the document, if known.
        line: 1-based line number, if known.
        column: Column number, if known.
    """

    system_id: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def __str__(self) -> str:
        parts = [self.system_id or "<unknown>"]
        if self.line is not None:
            parts.append(str(self.line))
            if self.column is not None:
                parts.append(str(self.column))
        return ":".join(parts)
