"""Template actions -- the pluggable handlers behind extension points.

Key names:

* :class:`Action` -- abstract base class every action extends.
* :class:`ActionRegistry` -- identifier -> factory lookup used by the filter.
* :func:`create_default_registry` -- registry pre-loaded with the built-ins.

The built-in actions are exported here as well, so their identifiers
(``templex.actions.<ClassName>``) match an importable path.
"""

from templex.actions.base import PARAM_LOCALNAME, PARAM_TEMPLATE, Action
from templex.actions.imports import (
    ImportPluginInfoAction,
    ImportStringsAction,
    ImportXSLAction,
)
from templex.actions.insert import InsertAction
from templex.actions.lists import InsertDependsAction, ListTranstypeAction
from templex.actions.registry import (
    ENTRY_POINT_GROUP,
    ActionRegistry,
    create_default_registry,
    find_handler,
    parse_extension_declaration,
)

__all__ = [
    "PARAM_LOCALNAME",
    "PARAM_TEMPLATE",
    "Action",
    "ActionRegistry",
    "ENTRY_POINT_GROUP",
    "ImportPluginInfoAction",
    "ImportStringsAction",
    "ImportXSLAction",
    "InsertAction",
    "InsertDependsAction",
    "ListTranstypeAction",
    "create_default_registry",
    "find_handler",
    "parse_extension_declaration",
]
