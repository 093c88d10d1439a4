"""Action registry -- resolves handler identifiers to fresh action instances.

The :class:`ActionRegistry` maps fully-qualified identifier strings
(``"templex.actions.InsertAction"``) to zero-argument factories. The
:class:`~templex.filter.DocumentFilter` only ever asks the registry to
:meth:`~ActionRegistry.resolve` an identifier; it never imports or
instantiates classes by name itself.

Third-party packages contribute actions through the ``templex.actions``
entry-point group::

    [project.entry-points."templex.actions"]
    "org.example.MyAction" = "my_package.actions:MyAction"

This module also owns the tokenizer for attribute extension declarations
(``dita:extension="localname identifier ..."``), since turning a localname
into an identifier is the other half of resolution.
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Callable, Optional

from templex.actions.base import Action
from templex.exceptions import ActionError, ExtensionConfigError
from templex.models import ActionsConfig, Location

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "templex.actions"
"""The entry-point group name used for action discovery."""

ActionFactory = Callable[[], Action]


class ActionRegistry:
    """Registry of action factories keyed by identifier.

    Factories are called once per extension occurrence, so every
    :meth:`resolve` returns a new, independent action. The registry is
    read-only once populated and can be shared between generators.

    Example::

        registry = ActionRegistry()
        registry.register("example.Upper", UpperAction)
        action = registry.resolve("example.Upper")
    """

    def __init__(self) -> None:
        self._factories: dict[str, ActionFactory] = {}

    def register(self, identifier: str, factory: ActionFactory) -> None:
        """Register *factory* under *identifier*.

        If a factory for the same identifier is already registered it is
        silently replaced.
        """
        self._factories[identifier] = factory

    def register_action(self, action_cls: type[Action]) -> None:
        """Register an :class:`Action` subclass under its ``identifier``."""
        if not action_cls.identifier:
            raise ExtensionConfigError(
                f"Action class {action_cls.__name__} has no identifier"
            )
        self.register(action_cls.identifier, action_cls)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._factories

    def get_factory(self, identifier: str) -> Optional[ActionFactory]:
        """Return the factory registered under *identifier* without calling it."""
        return self._factories.get(identifier)

    def list_identifiers(self) -> list[str]:
        """Return every registered identifier, sorted."""
        return sorted(self._factories)

    def resolve(self, identifier: Optional[str], location: Optional[Location] = None) -> Action:
        """Create a new action for *identifier*.

        Args:
            identifier: The handler identifier from the template.
            location: Where the identifier was declared, for error messages.

        Returns:
            A fresh :class:`~templex.actions.base.Action`.

        Raises:
            ExtensionConfigError: If the identifier is missing or unknown,
                or if its factory returns something that is not an action.
            ActionError: If the factory itself raises.
        """
        if not identifier:
            raise ExtensionConfigError("Missing action identifier", location=location)
        factory = self._factories.get(identifier)
        if factory is None:
            available = ", ".join(self.list_identifiers()) or "(none)"
            raise ExtensionConfigError(
                f"Unknown action '{identifier}'. Available actions: {available}",
                location=location,
            )
        try:
            action = factory()
        except Exception as exc:
            raise ActionError(
                f"Failed to create action '{identifier}': {exc}", location=location
            ) from exc
        if not isinstance(action, Action):
            raise ExtensionConfigError(
                f"Factory for '{identifier}' returned {type(action).__name__}, "
                f"not an Action",
                location=location,
            )
        return action

    def discover(self, config: Optional[ActionsConfig] = None) -> list[str]:
        """Register actions published in the ``templex.actions`` entry-point group.

        The entry-point name is the identifier; the object is an
        :class:`Action` subclass or any zero-argument factory. When
        ``config.enabled`` is non-empty only those identifiers are loaded;
        identifiers in ``config.disabled`` are always skipped.

        Returns:
            The identifiers that were registered. Entry points that fail to
            load are logged as warnings and skipped.
        """
        config = config or ActionsConfig()
        enabled_set = set(config.enabled)
        disabled_set = set(config.disabled)
        loaded: list[str] = []

        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            name = ep.name
            if enabled_set and name not in enabled_set:
                logger.debug("Action '%s' not in enabled list, skipping", name)
                continue
            if name in disabled_set:
                logger.debug("Action '%s' is disabled, skipping", name)
                continue
            try:
                factory = ep.load()
            except Exception as exc:
                logger.warning("Failed to load action '%s': %s", name, exc)
                continue
            self.register(name, factory)
            loaded.append(name)
            logger.info("Registered action '%s'", name)

        return loaded


def create_default_registry() -> ActionRegistry:
    """Create an :class:`ActionRegistry` pre-loaded with the built-in actions.

    The following actions are registered:

    - ``templex.actions.InsertAction`` -- insert XML fragment files.
    - ``templex.actions.ImportStringsAction`` -- ``<stringfile>`` per value.
    - ``templex.actions.ImportXSLAction`` -- ``<xsl:import>`` per value.
    - ``templex.actions.ImportPluginInfoAction`` -- plugin dir/version properties.
    - ``templex.actions.ListTranstypeAction`` -- separator-joined values.
    - ``templex.actions.InsertDependsAction`` -- Ant ``depends`` list.
    """
    from templex.actions.imports import (
        ImportPluginInfoAction,
        ImportStringsAction,
        ImportXSLAction,
    )
    from templex.actions.insert import InsertAction
    from templex.actions.lists import InsertDependsAction, ListTranstypeAction

    registry = ActionRegistry()
    registry.register_action(InsertAction)
    registry.register_action(ImportStringsAction)
    registry.register_action(ImportXSLAction)
    registry.register_action(ImportPluginInfoAction)
    registry.register_action(ListTranstypeAction)
    registry.register_action(InsertDependsAction)
    return registry


# --- Attribute extension declarations ---


def parse_extension_declaration(
    value: Optional[str], location: Optional[Location] = None
) -> list[tuple[str, str]]:
    """Split a ``dita:extension`` value into (localname, identifier) pairs.

    Tokens are separated by any whitespace and consumed strictly in pairs.

    Raises:
        ExtensionConfigError: If the declaration is missing or has an odd
            number of tokens.
    """
    if value is None:
        raise ExtensionConfigError(
            "Extension data attribute without an 'extension' declaration",
            location=location,
        )
    tokens = value.split()
    if len(tokens) % 2:
        raise ExtensionConfigError(
            f"Malformed extension declaration '{value}': "
            f"expected localname/action pairs, got {len(tokens)} tokens",
            location=location,
        )
    return list(zip(tokens[0::2], tokens[1::2]))


def find_handler(
    pairs: list[tuple[str, str]], localname: str, location: Optional[Location] = None
) -> str:
    """Return the identifier paired with *localname* (first match wins).

    Raises:
        ExtensionConfigError: If no pair names *localname*.
    """
    for name, identifier in pairs:
        if name == localname:
            return identifier
    raise ExtensionConfigError(
        f"No action declared for extension attribute '{localname}'",
        location=location,
    )
