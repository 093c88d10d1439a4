"""Exception hierarchy for templex.

All exceptions inherit from :class:`TemplexError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`templex.exit_codes`.
The top-level error handler in :func:`templex.app.main` catches
``TemplexError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    TemplexError (exit 1)
    +-- ExtensionConfigError    (exit 3)
    +-- ActionError             (exit 4)
    +-- DocumentStructureError  (exit 5)
    +-- TemplateIOError         (exit 6)
    +-- ConfigError             (exit 1)

Errors raised while a template is being filtered may carry a
:class:`~templex.models.Location` so the message points at the offending
declaration.
"""

from __future__ import annotations

from typing import Optional

from templex.exit_codes import (
    EXIT_ACTION_FAILURE,
    EXIT_DOCUMENT_STRUCTURE,
    EXIT_EXTENSION_CONFIG,
    EXIT_GENERIC_FAILURE,
    EXIT_IO_ERROR,
)
from templex.models import Location


class TemplexError(Exception):
    """Base exception for all templex errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`templex.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
        location: Optional position in a template the error refers to.
            When given it is prefixed to the message.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        location: Optional[Location] = None,
    ):
        if location is not None:
            message = f"{location}: {message}"
        super().__init__(message)
        self.location = location
        if exit_code is not None:
            self.exit_code = exit_code


class ExtensionConfigError(TemplexError):
    """Raised for inconsistent extension declarations.

    Covers missing or unknown action identifiers, factories that do not
    produce an action, malformed ``extension`` token lists, data attributes
    with no matching declaration or clashing with a plain attribute, and
    template paths without the template marker. Always aborts the current
    document.
    """

    exit_code = EXIT_EXTENSION_CONFIG


class ActionError(TemplexError):
    """Raised when an action cannot be created or fails to compute its result.

    The filter logs it and drops the element or attribute being computed.
    """

    exit_code = EXIT_ACTION_FAILURE


class DocumentStructureError(TemplexError):
    """Raised when a template is malformed or its output would not be well-formed."""

    exit_code = EXIT_DOCUMENT_STRUCTURE


class TemplateIOError(TemplexError):
    """Raised when a template cannot be read or its output cannot be written."""

    exit_code = EXIT_IO_ERROR


class ConfigError(TemplexError):
    """Raised for configuration problems (invalid JSON, bad feature files, unknown keys)."""

    exit_code = EXIT_GENERIC_FAILURE
