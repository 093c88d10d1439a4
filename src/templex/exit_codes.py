"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~templex.exceptions.TemplexError` subclass.
Build scripts can inspect the exit code to tell a broken template apart
from a missing file without parsing stderr.

Example::

    $ templex generate build_template.xml
    $ echo $?
    3   # EXIT_EXTENSION_CONFIG -- an extension names an unknown action
"""

EXIT_SUCCESS = 0
"""All templates were generated."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_EXTENSION_CONFIG = 3
"""An extension declaration is inconsistent (unknown action, bad token list, missing marker)."""

EXIT_ACTION_FAILURE = 4
"""An action failed while computing its result."""

EXIT_DOCUMENT_STRUCTURE = 5
"""The template is malformed or its structure could not be recovered."""

EXIT_IO_ERROR = 6
"""A template could not be read or its output could not be written."""
