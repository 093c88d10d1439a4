"""Built-in CLI sub-commands for templex."""
