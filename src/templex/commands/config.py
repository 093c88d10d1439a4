"""Config commands -- view and modify global configuration.

Provides the ``templex config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~templex.models.GlobalConfig`).
"""

from __future__ import annotations

import typer

from templex.exit_codes import EXIT_INVALID_USAGE
from templex.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        templex config show
        templex --json config show
    """
    from templex.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'actions.disabled')."
    ),
    value: str = typer.Argument(help="Value to set. Lists are comma-separated."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to match the
    existing field's type: list fields take a comma-separated value, an
    empty string clears an optional field. The updated config is validated
    against :class:`~templex.models.GlobalConfig` before saving.

    Raises:
        typer.Exit: With :data:`~templex.exit_codes.EXIT_INVALID_USAGE`
            if the key path is invalid or validation fails.

    Example::

        templex config set separator ";"
        templex config set features_file ~/plugins/features.json
        templex config set actions.disabled org.example.SlowAction
    """
    from templex.config import load_global_config, save_global_config
    from templex.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    current = target[final_key]
    if isinstance(current, list):
        coerced = [item.strip() for item in value.split(",") if item.strip()]
    elif current is None and value == "":
        coerced = None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except Exception as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is given.
    """
    from templex.config import save_global_config
    from templex.models import GlobalConfig

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
