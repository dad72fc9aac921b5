"""Config commands -- view and modify global configuration.

Provides the ``etagcache config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~etagcache.models.GlobalConfig`): cache namespace and directory,
default TTL and policy, HTTP request settings, and output format.
"""

from __future__ import annotations

import typer

from etagcache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the config directory and the current configuration.

    Example::

        etagcache config show
        etagcache --json config show
    """
    from etagcache.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    data = config.model_dump(mode="json")
    flat = {
        f"{section}.{name}": value
        for section, fields in data.items()
        for name, value in fields.items()
    }
    format_response(flat)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'cache.default_ttl_seconds')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to match the existing field's type (bool, int, or
    str) and the result is validated before saving.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        etagcache config set cache.namespace music
        etagcache config set cache.default_policy ignore_expiry
        etagcache config set request.timeout 10
    """
    from etagcache.config import load_global_config, save_global_config
    from etagcache.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    if isinstance(current, bool):
        coerced: object = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults (asks for confirmation unless --force)."""
    from etagcache.config import save_global_config
    from etagcache.models import GlobalConfig

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
