"""Command-line tooling for graphtutorial.

Usage:
    python -m graphtutorial validate-config
    python -m graphtutorial logout
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console

from graphtutorial.config import load_config, validate_config_file
from graphtutorial.core.errors import ConfigLoadError, ConfigValidationError
from graphtutorial.core.logging import configure_logging

console = Console()

CONFIG_OPTION_HELP = "Path to config file (default: config/config.yaml)"


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """graphtutorial - Microsoft Graph auth and API helpers."""
    ctx.obj = {"debug": debug}
    # Commands may reconfigure from the config file after loggers are in use
    configure_logging(
        log_level="DEBUG" if debug else "INFO", json_output=False, cache_loggers=False
    )


@cli.command("validate-config")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help=CONFIG_OPTION_HELP,
)
def validate_config(config_path: Path | None) -> None:
    """Validate the configuration file.

    Checks that config.yaml exists and passes schema validation.
    """
    console.print(f"Validating config: [cyan]{config_path or 'config/config.yaml'}[/cyan]")

    is_valid, message = validate_config_file(config_path)

    if is_valid:
        console.print(f"\n[green]✓[/green] {message}")
        sys.exit(0)
    else:
        console.print(f"\n[red]✗[/red] {message}")
        sys.exit(1)


@cli.command("logout")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help=CONFIG_OPTION_HELP,
)
@click.pass_context
def logout(ctx: click.Context, config_path: Path | None) -> None:
    """Forget the signed-in user by clearing the token cache."""
    from graphtutorial.auth import UserAuth

    try:
        settings = load_config(config_path)
    except (ConfigLoadError, ConfigValidationError) as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(1)

    if not ctx.obj["debug"]:
        configure_logging(
            settings.logging.level, settings.logging.json_output, cache_loggers=False
        )

    auth = UserAuth(
        client_id=settings.app.client_id,
        tenant_id=settings.app.auth_tenant,
        scopes=settings.app.graph_user_scopes,
        token_cache_path=settings.auth.token_cache_path,
    )
    auth.clear_cache()
    console.print("[green]✓[/green] Signed out. The next Graph call will ask for a device code.")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
