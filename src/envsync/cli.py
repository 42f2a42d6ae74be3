"""CLI entry point for envsync.

Commands:
    sync: Resolve secrets and sync every configured target
    plugins: Show the resolved plugin order
    secrets: Show the secrets the configured plugins need

Example:
    envsync sync .
    envsync plugins ./infra
    envsync -v secrets
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from envsync import __version__

if TYPE_CHECKING:
    from envsync.models import EnvSyncConfig, EnvSyncSetup, PromptRequest


def _success(msg: str) -> str:
    """Format success message with green checkmark."""
    return click.style("✓", fg="green") + " " + msg


def _error(msg: str) -> str:
    """Format error message with red X."""
    return click.style("✗", fg="red") + " " + msg


def _info(msg: str) -> str:
    """Format info message with blue arrow."""
    return click.style("→", fg="blue") + " " + msg


def prompt_for_secrets(requests: list[PromptRequest]) -> dict[str, str]:
    """Ask the user for secret values with hidden input.

    Empty answers are returned as empty strings and dropped by the caller.
    """
    answers: dict[str, str] = {}
    for request in requests:
        answers[request.name] = click.prompt(
            f"{request.message} ({request.name})",
            default="",
            hide_input=True,
            show_default=False,
        )
    return answers


def _fail(ctx: click.Context, message: str, error: Exception) -> None:
    if ctx.obj.get("verbose", False):
        import traceback

        click.echo(traceback.format_exc(), err=True)
    click.echo(_error(f"{message}: {error}"), err=True)
    sys.exit(1)


def _load(path: Path) -> tuple[EnvSyncConfig, EnvSyncSetup]:
    import asyncio

    from envsync.config import load_config
    from envsync.plugins import PluginLoader, PluginRegistry
    from envsync.setup import init_env_sync

    config = load_config(start_dir=path)

    registry = PluginRegistry()
    registry.register_builtin_plugins()
    registry.discover_plugins()
    loader = PluginLoader(config.base_dir or path, registry=registry)

    return config, asyncio.run(init_env_sync(config, loader))


def _plugin_names(plugins: list[Any]) -> str:
    return ", ".join(plugin.name for plugin in plugins if plugin) or "(none)"


@click.group()
@click.version_option(version=__version__, prog_name="envsync")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """envsync - sync configuration and secrets across repositories.

    Runs the plugins configured in .envsync.yaml against every
    configured target group of repositories.
    """
    from envsync.logging import setup_logging

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    setup_logging(logging.DEBUG if verbose else logging.WARNING, include_timestamp=verbose)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
@click.pass_context
def sync(ctx: click.Context, path: Path) -> None:
    """Sync every target configured in PATH (default: current directory)."""
    import asyncio

    from envsync.models import EnvData
    from envsync.secrets import resolve_secret_values
    from envsync.sync import sync_targets

    try:
        config, setup = _load(path)
    except Exception as e:
        _fail(ctx, "Setup failed", e)
        return

    if not setup.targets:
        click.echo(_info("No targets configured, nothing to sync."))
        return

    def on_status(step: str, message: str, data: dict[str, Any] | None = None) -> None:
        target = (data or {}).get("target", "unnamed")
        click.echo(_info(f"[{target}] {message}"))

    async def run() -> None:
        values = await resolve_secret_values(
            setup.secrets,
            setup.base.plugins,
            config.settings,
            prompt_for_secrets,
        )
        await sync_targets(setup.targets, EnvData(secrets=values), on_status)

    try:
        asyncio.run(run())
    except Exception as e:
        _fail(ctx, "Sync failed", e)
        return

    click.echo(_success(f"Synced {len(setup.targets)} target(s)."))


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
@click.pass_context
def plugins(ctx: click.Context, path: Path) -> None:
    """Show the resolved plugin order for PATH's config."""
    try:
        _, setup = _load(path)
    except Exception as e:
        _fail(ctx, "Plugin resolution failed", e)
        return

    click.echo(click.style("Plugins", bold=True))
    click.echo()
    click.echo(f"  (base): {_plugin_names(setup.base.plugins)}")
    for target in setup.targets:
        click.echo(f"  {target.display_name}: {_plugin_names(target.plugins)}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
@click.pass_context
def secrets(ctx: click.Context, path: Path) -> None:
    """Show the secrets needed by PATH's config."""
    try:
        _, setup = _load(path)
    except Exception as e:
        _fail(ctx, "Secret resolution failed", e)
        return

    if not setup.secrets:
        click.echo(_info("No secrets needed."))
        return

    click.echo(click.style("Secrets", bold=True))
    click.echo()
    for name, requirement in setup.secrets.items():
        kind = "required" if requirement.required else "optional"
        click.echo(f"  {name} ({kind}, provided by {requirement.provider.name})")
        click.echo(f"    {requirement.provider.secret_providers[name]}")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
