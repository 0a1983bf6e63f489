"""Main entry point for the rbxconfigs application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import typer
from typing_extensions import Annotated

from rbxconfigs import __version__
# --- Core Layer ---
from rbxconfigs.core.command_handler import CommandHandler
from rbxconfigs.core.services.config_sync_service import ConfigSyncService
# --- Domain Layer ---
from rbxconfigs.domain.exceptions import RbxConfigsError
from rbxconfigs.domain.models.common import FilePath, UniverseId
# --- Infrastructure Layer ---
from rbxconfigs.infrastructure.cli.display import ConsoleDisplay
from rbxconfigs.infrastructure.config.settings import (
    get_config,
    get_cushion_seconds,
    get_max_429_retries,
    get_max_transient_retries,
    get_max_write_conflict_retries,
    get_timeout_seconds,
    load_configuration,
)
from rbxconfigs.infrastructure.credentials.providers import (
    ChainedCredentialProvider,
    ConfigCredentialProvider,
    StudioCredentialProvider,
)
from rbxconfigs.infrastructure.filesystem.local_fs import LocalFileSystem
from rbxconfigs.infrastructure.http.client import ApiClient
from rbxconfigs.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, resolve_log_level, setup_logging
from rbxconfigs.infrastructure.roblox.configs_api import UniverseConfigsApi

logger = logging.getLogger(__name__)


@dataclass
class CliOptions:
    """Global options shared by every command."""
    universe_id: UniverseId
    file: FilePath
    verbose: bool = False


# --- Dependency Injection Container (Manual) ---

def create_dependencies(
    options: CliOptions,
    ui: ConsoleDisplay,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one command run.

    This acts as the Composition Root.

    Raises:
        CredentialError: If no session cookie is configured.
    """
    # 1. Load Configuration First
    load_configuration()
    setup_logging(
        log_level=resolve_log_level(get_config('logging.level'), verbose=options.verbose),
        log_file=get_config('logging.file'),
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
    )
    logger.debug("Configuration and logging initialized.")

    # 2. Instantiate Infrastructure Adapters
    dependencies: Dict[str, Any] = {'ui': ui}
    dependencies['file_system'] = LocalFileSystem()
    dependencies['api_client'] = ApiClient(
        ChainedCredentialProvider([ConfigCredentialProvider(), StudioCredentialProvider()]),
        max_429_retries=get_max_429_retries(),
        cushion_s=get_cushion_seconds(),
        max_transient_retries=get_max_transient_retries(),
        max_write_conflict_retries=get_max_write_conflict_retries(),
        timeout_s=get_timeout_seconds(),
        transport=transport,
    )
    dependencies['configs_api'] = UniverseConfigsApi(dependencies['api_client'])

    # 3. Instantiate Core Services
    dependencies['sync_service'] = ConfigSyncService(
        configs_api=dependencies['configs_api'],
        file_system=dependencies['file_system'],
    )
    dependencies['command_handler'] = CommandHandler(
        sync_service=dependencies['sync_service'],
        ui=ui,
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="rbxconfigs",
    help="Download, upload and publish Roblox universe configs.",
    add_completion=False,
    no_args_is_help=True,
)
draft_app = typer.Typer(help="Discard / publish changes to the universe config.", no_args_is_help=True)
app.add_typer(draft_app, name="draft")


async def _execute(api_client: ApiClient, coro: Awaitable[bool]) -> bool:
    async with api_client:
        return await coro


def run_command(ctx: typer.Context, command: Callable[[CommandHandler, CliOptions], Awaitable[bool]]) -> None:
    """Builds the dependencies, runs an async handler method and sets the exit code."""
    options: CliOptions = ctx.obj
    ui = ConsoleDisplay()
    try:
        dependencies = create_dependencies(options, ui)
    except RbxConfigsError as e:
        logger.error(f"Initialization failed: {e}")
        ui.display_error(str(e))
        raise typer.Exit(code=1)

    handler: CommandHandler = dependencies['command_handler']
    succeeded = asyncio.run(_execute(dependencies['api_client'], command(handler, options)))
    if not succeeded:
        raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"rbxconfigs {__version__}")
        raise typer.Exit()


# --- CLI Commands ---

@app.callback()
def main_callback(
    ctx: typer.Context,
    universe_id: Annotated[int, typer.Option("--universe-id", "-u", help="REQUIRED: The universe ID to operate on.")],
    file: Annotated[Path, typer.Option("--file", "-f", help="Path to the config file.")] = Path("config.json"),
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit."),
    ] = None,
):
    """Sync the configs/experiments of a Roblox universe."""
    ctx.obj = CliOptions(universe_id=UniverseId(universe_id), file=FilePath(str(file)), verbose=verbose)


@app.command()
def download(ctx: typer.Context):
    """Downloads all the configs/experiments from the universe."""
    run_command(ctx, lambda handler, options: handler.handle_download(options.universe_id, options.file))


@app.command()
def upload(ctx: typer.Context):
    """Uploads all the configs/experiments to the universe."""
    run_command(ctx, lambda handler, options: handler.handle_upload(options.universe_id, options.file))


@app.command()
def purge(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
):
    """Deletes all configs/experiments from the universe. USE WITH CAUTION.

    This cannot be undone and may have unintended consequences if the universe
    relies on any of the configs.
    """
    if not yes:
        question = f"Delete every config entry of universe {ctx.obj.universe_id}?"
        if not ConsoleDisplay().ask_yes_no_question(question):
            typer.echo("Aborted.")
            raise typer.Exit(code=1)
    run_command(ctx, lambda handler, options: handler.handle_purge(options.universe_id))


@draft_app.command("discard")
def draft_discard(ctx: typer.Context):
    """Discards any staged changes to the universe config."""
    run_command(ctx, lambda handler, options: handler.handle_discard(options.universe_id))


@draft_app.command("publish")
def draft_publish(ctx: typer.Context):
    """Publishes any staged changes to the universe config."""
    run_command(ctx, lambda handler, options: handler.handle_publish(options.universe_id))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
