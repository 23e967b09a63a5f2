"""Main entry point for the bamboocli application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from typing import Any, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from bamboocli.core.command_handler import CommandHandler
from bamboocli.core.services.hr_client import create_hr_client

# --- Infrastructure Layer ---
from bamboocli.infrastructure.cli.display import ConsoleDisplay
from bamboocli.infrastructure.config.settings import build_client_settings, get_config, load_configuration
from bamboocli.infrastructure.monitoring.logger_setup import (
    DEFAULT_LOG_FORMAT,
    resolve_log_level,
    setup_logging,
)
from bamboocli.infrastructure.transport.http_transport import HttpxTransport

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

_dependencies: Dict[str, Any] = {}


def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. Exits with status 2 when the
    configuration is unusable (e.g. missing credentials).
    """
    dependencies: Dict[str, Any] = {'ui': ConsoleDisplay()}
    try:
        # 1. Load Configuration First
        load_configuration()
        setup_logging(
            log_level=resolve_log_level(get_config('logging.level', 'INFO')),
            log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
            log_file=get_config('logging.file'),
        )
        logger.info("Configuration and logging initialized.")

        # 2. Client with its own cache, rate limiter and transport
        settings = build_client_settings()
        transport = HttpxTransport(
            base_url=settings.effective_base_url,
            api_key=settings.api_key,
            timeout_seconds=settings.request_timeout_seconds,
        )
        dependencies['client'] = create_hr_client(settings, transport)

        # 3. Command Handler
        dependencies['command_handler'] = CommandHandler(client=dependencies['client'], ui=dependencies['ui'])
        logger.info("All dependencies initialized successfully.")
        return dependencies

    except ValueError as e:
        logger.error(f"Fatal Error during application initialization: {e}")
        dependencies['ui'].display_error(f"Application Initialization Failed: {e}")
        raise typer.Exit(code=2)


def get_dependencies() -> Dict[str, Any]:
    """Returns the wired dependencies, creating them on first use."""
    if not _dependencies:
        _dependencies.update(create_dependencies())
    return _dependencies


def reset_dependencies() -> None:
    """Drops the wired dependencies so the next command rebuilds them."""
    _dependencies.clear()


# --- Typer App Definition ---
app = typer.Typer(
    name="bamboocli",
    help="bamboocli: resilient BambooHR API client with caching, rate limiting and retries.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, bool]) -> bool:
    """Runs an async command handler from a sync Typer command."""
    try:
        return asyncio.run(coro)
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        get_dependencies()['ui'].display_error(f"Command execution failed: {e}")
        return False


# --- CLI Commands ---

@app.command()
def fetch(
    path: Annotated[str, typer.Argument(help="Endpoint path, e.g. /employees/directory.")],
    method: Annotated[str, typer.Option("--method", "-m", help="HTTP method (GET or POST).")] = "GET",
    param: Annotated[
        Optional[List[str]],
        typer.Option("--param", "-p", help="Request parameter as key=value (repeatable).")
    ] = None,
    resource_class: Annotated[
        str,
        typer.Option("--resource-class", "-r", help="Resource class for cache TTL and rate budget.")
    ] = "default",
    operation: Annotated[
        Optional[str],
        typer.Option("--operation", "-o", help="Human description of the call, used in error messages.")
    ] = None,
):
    """Fetch a BambooHR endpoint and print the JSON response."""
    handler: CommandHandler = get_dependencies()['command_handler']
    ok = run_async(handler.handle_fetch(path, method, param, resource_class, operation))
    if not ok:
        raise typer.Exit(code=1)


@app.command(name="cache-stats")
def cache_stats_command():
    """Show live entries in the response cache."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_cache_stats())


@app.command(name="clear-cache")
def clear_cache_command():
    """Clear the response cache."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_clear_cache())


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    logger.debug(f"Starting bamboocli with arguments: {sys.argv[1:]}")
    app()


if __name__ == "__main__":
    cli_entry_point()
