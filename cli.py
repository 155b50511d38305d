"""
CLI tool for running and inspecting the chat hub.

Provides commands for starting the server and viewing registered hub
methods.
"""

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from chathub.api.ws.handlers import load_handlers
from chathub.constants import SEND_MESSAGE_TARGET
from chathub.routing import hub_router
from chathub.settings import app_settings
from chathub.uvicorn_filters import build_uvicorn_log_config

# Hub methods clients rely on, checked by validate-hub-methods
REQUIRED_HUB_METHODS = [SEND_MESSAGE_TARGET]

typer_app = typer.Typer(
    name="chathub",
    help="Chat hub CLI - Run the server and inspect hub methods",
    add_completion=False,
)
console = Console()


@typer_app.command(name="serve")
def serve(
    host: str = typer.Option(
        app_settings.SERVER_HOST, "--host", "-h", help="Bind address"
    ),
    port: int = typer.Option(
        app_settings.SERVER_PORT, "--port", "-p", help="Bind port"
    ),
    reload: bool = typer.Option(
        False, "--reload", help="Restart the server on code changes"
    ),
):
    """
    Run the chat hub with uvicorn.

    Example:
        python cli.py serve --port 8080
    """
    console.print(
        Panel.fit(
            f"[bold cyan]Chat hub[/bold cyan] on "
            f"[yellow]ws://{host}:{port}{app_settings.HUB_PATH}[/yellow]",
            border_style="cyan",
        )
    )

    uvicorn.run(
        "chathub:application",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=build_uvicorn_log_config(),
    )


@typer_app.command(name="hub-methods")
def hub_methods():
    """
    Display a table of all registered hub methods.

    Example:
        python cli.py hub-methods
    """
    load_handlers()

    console.print()
    table = Table(
        "Target",
        "Handler Path",
        title="Hub Methods Registry",
        show_lines=True,
    )

    for target, handler in sorted(hub_router.methods_registry.items()):
        table.add_row(
            f"[green]{target}[/green]",
            f"{handler.__module__}.[yellow]{handler.__name__}[/yellow]",
        )

    console.print(table)
    console.print()
    console.print(
        f"[bold]Summary:[/bold] {len(hub_router.methods_registry)} hub methods registered"
    )
    console.print()


@typer_app.command(name="validate-hub-methods")
def validate_hub_methods():
    """
    Check that every hub method clients rely on has a handler.

    Useful for CI/CD pipelines.

    Example:
        python cli.py validate-hub-methods
    """
    load_handlers()

    missing = [
        target
        for target in REQUIRED_HUB_METHODS
        if not hub_router.has_method(target)
    ]

    if missing:
        console.print("[red]✗ Validation Failed[/red]")
        for target in missing:
            console.print(f"  [red]•[/red] {target}")
        raise typer.Exit(code=1)

    console.print(
        Panel.fit(
            f"[green]✓ All hub methods registered[/green]\n\n"
            f"Total: {len(REQUIRED_HUB_METHODS)}/{len(REQUIRED_HUB_METHODS)}",
            border_style="green",
            title="Success",
        )
    )


if __name__ == "__main__":
    typer_app()
