"""
panelchat CLI.

Commands:
    panelchat serve     Run the OpenAI-compatible gateway
    panelchat agents    Show the panel roster
    panelchat config    Show the effective configuration
"""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .agents import AgentDirectory
from .config import load_config
from .orchestration import clean_agent_name

app = typer.Typer(help="OpenAI-compatible chat endpoint backed by a panel of agents")
console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


# =============================================================================
# SERVE
# =============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes (development)"),
    log_level: str = typer.Option(None, help="Log level (default: LOG_LEVEL or INFO)"),
):
    """Run the gateway with uvicorn."""
    import uvicorn

    level = (log_level or load_config().log_level).upper()
    _setup_logging(level)

    console.print(f"\n[bold blue]panelchat serve[/bold blue] on http://{host}:{port}\n")
    uvicorn.run(
        "panelchat.api.gateway:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=level.lower(),
        log_config=None,
    )


# =============================================================================
# AGENTS
# =============================================================================


@app.command()
def agents():
    """Show the panel roster in speaking-fallback order."""
    directory = AgentDirectory.from_prompts(llm_client=None)

    table = Table(title="Panel")
    table.add_column("#", justify="right")
    table.add_column("Agent", style="bold")
    table.add_column("Display name")
    table.add_column("Domain")
    for i, info in enumerate(directory.list_info(), start=1):
        table.add_row(str(i), info["name"], clean_agent_name(info["name"]), info["domain"])

    console.print(table)
    console.print(f"\nFallback speaker: [bold]{directory.first.name}[/bold]")


# =============================================================================
# CONFIG
# =============================================================================


@app.command()
def config():
    """Show the effective configuration (from environment variables)."""
    table = Table(title="Configuration")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for key, value in load_config().to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value)
        table.add_row(key, "[dim]auto[/dim]" if value is None else str(value))
    console.print(table)


if __name__ == "__main__":
    app()
