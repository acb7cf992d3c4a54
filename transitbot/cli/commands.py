"""CLI commands for transitbot."""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from transitbot import __logo__, __version__

app = typer.Typer(
    name="transitbot",
    help=f"{__logo__} transitbot - Live bus assistant",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} transitbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
):
    """transitbot - Live bus assistant."""
    pass


@app.command()
def onboard():
    """Write a default configuration file."""
    from transitbot.config.loader import get_config_path, save_config
    from transitbot.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config(), config_path)
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print("\nNext steps:")
    console.print("  1. Add your API key under [cyan]providers.perplexity.apiKey[/cyan]")
    console.print("  2. Point [cyan]snapshotPath[/cyan] at a JSON file of live bus state")
    console.print('  3. Chat: [cyan]transitbot chat -m "When is the next bus?"[/cyan]')


@app.command()
def chat(
    message: str = typer.Option(..., "--message", "-m", help="Message to send"),
    user_id: str = typer.Option("cli:default", "--user", "-u", help="User ID"),
    snapshot: Path = typer.Option(None, "--snapshot", "-s", help="Live bus state JSON file"),
    lat: float = typer.Option(None, "--lat", help="Your latitude"),
    lng: float = typer.Option(None, "--lng", help="Your longitude"),
):
    """Ask the assistant one question."""
    from transitbot.agent.service import TransitAssistant
    from transitbot.config.loader import load_config
    from transitbot.transit.provider import JsonFileSnapshotProvider

    config = load_config()
    if not config.get_api_key():
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Set one in ~/.transitbot/config.json under providers.perplexity.apiKey")
        raise typer.Exit(1)

    snapshots = JsonFileSnapshotProvider(snapshot) if snapshot else None
    assistant = TransitAssistant.from_config(config, snapshots=snapshots)
    location = {"lat": lat, "lng": lng} if lat is not None and lng is not None else None

    result = asyncio.run(assistant.handle_turn(user_id, message, location))

    console.print(f"\n{__logo__} {result.reply}\n")

    table = Table(title="Session")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in result.session_summary.items():
        table.add_row(key, str(value))
    console.print(table)
    if result.degraded:
        console.print("[yellow]The assistant could not complete this request normally.[/yellow]")


@app.command()
def serve(
    port: int = typer.Option(None, "--port", "-p", help="HTTP port"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """Run the HTTP API with the session sweep scheduled."""
    import uvicorn

    from transitbot.agent.service import TransitAssistant
    from transitbot.config.loader import load_config
    from transitbot.web.app import create_app

    config = load_config()
    assistant = TransitAssistant.from_config(config)
    api = create_app(assistant, sweep_interval_s=config.session.sweep_interval_s)

    console.print(f"{__logo__} Starting transitbot on port {port or config.gateway.port}...")
    uvicorn.run(
        api,
        host=config.gateway.host,
        port=port or config.gateway.port,
        log_level="debug" if verbose else "info",
    )


@app.command("snapshot")
def show_snapshot(
    path: Path = typer.Argument(..., help="Live bus state JSON file"),
):
    """Show what a snapshot file contains."""
    from transitbot.transit.snapshot import LiveSnapshot

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        raise typer.Exit(1)

    snap = LiveSnapshot.from_dict(data)
    table = Table(title="Routes")
    table.add_column("Bus", style="cyan")
    table.add_column("Active")
    table.add_column("Stops")
    active = {b.bus_id for b in snap.active_buses}
    for route in snap.bus_routes:
        table.add_row(
            route.bus_id,
            "yes" if route.bus_id in active else "no",
            " → ".join(s.name for s in route.stops),
        )
    console.print(table)


if __name__ == "__main__":
    app()
