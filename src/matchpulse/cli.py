"""
MatchPulse CLI - Command Line Interface for match telemetry

Provides commands for:
- Seeding synthetic match telemetry
- Regenerating round-level TTD curves
- Showing performance analytics
- Verifying stored telemetry
- Serving the read-only API
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from matchpulse import __version__
from matchpulse.core.config import (
    MatchPulseConfig,
    configure_logging,
    generate_default_config,
    load_config,
)
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.infra.database import DatabaseManager

app = typer.Typer(
    name="matchpulse",
    help="Synthetic esports match telemetry and performance analytics",
    add_completion=False,
)
console = Console()

logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]MatchPulse[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable verbose output"),
) -> None:
    """MatchPulse - match telemetry synthesis and analytics"""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _load(config_file: Optional[Path]) -> MatchPulseConfig:
    try:
        config = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1) from e
    verbose = logging.getLogger().level == logging.DEBUG
    configure_logging(config.logging)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    return config


def _open_db(config: MatchPulseConfig, db_path: Optional[Path]) -> DatabaseManager:
    if db_path is not None:
        return DatabaseManager(db_path)
    return DatabaseManager(config.database.path, url=config.database.url, echo=config.database.echo)


def _resolve_owner_or_exit(db: DatabaseManager, owner: str) -> int:
    user_id = db.get_user_id(owner)
    if user_id is None:
        console.print(f"[red]Owner not found:[/red] {owner}")
        raise typer.Exit(1)
    return user_id


_config_option = typer.Option(None, "--config", "-c", help="Config file (.yaml, .toml, .json)")
_db_option = typer.Option(None, "--db", help="SQLite database file")
_owner_option = typer.Option(None, "--owner", "-o", help="Owner key (defaults to config)")


@app.command()
def seed(
    matches: Optional[int] = typer.Option(None, "--matches", "-n", min=0, help="Number of matches to generate"),
    seed_value: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed for a reproducible run"),
    owner: Optional[str] = _owner_option,
    db_path: Optional[Path] = _db_option,
    config_file: Optional[Path] = _config_option,
) -> None:
    """Generate synthetic matches with phases, events, TTD, voice and combos."""
    from matchpulse.synthesis.pipeline import generate_batch

    config = _load(config_file)
    if owner:
        config.generation.owner_key = owner
    if seed_value is not None:
        config.generation.seed = seed_value

    db = _open_db(config, db_path)
    rng = TelemetryRandom(config.generation.seed)
    count = config.generation.match_count if matches is None else matches

    console.print(f"\n[bold blue]MatchPulse[/bold blue] - Seeding {count} matches...\n")
    try:
        summary = generate_batch(db, config, rng, count=count)
    except Exception as e:
        logger.exception("Seeding aborted")
        console.print(f"[red]Seeding aborted:[/red] {e}")
        raise typer.Exit(1) from e
    finally:
        db.dispose()

    table = Table(title=f"Generated telemetry ({summary.elapsed_seconds:.2f}s)")
    table.add_column("Entity", style="cyan")
    table.add_column("Rows", justify="right", style="green")
    for name, value in summary.totals().items():
        table.add_row(name, str(value))
    console.print(table)


@app.command("seed-round-ttd")
def seed_round_ttd(
    seed_value: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed"),
    owner: Optional[str] = _owner_option,
    db_path: Optional[Path] = _db_option,
    config_file: Optional[Path] = _config_option,
) -> None:
    """Replace round-level TTD curves for all of the owner's matches."""
    from matchpulse.synthesis.pipeline import OwnerNotFoundError, regenerate_round_ttd

    config = _load(config_file)
    if seed_value is not None:
        config.generation.seed = seed_value
    db = _open_db(config, db_path)
    rng = TelemetryRandom(config.generation.seed)

    try:
        results = regenerate_round_ttd(db, config, rng, owner_key=owner)
    except OwnerNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    finally:
        db.dispose()

    for result in results:
        console.print(f"\n[bold]Match {result.match_id}[/bold] - {result.total_rounds} rounds")
        for round_number, avg in result.checkpoints():
            bar = "█" * (avg // 50)
            console.print(f"  Round {round_number:>2}: {avg:>4}ms [yellow]{bar}[/yellow]")

    total = sum(r.sample_count for r in results)
    console.print(f"\n[green]Done:[/green] {total} round TTD samples for {len(results)} matches")


@app.command()
def analytics(
    owner: Optional[str] = _owner_option,
    window: Optional[int] = typer.Option(None, "--window", "-w", min=1, help="Most recent matches to include"),
    db_path: Optional[Path] = _db_option,
    config_file: Optional[Path] = _config_option,
) -> None:
    """Show K/D, win rate and performance over the most recent matches."""
    from matchpulse.analysis.trends import get_performance_summary

    config = _load(config_file)
    owner = owner or config.generation.owner_key
    db = _open_db(config, db_path)
    try:
        user_id = _resolve_owner_or_exit(db, owner)
        summary = get_performance_summary(db, user_id, window or config.analytics.window_size)
    finally:
        db.dispose()

    console.print(
        Panel(
            f"Matches: [bold]{summary.matches}[/bold]   "
            f"K/D: [bold]{summary.kd_ratio:.2f}[/bold]   "
            f"Win rate: [bold]{summary.win_rate}%[/bold]   "
            f"Avg performance: [bold]{summary.avg_performance:.1f}[/bold]",
            title=f"Performance - {owner}",
        )
    )

    table = Table(title="Trend (oldest to newest)")
    table.add_column("Match", style="cyan")
    table.add_column("Start", style="dim")
    table.add_column("K/D", justify="right")
    table.add_column("Performance", justify="right")
    table.add_column("Result", justify="center")
    for point in summary.points:
        table.add_row(
            point.match_uid,
            point.start_ts[:16],
            f"{point.kd:.2f}",
            f"{point.performance:.1f}",
            "[green]W[/green]" if point.won else "[red]L[/red]",
        )
    console.print(table)


@app.command()
def verify(
    owner: Optional[str] = _owner_option,
    db_path: Optional[Path] = _db_option,
    config_file: Optional[Path] = _config_option,
) -> None:
    """Check stored telemetry against its structural invariants."""
    from matchpulse.analysis.integrity import verify_user_matches

    config = _load(config_file)
    owner = owner or config.generation.owner_key
    db = _open_db(config, db_path)
    try:
        user_id = _resolve_owner_or_exit(db, owner)
        report = verify_user_matches(db, user_id)
        stats = db.get_global_stats()
    finally:
        db.dispose()

    table = Table(title=f"Integrity - {owner}")
    table.add_column("Match", style="cyan")
    for column in ("phases", "events", "ttd_samples", "voice_turns", "combos"):
        table.add_column(column, justify="right")
    table.add_column("Status", justify="center")
    for item in report.matches:
        status = "[green]OK[/green]" if item.ok else f"[red]{len(item.violations)}[/red]"
        table.add_row(item.match_uid, *(str(item.counts[k]) for k in item.counts), status)
    console.print(table)
    console.print(f"Store totals: {stats}")

    if not report.ok:
        for item in report.matches:
            for violation in item.violations:
                console.print(f"[red]{item.match_uid}[/red]: {violation}")
        raise typer.Exit(1)
    console.print("[green]All invariants hold[/green]")


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path("matchpulse.yaml"), help="Where to write the config (.yaml or .json)"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a default configuration file."""
    if path.exists() and not force:
        console.print(f"[red]{path} already exists[/red] (use --force to overwrite)")
        raise typer.Exit(1)
    try:
        generate_default_config(path)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    console.print(f"[green]Wrote default config to {path}[/green]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
    db_path: Optional[Path] = _db_option,
    config_file: Optional[Path] = _config_option,
) -> None:
    """Run the read-only HTTP API."""
    import uvicorn

    from matchpulse.api import create_app

    config = _load(config_file)
    db = _open_db(config, db_path)
    console.print(f"Starting MatchPulse API on http://{host}:{port}")
    try:
        uvicorn.run(create_app(db), host=host, port=port)
    finally:
        db.dispose()


if __name__ == "__main__":
    app()
