"""CLI for Curation Tournament."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import structlog
import typer
import yaml
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from curation_tournament import __version__
from curation_tournament.core.config import TournamentConfig, load_config
from curation_tournament.core.errors import ConfigurationError, TournamentError
from curation_tournament.core.progress import TournamentProgress
from curation_tournament.models import (
    Metrics,
    SessionStatus,
    TournamentPage,
    TournamentSession,
    Work,
)
from curation_tournament.services.bracket import ACTIONS, TournamentManager
from curation_tournament.services.judge import CURATORS, Judge, create_judge
from curation_tournament.services.scoring import score_work, score_works
from curation_tournament.services.storage import (
    DBSessionStore,
    InMemorySessionStore,
    SessionStore,
)

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="curation-tournament",
    help="Curation Tournament - score works and run curator-judged elimination brackets",
    add_completion=False,
)
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config YAML file")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"curation-tournament v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Curation Tournament CLI."""


def _setup_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load(config_path: Path | None) -> TournamentConfig:
    if config_path is None:
        return TournamentConfig()
    return load_config(config_path)


def _create_store(config: TournamentConfig) -> SessionStore:
    if config.store.backend == "memory":
        return InMemorySessionStore()
    return DBSessionStore(config.store.url)


def _create_judge(config: TournamentConfig, dry_run: bool) -> Judge:
    if dry_run:
        console.print("[yellow]DRY RUN MODE - using the offline fake judge[/yellow]")
    return create_judge(config.judge, dry_run=dry_run)


async def _close(store: SessionStore, judge: Judge) -> None:
    await judge.close()
    close = getattr(store, "close", None)
    if close is not None:
        await close()


def _fail(e: Exception, verbose: bool = False) -> typer.Exit:
    if isinstance(e, FileNotFoundError):
        console.print(f"[red]Error:[/red] {e}")
    elif isinstance(e, ConfigurationError | TournamentError):
        console.print(f"[red]{e}")
    else:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
    return typer.Exit(1)


def _print_session(session: TournamentSession) -> None:
    console.print(f"[bold]{session.name}[/bold] ({session.id})")
    console.print(f"  Curator: {session.curator.upper()}")
    console.print(f"  Status: {session.status.value}")
    console.print(f"  Round: {session.current_round}/{session.total_rounds}")
    if session.final_winner:
        forced = " [yellow](forced)[/yellow]" if session.forced_completion else ""
        console.print(f"  Winner: [green]{session.final_winner}[/green]{forced}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Bracket")
    table.add_column("Round", justify="right")
    table.add_column("A")
    table.add_column("B")
    table.add_column("Winner")
    table.add_column("Reasoning", overflow="fold")
    for bracket in session.brackets:
        winner = bracket.winner_id or "-"
        if bracket.overridden:
            winner += " *"
        table.add_row(
            bracket.id,
            str(bracket.round),
            bracket.slot_a.work_id if bracket.slot_a else "[dim]pending[/dim]",
            bracket.slot_b.work_id if bracket.slot_b else "[dim]pending[/dim]",
            winner,
            bracket.reasoning or "",
        )
    console.print(table)


@app.command()
def score(
    cultural: Annotated[int, typer.Option(min=0, max=100, help="Cultural relevance")],
    technical: Annotated[int, typer.Option(min=0, max=100, help="Technical excellence")],
    conceptual: Annotated[int, typer.Option(min=0, max=100, help="Conceptual depth")],
    emotional: Annotated[int, typer.Option(min=0, max=100, help="Emotional resonance")],
    innovation: Annotated[int, typer.Option(min=0, max=100, help="Innovation index")],
    curator: Annotated[
        str | None, typer.Option("--curator", help="Use this curator's weights")
    ] = None,
) -> None:
    """Compute the composite score and verdict for one set of metrics."""
    try:
        metrics = Metrics(
            cultural=cultural,
            technical=technical,
            conceptual=conceptual,
            emotional=emotional,
            innovation=innovation,
        )
        result = score_work(metrics, curator=curator)
    except TournamentError as e:
        raise _fail(e) from e

    console.print(f"Score: [bold]{result.score}[/bold]")
    console.print(f"Verdict: [bold]{result.verdict.value}[/bold]")
    if result.flags:
        console.print(f"Flags: {', '.join(result.flags)}")


def _load_works(path: Path) -> list[Work]:
    """Read works from a YAML list, or a mapping with a ``works`` list."""
    if not path.exists():
        msg = f"Works file not found: {path}"
        raise FileNotFoundError(msg)
    with path.open() as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("works", [])
    return TypeAdapter(list[Work]).validate_python(data)


@app.command("score-batch")
def score_batch(
    works_file: Annotated[Path, typer.Argument(help="YAML file listing works with metrics")],
    curator: Annotated[
        str | None, typer.Option("--curator", help="Use this curator's weights")
    ] = None,
    name: Annotated[str | None, typer.Option("--name", help="Batch name")] = None,
    verbose: VerboseOption = False,
) -> None:
    """Score every work in a YAML file and summarize the verdicts."""
    _setup_logging(verbose)
    try:
        batch = score_works(_load_works(works_file), curator=curator, name=name)
    except (FileNotFoundError, TournamentError) as e:
        raise _fail(e, verbose) from e
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid works file:[/red] {e}")
        raise typer.Exit(1) from e

    console.print(f"[bold]{batch.name}[/bold]")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Work")
    table.add_column("Title")
    table.add_column("Score", justify="right")
    table.add_column("Verdict")
    for work in batch.works:
        table.add_row(
            work.id,
            work.title,
            str(work.score) if work.score is not None else "-",
            work.verdict.value if work.verdict else "[dim]no metrics[/dim]",
        )
    console.print(table)

    counts = ", ".join(f"{v.value}: {n}" for v, n in batch.verdict_counts().items())
    console.print(f"Scored {batch.completed_works}/{batch.total_works} ({counts})")


@app.command()
def create(
    work_ids: Annotated[list[str], typer.Argument(help="Work IDs in seeding order")],
    curator: Annotated[str, typer.Option("--curator", help="Curator persona")] = "sue",
    name: Annotated[str | None, typer.Option("--name", help="Tournament name")] = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Create a tournament from a power-of-two list of work IDs."""
    _setup_logging(verbose)
    try:
        config = _load(config_path)
        store = _create_store(config)
        judge = create_judge(config.judge, dry_run=True)

        async def _run() -> TournamentSession:
            manager = TournamentManager(store, judge, config)
            try:
                return await manager.create_tournament(work_ids, curator, name=name)
            finally:
                await _close(store, judge)

        session = asyncio.run(_run())
    except Exception as e:
        raise _fail(e, verbose) from e

    console.print("[bold green]Tournament created![/bold green]")
    _print_session(session)


@app.command()
def advance(
    session_id: Annotated[str, typer.Argument(help="Tournament session ID")],
    action: Annotated[
        str, typer.Option("--action", help=f"One of: {', '.join(ACTIONS)}")
    ] = "advance",
    winner: Annotated[
        str | None, typer.Option("--winner", help="Forced winner for --action complete")
    ] = None,
    bracket: Annotated[
        str | None, typer.Option("--bracket", help="Bracket to override with complete")
    ] = None,
    auto: Annotated[bool, typer.Option("--auto", help="Advance until completed")] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Use the offline fake judge")
    ] = False,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Apply a lifecycle action to a tournament."""
    _setup_logging(verbose)
    if action not in ACTIONS:
        console.print(f"[red]Error:[/red] unknown action {action!r}")
        raise typer.Exit(1)
    if auto and action != "advance":
        console.print("[red]Error:[/red] --auto only applies to --action advance")
        raise typer.Exit(1)

    try:
        config = _load(config_path)
        store = _create_store(config)
        judge = _create_judge(config, dry_run)

        async def _run() -> TournamentSession:
            manager = TournamentManager(store, judge, config)
            try:
                if not auto:
                    return await manager.advance_tournament(
                        session_id, action, forced_winner=winner, bracket_id=bracket
                    )

                session = await manager.get_tournament(session_id)
                progress = TournamentProgress(console)
                async for _, session in progress.track_rounds(
                    session.current_round,
                    session.total_rounds,
                    lambda _round: manager.advance_tournament(session_id, "advance"),
                ):
                    pass
                return session
            finally:
                await _close(store, judge)

        session = asyncio.run(_run())
    except Exception as e:
        raise _fail(e, verbose) from e

    _print_session(session)


@app.command()
def show(
    session_id: Annotated[str, typer.Argument(help="Tournament session ID")],
    config_path: ConfigOption = None,
) -> None:
    """Show one tournament and its brackets."""
    _setup_logging(False)
    try:
        config = _load(config_path)
        store = _create_store(config)
        judge = create_judge(config.judge, dry_run=True)

        async def _run() -> TournamentSession:
            try:
                return await TournamentManager(store, judge, config).get_tournament(session_id)
            finally:
                await _close(store, judge)

        session = asyncio.run(_run())
    except Exception as e:
        raise _fail(e) from e

    _print_session(session)


@app.command("list")
def list_sessions(
    status: Annotated[
        SessionStatus | None, typer.Option("--status", help="Filter by status")
    ] = None,
    page: Annotated[int, typer.Option("--page", help="Page number (1-based)")] = 1,
    limit: Annotated[int | None, typer.Option("--limit", help="Sessions per page")] = None,
    config_path: ConfigOption = None,
) -> None:
    """List tournaments, newest first."""
    _setup_logging(False)
    try:
        config = _load(config_path)
        store = _create_store(config)
        judge = create_judge(config.judge, dry_run=True)

        async def _run() -> TournamentPage:
            try:
                manager = TournamentManager(store, judge, config)
                return await manager.list_tournaments(status, page=page, limit=limit)
            finally:
                await _close(store, judge)

        result = asyncio.run(_run())
    except Exception as e:
        raise _fail(e) from e

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Curator")
    table.add_column("Status")
    table.add_column("Round", justify="right")
    table.add_column("Winner")
    for session in result.sessions:
        table.add_row(
            session.id,
            session.name,
            session.curator.upper(),
            session.status.value,
            f"{session.current_round}/{session.total_rounds}",
            session.final_winner or "-",
        )
    console.print(table)
    console.print(f"Page {result.page}/{max(result.total_pages, 1)} ({result.total} total)")


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file without running.

    Args:
        config_path: Path to YAML configuration file.
    """
    try:
        config = load_config(config_path)
        if config.judge.kind == "http" and not config.judge.endpoint:
            raise ConfigurationError(
                "HTTP judge requires an endpoint",
                "Set judge.endpoint or switch judge.kind to fake.",
            )
        console.print("[green]Configuration is valid![/green]")
        console.print(f"  Judge: {config.judge.kind}")
        console.print(f"  Timeout: {config.judge.timeout_seconds}")
        console.print(f"  Max attempts: {config.judge.max_attempts}")
        console.print(f"  Max concurrency: {config.max_concurrency}")
        console.print(f"  Pairing: {config.pairing}")
        console.print(f"  Store: {config.store.backend} ({config.store.url})")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Validation error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command()
def info() -> None:
    """Show tool information and example commands."""
    console.print("[bold]Curation Tournament[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print(f"[bold]Curators:[/bold] {', '.join(CURATORS)}\n")

    console.print("[bold]Example Commands:[/bold]")
    console.print("  # Score a work with NINA's weights")
    console.print(
        "  curation-tournament score --cultural 90 --technical 80 --conceptual 70 "
        "--emotional 60 --innovation 50 --curator nina\n"
    )

    console.print("  # Create a four-work tournament")
    console.print("  curation-tournament create w1 w2 w3 w4 --curator nina\n")

    console.print("  # Advance one round with the offline judge")
    console.print("  curation-tournament advance <session-id> --dry-run\n")

    console.print("  # Run to completion")
    console.print("  curation-tournament advance <session-id> --auto\n")

    console.print("  # Force a bracket winner")
    console.print(
        "  curation-tournament advance <session-id> --action complete "
        "--bracket bracket-2 --winner w3\n"
    )

    console.print("  # Validate config")
    console.print("  curation-tournament validate config.yaml")


if __name__ == "__main__":
    app()
