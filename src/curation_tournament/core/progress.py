"""Progress display for multi-round tournament runs."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

T = TypeVar("T")


class TournamentProgress:
    """Rich progress bar over tournament rounds."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize progress tracker.

        Args:
            console: Optional console instance. If None, creates a new one.
        """
        self.console = console or Console()

    async def track_rounds(
        self,
        first_round: int,
        total_rounds: int,
        round_func: Callable[[int], Awaitable[T]],
        description: str = "Judging rounds",
    ) -> AsyncIterator[tuple[int, T]]:
        """Run ``round_func`` once per remaining round, updating the bar.

        Args:
            first_round: Round to start from (1-indexed).
            total_rounds: Last round of the tournament.
            round_func: Async function called with each round number.
            description: Label for the bar.

        Yields:
            Tuples of (round_number, result) as each round finishes.
        """
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self.console,
        ) as progress:
            task = progress.add_task(
                f"[green]{description}...",
                total=total_rounds,
                completed=first_round - 1,
            )

            for round_num in range(first_round, total_rounds + 1):
                result = await round_func(round_num)
                desc = f"[green]{description}: {round_num}/{total_rounds}"
                progress.update(task, advance=1, description=desc)
                yield round_num, result
