"""
Progress Tracker Module

Wraps rich library to render the coordinator's progress events as a single
percentage bar.

Example Usage:
    from cost_estimator.utils.progress_tracker import ProgressTracker

    tracker = ProgressTracker()
    tracker.start("Estimating costs for MIT")

    # Pass as the coordinator's progress callback
    report = await coordinator.run(user_input, on_progress=tracker.on_progress)

    tracker.complete()
"""

from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from cost_estimator.models.costs import EstimationProgress


class ProgressTracker:
    """Manages the estimation progress bar using rich library."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self.progress: Optional[Progress] = None
        self.task_id: Optional[TaskID] = None
        self.title: str = ""
        self.percent: int = 0

    def start(self, title: str) -> None:
        """
        Initialize the progress bar.

        Args:
            title: Run description shown before the current step message
        """
        self.title = title
        self.percent = 0

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
        )
        self.progress.start()
        self.task_id = self.progress.add_task(description=title, total=100)

    def on_progress(self, event: EstimationProgress) -> None:
        """
        Coordinator progress callback.

        Progress never moves backwards; a lower percentage only updates the
        description.
        """
        if self.progress is None or self.task_id is None:
            return

        self.percent = max(self.percent, event.progress)
        self.progress.update(
            self.task_id,
            completed=self.percent,
            description=f"{self.title}: {event.message}",
        )

    def complete(self) -> None:
        """Mark the bar complete and print a summary line."""
        if self.progress is None or self.task_id is None:
            return

        self.progress.update(self.task_id, completed=100)
        self.progress.stop()
        self.console.print(f"[bold green]{self.title} complete[/bold green]")

        self.progress = None
        self.task_id = None
        self.percent = 0

    def abort(self, reason: str) -> None:
        """Stop the bar without completing it."""
        if self.progress is None:
            return

        self.progress.stop()
        self.console.print(f"[bold red]{self.title} failed:[/bold red] {reason}")
        self.progress = None
        self.task_id = None

    def is_active(self) -> bool:
        return self.progress is not None and self.task_id is not None
