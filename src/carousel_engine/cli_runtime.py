"""Runtime helpers shared between Click wiring and the runner."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

__all__ = ["CLIAppError", "CliOutputManager", "configure_logging"]


class CLIAppError(RuntimeError):
    """Raised when the CLI cannot complete its work."""

    def __init__(self, message: str, *, code: int = 1, rich_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.rich_message = rich_message or escape(message)


def configure_logging(*, verbose: bool, console: Console | None = None) -> None:
    """Route package logging through a RichHandler on the CLI console."""

    handler = RichHandler(
        console=console,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger = logging.getLogger("src.carousel_engine")
    for existing in list(package_logger.handlers):
        if isinstance(existing, RichHandler):
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.INFO if verbose else logging.WARNING)
    package_logger.propagate = False


class CliOutputManager:
    """Console output honouring ``--quiet``/``--verbose``/``--no-color``."""

    def __init__(
        self,
        *,
        quiet: bool = False,
        verbose: bool = False,
        no_color: bool = False,
        show_progress: bool = True,
        console: Console | None = None,
    ) -> None:
        self.quiet = quiet
        self.verbose = verbose and not quiet
        self.no_color = no_color
        self.show_progress = show_progress and not quiet
        self.console = console or Console(no_color=no_color, highlight=False)
        self._warnings: List[str] = []

    def warn(self, text: str) -> None:
        self._warnings.append(text)
        self.console.print(f"[yellow]warning:[/] {escape(text)}")

    def get_warnings(self) -> List[str]:
        return list(self._warnings)

    def banner(self, text: str) -> None:
        if self.quiet:
            self.console.print(text)
            return
        self.console.print(f"[bold bright_cyan]{escape(text)}[/]")

    def section(self, title: str) -> None:
        if self.quiet:
            return
        self.console.print(f"[bold cyan]{escape(title)}[/]")

    def line(self, text: str) -> None:
        if self.quiet:
            return
        self.console.print(text, soft_wrap=True)

    def verbose_line(self, text: str) -> None:
        if not self.verbose:
            return
        self.console.print(f"[dim]{escape(text)}[/]")

    @contextmanager
    def progress(self, description: str, total: int) -> Iterator[Callable[[int], None]]:
        """
        Yield a callback advancing a progress bar by the given step.

        Yields a no-op callback when progress display is disabled.
        """

        if not self.show_progress or total <= 0:
            yield lambda _step: None
            return
        progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        with progress:
            task_id = progress.add_task(description, total=total)

            def _advance(step: int) -> None:
                progress.update(task_id, advance=step)

            yield _advance
