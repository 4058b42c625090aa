"""progress feedback for slow identity provider calls."""

import sys
from contextlib import contextmanager
from typing import Optional
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn


class ProgressManager:
    """shows a spinner while waiting on the network."""

    def __init__(self, console: Optional[Console] = None):
        """
        initialize progress manager.

        args:
            console: optional rich console instance. if not provided, creates new one.
        """
        self.console = console or Console()
        self._enabled = self._should_show_progress()

    def _should_show_progress(self) -> bool:
        """
        check if we should show spinners.

        returns false in non-interactive environments (ci/cd, piped output).
        """
        return sys.stdout.isatty() and not sys.stdout.closed

    @contextmanager
    def spinner(self, description: str, transient: bool = True):
        """
        show an indeterminate spinner for the duration of the block.

        args:
            description: text to display next to spinner
            transient: if true, spinner disappears when done
        """
        if not self._enabled:
            yield
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=transient,
        ) as progress:
            progress.add_task(description, total=None)
            yield
