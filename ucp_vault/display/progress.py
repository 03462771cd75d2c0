"""Non-cancellable progress indicator for long-running maintenance.

The indicator is purely presentational: :func:`with_progress` awaits the
same coroutine whether or not it shows anything, and returns its result.
"""

from __future__ import annotations

import sys
from typing import Awaitable, Callable, Optional, TextIO, TypeVar

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

T = TypeVar("T")


async def with_progress(
    title: str,
    work: Callable[[], Awaitable[T]],
    *,
    stream: Optional[TextIO] = None,
) -> T:
    """Run *work* while a spinner labelled *title* is shown on stderr."""
    console = Console(stderr=True, file=stream or sys.stderr)
    progress = Progress(
        SpinnerColumn(style="bright_blue"),
        TextColumn("[bold]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
        redirect_stdout=False,
        redirect_stderr=False,
    )
    progress.start()
    task_id = progress.add_task(title, total=None)
    try:
        return await work()
    finally:
        progress.update(task_id, completed=1, total=1)
        progress.stop()
