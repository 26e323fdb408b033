from __future__ import annotations

from typing import Any, Optional

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn


class RunProgress:
    """
    Transient progress display on stderr for listing, enrichment and export.
    Every method is a no-op when disabled, so callers never branch on it.
    """

    def __init__(self, *, enabled: bool, console: Optional[Console] = None) -> None:
        self._console = console or Console(stderr=True)
        self._enabled = bool(enabled and self._console.is_terminal)
        self._progress: Optional[Progress] = None
        self._task: Optional[int] = None
        self._started = False
        if self._enabled:
            self._progress = Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )

    def __enter__(self) -> RunProgress:
        if self._progress is not None and not self._started:
            self._progress.start()
            self._started = True
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        if self._progress is not None and self._started:
            self._progress.stop()
            self._started = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _phase(self, description: str, total: Optional[int]) -> None:
        if self._progress is None:
            return
        if self._task is None:
            self._task = self._progress.add_task(description, total=total)
        else:
            self._progress.reset(self._task, total=total, completed=0, description=description)

    def start_listing(self, kind: str) -> None:
        self._phase(f"Listing {kind}", None)

    def start_enrich(self, total: int) -> None:
        self._phase("Enrichment", total)

    def start_export(self, total: int) -> None:
        self._phase("Export", total)

    def advance(self, count: int = 1) -> None:
        if self._progress is None or self._task is None:
            return
        self._progress.update(self._task, advance=count)
