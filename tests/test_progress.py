from __future__ import annotations

import io

from rich.console import Console

from aws_inventory.util.rich_progress import RunProgress


def test_progress_disabled_on_non_terminal() -> None:
    console = Console(file=io.StringIO(), force_terminal=False)
    with RunProgress(enabled=True, console=console) as progress:
        assert not progress.enabled
        progress.start_listing("keys")
        progress.advance(3)
    assert console.file.getvalue() == ""


def test_progress_phases_on_terminal() -> None:
    console = Console(file=io.StringIO(), force_terminal=True, width=80)
    with RunProgress(enabled=True, console=console) as progress:
        assert progress.enabled
        progress.start_listing("secrets")
        progress.advance(2)
        progress.start_enrich(2)
        progress.advance()
        progress.advance()
        progress.start_export(2)
        progress.advance(2)


def test_progress_not_requested_is_noop() -> None:
    console = Console(file=io.StringIO(), force_terminal=True)
    progress = RunProgress(enabled=False, console=console)
    with progress:
        progress.start_enrich(5)
        progress.advance()
    assert not progress.enabled
    assert console.file.getvalue() == ""
