"""Common progress reporting utilities for the command line."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import click


@dataclass
class ProgressEvent:
    message: str
    current: int | None = None
    total: int | None = None


class ProgressReporter:
    """Simple progress helper that echoes ``[current/total] message`` lines to stderr."""

    def __init__(self, title: str, *, quiet: bool = False):
        self._quiet = quiet
        self._total: int | None = None
        self._current: int = 0
        self._finalized: bool = False
        self.events: list[ProgressEvent] = []
        self._echo(title)

    def callback(self, message: str, current: int | None = None, total: int | None = None) -> None:
        """Signature compatible with ArchiveSynchronizer progress callbacks."""
        self.update(message, current=current, total=total)

    def update(self, message: str, *, current: int | None = None, total: int | None = None) -> None:
        if self._finalized:
            return
        if total is not None and total > 0:
            self._total = total
        if current is not None:
            self._current = max(0, current)
        self.events.append(ProgressEvent(message, current, total))
        if self._total:
            self._echo(f"[{self._current}/{self._total}] {message}")
        else:
            self._echo(message)

    def complete(self, message: str) -> None:
        if self._finalized:
            return
        self._echo(message)
        self._finalized = True

    def error(self, message: str) -> None:
        if self._finalized:
            return
        click.secho(message, fg="red", err=True)
        self._finalized = True

    def _echo(self, text: str) -> None:
        if not self._quiet:
            click.echo(text, err=True)


ProgressCallback = Callable[[str, int | None, int | None], None]
