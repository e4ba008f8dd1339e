"""Domain data models for issue selection, attachments, and run outcomes."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class DateFilters:
    last_days: int | None = None
    today: bool = False
    after: date | None = None
    before: date | None = None


@dataclass(slots=True, frozen=True)
class AttachmentModel:
    filename: str
    id: str | None = None
    size: int | None = None
    content_url: str | None = None

    @property
    def has_known_size(self) -> bool:
        return self.size is not None and self.size > 0


class AttachmentStatus(str, Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    DOWNLOADED = "downloaded"
    FAILED = "failed"


@dataclass(slots=True)
class AttachmentOutcome:
    issue_key: str
    filename: str
    status: AttachmentStatus = AttachmentStatus.PENDING
    size: int | None = None
    path: Path | None = None
    error: str | None = None
    finished_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class FetchResult(Generic[T]):
    """Outcome of a single attempt in a primary/fallback strategy."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> FetchResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> FetchResult[T]:
        return cls(error=error)


@dataclass(slots=True)
class SyncResult:
    issues_processed: int = 0
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    issue_failures: dict[str, str] = field(default_factory=dict)
    outcomes: list[AttachmentOutcome] = field(default_factory=list)
    cancelled: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, outcome: AttachmentOutcome) -> None:
        with self._lock:
            self.outcomes.append(outcome)
            if outcome.status is AttachmentStatus.DOWNLOADED:
                self.downloaded += 1
            elif outcome.status is AttachmentStatus.SKIPPED:
                self.skipped += 1
            elif outcome.status is AttachmentStatus.FAILED:
                self.failed += 1

    def record_issue_failure(self, issue_key: str, message: str) -> None:
        with self._lock:
            self.issue_failures[issue_key] = message
            self.failed += 1

    def mark_issue_processed(self) -> None:
        with self._lock:
            self.issues_processed += 1
