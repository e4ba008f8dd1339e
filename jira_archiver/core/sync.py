"""ArchiveSynchronizer: mirrors issue attachments into ``<root>/<ISSUE-KEY>/<filename>``."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from pathlib import Path

import pytz

from .config import PARTIAL_SUFFIX, TIMEZONE, ArchiverSettings
from .errors import DownloadError, FilesystemError, RemoteFetchError
from .jira_client import JiraAPI
from .mappers import filter_attachments
from .models import AttachmentModel, AttachmentOutcome, AttachmentStatus, FetchResult, SyncResult
from .progress import ProgressCallback

logger = logging.getLogger(__name__)


def is_up_to_date(path: Path, attachment: AttachmentModel) -> bool:
    """A local file is current iff it exists and matches a positive remote size."""
    if not attachment.has_known_size or not path.is_file():
        return False
    return path.stat().st_size == attachment.size


def partial_path(dest: Path) -> Path:
    # hidden temp name so it cannot shadow a real "<name>.part" attachment
    return dest.with_name(f".{dest.name}{PARTIAL_SUFFIX}")


def contained_path(parent: Path, name: str) -> Path | None:
    """``parent / name`` if it names a direct child of ``parent``, else None."""
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        return None
    candidate = parent / name
    if candidate.resolve().parent != parent.resolve():
        return None
    return candidate


class ArchiveSynchronizer:
    def __init__(self, api: JiraAPI, settings: ArchiverSettings | None = None):
        self.api = api
        self.settings = settings or api.settings
        self._tz = pytz.timezone(TIMEZONE)

    @property
    def root(self) -> Path:
        return Path(self.settings.archive_root)

    def ensure_root(self) -> Path:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"Cannot create archive root {self.root}: {exc}") from exc
        return self.root

    def ensure_issue_dir(self, issue_key: str) -> Path:
        issue_dir = contained_path(self.root, issue_key)
        if issue_dir is None:
            raise FilesystemError(f"Issue key {issue_key!r} is not a valid directory name")
        try:
            # exist_ok tolerates concurrent creation by another worker
            issue_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"Cannot create directory {issue_dir}: {exc}") from exc
        return issue_dir

    # ------------------ Run ------------------
    def run(
        self,
        issue_keys: Sequence[str],
        *,
        pattern: str | None = None,
        progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> SyncResult:
        """Process every issue; per-issue and per-attachment failures are recorded, not raised.

        Only a failure to create the archive root aborts the run.
        """
        self.ensure_root()
        result = SyncResult()
        keys = list(issue_keys)
        total = len(keys)
        if not keys:
            return result

        if self.settings.max_workers <= 1 or total < 2:
            for idx, key in enumerate(keys, start=1):
                if cancel is not None and cancel.is_set():
                    result.cancelled = True
                    break
                self.sync_issue(key, result, pattern=pattern, cancel=cancel)
                if progress:
                    progress(f"Processed {key}", idx, total)
            return result

        # Threads: jira client calls are I/O bound and the library is synchronous
        completed = 0
        with ThreadPoolExecutor(max_workers=self.settings.max_workers) as pool:
            futures = {
                pool.submit(self.sync_issue, key, result, pattern=pattern, cancel=cancel): key for key in keys
            }
            for fut in as_completed(futures):
                key = futures[fut]
                try:
                    fut.result()
                except Exception as exc:  # pragma: no cover - sync_issue records its own failures
                    logger.warning("Issue task %s failed: %s", key, exc)
                    result.record_issue_failure(key, str(exc))
                completed += 1
                if progress:
                    progress(f"Processed {key}", completed, total)
        if cancel is not None and cancel.is_set():
            result.cancelled = True
        return result

    def sync_issue(
        self,
        issue_key: str,
        result: SyncResult,
        *,
        pattern: str | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        if cancel is not None and cancel.is_set():
            return
        try:
            issue = self.api.fetch_issue(issue_key)
        except RemoteFetchError as exc:
            logger.warning("Skipping %s: %s", issue_key, exc)
            result.record_issue_failure(issue_key, str(exc))
            result.mark_issue_processed()
            return

        try:
            issue_dir = self.ensure_issue_dir(issue_key)
        except FilesystemError as exc:
            logger.error("Skipping %s: %s", issue_key, exc)
            result.record_issue_failure(issue_key, str(exc))
            result.mark_issue_processed()
            return

        try:
            attachments = filter_attachments(self.api.list_attachments(issue_key, issue), pattern)
        except RemoteFetchError as exc:
            logger.warning("Skipping %s: %s", issue_key, exc)
            result.record_issue_failure(issue_key, str(exc))
            result.mark_issue_processed()
            return

        logger.info("%s: %s attachment(s)", issue_key, len(attachments))
        for attachment in attachments:
            if cancel is not None and cancel.is_set():
                break
            result.record(self.sync_attachment(issue_key, issue_dir, attachment))
        result.mark_issue_processed()

    def sync_attachment(self, issue_key: str, issue_dir: Path, attachment: AttachmentModel) -> AttachmentOutcome:
        dest = contained_path(issue_dir, attachment.filename)
        outcome = AttachmentOutcome(issue_key, attachment.filename, size=attachment.size, path=dest)
        if dest is None:
            error = DownloadError(f"Refusing attachment name {attachment.filename!r}: resolves outside {issue_dir}")
            logger.warning("%s: %s", issue_key, error)
            outcome.status = AttachmentStatus.FAILED
            outcome.error = str(error)
            return self._finish(outcome)

        if is_up_to_date(dest, attachment):
            logger.debug("%s/%s up to date (%s bytes)", issue_key, attachment.filename, attachment.size)
            outcome.status = AttachmentStatus.SKIPPED
            return self._finish(outcome)

        if self.settings.dry_run:
            logger.info("%s/%s would be downloaded", issue_key, attachment.filename)
            return self._finish(outcome)

        fetched = self.download(attachment, dest)
        if fetched.ok:
            logger.info("%s/%s downloaded (%s bytes)", issue_key, attachment.filename, fetched.value)
            outcome.status = AttachmentStatus.DOWNLOADED
            outcome.size = fetched.value
        else:
            logger.warning("%s/%s failed: %s", issue_key, attachment.filename, fetched.error)
            outcome.status = AttachmentStatus.FAILED
            outcome.error = str(fetched.error)
        return self._finish(outcome)

    def download(self, attachment: AttachmentModel, dest: Path) -> FetchResult[int]:
        """Library download first, direct request second; the file appears only on success."""
        part = partial_path(dest)
        fetched = self.api.download_native(attachment, part)
        if not fetched.ok:
            logger.debug("Library download of %s failed (%s); trying direct request", attachment.filename, fetched.error)
            fetched = self.api.download_direct(attachment, part)
        if not fetched.ok:
            part.unlink(missing_ok=True)
            return fetched
        try:
            part.replace(dest)
        except OSError as exc:
            part.unlink(missing_ok=True)
            return FetchResult.failure(FilesystemError(f"Cannot move {part.name} into place: {exc}"))
        return fetched

    def _finish(self, outcome: AttachmentOutcome) -> AttachmentOutcome:
        outcome.finished_at = datetime.now(self._tz)
        return outcome
