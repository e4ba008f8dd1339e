"""Test configuration ensuring local package import when editable install not active.

If users invoke `pytest` outside the project's virtualenv, we still add the project
root to sys.path so `import jira_archiver` works. Shared fakes for the Jira API
live here too.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from jira_archiver.core.config import ArchiverSettings  # noqa: E402
from jira_archiver.core.errors import DownloadError, RemoteFetchError  # noqa: E402
from jira_archiver.core.jira_client import JiraAPI  # noqa: E402
from jira_archiver.core.models import AttachmentModel, FetchResult  # noqa: E402


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b""):
        self.status_code = status_code
        self._payload = payload or {}
        self._content = content
        self.text = str(payload)

    def json(self):
        return self._payload

    def iter_content(self, chunk_size=1024):
        for i in range(0, len(self._content), chunk_size):
            yield self._content[i : i + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    """Stand-in for requests.Session returning queued responses and recording calls."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls: list[dict] = []

    def get(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        return self.responses.pop(0)


class DummyAPI(JiraAPI):
    """In-memory Jira: ``issues`` maps key -> list of (AttachmentModel, bytes)."""

    def __init__(self, settings, issues=None, *, fail_fetch=(), fail_list=(), fail_native=(), fail_direct=()):
        super().__init__(settings, client=object(), http=FakeSession([]))
        self.issues = issues or {}
        self.fail_fetch = set(fail_fetch)
        self.fail_list = set(fail_list)
        self.fail_native = set(fail_native)
        self.fail_direct = set(fail_direct)
        self.native_calls: list[str] = []
        self.direct_calls: list[str] = []

    def _payload(self, attachment):
        for items in self.issues.values():
            for model, data in items:
                if model is attachment:
                    return data
        raise KeyError(attachment.filename)

    def fetch_issue(self, issue_key):
        if issue_key in self.fail_fetch or issue_key not in self.issues:
            raise RemoteFetchError(f"Failed to fetch issue {issue_key}: 404")
        return {"key": issue_key, "fields": {"summary": issue_key}}

    def list_attachments(self, issue_key, issue=None):
        if issue_key in self.fail_list:
            raise RemoteFetchError(f"Failed to list attachments for {issue_key}")
        return [model for model, _ in self.issues[issue_key]]

    def download_native(self, attachment, dest):
        self.native_calls.append(attachment.filename)
        if attachment.filename in self.fail_native:
            dest.write_bytes(b"trunc")
            return FetchResult.failure(DownloadError("library download failed"))
        data = self._payload(attachment)
        dest.write_bytes(data)
        return FetchResult.success(len(data))

    def download_direct(self, attachment, dest):
        self.direct_calls.append(attachment.filename)
        if attachment.filename in self.fail_direct:
            return FetchResult.failure(DownloadError("direct download failed"))
        data = self._payload(attachment)
        dest.write_bytes(data)
        return FetchResult.success(len(data))


@pytest.fixture
def settings(tmp_path):
    return ArchiverSettings(
        server="https://example.atlassian.net",
        email="bot@example.com",
        token="secret",
        archive_root=tmp_path / "archive",
    )


def attachment(filename: str, data: bytes, *, size: int | None = None, ident: str = "1"):
    model = AttachmentModel(filename=filename, id=ident, size=len(data) if size is None else size)
    return model, data
