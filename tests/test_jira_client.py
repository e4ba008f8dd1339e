from dataclasses import replace
from types import SimpleNamespace

import pytest
from conftest import FakeResponse, FakeSession
from jira import JIRAError

from jira_archiver.core.errors import DownloadError, RemoteFetchError
from jira_archiver.core.jira_client import JiraAPI
from jira_archiver.core.models import AttachmentModel


class FakeClient:
    """Minimal stand-in for jira.JIRA."""

    def __init__(self, issues=None, attachments=None):
        self.issues = issues or {}
        self.attachments = attachments or {}
        self.issue_calls = []

    def issue(self, key, fields=None):
        self.issue_calls.append((key, fields))
        if key not in self.issues:
            raise JIRAError(status_code=404, text="Issue does not exist")
        return SimpleNamespace(raw=self.issues[key])

    def attachment(self, ident):
        if ident not in self.attachments:
            raise JIRAError(status_code=404, text="no attachment")
        data = self.attachments[ident]
        return SimpleNamespace(iter_content=lambda chunk_size: iter([data[:2], data[2:]]))


def test_content_url_prefers_explicit_reference(settings):
    api = JiraAPI(settings, client=FakeClient(), http=FakeSession([]))
    model = AttachmentModel("a.txt", id="5", content_url="https://cdn/x")
    assert api.content_url(model) == "https://cdn/x"


def test_content_url_composed_from_id(settings):
    api = JiraAPI(replace(settings, server="https://example.atlassian.net/"), client=FakeClient())
    assert api.content_url(AttachmentModel("a.txt", id="5")) == (
        "https://example.atlassian.net/rest/api/3/attachment/5/content"
    )


def test_content_url_without_reference(settings):
    api = JiraAPI(settings, client=FakeClient())
    with pytest.raises(DownloadError):
        api.content_url(AttachmentModel("a.txt"))


def test_fetch_issue_wraps_jira_error(settings):
    api = JiraAPI(settings, client=FakeClient())
    with pytest.raises(RemoteFetchError):
        api.fetch_issue("X-404")


def test_list_attachments_reuses_fetched_issue(settings):
    raw = {"key": "X-1", "fields": {"attachment": [{"id": "1", "filename": "a.txt", "size": 3}]}}
    client = FakeClient({"X-1": raw})
    api = JiraAPI(settings, client=client)
    issue = api.fetch_issue("X-1")
    attachments = api.list_attachments("X-1", issue)

    assert [a.filename for a in attachments] == ["a.txt"]
    assert len(client.issue_calls) == 1


def test_list_attachments_refetches_when_field_missing(settings):
    client = FakeClient({"X-1": {"key": "X-1", "fields": {"attachment": []}}})
    api = JiraAPI(settings, client=client)
    assert api.list_attachments("X-1", {"key": "X-1", "fields": {}}) == []
    assert client.issue_calls == [("X-1", "attachment")]


def test_download_native_streams_to_destination(settings, tmp_path):
    api = JiraAPI(settings, client=FakeClient(attachments={"9": b"abcdef"}))
    dest = tmp_path / "out.bin"
    result = api.download_native(AttachmentModel("out.bin", id="9", size=6), dest)

    assert result.ok
    assert result.value == 6
    assert dest.read_bytes() == b"abcdef"


def test_download_native_failure_is_a_result(settings, tmp_path):
    api = JiraAPI(settings, client=FakeClient())
    result = api.download_native(AttachmentModel("x.bin", id="1"), tmp_path / "x.bin")
    assert not result.ok
    assert isinstance(result.error, DownloadError)


def test_download_direct_uses_basic_auth(settings, tmp_path):
    http = FakeSession([FakeResponse(content=b"payload")])
    api = JiraAPI(settings, client=FakeClient(), http=http)
    dest = tmp_path / "p.bin"
    result = api.download_direct(AttachmentModel("p.bin", id="42"), dest)

    assert result.ok
    assert dest.read_bytes() == b"payload"
    call = http.calls[0]
    assert call["url"].endswith("/rest/api/3/attachment/42/content")
    assert call["auth"] == ("bot@example.com", "secret")
    assert "Authorization" not in call["headers"]
    assert call["timeout"] == settings.timeout


def test_download_direct_http_error(settings, tmp_path):
    http = FakeSession([FakeResponse(status_code=403)])
    api = JiraAPI(settings, client=FakeClient(), http=http)
    result = api.download_direct(AttachmentModel("p.bin", id="42"), tmp_path / "p.bin")
    assert not result.ok
    assert "403" in str(result.error)


def test_download_direct_without_credential(settings, tmp_path):
    http = FakeSession([])
    api = JiraAPI(replace(settings, token=None), client=FakeClient(), http=http)
    result = api.download_direct(AttachmentModel("p.bin", id="42"), tmp_path / "p.bin")
    assert not result.ok
    assert http.calls == []


def test_download_direct_without_server(settings, tmp_path):
    api = JiraAPI(replace(settings, server=None), client=FakeClient(), http=FakeSession([]))
    result = api.download_direct(AttachmentModel("p.bin", id="42"), tmp_path / "p.bin")
    assert not result.ok
