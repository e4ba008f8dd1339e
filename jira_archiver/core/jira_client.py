"""Jira API client wrapper (jira library + raw REST fallbacks for search and download)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import requests
from jira import JIRA, JIRAError

from .config import ATTACHMENT_ENDPOINT, DOWNLOAD_CHUNK_SIZE, SEARCH_ENDPOINT, ArchiverSettings
from .errors import ConfigurationError, DownloadError, RemoteFetchError
from .mappers import attachments_from_issue, keys_from_search
from .models import AttachmentModel, FetchResult

logger = logging.getLogger(__name__)

ISSUE_FIELDS = "summary,attachment"


class JiraAPI:
    def __init__(
        self,
        settings: ArchiverSettings,
        client: JIRA | None = None,
        http: requests.Session | None = None,
    ):
        self.settings = settings
        self.server = settings.base_url
        self._client = client
        # Raw session used for the fallback search and download paths
        self.http = http or requests.Session()

    # ------------------ Session ------------------
    def connect(self) -> JIRA:
        """Create the jira client; raises ConfigurationError if the server is unreachable or rejects us."""
        if self._client is not None:
            return self._client
        server = self.settings.require_base_url()
        auth = (self.settings.email, self.settings.token) if self.settings.has_credential else None
        try:
            self._client = JIRA(
                basic_auth=auth,
                options={"server": server, "rest_api_version": "3"},
                timeout=self.settings.timeout,
            )
        except (JIRAError, requests.RequestException) as exc:
            raise ConfigurationError(f"Failed to connect to Jira at {server}: {exc}") from exc
        logger.debug("Connected to %s", server)
        return self._client

    @property
    def client(self) -> JIRA:
        return self.connect()

    def _auth(self) -> tuple[str, str]:
        return self.settings.require_credential()

    # ------------------ Search ------------------
    def search_keys(self, jql: str) -> list[str]:
        """Native search through the jira library, returning issue keys."""
        try:
            issues = self.client.search_issues(jql, maxResults=False, fields="key")
        except (JIRAError, requests.RequestException) as exc:
            raise RemoteFetchError(f"Search failed for {jql!r}: {exc}") from exc
        return keys_from_search(issues)

    def search_keys_paginated(self, jql: str, page_size: int | None = None) -> list[str]:
        """Raw token-paginated search against the enhanced search endpoint."""
        base = self.settings.require_base_url()
        auth = self._auth()
        url = f"{base}/{SEARCH_ENDPOINT}"
        params: dict[str, Any] = {
            "jql": jql,
            "maxResults": page_size or self.settings.page_size,
            "fields": "key",
        }
        out: list[str] = []
        token = None
        pages = 0
        while True:
            qp = dict(params)
            if token:
                qp["nextPageToken"] = token
            try:
                resp = self.http.get(
                    url,
                    params=qp,
                    auth=auth,
                    headers={"Accept": "application/json"},
                    timeout=self.settings.timeout,
                )
            except requests.RequestException as exc:
                raise RemoteFetchError(f"Search request failed: {exc}") from exc
            if resp.status_code >= 400:
                raise RemoteFetchError(f"Enhanced search failed {resp.status_code}: {resp.text[:200]}")
            data = resp.json()
            pages += 1
            out.extend(keys_from_search(data.get("issues", [])))
            token = data.get("nextPageToken")
            if not token or data.get("isLast") is True:
                break
        logger.debug("Fallback search returned %s keys over %s page(s)", len(out), pages)
        return out

    # ------------------ Issues & attachments ------------------
    def fetch_issue(self, issue_key: str) -> dict[str, Any]:
        try:
            issue = self.client.issue(issue_key, fields=ISSUE_FIELDS)
        except (JIRAError, requests.RequestException) as exc:
            raise RemoteFetchError(f"Failed to fetch issue {issue_key}: {exc}") from exc
        if hasattr(issue, "raw"):
            return issue.raw
        if isinstance(issue, dict):
            return issue
        raise RemoteFetchError(f"Unexpected issue payload type for {issue_key}: {type(issue)!r}")

    def list_attachments(self, issue_key: str, issue: dict[str, Any] | None = None) -> list[AttachmentModel]:
        """Attachments for an issue, reusing already-fetched metadata when it carries the field."""
        if issue is not None and "attachment" in (issue.get("fields") or {}):
            return attachments_from_issue(issue)
        try:
            detail = self.client.issue(issue_key, fields="attachment")
        except (JIRAError, requests.RequestException) as exc:
            raise RemoteFetchError(f"Failed to list attachments for {issue_key}: {exc}") from exc
        return attachments_from_issue(detail)

    # ------------------ Downloads ------------------
    def content_url(self, attachment: AttachmentModel) -> str:
        if attachment.content_url:
            return attachment.content_url
        base = self.settings.base_url
        if not base:
            raise DownloadError(f"No server configured to resolve content for {attachment.filename}")
        if not attachment.id:
            raise DownloadError(f"No content reference for {attachment.filename}")
        return f"{base}/{ATTACHMENT_ENDPOINT}/{attachment.id}/content"

    def download_native(self, attachment: AttachmentModel, dest: Path) -> FetchResult[int]:
        """Download through the jira library's attachment resource."""
        if not attachment.id:
            return FetchResult.failure(DownloadError(f"Attachment {attachment.filename} has no id"))
        try:
            resource = self.client.attachment(attachment.id)
            written = _write_chunks(resource.iter_content(DOWNLOAD_CHUNK_SIZE), dest)
        except (JIRAError, requests.RequestException, OSError, ConfigurationError) as exc:
            return FetchResult.failure(DownloadError(f"Library download failed for {attachment.filename}: {exc}"))
        return FetchResult.success(written)

    def download_direct(self, attachment: AttachmentModel, dest: Path) -> FetchResult[int]:
        """Download with a direct Basic-authenticated request to the content URL."""
        try:
            url = self.content_url(attachment)
            auth = self._auth()
        except (DownloadError, ConfigurationError) as exc:
            return FetchResult.failure(DownloadError(str(exc)))
        try:
            with self.http.get(
                url,
                auth=auth,
                headers={"Accept": "*/*"},
                timeout=self.settings.timeout,
                stream=True,
                allow_redirects=True,
            ) as resp:
                if resp.status_code >= 400:
                    return FetchResult.failure(
                        DownloadError(f"HTTP {resp.status_code} downloading {attachment.filename}")
                    )
                written = _write_chunks(resp.iter_content(DOWNLOAD_CHUNK_SIZE), dest)
        except (requests.RequestException, OSError) as exc:
            return FetchResult.failure(DownloadError(f"Direct download failed for {attachment.filename}: {exc}"))
        return FetchResult.success(written)


def _write_chunks(chunks, dest: Path) -> int:
    written = 0
    with dest.open("wb") as fh:
        for chunk in chunks:
            if chunk:
                fh.write(chunk)
                written += len(chunk)
    return written
