"""IssueResolver: merges explicit keys, key ranges, and JQL results into one key list."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .errors import ConfigurationError, RemoteFetchError, ValidationError
from .jira_client import JiraAPI
from .keys import expand_range
from .models import FetchResult

logger = logging.getLogger(__name__)


class IssueResolver:
    def __init__(self, api: JiraAPI):
        self.api = api

    def resolve(
        self,
        keys: Iterable[str] = (),
        start: str | None = None,
        end: str | None = None,
        query: str | None = None,
    ) -> list[str]:
        """Return the deduplicated, lexicographically sorted union of every selector.

        Range validation happens before any network call. An empty result is
        not an error.
        """
        selected: set[str] = {k.strip() for k in keys if k and k.strip()}

        if start or end:
            if not (start and end):
                raise ValidationError("Both --start and --end are required for a range")
            selected.update(expand_range(start, end))

        if query and query.strip():
            selected.update(self.search(query))

        return sorted(selected)

    def search(self, jql: str) -> list[str]:
        """Native search first, token-paginated raw search on failure."""
        primary = self._native_search(jql)
        if primary.ok:
            return primary.value or []
        logger.warning("Native search failed (%s); falling back to paginated search", primary.error)
        # ConfigurationError from a missing server or credential propagates
        return self.api.search_keys_paginated(jql)

    def _native_search(self, jql: str) -> FetchResult[list[str]]:
        try:
            return FetchResult.success(self.api.search_keys(jql))
        except (RemoteFetchError, ConfigurationError) as exc:
            return FetchResult.failure(exc)
