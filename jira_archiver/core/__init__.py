"""Issue resolution and attachment synchronization."""

from jira_archiver.core.keys import expand_range
from jira_archiver.core.query import compose_query
from jira_archiver.core.resolver import IssueResolver
from jira_archiver.core.sync import ArchiveSynchronizer

__all__ = [
    "ArchiveSynchronizer",
    "IssueResolver",
    "compose_query",
    "expand_range",
]
