"""Mirror Jira issue attachments into a local directory tree."""

__version__ = "0.1.0"
