"""Mapping raw Jira attachment JSON or jira.Attachment objects into AttachmentModel instances."""

from __future__ import annotations

from collections.abc import Iterable
from fnmatch import fnmatchcase
from typing import Any

from .models import AttachmentModel


def _as_raw(obj: Any) -> dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    raw = getattr(obj, "raw", None)
    if isinstance(raw, dict):
        return raw
    return {}


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def map_attachment(obj: Any) -> AttachmentModel | None:
    raw = _as_raw(obj)
    filename = raw.get("filename")
    if not isinstance(filename, str) or not filename:
        return None
    ident = raw.get("id")
    content = raw.get("content")
    return AttachmentModel(
        filename=filename,
        id=str(ident) if ident not in (None, "") else None,
        size=_to_int(raw.get("size")),
        content_url=content if isinstance(content, str) and content else None,
    )


def attachments_from_issue(issue: Any) -> list[AttachmentModel]:
    """Extract attachments from a raw issue dict or a jira.Issue."""
    raw = _as_raw(issue)
    fields = raw.get("fields") or {}
    items = fields.get("attachment") or []
    return map_attachments(items)


def map_attachments(items: Iterable[Any]) -> list[AttachmentModel]:
    out: list[AttachmentModel] = []
    for item in items:
        model = map_attachment(item)
        if model is not None:
            out.append(model)
    return out


def filter_attachments(attachments: Iterable[AttachmentModel], pattern: str | None) -> list[AttachmentModel]:
    if not pattern:
        return list(attachments)
    return [a for a in attachments if fnmatchcase(a.filename, pattern)]


def keys_from_search(issues: Iterable[Any]) -> list[str]:
    keys: list[str] = []
    for issue in issues:
        key = issue.get("key") if isinstance(issue, dict) else getattr(issue, "key", None)
        if isinstance(key, str) and key:
            keys.append(key)
    return keys
