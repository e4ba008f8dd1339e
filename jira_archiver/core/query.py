"""JQL composition from a free-form fragment plus date filters."""

from __future__ import annotations

from .models import DateFilters

JQL_DATE_FORMAT = "%Y-%m-%d"


def date_clauses(filters: DateFilters | None) -> list[str]:
    if filters is None:
        return []
    clauses: list[str] = []
    if filters.last_days is not None:
        clauses.append(f"updated >= -{filters.last_days}d")
    if filters.today:
        clauses.append("updated >= startOfDay()")
    if filters.after is not None:
        clauses.append(f'updated >= "{filters.after.strftime(JQL_DATE_FORMAT)}"')
    if filters.before is not None:
        clauses.append(f'updated <= "{filters.before.strftime(JQL_DATE_FORMAT)}"')
    return clauses


def compose_query(base: str | None, filters: DateFilters | None = None) -> str:
    """Combine ``base`` with AND-joined date clauses.

    ``compose_query("project = X", DateFilters(today=True))`` returns
    ``"(project = X) AND updated >= startOfDay()"``.
    """
    base = (base or "").strip()
    dates = " AND ".join(date_clauses(filters))
    if base and dates:
        return f"({base}) AND {dates}"
    return base or dates
