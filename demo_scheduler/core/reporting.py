"""Status counts over a date range."""
from __future__ import annotations

from datetime import date
from typing import Iterable

import pandas as pd

from demo_scheduler.core import lifecycle
from demo_scheduler.domain import DemoRequest

UNASSIGNED = "unassigned"


def _frame(requests: Iterable[DemoRequest], start: date, end: date) -> pd.DataFrame:
    rows = [
        {
            "demo_date": request.demo_date.isoformat(),
            "team": str(request.assigned_team) if request.assigned_team is not None else UNASSIGNED,
            "status": request.status,
        }
        for request in requests
        if start <= request.demo_date <= end
    ]
    return pd.DataFrame(rows, columns=["demo_date", "team", "status"])


def _team_order(label: str) -> tuple[bool, int]:
    # Numeric team order, unassigned last.
    if label == UNASSIGNED:
        return (True, 0)
    return (False, int(label))


def _counts(dataframe: pd.DataFrame, key: str) -> list[dict[str, object]]:
    if dataframe.empty:
        return []
    table = pd.crosstab(dataframe[key], dataframe["status"])
    table = table.reindex(columns=list(lifecycle.STATUSES), fill_value=0)
    if key == "team":
        table = table.reindex(sorted(table.index, key=_team_order))
    else:
        table = table.sort_index()

    items: list[dict[str, object]] = []
    for label, row in table.iterrows():
        counts = {status: int(row[status]) for status in lifecycle.STATUSES}
        item: dict[str, object] = {key: str(label)}
        item.update(counts)
        item["total"] = sum(counts.values())
        items.append(item)
    return items


def status_report(requests: Iterable[DemoRequest], start: date, end: date) -> dict[str, object]:
    """Per-day and per-team status counts for ``start``..``end`` inclusive."""

    if end < start:
        raise ValueError("end must not be before start")

    dataframe = _frame(requests, start, end)
    totals = {status: int((dataframe["status"] == status).sum()) for status in lifecycle.STATUSES}
    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "totals": totals,
        "by_day": _counts(dataframe, "demo_date"),
        "by_team": _counts(dataframe, "team"),
    }
