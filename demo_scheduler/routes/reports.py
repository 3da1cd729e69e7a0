from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, HTTPException, Query

from demo_scheduler.application import get_scheduling_service
from demo_scheduler.core.errors import SchedulingError
from demo_scheduler.routes.dependencies import to_http_error

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/status")
async def status_counts(
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
) -> dict:
    """Per-day and per-team status counts; defaults to the last seven days."""
    service = get_scheduling_service()
    end = end or service.today()
    start = start or end - timedelta(days=6)
    if end < start:
        raise HTTPException(status_code=400, detail="end must not be before start")
    try:
        return await service.report(start, end)
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
