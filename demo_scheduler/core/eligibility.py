"""Role-aware selection of requests waiting for a grid placement."""
from __future__ import annotations

from datetime import date
from typing import Iterable

from demo_scheduler.core import lifecycle
from demo_scheduler.core.roles import is_recipe_author, same_identity
from demo_scheduler.core.timecheck import parse_clock
from demo_scheduler.domain import DemoRequest


def is_pool_member(request: DemoRequest, role: str, current_user: str) -> bool:
    status = request.status
    if status not in lifecycle.STATUSES:
        return False
    if status == lifecycle.RESCHEDULED:
        return not request.is_assigned
    if status == lifecycle.CANCELLED:
        # Listed for visibility only; placement rejects it.
        return not request.is_assigned
    if status == lifecycle.PLANNED and not request.is_assigned:
        if is_recipe_author(role):
            return same_identity(request.assignee, current_user)
        return bool(request.recipes)
    return False


def _schedule_key(request: DemoRequest) -> tuple[date, int]:
    minutes = parse_clock(request.demo_time)
    return request.demo_date, minutes if minutes is not None else 24 * 60


def unassigned_pool(
    requests: Iterable[DemoRequest],
    role: str,
    current_user: str,
    *,
    on_date: date | None = None,
) -> list[DemoRequest]:
    """Return the requests ``current_user`` may act on next, earliest date and time first.

    Presales users see their own planned requests whether or not recipes were
    added yet; every other role only sees requests that already carry a
    recipe. Rescheduled and cancelled requests without a team are shown to
    everyone.
    """

    pool = [request for request in requests if is_pool_member(request, role, current_user)]
    if on_date is not None:
        pool = [request for request in pool if request.demo_date == on_date]
    return sorted(pool, key=_schedule_key)


def is_draggable(request: DemoRequest, today: date) -> bool:
    """Whether the request may be dropped onto the grid today."""

    if request.status == lifecycle.RESCHEDULED:
        return True
    return request.status == lifecycle.PLANNED and request.demo_date == today
