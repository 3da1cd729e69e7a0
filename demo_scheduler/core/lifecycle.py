"""Demo request status lifecycle.

``planned`` is the initial state. The core itself only ever performs
``rescheduled -> planned`` (on placement); every other change comes from
the upstream sales workflow. Assignment fields are never touched here.
"""
from __future__ import annotations

import logging

from demo_scheduler.core.errors import IllegalTransition, UnknownStatus

logger = logging.getLogger(__name__)

PLANNED = "planned"
RESCHEDULED = "rescheduled"
CANCELLED = "cancelled"
GIVEN = "given"

STATUSES = (PLANNED, RESCHEDULED, CANCELLED, GIVEN)
LIVE_STATUSES = frozenset({PLANNED, RESCHEDULED})

SOURCE_PLACEMENT = "placement"
SOURCE_EXTERNAL = "external"

_TRANSITIONS: dict[tuple[str, str], str] = {
    (PLANNED, RESCHEDULED): SOURCE_EXTERNAL,
    (RESCHEDULED, PLANNED): SOURCE_PLACEMENT,
    (PLANNED, CANCELLED): SOURCE_EXTERNAL,
    (RESCHEDULED, CANCELLED): SOURCE_EXTERNAL,
    (PLANNED, GIVEN): SOURCE_EXTERNAL,
    (RESCHEDULED, GIVEN): SOURCE_EXTERNAL,
    (CANCELLED, GIVEN): SOURCE_EXTERNAL,
}

_SHEET_SPELLINGS: dict[str, str] = {
    "demo planned": PLANNED,
    "planned": PLANNED,
    "demo rescheduled": RESCHEDULED,
    "rescheduled": RESCHEDULED,
    "demo reschedule": RESCHEDULED,
    "reschedule": RESCHEDULED,
    "demo cancelled": CANCELLED,
    "cancelled": CANCELLED,
    "canceled": CANCELLED,
    "demo cancel": CANCELLED,
    "cancel": CANCELLED,
    "demo given": GIVEN,
    "given": GIVEN,
    "completed": GIVEN,
    "done": GIVEN,
}


def ensure_known(status: object) -> str:
    if status not in STATUSES:
        raise UnknownStatus(status)
    return status  # type: ignore[return-value]


def is_live(status: str) -> bool:
    return status in LIVE_STATUSES


def normalize_status(raw: object, *, default: str | None = PLANNED) -> str:
    """Map the spellings found in the sales sheet onto a lifecycle state.

    Unknown values fall back to ``default``; pass ``default=None`` to get
    :class:`UnknownStatus` instead.
    """

    label = " ".join(str(raw or "").strip().lower().replace("_", " ").split())
    status = _SHEET_SPELLINGS.get(label)
    if status is not None:
        return status
    if default is None:
        raise UnknownStatus(raw)
    logger.warning("Unknown lead status %r, defaulting to %s", raw, default)
    return default


def can_transition(current: str, new: str, *, source: str = SOURCE_EXTERNAL) -> bool:
    if current not in STATUSES or new not in STATUSES:
        return False
    return _TRANSITIONS.get((current, new)) == source


def transition(current: str, new: str, *, source: str = SOURCE_EXTERNAL) -> str:
    """Validate a status change and return the new status."""

    ensure_known(current)
    ensure_known(new)
    if current == new:
        return new
    if not can_transition(current, new, source=source):
        raise IllegalTransition(current, new)
    return new


def status_after_placement(current: str) -> str:
    ensure_known(current)
    if current == RESCHEDULED:
        return transition(current, PLANNED, source=SOURCE_PLACEMENT)
    return current
