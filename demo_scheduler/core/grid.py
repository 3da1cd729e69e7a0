"""Team x slot grid reconstructed from the request snapshot."""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

from demo_scheduler.core import lifecycle
from demo_scheduler.core.errors import GridConsistencyError
from demo_scheduler.domain import DemoRequest, GridCell, Team

logger = logging.getLogger(__name__)


def occupant(requests: Iterable[DemoRequest], team: int, slot: str) -> DemoRequest | None:
    """Return the request holding ``(team, slot)``, if any.

    Cancelled and given requests keep their cell; they block placement but
    are not counted when checking that live requests never share a cell.
    """

    live: list[DemoRequest] = []
    retained: DemoRequest | None = None
    for request in requests:
        if request.assigned_team != team or request.assigned_slot != slot:
            continue
        if lifecycle.is_live(request.status):
            live.append(request)
        elif retained is None:
            retained = request

    if len(live) > 1:
        error = GridConsistencyError(team, slot, [request.id for request in live])
        logger.error("Grid invariant violated: %s", error)
        raise error
    if live:
        return live[0]
    return retained


def build_grid(
    requests: Sequence[DemoRequest],
    teams: Sequence[Team],
    slots: Sequence[str],
) -> list[list[GridCell]]:
    """Materialise the grid as rows of slots, one cell per team."""

    return [
        [GridCell(team=team.id, slot=slot, request=occupant(requests, team.id, slot)) for team in teams]
        for slot in slots
    ]
