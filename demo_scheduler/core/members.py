"""Policies deciding which team members are attached to a placement."""
from __future__ import annotations

import logging
from typing import Protocol

from demo_scheduler.domain import Team

logger = logging.getLogger(__name__)

ROUND_ROBIN = "round_robin"
FULL_ROSTER = "full_roster"


class MemberStrategy(Protocol):
    """Contract for member assignment policies."""

    def assign(self, team: Team) -> list[str]:
        """Return the member names to store on the placed request."""


class RotationCounters:
    """Per-team rotation counters.

    Counters only grow; they are cleared by :meth:`reset` (typically at a
    day boundary) and never automatically.
    """

    def __init__(self) -> None:
        self._counters: dict[int, int] = {}

    def next(self, team_id: int) -> int:
        value = self._counters.get(team_id, 0)
        self._counters[team_id] = value + 1
        return value

    def snapshot(self) -> dict[int, int]:
        return dict(self._counters)

    def reset(self) -> None:
        self._counters.clear()


class RoundRobinStrategy:
    """Attach one member per placement, cycling through the roster."""

    name = ROUND_ROBIN

    def __init__(self, counters: RotationCounters) -> None:
        self.counters = counters

    def assign(self, team: Team) -> list[str]:
        if not team.members:
            logger.warning("No members configured for team %s", team.id)
            return []
        counter = self.counters.next(team.id)
        member = team.members[counter % len(team.members)]
        logger.info("Team %s rotation picked %s (%d/%d)", team.id, member, counter % len(team.members) + 1, len(team.members))
        return [member]


class FullRosterStrategy:
    """Attach every member currently on the roster."""

    name = FULL_ROSTER

    def assign(self, team: Team) -> list[str]:
        if not team.members:
            logger.warning("No members configured for team %s", team.id)
        return list(team.members)


def build_member_strategy(policy: str, counters: RotationCounters | None = None) -> MemberStrategy:
    if policy == ROUND_ROBIN:
        return RoundRobinStrategy(counters or RotationCounters())
    if policy == FULL_ROSTER:
        return FullRosterStrategy()
    raise ValueError(f"unknown member policy {policy!r}")
