"""Validation and execution of grid placements.

A placement binds one demo request to one empty (team, slot) cell. Checks
run in a fixed order and the first failure wins; nothing is mutated unless
every check passes. Persisting the mutated request is a separate step so
that a failed write can be retried without validating again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Sequence

from demo_scheduler.core import lifecycle
from demo_scheduler.core.eligibility import is_draggable
from demo_scheduler.core.errors import (
    Forbidden,
    NotDraggable,
    PersistenceError,
    PlacementError,
    SlotOccupied,
    TimeConflict,
    UnknownCell,
)
from demo_scheduler.core.grid import occupant
from demo_scheduler.core.members import MemberStrategy
from demo_scheduler.core.roles import is_scheduler
from demo_scheduler.core.timecheck import is_compatible
from demo_scheduler.domain import DemoRequest, Team
from demo_scheduler.infrastructure.demo_requests import DemoRequestRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PlacementOutcome:
    request: DemoRequest
    previous_status: str
    persisted: bool = False


class PlacementEngine:
    def __init__(
        self,
        repository: DemoRequestRepository,
        teams: Sequence[Team],
        slots: Sequence[str],
        member_strategy: MemberStrategy,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._repository = repository
        self._teams = {team.id: team for team in teams}
        self._slots = tuple(slots)
        self._member_strategy = member_strategy
        self._today = today

    @property
    def member_strategy(self) -> MemberStrategy:
        return self._member_strategy

    # ------------------------------------------------------------------
    # validation
    # ------------------------------------------------------------------
    def validate(
        self,
        request: DemoRequest,
        team: int,
        slot: str,
        acting_role: str,
        requests: Sequence[DemoRequest],
    ) -> Team:
        """Raise the first :class:`PlacementError` that applies, else return the team."""

        if not is_scheduler(acting_role):
            raise Forbidden(acting_role)

        if request.status not in lifecycle.STATUSES:
            raise NotDraggable(request.id, str(request.status), "status is not recognised")
        if not is_draggable(request, self._today()):
            if request.status in (lifecycle.CANCELLED, lifecycle.GIVEN):
                reason = f"{request.status} requests are never placed"
            else:
                reason = "planned requests can only be placed on their demo date"
            raise NotDraggable(request.id, request.status, reason)
        if request.is_assigned:
            raise NotDraggable(request.id, request.status, f"already placed on team {request.assigned_team}")

        target = self._teams.get(team)
        if target is None or slot not in self._slots:
            raise UnknownCell(team, slot)

        held_by = occupant(requests, team, slot)
        if held_by is not None:
            raise SlotOccupied(team, slot, held_by.id)

        if not is_compatible(request.demo_time, slot):
            raise TimeConflict(request.client_name, request.demo_time, slot)

        return target

    def can_place(
        self,
        request: DemoRequest,
        team: int,
        slot: str,
        acting_role: str,
        requests: Sequence[DemoRequest],
    ) -> bool:
        """Drag affordance backed by the same checks as the drop."""

        try:
            self.validate(request, team, slot, acting_role, requests)
        except PlacementError:
            return False
        return True

    # ------------------------------------------------------------------
    # execution
    # ------------------------------------------------------------------
    def apply(
        self,
        request: DemoRequest,
        team: int,
        slot: str,
        acting_role: str,
        requests: Sequence[DemoRequest],
    ) -> PlacementOutcome:
        """Validate and mutate ``request`` in place without persisting it."""

        try:
            target = self.validate(request, team, slot, acting_role, requests)
        except PlacementError as exc:
            logger.info("Rejected placement of %s on team %s at %s: %s", request.id, team, slot, exc)
            raise
        previous_status = request.status

        request.status = lifecycle.status_after_placement(previous_status)
        request.assigned_team = target.id
        request.assigned_slot = slot
        request.assigned_members = self._member_strategy.assign(target)

        logger.info(
            "Placed %s (%s) on team %s at %s with %s",
            request.id,
            request.client_name,
            target.id,
            slot,
            ", ".join(request.assigned_members) or "no members",
        )
        return PlacementOutcome(request=request, previous_status=previous_status)

    def persist(self, request: DemoRequest) -> DemoRequest:
        """Hand ``request`` to the persistence collaborator.

        The local request is not rolled back when the write fails; the raised
        :class:`PersistenceError` carries it for a later retry.
        """

        try:
            stored = self._repository.upsert(request)
        except PersistenceError as exc:
            exc.request = request
            logger.warning("Persisting %s failed: %s", request.id, exc)
            raise
        request.version = stored.version
        return request

    def place(
        self,
        request: DemoRequest,
        team: int,
        slot: str,
        acting_role: str,
        requests: Sequence[DemoRequest],
    ) -> PlacementOutcome:
        outcome = self.apply(request, team, slot, acting_role, requests)
        self.persist(outcome.request)
        outcome.persisted = True
        return outcome
