"""Error taxonomy for the scheduling engine.

Three independent families:

* :class:`PlacementError` - a business rule rejected a user action. Raised
  synchronously before any mutation and never retried automatically.
* :class:`PersistenceError` - the remote store failed to accept a write. The
  local snapshot keeps whatever was already applied.
* :class:`ConsistencyError` - the data itself is corrupt (for example two live
  requests in one grid cell). Indicates a bug or an unreconciled concurrent
  write rather than a user mistake.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from demo_scheduler.domain import DemoRequest


class SchedulingError(Exception):
    """Base class for every error raised by the scheduling core."""


class RequestNotFound(SchedulingError):
    def __init__(self, request_id: str) -> None:
        super().__init__(f"demo request {request_id} not found")
        self.request_id = request_id


# ----------------------------------------------------------------------
# validation
# ----------------------------------------------------------------------
class PlacementError(SchedulingError):
    """A placement was rejected by a business rule."""

    code = "placement_rejected"


class Forbidden(PlacementError):
    code = "forbidden"

    def __init__(self, role: str, action: str = "place demo requests") -> None:
        super().__init__(f"role {role!r} may not {action}")
        self.role = role
        self.action = action


class NotDraggable(PlacementError):
    code = "not_draggable"

    def __init__(self, request_id: str, status: str, reason: str) -> None:
        super().__init__(f"demo request {request_id} ({status}) cannot be placed: {reason}")
        self.request_id = request_id
        self.status = status
        self.reason = reason


class UnknownCell(PlacementError):
    code = "unknown_cell"

    def __init__(self, team: int, slot: str) -> None:
        super().__init__(f"no grid cell for team {team} and slot {slot!r}")
        self.team = team
        self.slot = slot


class SlotOccupied(PlacementError):
    code = "slot_occupied"

    def __init__(self, team: int, slot: str, occupant_id: str) -> None:
        super().__init__(f"team {team} / {slot} is already held by {occupant_id}")
        self.team = team
        self.slot = slot
        self.occupant_id = occupant_id


class TimeConflict(PlacementError):
    code = "time_conflict"

    def __init__(self, client_name: str, requested_time: str | None, slot: str) -> None:
        super().__init__(
            f"{client_name}'s demo is scheduled for {requested_time}, which doesn't fit in the {slot} slot"
        )
        self.client_name = client_name
        self.requested_time = requested_time
        self.slot = slot


# ----------------------------------------------------------------------
# lifecycle
# ----------------------------------------------------------------------
class LifecycleError(SchedulingError):
    """A status change outside the recognised transitions."""


class UnknownStatus(LifecycleError):
    def __init__(self, status: object) -> None:
        super().__init__(f"unrecognised demo status {status!r}")
        self.status = status


class IllegalTransition(LifecycleError):
    def __init__(self, current: str, new: str) -> None:
        super().__init__(f"illegal status transition {current} -> {new}")
        self.current = current
        self.new = new


# ----------------------------------------------------------------------
# persistence
# ----------------------------------------------------------------------
class PersistenceError(SchedulingError):
    """The persistence collaborator failed to store a request.

    ``request`` is the locally mutated request so callers can retry the
    write without re-running validation.
    """

    def __init__(self, message: str, request: "DemoRequest | None" = None) -> None:
        super().__init__(message)
        self.request = request


class StaleWriteError(PersistenceError):
    """The stored row changed since the caller's snapshot was taken."""

    def __init__(self, request: "DemoRequest", stored_version: int) -> None:
        super().__init__(
            f"demo request {request.id} is at version {stored_version}, write was based on {request.version}",
            request,
        )
        self.stored_version = stored_version


# ----------------------------------------------------------------------
# consistency
# ----------------------------------------------------------------------
class ConsistencyError(SchedulingError):
    """Stored data violates an invariant."""


class GridConsistencyError(ConsistencyError):
    def __init__(self, team: int, slot: str, request_ids: list[str]) -> None:
        super().__init__(
            f"team {team} / {slot} is held by {len(request_ids)} live requests: {', '.join(request_ids)}"
        )
        self.team = team
        self.slot = slot
        self.request_ids = request_ids
