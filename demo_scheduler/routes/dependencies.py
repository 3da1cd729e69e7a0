"""Shared route helpers: caller identity and error translation."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Header, HTTPException

from demo_scheduler.core.errors import (
    ConsistencyError,
    Forbidden,
    IllegalTransition,
    PersistenceError,
    PlacementError,
    RequestNotFound,
    SchedulingError,
    StaleWriteError,
    UnknownCell,
    UnknownStatus,
)
from demo_scheduler.core.roles import normalize_role
from demo_scheduler.core.schema import DemoRequestModel

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Identity:
    name: str
    role: str


def get_identity(
    x_user_name: str = Header(default=""),
    x_user_role: str = Header(default=""),
) -> Identity:
    return Identity(name=x_user_name.strip(), role=normalize_role(x_user_role))


def _status_code(exc: SchedulingError) -> int:
    if isinstance(exc, (RequestNotFound, UnknownCell)):
        return 404
    if isinstance(exc, Forbidden):
        return 403
    if isinstance(exc, (PlacementError, IllegalTransition, StaleWriteError)):
        return 409
    if isinstance(exc, UnknownStatus):
        return 400
    if isinstance(exc, PersistenceError):
        return 502
    if isinstance(exc, ConsistencyError):
        return 500
    return 400


def to_http_error(exc: SchedulingError) -> HTTPException:
    code = exc.code if isinstance(exc, PlacementError) else type(exc).__name__
    detail: dict[str, object] = {"code": code, "message": str(exc)}
    if isinstance(exc, PersistenceError) and exc.request is not None:
        # The local change is kept; the client can retry the write.
        detail["request"] = DemoRequestModel.from_domain(exc.request).model_dump(mode="json")
    if isinstance(exc, ConsistencyError):
        logger.error("Consistency error surfaced to client: %s", exc)
    return HTTPException(status_code=_status_code(exc), detail=detail)
