"""Application services."""

from .scheduling import (
    SchedulingService,
    build_scheduling_service,
    configure_scheduling_service,
    get_scheduling_service,
    reset_scheduling_state,
)

__all__ = [
    "SchedulingService",
    "build_scheduling_service",
    "configure_scheduling_service",
    "get_scheduling_service",
    "reset_scheduling_state",
]
