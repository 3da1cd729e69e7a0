"""Domain layer definitions."""

from .demo_requests import DemoRequest, GridCell, Team

__all__ = [
    "DemoRequest",
    "GridCell",
    "Team",
]
