"""Domain entities for demo scheduling."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date


@dataclass(slots=True)
class DemoRequest:
    """A client's product demonstration, optionally placed on the team grid."""

    id: str
    client_name: str
    demo_date: date
    status: str = "planned"
    demo_time: str | None = None
    client_email: str = ""
    client_mobile: str = ""
    sales_rep: str = ""
    assignee: str = ""
    recipes: list[str] = field(default_factory=list)
    notes: str = ""
    media_link: str | None = None
    assigned_team: int | None = None
    assigned_slot: str | None = None
    assigned_members: list[str] = field(default_factory=list)
    version: int = 0

    @property
    def is_assigned(self) -> bool:
        return self.assigned_team is not None

    def copy(self) -> "DemoRequest":
        """Return a copy whose list fields can be mutated independently."""

        return replace(
            self,
            recipes=list(self.recipes),
            assigned_members=list(self.assigned_members),
        )


@dataclass(slots=True)
class Team:
    """A kitchen crew with an ordered roster."""

    id: int
    name: str
    members: list[str] = field(default_factory=list)


@dataclass(slots=True)
class GridCell:
    """One (team, slot) position of the schedule grid."""

    team: int
    slot: str
    request: DemoRequest | None = None
