"""Runtime configuration read from the environment and ``config/teams.yaml``."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import yaml

from demo_scheduler.core.members import FULL_ROSTER
from demo_scheduler.core.timecheck import parse_window
from demo_scheduler.domain import Team

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

DEFAULT_TEAMS: dict[int, list[str]] = {
    1: ["Manish", "Pran Krishna"],
    2: ["Shahid", "Kishore"],
    3: ["Vikas", "Krishna"],
    4: ["Bikram", "Ganesh"],
    5: ["Prathimesh", "Rajesh", "Suresh"],
}

DEFAULT_SLOTS: list[str] = [
    "9:00 AM - 11:00 AM",
    "11:00 AM - 1:00 PM",
    "1:00 PM - 3:00 PM",
    "3:00 PM - 5:00 PM",
    "5:00 PM - 7:00 PM",
]

_TRUE = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    demo_sheet_csv_url: str | None = None
    demo_sheet_write_url: str | None = None
    recipe_sheet_csv_url: str | None = None
    dropbox_access_token: str | None = None
    teams_file: Path = CONFIG_DIR / "teams.yaml"
    member_policy: str = FULL_ROSTER
    enforce_versions: bool = False
    timezone: str = "Asia/Kolkata"
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "Settings":
        origins_env = os.getenv("API_CORS_ORIGINS", "")
        origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
        if not origins:
            origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

        teams_file = os.getenv("DEMO_SCHEDULER_TEAMS_FILE")
        return cls(
            demo_sheet_csv_url=os.getenv("DEMO_SHEET_CSV_URL") or None,
            demo_sheet_write_url=os.getenv("DEMO_SHEET_WRITE_URL") or None,
            recipe_sheet_csv_url=os.getenv("RECIPE_SHEET_CSV_URL") or None,
            dropbox_access_token=os.getenv("DROPBOX_ACCESS_TOKEN") or None,
            teams_file=Path(teams_file) if teams_file else CONFIG_DIR / "teams.yaml",
            member_policy=(os.getenv("DEMO_SCHEDULER_MEMBER_POLICY") or FULL_ROSTER).strip().lower(),
            enforce_versions=(os.getenv("DEMO_SCHEDULER_ENFORCE_VERSIONS") or "").strip().lower() in _TRUE,
            timezone=os.getenv("DEMO_SCHEDULER_TIMEZONE") or "Asia/Kolkata",
            log_level=(os.getenv("DEMO_SCHEDULER_LOG_LEVEL") or "INFO").upper(),
            cors_origins=origins,
        )

    def today(self) -> date:
        """Calendar date in the kitchen's timezone."""

        return datetime.now(ZoneInfo(self.timezone)).date()


def default_teams() -> list[Team]:
    return [Team(id=team_id, name=f"Team {team_id}", members=list(members)) for team_id, members in DEFAULT_TEAMS.items()]


def load_teams_config(path: Path | None = None) -> tuple[list[Team], list[str]]:
    """Load teams and slots, falling back to the built-in roster."""

    path = path or CONFIG_DIR / "teams.yaml"
    if not path.exists():
        logger.info("Teams file %s not found, using built-in defaults", path)
        return default_teams(), list(DEFAULT_SLOTS)

    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}

    teams: list[Team] = []
    seen: set[int] = set()
    for entry in data.get("teams") or []:
        team_id = int(entry["id"])
        if team_id in seen:
            raise ValueError(f"duplicate team id {team_id} in {path}")
        seen.add(team_id)
        members = [str(member).strip() for member in entry.get("members") or [] if str(member).strip()]
        teams.append(Team(id=team_id, name=str(entry.get("name") or f"Team {team_id}"), members=members))

    slots = [str(slot).strip() for slot in data.get("slots") or [] if str(slot).strip()]
    for slot in slots:
        if parse_window(slot) is None:
            raise ValueError(f"slot {slot!r} in {path} is not a 'H:MM AM - H:MM PM' window")
    if len(set(slots)) != len(slots):
        raise ValueError(f"duplicate slot labels in {path}")

    return teams or default_teams(), slots or list(DEFAULT_SLOTS)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
