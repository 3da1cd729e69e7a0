"""Parser for the ``Demo_schedule`` sales sheet exported as CSV.

Canonical column order (headers are matched by keyword first, position
second)::

    Full name | Email | Phone Number | Lead status | Sales rep | Assignee |
    Demo date | Recipes | Team Assignment | Media Link | Assigned Team |
    Assigned Slot

The ``Team Assignment`` cell is written back by the scheduler as
``"Member A, Member B | 9:00 AM - 11:00 AM"``.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import pandas as pd

from demo_scheduler.core import lifecycle
from demo_scheduler.core.errors import UnknownStatus
from demo_scheduler.domain import DemoRequest

logger = logging.getLogger(__name__)

DEFAULT_TIME = "10:00 AM"

COLUMNS: list[tuple[str, list[str]]] = [
    ("client_name", ["full name", "client name", "name"]),
    ("client_email", ["email"]),
    ("client_mobile", ["phone", "mobile"]),
    ("status", ["lead status", "status"]),
    ("sales_rep", ["sales rep"]),
    ("assignee", ["assignee"]),
    ("demo_datetime", ["demo date", "date"]),
    ("recipes", ["recipe"]),
    ("team_assignment", ["team assignment"]),
    ("media_link", ["media"]),
    ("assigned_team", ["assigned team"]),
    ("assigned_slot", ["assigned slot"]),
]

SHEET_STATUS = {
    lifecycle.PLANNED: "demo_planned",
    lifecycle.RESCHEDULED: "demo_rescheduled",
    lifecycle.CANCELLED: "demo_cancelled",
    lifecycle.GIVEN: "demo_given",
}


@dataclass
class DemoScheduleParseResult:
    requests: list[DemoRequest] = field(default_factory=list)
    skipped_rows: list[int] = field(default_factory=list)


def _normalise_columns(dataframe: pd.DataFrame) -> pd.DataFrame:
    renamed = {col: str(col).strip() for col in dataframe.columns}
    return dataframe.rename(columns=renamed)


def _resolve_columns(columns: list[str]) -> dict[str, str | None]:
    lowered = {column: column.lower() for column in columns}
    resolved: dict[str, str | None] = {}
    taken: set[str] = set()
    for key, keywords in COLUMNS:
        match = None
        for keyword in keywords:
            for column, label in lowered.items():
                if column not in taken and keyword in label:
                    match = column
                    break
            if match:
                break
        if match:
            taken.add(match)
        resolved[key] = match

    # Headerless or renamed sheets: fall back to the canonical positions.
    for position, (key, _) in enumerate(COLUMNS):
        if resolved[key] is None and position < len(columns) and columns[position] not in taken:
            resolved[key] = columns[position]
            taken.add(columns[position])
    return resolved


def _cell(row: pd.Series, column: str | None) -> str:
    if column is None:
        return ""
    value = row.get(column)
    if value is None:
        return ""
    return str(value).strip()


def _clock_from_24h(hours: int, minutes: int) -> str:
    hour12 = 12 if hours % 12 == 0 else hours % 12
    meridiem = "PM" if hours >= 12 else "AM"
    return f"{hour12}:{minutes:02d} {meridiem}"


def _expand_year(year: str) -> int:
    value = int(year)
    if len(year) <= 2:
        return 2000 + value if value < 50 else 1900 + value
    return value


def parse_demo_datetime(raw: str, today: date) -> tuple[date, str]:
    """Split the sheet's ``Demo date`` cell into a date and a 12-hour time."""

    value = str(raw or "").strip()
    if not value:
        return today, DEFAULT_TIME

    try:
        if ";" in value:
            date_part, _, time_part = value.partition(";")
            day, month, year = date_part.strip().split("/")
            parsed = date(_expand_year(year), int(month), int(day))
            time_text = DEFAULT_TIME
            if time_part.strip():
                hours, minutes = time_part.strip().split(":")[:2]
                time_text = _clock_from_24h(int(hours), int(minutes))
            return parsed, time_text

        if "/" in value:
            date_part, _, rest = value.partition(" ")
            day, month, year = date_part.split("/")
            parsed = date(_expand_year(year), int(month), int(day))
            return parsed, rest.strip() or DEFAULT_TIME

        if re.match(r"^\d{4}-\d{2}-\d{2}", value):
            stamp = datetime.fromisoformat(value.replace("Z", "+00:00"))
            has_time = "T" in value or " " in value
            return stamp.date(), _clock_from_24h(stamp.hour, stamp.minute) if has_time else DEFAULT_TIME

        stamp = pd.to_datetime(value, errors="coerce")
        if not pd.isna(stamp):
            return stamp.date(), DEFAULT_TIME
    except (ValueError, TypeError):
        pass

    logger.warning("Failed to parse demo date %r, using %s", raw, today.isoformat())
    return today, DEFAULT_TIME


def parse_team_assignment(value: str) -> tuple[list[str], str | None]:
    """Return ``(members, slot)`` from a ``"A, B | slot"`` cell."""

    text = str(value or "").strip()
    if not text:
        return [], None
    members_part, _, slot_part = text.partition("|")
    members = [name.strip() for name in members_part.split(",") if name.strip()]
    return members, slot_part.strip() or None


def _parse_team_id(value: str) -> int | None:
    match = re.search(r"\d+", value or "")
    return int(match.group()) if match else None


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in str(value or "").split(",") if item.strip()]


def _lead_status(raw: str, row_number: int) -> str:
    """Canonical status, or the raw cell text when it is not recognised.

    Requests keeping a raw status are read-only: they never enter the pool,
    cannot be placed and refuse status changes.
    """

    if not raw:
        return lifecycle.PLANNED
    try:
        return lifecycle.normalize_status(raw, default=None)
    except UnknownStatus:
        logger.warning("Row %d has unrecognised lead status %r; keeping it read-only", row_number, raw)
        return raw


def row_to_request(row: pd.Series, columns: dict[str, str | None], row_number: int, today: date) -> DemoRequest | None:
    client_name = _cell(row, columns["client_name"])
    assignee = _cell(row, columns["assignee"])
    if not client_name or not assignee:
        return None

    demo_date, demo_time = parse_demo_datetime(_cell(row, columns["demo_datetime"]), today)
    members, scheduled_slot = parse_team_assignment(_cell(row, columns["team_assignment"]))

    assigned_team = _parse_team_id(_cell(row, columns["assigned_team"]))
    assigned_slot = _cell(row, columns["assigned_slot"]) or None
    if assigned_team is not None and assigned_slot is None:
        assigned_slot = scheduled_slot
    if (assigned_team is None) != (assigned_slot is None):
        logger.warning(
            "Row %d (%s) has a partial assignment (team=%s, slot=%s); treating it as unassigned",
            row_number,
            client_name,
            assigned_team,
            assigned_slot,
        )
        assigned_team = None
        assigned_slot = None

    media_link = _cell(row, columns["media_link"]) or None
    return DemoRequest(
        id=f"csv-demo-{row_number}",
        client_name=client_name,
        client_email=_cell(row, columns["client_email"]),
        client_mobile=_cell(row, columns["client_mobile"]),
        sales_rep=_cell(row, columns["sales_rep"]),
        assignee=assignee.lower(),
        status=_lead_status(_cell(row, columns["status"]), row_number),
        demo_date=demo_date,
        demo_time=demo_time,
        recipes=_split_list(_cell(row, columns["recipes"])),
        notes=_cell(row, columns["team_assignment"]),
        media_link=media_link,
        assigned_team=assigned_team,
        assigned_slot=assigned_slot,
        assigned_members=members if assigned_team is not None else [],
    )


def parse_text(text: str, *, today: date | None = None) -> DemoScheduleParseResult:
    today = today or date.today()
    if not text or not text.strip():
        return DemoScheduleParseResult()

    dataframe = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    dataframe = _normalise_columns(dataframe)
    columns = _resolve_columns(list(dataframe.columns))

    result = DemoScheduleParseResult()
    for position, (_, row) in enumerate(dataframe.iterrows(), start=1):
        request = row_to_request(row, columns, position, today)
        if request is None:
            result.skipped_rows.append(position)
            continue
        result.requests.append(request)

    logger.info(
        "Parsed %d demo requests (%d assigned, %d rows skipped)",
        len(result.requests),
        sum(1 for request in result.requests if request.is_assigned),
        len(result.skipped_rows),
    )
    return result


def request_to_row_update(request: DemoRequest) -> dict[str, Any]:
    """Payload for the sheet's row update endpoint."""

    team_member = ", ".join(request.assigned_members)
    if request.assigned_slot:
        team_member = f"{team_member} | {request.assigned_slot}" if team_member else f"| {request.assigned_slot}"

    return {
        "id": request.id,
        "clientName": request.client_name,
        "clientEmail": request.client_email,
        "leadStatus": SHEET_STATUS.get(request.status, request.status),
        "recipes": list(request.recipes),
        "mediaLink": request.media_link,
        "assignedTeam": request.assigned_team,
        "assignedSlot": request.assigned_slot,
        "assignedMembers": list(request.assigned_members),
        "teamMember": team_member,
        "version": request.version,
    }
