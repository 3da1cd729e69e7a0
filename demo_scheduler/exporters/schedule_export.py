from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Sequence

import pandas as pd

from demo_scheduler.domain import GridCell

FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

_COLUMNS = ["slot", "team", "client", "demo_date", "demo_time", "members", "status"]


def schedule_frame(grid: Sequence[Sequence[GridCell]]) -> pd.DataFrame:
    records = []
    for row in grid:
        for cell in row:
            request = cell.request
            records.append({
                "slot": cell.slot,
                "team": cell.team,
                "client": request.client_name if request else "",
                "demo_date": request.demo_date.isoformat() if request else "",
                "demo_time": (request.demo_time or "") if request else "",
                "members": ", ".join(request.assigned_members) if request else "",
                "status": request.status if request else "",
            })
    return pd.DataFrame(records, columns=_COLUMNS)


def export_schedule(path: Path, grid: Sequence[Sequence[GridCell]], fmt: str = "csv") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(render_schedule(grid, fmt))
    return path


def render_schedule(grid: Sequence[Sequence[GridCell]], fmt: str = "csv") -> bytes:
    if fmt not in FORMATS:
        raise ValueError(f"unsupported export format {fmt!r}")
    df = schedule_frame(grid)
    if fmt == "csv":
        return df.to_csv(index=False).encode("utf-8")
    buffer = BytesIO()
    df.to_excel(buffer, index=False, sheet_name="Schedule", engine="openpyxl")
    return buffer.getvalue()
