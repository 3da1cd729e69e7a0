from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from demo_scheduler.application import get_scheduling_service
from demo_scheduler.core.errors import SchedulingError
from demo_scheduler.core.schema import GridCellModel
from demo_scheduler.exporters.schedule_export import FORMATS, render_schedule
from demo_scheduler.routes.dependencies import Identity, get_identity, to_http_error

router = APIRouter(prefix="/schedule", tags=["schedule"])


@router.get("")
async def get_schedule() -> dict:
    service = get_scheduling_service()
    try:
        grid = await service.grid()
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    return {
        "teams": [team.id for team in service.teams],
        "slots": service.slots,
        "rows": [
            {"slot": slot, "cells": [GridCellModel.from_domain(cell).model_dump(mode="json") for cell in row]}
            for slot, row in zip(service.slots, grid)
        ],
    }


@router.get("/export")
async def export_schedule(fmt: str = Query(default="csv", alias="format")) -> Response:
    if fmt not in FORMATS:
        raise HTTPException(status_code=400, detail=f"format must be one of {', '.join(FORMATS)}")
    service = get_scheduling_service()
    try:
        grid = await service.grid()
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    return Response(
        content=render_schedule(grid, fmt),
        media_type=FORMATS[fmt],
        headers={"Content-Disposition": f'attachment; filename="demo_schedule_{service.today().isoformat()}.{fmt}"'},
    )


@router.post("/rotation/reset")
async def reset_rotation(identity: Identity = Depends(get_identity)) -> dict:
    service = get_scheduling_service()
    try:
        service.reset_rotation(identity.role)
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    return {"policy": service.member_policy, "counters": service.rotation_snapshot()}
