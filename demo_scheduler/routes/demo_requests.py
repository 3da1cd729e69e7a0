from __future__ import annotations

from datetime import date
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from demo_scheduler.application import get_scheduling_service
from demo_scheduler.core.errors import SchedulingError
from demo_scheduler.core.schema import (
    DemoRequestModel,
    KitchenRequestPayload,
    PlacementPayload,
    RecipesPayload,
    StatusUpdatePayload,
)
from demo_scheduler.infrastructure import MediaFile, MediaUploadError
from demo_scheduler.routes.dependencies import Identity, get_identity, to_http_error

router = APIRouter(prefix="/demo-requests", tags=["demo-requests"])


def _dump(request) -> dict:
    return DemoRequestModel.from_domain(request).model_dump(mode="json")


@router.get("")
async def list_demo_requests(status: str | None = Query(default=None)) -> dict:
    service = get_scheduling_service()
    try:
        items = await service.list_requests()
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    if status:
        items = [item for item in items if item.status == status]
    return {"items": [_dump(item) for item in items]}


@router.post("")
async def create_kitchen_request(
    payload: KitchenRequestPayload,
    identity: Identity = Depends(get_identity),
) -> dict:
    """Register a demo raised by the head chef."""
    service = get_scheduling_service()
    try:
        request = await service.create_request(
            client_name=payload.client_name,
            client_email=payload.client_email,
            demo_date=payload.demo_date,
            created_by=identity.name,
            acting_role=identity.role,
            client_mobile=payload.client_mobile,
            demo_time=payload.demo_time,
            recipes=payload.recipes,
            notes=payload.notes,
        )
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    return {"request": _dump(request)}


@router.post("/refresh")
async def refresh_demo_requests() -> dict:
    service = get_scheduling_service()
    try:
        items = await service.refresh()
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    return {"items": [_dump(item) for item in items], "count": len(items)}


@router.get("/pool")
async def get_unassigned_pool(
    on_date: date | None = Query(default=None, alias="date"),
    identity: Identity = Depends(get_identity),
) -> dict:
    service = get_scheduling_service()
    try:
        items = await service.pool(identity.role, identity.name, on_date=on_date)
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    today = service.today()
    return {
        "items": [
            {**_dump(item), "draggable": service.is_draggable(item, today)}
            for item in items
        ]
    }


@router.get("/{request_id}")
async def get_demo_request(request_id: str) -> dict:
    service = get_scheduling_service()
    try:
        request = await service.get_request(request_id)
        slots = await service.suggested_slots(request_id)
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    return {**_dump(request), "compatible_slots": slots}


@router.post("/{request_id}/placement")
async def place_demo_request(
    request_id: str,
    payload: PlacementPayload,
    identity: Identity = Depends(get_identity),
) -> dict:
    service = get_scheduling_service()
    try:
        outcome = await service.place(request_id, payload.team, payload.slot, identity.role)
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    return {
        "request": _dump(outcome.request),
        "previous_status": outcome.previous_status,
        "persisted": outcome.persisted,
    }


@router.post("/{request_id}/placement/retry")
async def retry_placement_write(request_id: str) -> dict:
    service = get_scheduling_service()
    try:
        request = await service.retry_persist(request_id)
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    return {"request": _dump(request), "persisted": True}


@router.get("/{request_id}/placement/check")
async def check_placement(
    request_id: str,
    team: int = Query(...),
    slot: str = Query(...),
    identity: Identity = Depends(get_identity),
) -> dict:
    service = get_scheduling_service()
    try:
        return await service.check(request_id, team, slot, identity.role)
    except SchedulingError as exc:
        raise to_http_error(exc) from exc


@router.put("/{request_id}/status")
async def update_status(
    request_id: str,
    payload: StatusUpdatePayload,
    identity: Identity = Depends(get_identity),
) -> dict:
    service = get_scheduling_service()
    try:
        request = await service.record_external_status(
            request_id,
            payload.status,
            release_slot=payload.release_slot,
            acting_user=identity.name,
            acting_role=identity.role,
        )
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    return {"request": _dump(request)}


@router.put("/{request_id}/recipes")
async def update_recipes(
    request_id: str,
    payload: RecipesPayload,
    identity: Identity = Depends(get_identity),
) -> dict:
    service = get_scheduling_service()
    try:
        request = await service.attach_recipes(request_id, payload.recipes, identity.name, identity.role)
    except SchedulingError as exc:
        raise to_http_error(exc) from exc
    return {"request": _dump(request)}


@router.post("/{request_id}/media")
async def upload_media(request_id: str, files: list[UploadFile] = File(...)) -> dict:
    """Upload demo photos or videos and store the shared folder link."""
    if not files:
        raise HTTPException(status_code=400, detail="At least one file must be provided")

    media: list[MediaFile] = []
    for upload in files:
        try:
            if not upload.filename:
                raise HTTPException(status_code=400, detail="Uploaded file must have a filename")
            content = await upload.read()
            media.append(MediaFile(filename=Path(upload.filename).name, content=content, content_type=upload.content_type))
        finally:
            await upload.close()

    service = get_scheduling_service()
    try:
        result = await service.attach_media(request_id, media)
    except MediaUploadError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except SchedulingError as exc:
        raise to_http_error(exc) from exc

    return {
        "link": result.link,
        "uploaded": result.uploaded,
        "failed": result.failed,
        "provider": result.provider,
    }
