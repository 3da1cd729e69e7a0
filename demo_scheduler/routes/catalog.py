from __future__ import annotations

import httpx
from fastapi import APIRouter, HTTPException

from demo_scheduler.application import get_scheduling_service
from demo_scheduler.core.schema import RecipeModel, TeamModel

router = APIRouter(tags=["catalog"])


@router.get("/teams")
async def list_teams() -> dict:
    service = get_scheduling_service()
    return {
        "items": [TeamModel.from_domain(team).model_dump() for team in service.teams],
        "member_policy": service.member_policy,
    }


@router.get("/slots")
async def list_slots() -> dict:
    return {"items": get_scheduling_service().slots}


@router.get("/recipes")
async def list_recipes() -> dict:
    service = get_scheduling_service()
    try:
        entries = await service.recipes()
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail=f"recipe catalog unavailable: {exc}") from exc
    return {"items": [RecipeModel.from_entry(entry).model_dump() for entry in entries]}
