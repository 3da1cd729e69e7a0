from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator

from demo_scheduler.domain import DemoRequest, GridCell, Team
from demo_scheduler.extractors.recipe_sheet import RecipeEntry


class DemoRequestModel(BaseModel):
    id: str
    client_name: str
    client_email: str = ""
    client_mobile: str = ""
    sales_rep: str = ""
    assignee: str = ""
    demo_date: date
    demo_time: str | None = None
    status: str
    recipes: list[str] = Field(default_factory=list)
    notes: str = ""
    media_link: str | None = None
    assigned_team: int | None = None
    assigned_slot: str | None = None
    assigned_members: list[str] = Field(default_factory=list)
    version: int = 0

    @classmethod
    def from_domain(cls, request: DemoRequest) -> "DemoRequestModel":
        return cls(
            id=request.id,
            client_name=request.client_name,
            client_email=request.client_email,
            client_mobile=request.client_mobile,
            sales_rep=request.sales_rep,
            assignee=request.assignee,
            demo_date=request.demo_date,
            demo_time=request.demo_time,
            status=request.status,
            recipes=list(request.recipes),
            notes=request.notes,
            media_link=request.media_link,
            assigned_team=request.assigned_team,
            assigned_slot=request.assigned_slot,
            assigned_members=list(request.assigned_members),
            version=request.version,
        )


class TeamModel(BaseModel):
    id: int
    name: str
    members: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, team: Team) -> "TeamModel":
        return cls(id=team.id, name=team.name, members=list(team.members))


class GridCellModel(BaseModel):
    team: int
    slot: str
    request: DemoRequestModel | None = None

    @classmethod
    def from_domain(cls, cell: GridCell) -> "GridCellModel":
        request = DemoRequestModel.from_domain(cell.request) if cell.request is not None else None
        return cls(team=cell.team, slot=cell.slot, request=request)


class RecipeModel(BaseModel):
    name: str
    image_link: str | None = None
    json_link: str | None = None
    category: str | None = None

    @classmethod
    def from_entry(cls, entry: RecipeEntry) -> "RecipeModel":
        return cls(name=entry.name, image_link=entry.image_link, json_link=entry.json_link, category=entry.category)


# ----------------------------------------------------------------------
# request payloads
# ----------------------------------------------------------------------
class PlacementPayload(BaseModel):
    team: int
    slot: str = Field(min_length=1)


class StatusUpdatePayload(BaseModel):
    status: str = Field(min_length=1)
    release_slot: bool = False


class RecipesPayload(BaseModel):
    recipes: list[str]

    @field_validator("recipes")
    @classmethod
    def _strip_blank(cls, value: list[str]) -> list[str]:
        cleaned: list[str] = []
        for item in value:
            name = item.strip()
            if name and name not in cleaned:
                cleaned.append(name)
        return cleaned


class KitchenRequestPayload(BaseModel):
    """Kitchen request form; accepts the sheet's camelCase keys too."""

    model_config = ConfigDict(populate_by_name=True)

    client_name: str = Field(min_length=1, alias="clientName")
    client_email: str = Field(min_length=3, alias="clientEmail")
    demo_date: date = Field(alias="demoDate")
    client_mobile: str = Field(default="", alias="clientMobile")
    demo_time: str | None = Field(default=None, alias="demoTime")
    recipes: list[str] = Field(default_factory=list)
    notes: str = ""

    @field_validator("client_name", "client_email")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value
