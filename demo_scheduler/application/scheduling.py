"""Application service coordinating the demo schedule for one session."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date
from typing import Callable, Sequence

from demo_scheduler.core import lifecycle
from demo_scheduler.core.config import DEFAULT_SLOTS, Settings, default_teams, load_teams_config
from demo_scheduler.core.eligibility import is_draggable, unassigned_pool
from demo_scheduler.core.errors import Forbidden, PersistenceError, PlacementError, RequestNotFound
from demo_scheduler.core.grid import build_grid
from demo_scheduler.core.members import FULL_ROSTER, RotationCounters, build_member_strategy
from demo_scheduler.core.placement import PlacementEngine, PlacementOutcome
from demo_scheduler.core.reporting import status_report
from demo_scheduler.core.roles import KNOWN_ROLES, is_recipe_author, is_scheduler, normalize_role, same_identity
from demo_scheduler.core.timecheck import compatible_slots
from demo_scheduler.domain import DemoRequest, GridCell, Team
from demo_scheduler.extractors.recipe_sheet import RecipeEntry
from demo_scheduler.infrastructure import (
    DemoRequestRepository,
    InMemoryDemoRequestRepository,
    MediaFile,
    MediaUploadResult,
    RecipeCatalog,
    SheetDemoRequestRepository,
    SheetRecipeCatalog,
    StaticRecipeCatalog,
    get_media_client,
)

logger = logging.getLogger(__name__)


class SchedulingService:
    """Owns the request snapshot and serialises every write to it.

    The snapshot is loaded lazily from the repository. Mutations are applied
    locally first and then written through; a failed write leaves the local
    change in place and the request id in :attr:`unsaved` until a retry
    succeeds or the snapshot is refreshed.
    """

    def __init__(
        self,
        repository: DemoRequestRepository,
        teams: Sequence[Team] | None = None,
        slots: Sequence[str] | None = None,
        *,
        member_policy: str = FULL_ROSTER,
        recipe_catalog: RecipeCatalog | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.repository = repository
        self._teams = list(teams) if teams is not None else default_teams()
        self._slots = list(slots) if slots is not None else list(DEFAULT_SLOTS)
        self._recipe_catalog = recipe_catalog or StaticRecipeCatalog()
        self._today = today
        self._counters = RotationCounters()
        self._engine = PlacementEngine(
            repository,
            self._teams,
            self._slots,
            build_member_strategy(member_policy, self._counters),
            today=today,
        )
        self._requests: dict[str, DemoRequest] = {}
        self._loaded = False
        self._lock = asyncio.Lock()
        self.unsaved: set[str] = set()

    # ------------------------------------------------------------------
    # snapshot
    # ------------------------------------------------------------------
    def _load(self) -> None:
        requests = self.repository.fetch_all()
        if self.unsaved:
            logger.warning("Discarding %d unsaved changes on refresh: %s", len(self.unsaved), sorted(self.unsaved))
        self._requests = {request.id: request for request in requests}
        self.unsaved.clear()
        self._loaded = True
        logger.info("Loaded %d demo requests", len(self._requests))

    async def refresh(self) -> list[DemoRequest]:
        async with self._lock:
            await asyncio.to_thread(self._load)
            return list(self._requests.values())

    async def _snapshot(self) -> list[DemoRequest]:
        if not self._loaded:
            async with self._lock:
                if not self._loaded:
                    await asyncio.to_thread(self._load)
        return list(self._requests.values())

    def _get(self, request_id: str) -> DemoRequest:
        request = self._requests.get(request_id)
        if request is None:
            raise RequestNotFound(request_id)
        return request

    async def _write(self, request: DemoRequest) -> DemoRequest:
        try:
            await asyncio.to_thread(self._engine.persist, request)
        except PersistenceError:
            self.unsaved.add(request.id)
            raise
        self.unsaved.discard(request.id)
        return request

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    @property
    def teams(self) -> list[Team]:
        return list(self._teams)

    @property
    def slots(self) -> list[str]:
        return list(self._slots)

    @property
    def member_policy(self) -> str:
        return getattr(self._engine.member_strategy, "name", FULL_ROSTER)

    def today(self) -> date:
        return self._today()

    def is_draggable(self, request: DemoRequest, today: date | None = None) -> bool:
        return not request.is_assigned and is_draggable(request, today or self._today())

    async def list_requests(self) -> list[DemoRequest]:
        return await self._snapshot()

    async def get_request(self, request_id: str) -> DemoRequest:
        await self._snapshot()
        return self._get(request_id)

    async def pool(self, role: str, current_user: str, *, on_date: date | None = None) -> list[DemoRequest]:
        return unassigned_pool(await self._snapshot(), role, current_user, on_date=on_date)

    async def grid(self) -> list[list[GridCell]]:
        return build_grid(await self._snapshot(), self._teams, self._slots)

    async def check(self, request_id: str, team: int, slot: str, acting_role: str) -> dict[str, object]:
        """Report whether a drop would be accepted, without mutating anything."""

        requests = await self._snapshot()
        request = self._get(request_id)
        try:
            self._engine.validate(request, team, slot, acting_role, requests)
        except PlacementError as exc:
            return {"allowed": False, "code": exc.code, "reason": str(exc)}
        return {"allowed": True, "code": None, "reason": None}

    async def suggested_slots(self, request_id: str) -> list[str]:
        await self._snapshot()
        return compatible_slots(self._get(request_id).demo_time, self._slots)

    async def report(self, start: date, end: date) -> dict[str, object]:
        return status_report(await self._snapshot(), start, end)

    async def recipes(self) -> list[RecipeEntry]:
        return await asyncio.to_thread(self._recipe_catalog.list_recipes)

    # ------------------------------------------------------------------
    # commands
    # ------------------------------------------------------------------
    async def place(self, request_id: str, team: int, slot: str, acting_role: str) -> PlacementOutcome:
        await self._snapshot()
        async with self._lock:
            request = self._get(request_id)
            outcome = self._engine.apply(request, team, slot, acting_role, list(self._requests.values()))
            await self._write(outcome.request)
            outcome.persisted = True
            return outcome

    async def retry_persist(self, request_id: str) -> DemoRequest:
        await self._snapshot()
        async with self._lock:
            request = self._get(request_id)
            if request.id not in self.unsaved:
                logger.info("Retry requested for %s with no pending write", request.id)
            return await self._write(request)

    async def create_request(
        self,
        *,
        client_name: str,
        client_email: str,
        demo_date: date,
        created_by: str,
        acting_role: str,
        client_mobile: str = "",
        demo_time: str | None = None,
        recipes: list[str] | None = None,
        notes: str = "",
    ) -> DemoRequest:
        """Register a demo raised by the kitchen rather than by sales.

        The request starts ``planned`` and unassigned, with no sales rep or
        presales assignee.
        """

        if not is_scheduler(acting_role):
            raise Forbidden(acting_role, "create kitchen requests")
        await self._snapshot()
        async with self._lock:
            request = DemoRequest(
                id=f"kitchen-{uuid.uuid4().hex[:12]}",
                client_name=client_name,
                client_email=client_email,
                client_mobile=client_mobile,
                demo_date=demo_date,
                demo_time=demo_time,
                status=lifecycle.PLANNED,
                recipes=list(recipes or []),
                notes=notes or f"Kitchen request by {created_by or 'head chef'}",
            )
            self._requests[request.id] = request
            logger.info("Kitchen request %s created by %s for %s on %s", request.id, created_by, client_name, demo_date)
            return await self._write(request)

    async def record_external_status(
        self,
        request_id: str,
        status: str,
        *,
        release_slot: bool = False,
        acting_user: str = "",
        acting_role: str = "",
    ) -> DemoRequest:
        """Apply a status change coming from the sales workflow.

        Requests whose stored status is not recognised are read-only and
        raise :class:`UnknownStatus`.
        """

        if normalize_role(acting_role) not in KNOWN_ROLES:
            raise Forbidden(acting_role, "change demo status")
        await self._snapshot()
        async with self._lock:
            request = self._get(request_id)
            new_status = lifecycle.transition(
                lifecycle.ensure_known(request.status),
                lifecycle.normalize_status(status, default=None),
            )
            previous = request.status
            request.status = new_status
            if release_slot and request.is_assigned:
                logger.info("Releasing team %s / %s held by %s", request.assigned_team, request.assigned_slot, request.id)
                request.assigned_team = None
                request.assigned_slot = None
                request.assigned_members = []
            logger.info(
                "Status of %s changed %s -> %s by %s (%s)",
                request.id,
                previous,
                new_status,
                acting_user or "unknown user",
                normalize_role(acting_role),
            )
            return await self._write(request)

    async def attach_recipes(self, request_id: str, recipes: list[str], current_user: str, role: str) -> DemoRequest:
        await self._snapshot()
        async with self._lock:
            request = self._get(request_id)
            if not is_recipe_author(role) or not same_identity(request.assignee, current_user):
                raise Forbidden(role, "edit recipes for this demo request")
            lifecycle.ensure_known(request.status)
            request.recipes = list(recipes)
            logger.info("Recipes for %s set to %s", request.id, ", ".join(recipes) or "none")
            return await self._write(request)

    async def attach_media(self, request_id: str, files: list[MediaFile]) -> MediaUploadResult:
        await self._snapshot()
        request = self._get(request_id)
        lifecycle.ensure_known(request.status)
        folder = f"{request.client_name} {request.demo_date.isoformat()}"
        result = await asyncio.to_thread(get_media_client().upload, folder, files)
        if not result.link:
            logger.warning("Media upload for %s produced no link: %s", request_id, result.failed)
            return result
        async with self._lock:
            request.media_link = result.link
            await self._write(request)
        return result

    def reset_rotation(self, acting_role: str) -> None:
        if not is_scheduler(acting_role):
            raise Forbidden(acting_role, "reset the member rotation")
        self._counters.reset()
        logger.info("Member rotation counters reset")

    def rotation_snapshot(self) -> dict[int, int]:
        return self._counters.snapshot()

    def close(self) -> None:
        """Release HTTP clients held by the repository and recipe catalog."""
        for resource in (self.repository, self._recipe_catalog):
            close = getattr(resource, "close", None)
            if callable(close):
                close()


def build_scheduling_service(settings: Settings) -> SchedulingService:
    """Wire the service from runtime settings."""

    if settings.demo_sheet_csv_url:
        repository: DemoRequestRepository = SheetDemoRequestRepository(
            settings.demo_sheet_csv_url,
            write_url=settings.demo_sheet_write_url,
            today=settings.today,
        )
    else:
        repository = InMemoryDemoRequestRepository(enforce_versions=settings.enforce_versions)

    catalog: RecipeCatalog
    if settings.recipe_sheet_csv_url:
        catalog = SheetRecipeCatalog(settings.recipe_sheet_csv_url)
    else:
        catalog = StaticRecipeCatalog()

    teams, slots = load_teams_config(settings.teams_file)
    return SchedulingService(
        repository,
        teams,
        slots,
        member_policy=settings.member_policy,
        recipe_catalog=catalog,
        today=settings.today,
    )


_service: SchedulingService | None = None


def configure_scheduling_service(service: SchedulingService) -> None:
    global _service
    _service = service


def get_scheduling_service() -> SchedulingService:
    """Return the singleton scheduling service for the process."""

    global _service
    if _service is None:
        _service = SchedulingService(InMemoryDemoRequestRepository())
    return _service


def reset_scheduling_state() -> None:
    """Drop the configured service (used in tests)."""

    global _service
    _service = None
