from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest
from fastapi.testclient import TestClient

from demo_scheduler.application import (
    SchedulingService,
    configure_scheduling_service,
    get_scheduling_service,
    reset_scheduling_state,
)
from demo_scheduler.core.config import Settings
from demo_scheduler.core.errors import PersistenceError
from demo_scheduler.domain import DemoRequest
from demo_scheduler.extractors.recipe_sheet import RecipeEntry
from demo_scheduler.infrastructure import (
    InMemoryDemoRequestRepository,
    MediaUploadResult,
    NoOpMediaClient,
    StaticRecipeCatalog,
    configure_media_client,
)

TODAY = date(2025, 3, 10)
AFTERNOON = "1:00 PM - 3:00 PM"
MORNING = "9:00 AM - 11:00 AM"
EVENING = "5:00 PM - 7:00 PM"

HEAD_CHEF = {"X-User-Name": "Chef Priya", "X-User-Role": "head_chef"}
SALES = {"X-User-Name": "Ravi", "X-User-Role": "sales"}
ALICE = {"X-User-Name": "Alice", "X-User-Role": "presales"}
BOB = {"X-User-Name": "Bob", "X-User-Role": "presales"}


def _seed() -> list[DemoRequest]:
    return [
        DemoRequest(
            id="acme",
            client_name="Acme Co.",
            client_email="ops@acme.test",
            demo_date=TODAY,
            demo_time="2:00 PM",
            status="planned",
            assignee="alice",
            recipes=["Paella"],
        ),
        DemoRequest(
            id="beta",
            client_name="Beta LLC",
            client_email="hi@beta.test",
            demo_date=TODAY,
            demo_time="10:00 AM",
            status="rescheduled",
            assignee="bob",
        ),
        DemoRequest(
            id="unready",
            client_name="Unready Foods",
            client_email="chef@unready.test",
            demo_date=TODAY,
            demo_time="11:00 AM",
            status="planned",
            assignee="alice",
        ),
        DemoRequest(
            id="done",
            client_name="Done Ltd",
            client_email="team@done.test",
            demo_date=TODAY,
            demo_time="5:30 PM",
            status="given",
            assignee="bob",
            recipes=["Biryani"],
            assigned_team=5,
            assigned_slot=EVENING,
            assigned_members=["Prathimesh", "Rajesh", "Suresh"],
        ),
    ]


class FlakyRepository(InMemoryDemoRequestRepository):
    def __init__(self, requests, failures: int) -> None:
        super().__init__(requests)
        self.failures = failures

    def upsert(self, request: DemoRequest) -> DemoRequest:
        if self.failures:
            self.failures -= 1
            raise PersistenceError("sheet bridge timed out")
        return super().upsert(request)


class RecordingMediaClient:
    def __init__(self) -> None:
        self.folders: list[str] = []

    def upload(self, folder, files):
        self.folders.append(folder)
        return MediaUploadResult(
            link="https://media.test/s/acme",
            uploaded=[item.filename for item in files],
            provider="recording",
        )


def _install(repository: InMemoryDemoRequestRepository, **kwargs) -> SchedulingService:
    service = SchedulingService(repository, today=lambda: TODAY, **kwargs)
    configure_scheduling_service(service)
    return service


@pytest.fixture(autouse=True)
def reset_state():
    reset_scheduling_state()
    configure_media_client(NoOpMediaClient())
    yield
    reset_scheduling_state()
    configure_media_client(NoOpMediaClient())


@pytest.fixture()
def client():
    from demo_scheduler.app import create_app

    app = create_app(Settings(cors_origins=["http://localhost:3000"]))
    _install(
        InMemoryDemoRequestRepository(_seed()),
        recipe_catalog=StaticRecipeCatalog([RecipeEntry(name="Paella"), RecipeEntry(name="Biryani")]),
    )
    with TestClient(app) as test_client:
        yield test_client


def test_root_and_catalog_endpoints(client):
    assert client.get("/").json()["docs"] == "/docs"

    teams = client.get("/api/teams").json()
    assert [team["id"] for team in teams["items"]] == [1, 2, 3, 4, 5]
    assert teams["items"][0]["members"] == ["Manish", "Pran Krishna"]

    assert client.get("/api/slots").json()["items"][0] == MORNING
    assert [item["name"] for item in client.get("/api/recipes").json()["items"]] == ["Paella", "Biryani"]


def test_list_and_get_requests(client):
    items = client.get("/api/demo-requests").json()["items"]
    assert {item["id"] for item in items} == {"acme", "beta", "unready", "done"}

    given = client.get("/api/demo-requests", params={"status": "given"}).json()["items"]
    assert [item["id"] for item in given] == ["done"]

    acme = client.get("/api/demo-requests/acme").json()
    assert acme["compatible_slots"] == [AFTERNOON]

    missing = client.get("/api/demo-requests/nope")
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "RequestNotFound"


def test_pool_depends_on_caller(client):
    chef_pool = client.get("/api/demo-requests/pool", headers=HEAD_CHEF).json()["items"]
    assert [item["client_name"] for item in chef_pool] == ["Beta LLC", "Acme Co."]
    assert all(item["draggable"] for item in chef_pool)

    alice_pool = client.get("/api/demo-requests/pool", headers=ALICE).json()["items"]
    assert [item["id"] for item in alice_pool] == ["beta", "unready", "acme"]

    bob_pool = client.get("/api/demo-requests/pool", headers=BOB).json()["items"]
    assert [item["id"] for item in bob_pool] == ["beta"]

    other_day = client.get("/api/demo-requests/pool", params={"date": "2025-03-11"}, headers=HEAD_CHEF)
    assert other_day.json()["items"] == []


def test_place_and_reject(client):
    check = client.get(
        "/api/demo-requests/acme/placement/check",
        params={"team": 1, "slot": AFTERNOON},
        headers=HEAD_CHEF,
    ).json()
    assert check == {"allowed": True, "code": None, "reason": None}

    response = client.post("/api/demo-requests/acme/placement", json={"team": 1, "slot": AFTERNOON}, headers=HEAD_CHEF)
    assert response.status_code == 200
    body = response.json()
    assert body["persisted"] is True
    assert body["request"]["assigned_members"] == ["Manish", "Pran Krishna"]
    assert body["request"]["version"] == 1

    occupied = client.post("/api/demo-requests/beta/placement", json={"team": 1, "slot": AFTERNOON}, headers=HEAD_CHEF)
    assert occupied.status_code == 409
    assert occupied.json()["detail"]["code"] == "slot_occupied"

    forbidden = client.post("/api/demo-requests/beta/placement", json={"team": 2, "slot": MORNING}, headers=SALES)
    assert forbidden.status_code == 403

    unknown = client.post("/api/demo-requests/beta/placement", json={"team": 8, "slot": MORNING}, headers=HEAD_CHEF)
    assert unknown.status_code == 404
    assert unknown.json()["detail"]["code"] == "unknown_cell"

    conflict = client.get(
        "/api/demo-requests/beta/placement/check",
        params={"team": 2, "slot": EVENING},
        headers=HEAD_CHEF,
    ).json()
    assert conflict["allowed"] is False
    assert conflict["code"] == "time_conflict"

    given = client.post("/api/demo-requests/done/placement", json={"team": 2, "slot": EVENING}, headers=HEAD_CHEF)
    assert given.status_code == 409
    assert given.json()["detail"]["code"] == "not_draggable"

    placed = client.post("/api/demo-requests/beta/placement", json={"team": 2, "slot": MORNING}, headers=HEAD_CHEF)
    assert placed.status_code == 200
    assert placed.json()["previous_status"] == "rescheduled"
    assert placed.json()["request"]["status"] == "planned"

    schedule = client.get("/api/schedule").json()
    assert schedule["slots"][0] == MORNING
    morning = schedule["rows"][0]["cells"]
    assert morning[1]["request"]["id"] == "beta"
    assert morning[0]["request"] is None
    evening = schedule["rows"][4]["cells"]
    assert evening[4]["request"]["id"] == "done"


def test_failed_write_keeps_placement_and_can_be_retried(client):
    service = _install(FlakyRepository(_seed(), failures=1))

    response = client.post("/api/demo-requests/acme/placement", json={"team": 3, "slot": AFTERNOON}, headers=HEAD_CHEF)
    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["code"] == "PersistenceError"
    assert detail["request"]["assigned_team"] == 3
    assert service.unsaved == {"acme"}

    listed = {item["id"]: item for item in client.get("/api/demo-requests").json()["items"]}
    assert listed["acme"]["assigned_slot"] == AFTERNOON

    retry = client.post("/api/demo-requests/acme/placement/retry")
    assert retry.status_code == 200
    assert retry.json()["request"]["version"] == 1
    assert service.unsaved == set()


def test_stale_write_is_reported_when_versions_are_enforced(client):
    repository = InMemoryDemoRequestRepository(_seed(), enforce_versions=True)
    _install(repository)
    client.get("/api/demo-requests")

    concurrent = repository.fetch_all()[0]
    repository.upsert(concurrent)

    response = client.post("/api/demo-requests/acme/placement", json={"team": 1, "slot": AFTERNOON}, headers=HEAD_CHEF)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "StaleWriteError"


def test_external_status_changes(client):
    client.post("/api/demo-requests/acme/placement", json={"team": 1, "slot": AFTERNOON}, headers=HEAD_CHEF)

    released = client.put(
        "/api/demo-requests/acme/status",
        json={"status": "Demo Rescheduled", "release_slot": True},
        headers=SALES,
    )
    assert released.status_code == 200
    request = released.json()["request"]
    assert request["status"] == "rescheduled"
    assert request["assigned_team"] is None and request["assigned_slot"] is None
    assert request["assigned_members"] == []

    pool = client.get("/api/demo-requests/pool", headers=HEAD_CHEF).json()["items"]
    assert "acme" in [item["id"] for item in pool]

    assert client.put("/api/demo-requests/done/status", json={"status": "planned"}, headers=SALES).status_code == 409
    assert client.put("/api/demo-requests/beta/status", json={"status": "on hold"}, headers=SALES).status_code == 400

    cancelled = client.put("/api/demo-requests/beta/status", json={"status": "cancelled"}, headers=HEAD_CHEF)
    assert cancelled.json()["request"]["status"] == "cancelled"


def test_status_change_requires_a_known_role(client):
    anonymous = client.put("/api/demo-requests/beta/status", json={"status": "cancelled"})
    assert anonymous.status_code == 403
    assert anonymous.json()["detail"]["code"] == "forbidden"

    stranger = client.put(
        "/api/demo-requests/beta/status",
        json={"status": "cancelled"},
        headers={"X-User-Name": "Eve", "X-User-Role": "intern"},
    )
    assert stranger.status_code == 403

    beta = client.get("/api/demo-requests/beta").json()
    assert beta["status"] == "rescheduled"
    assert beta["version"] == 0


def test_unrecognised_status_is_read_only(client):
    _install(
        InMemoryDemoRequestRepository(
            _seed()
            + [
                DemoRequest(
                    id="lost",
                    client_name="Lost Bistro",
                    demo_date=TODAY,
                    demo_time="12:00 PM",
                    status="Lost - not interested",
                    assignee="alice",
                    recipes=["Paella"],
                )
            ]
        )
    )

    for headers in (HEAD_CHEF, ALICE):
        pool = client.get("/api/demo-requests/pool", headers=headers).json()["items"]
        assert "lost" not in [item["id"] for item in pool]

    placed = client.post("/api/demo-requests/lost/placement", json={"team": 1, "slot": AFTERNOON}, headers=HEAD_CHEF)
    assert placed.status_code == 409
    assert placed.json()["detail"]["code"] == "not_draggable"

    changed = client.put("/api/demo-requests/lost/status", json={"status": "planned"}, headers=SALES)
    assert changed.status_code == 400
    assert changed.json()["detail"]["code"] == "UnknownStatus"

    lost = client.get("/api/demo-requests/lost").json()
    assert lost["status"] == "Lost - not interested"
    assert lost["assigned_team"] is None


def test_head_chef_creates_kitchen_request(client):
    response = client.post(
        "/api/demo-requests",
        json={
            "clientName": "Gamma Kitchens",
            "clientEmail": "chef@gamma.test",
            "demoDate": "2025-03-10",
            "demoTime": "3:30 PM",
            "recipes": ["Paella"],
        },
        headers=HEAD_CHEF,
    )
    assert response.status_code == 200
    created = response.json()["request"]
    assert created["id"].startswith("kitchen-")
    assert created["status"] == "planned"
    assert created["assigned_team"] is None
    assert created["assignee"] == ""
    assert created["notes"] == "Kitchen request by Chef Priya"
    assert created["version"] == 1

    listed = [item["id"] for item in client.get("/api/demo-requests").json()["items"]]
    assert created["id"] in listed

    pool = client.get("/api/demo-requests/pool", headers=HEAD_CHEF).json()["items"]
    assert created["id"] in [item["id"] for item in pool]

    snake_case = client.post(
        "/api/demo-requests",
        json={"client_name": "Delta", "client_email": "d@delta.test", "demo_date": "2025-03-11"},
        headers=HEAD_CHEF,
    )
    assert snake_case.status_code == 200


def test_kitchen_request_validation_and_roles(client):
    body = {"clientName": "Gamma Kitchens", "clientEmail": "chef@gamma.test", "demoDate": "2025-03-10"}

    assert client.post("/api/demo-requests", json=body, headers=SALES).status_code == 403
    assert client.post("/api/demo-requests", json=body).status_code == 403

    missing_email = {key: value for key, value in body.items() if key != "clientEmail"}
    assert client.post("/api/demo-requests", json=missing_email, headers=HEAD_CHEF).status_code == 422
    assert client.post("/api/demo-requests", json={**body, "clientName": "   "}, headers=HEAD_CHEF).status_code == 422
    assert client.post("/api/demo-requests", json={**body, "demoDate": "next week"}, headers=HEAD_CHEF).status_code == 422

    assert len(client.get("/api/demo-requests").json()["items"]) == 4


def test_recipes_are_edited_by_the_assignee_only(client):
    response = client.put("/api/demo-requests/unready/recipes", json={"recipes": [" Paella ", "", "Paella", "Biryani"]}, headers=ALICE)
    assert response.status_code == 200
    assert response.json()["request"]["recipes"] == ["Paella", "Biryani"]

    assert client.put("/api/demo-requests/unready/recipes", json={"recipes": ["Soup"]}, headers=BOB).status_code == 403
    assert client.put("/api/demo-requests/unready/recipes", json={"recipes": ["Soup"]}, headers=HEAD_CHEF).status_code == 403

    chef_pool = client.get("/api/demo-requests/pool", headers=HEAD_CHEF).json()["items"]
    assert "unready" in [item["id"] for item in chef_pool]


def test_media_upload(client):
    files = [("files", ("plate.jpg", b"jpeg-bytes", "image/jpeg"))]

    skipped = client.post("/api/demo-requests/done/media", files=files).json()
    assert skipped["link"] is None
    assert skipped["failed"] == {"plate.jpg": "media upload not configured"}

    media = RecordingMediaClient()
    configure_media_client(media)
    uploaded = client.post("/api/demo-requests/done/media", files=files).json()
    assert uploaded["link"] == "https://media.test/s/acme"
    assert media.folders == ["Done Ltd 2025-03-10"]

    done = client.get("/api/demo-requests/done").json()
    assert done["media_link"] == "https://media.test/s/acme"
    assert done["version"] == 1


def test_rotation_reset_requires_head_chef(client):
    assert client.post("/api/schedule/rotation/reset", headers=SALES).status_code == 403
    response = client.post("/api/schedule/rotation/reset", headers=HEAD_CHEF)
    assert response.status_code == 200
    assert response.json() == {"policy": "full_roster", "counters": {}}


def test_round_robin_service_rotates_members(client):
    _install(InMemoryDemoRequestRepository(_seed()), member_policy="round_robin")

    first = client.post("/api/demo-requests/acme/placement", json={"team": 1, "slot": AFTERNOON}, headers=HEAD_CHEF)
    second = client.post("/api/demo-requests/beta/placement", json={"team": 1, "slot": MORNING}, headers=HEAD_CHEF)

    assert first.json()["request"]["assigned_members"] == ["Manish"]
    assert second.json()["request"]["assigned_members"] == ["Pran Krishna"]
    assert get_scheduling_service().rotation_snapshot() == {1: 2}


def test_schedule_export(client):
    csv_response = client.get("/api/schedule/export")
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    lines = csv_response.text.strip().splitlines()
    assert lines[0] == "slot,team,client,demo_date,demo_time,members,status"
    assert len(lines) == 1 + 5 * 5
    assert any("Done Ltd" in line and "given" in line for line in lines)

    xlsx_response = client.get("/api/schedule/export", params={"format": "xlsx"})
    assert xlsx_response.status_code == 200
    assert xlsx_response.content[:2] == b"PK"

    assert client.get("/api/schedule/export", params={"format": "pdf"}).status_code == 400


def test_status_report(client):
    report = client.get("/api/reports/status", params={"start": "2025-03-10", "end": "2025-03-10"}).json()

    assert report["totals"] == {"planned": 2, "rescheduled": 1, "cancelled": 0, "given": 1}
    assert report["by_day"] == [
        {"demo_date": "2025-03-10", "planned": 2, "rescheduled": 1, "cancelled": 0, "given": 1, "total": 4}
    ]
    by_team = {item["team"]: item for item in report["by_team"]}
    assert by_team["5"]["given"] == 1
    assert by_team["unassigned"]["total"] == 3

    empty = client.get("/api/reports/status", params={"start": "2025-04-01", "end": "2025-04-02"}).json()
    assert empty["by_day"] == [] and empty["totals"]["planned"] == 0

    assert client.get("/api/reports/status", params={"start": "2025-03-12", "end": "2025-03-10"}).status_code == 400
