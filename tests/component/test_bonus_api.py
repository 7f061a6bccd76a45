import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from elevation_bonus.routers.bonus import get_bonus_service, register_bonus_routes

ADMIN = {"X-Admin-Password": "summit"}


@pytest.fixture
async def client(bonus_service):
    app = FastAPI()
    register_bonus_routes(app)
    app.state.admin_password = "summit"
    app.dependency_overrides[get_bonus_service] = lambda: bonus_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def activate(client: AsyncClient, participant_id: str, **body):
    return await client.post("/bonus/activate", json=body, headers={"X-Participant-Id": participant_id})


@pytest.mark.parametrize("headers", [{}, {"X-Admin-Password": "wrong"}])
async def test_admin_routes_require_the_password(client: AsyncClient, headers):
    response = await client.get("/admin/bonus/alps", headers=headers)
    assert response.status_code == 401

    response = await client.post("/admin/bonus/reset/alps", headers=headers)
    assert response.status_code == 401


async def test_activate_and_list_state(client: AsyncClient):
    response = await activate(client, "alice", bonus_type="multiplier", round_number=1, day_index=2)
    assert response.status_code == 200
    body = response.json()
    assert body["remaining_stock"] == 1
    assert body["usage"]["bonus_type"] == "multiplier"
    assert body["usage"]["status"] == "active"

    response = await client.get("/admin/bonus/alps", headers=ADMIN)
    assert response.status_code == 200
    state = response.json()
    assert [participant["participant_id"] for participant in state["participants"]] == ["alice", "bruno", "chloe"]
    assert state["participants"][0]["bonus_stock"]["multiplier"] == 1
    assert len(state["usages"]) == 1
    assert state["catalog"]["sabotage"]["fixed_amount"] == 250


async def test_activation_without_participant_header(client: AsyncClient):
    response = await client.post("/bonus/activate", json={"bonus_type": "shield", "round_number": 1})
    assert response.status_code == 422


@pytest.mark.parametrize(
    "body, status_code, error",
    [
        ({"bonus_type": "teleport", "round_number": 1}, 400, "UnknownBonusType"),
        ({"bonus_type": "duel", "round_number": 1, "target_id": "bruno"}, 400, "MissingDuelParameters"),
        ({"bonus_type": "sabotage", "round_number": 1}, 400, "MissingTarget"),
        ({"bonus_type": "multiplier", "round_number": 1, "day_index": 5}, 400, "InvalidDayIndex"),
        ({"bonus_type": "shield", "round_number": 5, "is_final_round": True}, 400, "BonusNotUsableNow"),
        ({"bonus_type": "sabotage", "round_number": 1, "target_id": "zoe"}, 404, "NotFound"),
    ],
)
async def test_activation_errors(client: AsyncClient, body, status_code, error):
    response = await activate(client, "alice", **body)
    assert response.status_code == status_code
    assert response.json()["error"] == error


async def test_second_activation_is_a_conflict(client: AsyncClient):
    assert (await activate(client, "bruno", bonus_type="shield", round_number=2)).status_code == 200
    response = await activate(client, "bruno", bonus_type="shield", round_number=2)
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "AlreadyUsedThisRound"
    assert body["detail"]["round_number"] == 2


async def test_set_and_reset_stock(client: AsyncClient):
    response = await client.put("/admin/bonus/stock/chloe", json={"bonus_stock": {"duel": 0}}, headers=ADMIN)
    assert response.status_code == 200
    assert response.json() == {
        "participant_id": "chloe",
        "bonus_stock": {"duel": 0, "multiplier": 2, "shield": 2, "sabotage": 2},
    }

    response = await activate(client, "chloe", bonus_type="duel", round_number=1, target_id="alice", criteria_id="only_run")
    assert response.json()["error"] == "InsufficientStock"

    response = await client.post("/admin/bonus/reset/alps", headers=ADMIN)
    assert response.json() == {"league_id": "alps", "count": 3}


async def test_set_stock_errors(client: AsyncClient):
    response = await client.put("/admin/bonus/stock/chloe", json={"bonus_stock": {"duel": 9}}, headers=ADMIN)
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"

    response = await client.put("/admin/bonus/stock/zoe", json={"bonus_stock": {"duel": 1}}, headers=ADMIN)
    assert response.status_code == 404


async def test_resolve_and_cancel(client: AsyncClient):
    usage_id = (await activate(client, "alice", bonus_type="shield", round_number=1)).json()["usage"]["usage_id"]

    response = await client.post(f"/admin/bonus/resolve/{usage_id}", json={"result": "blocked"}, headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["resolved"] is True
    assert response.json()["result"] == "blocked"

    response = await client.post(f"/admin/bonus/cancel/{usage_id}", headers=ADMIN)
    assert response.json()["status"] == "cancelled"

    response = await client.get("/bonus/active/1")
    assert response.json()["total_active"] == 0


async def test_resolve_unknown_usage(client: AsyncClient):
    response = await client.post(
        "/admin/bonus/resolve/00000000-0000-0000-0000-000000000000", json={"result": 1}, headers=ADMIN
    )
    assert response.status_code == 404


async def test_active_bonuses_and_adjusted_ranking(client: AsyncClient):
    await activate(client, "alice", bonus_type="duel", round_number=3, target_id="bruno", criteria_id="single_distance")
    await activate(client, "chloe", bonus_type="sabotage", round_number=3, target_id="bruno")

    active = (await client.get("/bonus/active/3")).json()
    assert active["total_active"] == 2
    assert [usage["participant_id"] for usage in active["duel"]] == ["alice"]
    assert [usage["target_name"] for usage in active["sabotage"]] == ["Bruno Petit"]

    response = await client.post(
        "/bonus/ranking/3",
        json={
            "ranking": [
                {"participant_id": "bruno", "total": 400},
                {"participant_id": "alice", "total": 1000},
                {"participant_id": "chloe", "total": 60},
            ]
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert [(entry["participant_id"], entry["total"], entry["position"]) for entry in body["ranking"]] == [
        ("alice", 1100, 1),
        ("chloe", 60, 2),
        ("bruno", 50, 3),
    ]
    assert [effect["type"] for effect in body["effects"]] == ["duel_won", "sabotage"]


@pytest.mark.parametrize("round_number", [0, -3])
async def test_activation_with_invalid_round(client: AsyncClient, round_number):
    response = await activate(client, "alice", bonus_type="shield", round_number=round_number)
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"
    assert response.json()["detail"] == {"round_number": round_number}
