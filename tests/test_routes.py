"""
Tests for the HTTP routes (thin glue over ScheduleManager)
"""

import pytest

MIXED = ["AM", "PM", "Either", "AM", "PM", "Either", "AM", "PM"]


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_create_and_get_schedule(client, seed):
    league = await seed(MIXED)
    week_id = league.week_ids[0]

    created = await client.post(f"/api/weeks/{week_id}/schedule")
    assert created.status_code == 200
    body = created.json()
    assert body["week_id"] == week_id
    assert body["total_players"] == len(MIXED)

    again = await client.post(f"/api/weeks/{week_id}/schedule")
    fetched = await client.get(f"/api/weeks/{week_id}/schedule")
    assert again.json()["id"] == body["id"]
    assert fetched.json()["id"] == body["id"]
    for foursome in fetched.json()["morning"]:
        assert all(p["time_preference"] in ("AM", "Either") for p in foursome["players"])


@pytest.mark.asyncio
async def test_missing_schedule_and_week_are_404(client, seed):
    league = await seed(["AM"])

    assert (await client.get(f"/api/weeks/{league.week_ids[0]}/schedule")).status_code == 404
    assert (await client.post("/api/weeks/99999/schedule")).status_code == 404
    assert (await client.post("/api/weeks/99999/schedule/regenerate")).status_code == 404


@pytest.mark.asyncio
async def test_precondition_failure_is_400(client, seed):
    league = await seed(["AM", "PM"], available=[])

    response = await client.post(f"/api/weeks/{league.week_ids[0]}/schedule")

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Precondition validation failed")


@pytest.mark.asyncio
async def test_regenerate_and_backups(client, seed):
    league = await seed(MIXED)
    week_id = league.week_ids[0]
    schedule_id = (await client.post(f"/api/weeks/{week_id}/schedule")).json()["id"]

    response = await client.post(f"/api/weeks/{week_id}/schedule/regenerate", json={"force_overwrite": True})
    assert response.status_code == 200
    result = response.json()
    assert result["success"] is True
    assert result["new_schedule_id"] == schedule_id
    assert result["changes_detected"]["players_after"] == len(MIXED)

    backups = (await client.get(f"/api/schedules/{schedule_id}/backups")).json()
    assert [b["id"] for b in backups] == [result["backup_id"]]
    assert backups[0]["is_valid"] is True

    restore = await client.post(f"/api/schedules/{schedule_id}/backups/{result['backup_id']}/restore")
    assert restore.status_code == 200
    missing = await client.post(f"/api/schedules/{schedule_id}/backups/9999/restore")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_locked_week_rejects_regeneration_with_409(client, seed):
    league = await seed(MIXED)
    week_id = league.week_ids[0]
    await client.post(f"/api/weeks/{week_id}/schedule")

    locked = await client.put(f"/api/weeks/{week_id}/regeneration/lock", json={"locked": True})
    assert locked.json()["allowed"] is False
    assert locked.json()["status"]["status"] == "generating"

    response = await client.post(f"/api/weeks/{week_id}/schedule/regenerate")
    assert response.status_code == 409
    assert response.json()["detail"] == "Another regeneration operation is currently in progress"

    released = await client.delete(f"/api/weeks/{week_id}/regeneration/lock")
    assert released.json()["released"] is True
    status = (await client.get(f"/api/weeks/{week_id}/regeneration")).json()
    assert status == {"week_id": week_id, "allowed": True, "status": None}


@pytest.mark.asyncio
async def test_force_cleanup_all(client):
    await client.put("/api/weeks/1/regeneration/lock", json={"locked": True})
    await client.put("/api/weeks/2/regeneration/lock", json={"locked": True})

    response = await client.delete("/api/regeneration")

    assert response.json() == {"cleared": 2}


@pytest.mark.asyncio
async def test_availability_change_shows_in_validation(client, seed):
    league = await seed(["AM"] * 4)
    week_id = league.week_ids[0]
    await client.post(f"/api/weeks/{week_id}/schedule")
    assert (await client.get(f"/api/weeks/{week_id}/schedule/validation")).json()["is_valid"] is True

    update = await client.put(
        f"/api/weeks/{week_id}/availability/{league.player_ids[0]}", json={"is_available": False}
    )
    assert update.status_code == 200

    validation = (await client.get(f"/api/weeks/{week_id}/schedule/validation")).json()
    assert validation["is_valid"] is False
    conflicts = (await client.get(f"/api/weeks/{week_id}/schedule/conflicts")).json()
    assert [c["type"] for c in conflicts["conflicts"]] == ["unavailable_player"]


@pytest.mark.asyncio
async def test_availability_for_unknown_player_is_404(client, seed):
    league = await seed(["AM"])
    response = await client.put(f"/api/weeks/{league.week_ids[0]}/availability/99999", json={"is_available": True})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_manual_edit_endpoint(client, seed):
    league = await seed(["AM"] * 6)
    week_id = league.week_ids[0]
    schedule = (await client.post(f"/api/weeks/{week_id}/schedule")).json()
    full, partial = schedule["morning"]

    moved = await client.post(
        f"/api/weeks/{week_id}/schedule/edits",
        json={"type": "move_player", "player_id": full["players"][0]["id"], "to_foursome_id": partial["id"]},
    )
    assert moved.status_code == 200
    assert [len(f["players"]) for f in moved.json()["morning"]] == [3, 3]

    rejected = await client.post(
        f"/api/weeks/{week_id}/schedule/edits",
        json={"type": "remove_player", "player_id": 99999},
    )
    assert rejected.status_code == 400


@pytest.mark.asyncio
async def test_pairing_endpoints(client, seed):
    league = await seed(["AM"] * 4)
    a, b = league.player_ids[:2]
    await client.post(f"/api/weeks/{league.week_ids[0]}/schedule")

    pair = (await client.get(f"/api/seasons/{league.season_id}/pairings/{a}/{b}")).json()
    assert pair["count"] == 1
    partners = (await client.get(f"/api/seasons/{league.season_id}/pairings/{a}")).json()["partners"]
    assert len(partners) == 3
    assert (await client.get(f"/api/seasons/{league.season_id}/pairings/{a}/{a}")).status_code == 400

    reset = (await client.delete(f"/api/seasons/{league.season_id}/pairings")).json()
    assert reset["removed"] == 6
    assert (await client.get(f"/api/seasons/{league.season_id}/pairings/{a}/{b}")).json()["count"] == 0


@pytest.mark.asyncio
async def test_delete_schedule_endpoint(client, seed):
    league = await seed(["AM"] * 4)
    week_id = league.week_ids[0]
    await client.post(f"/api/weeks/{week_id}/schedule")

    assert (await client.delete(f"/api/weeks/{week_id}/schedule")).status_code == 200
    assert (await client.delete(f"/api/weeks/{week_id}/schedule")).status_code == 404


@pytest.mark.asyncio
async def test_restore_is_rejected_while_week_is_locked(client, seed):
    league = await seed(["AM"] * 4)
    week_id = league.week_ids[0]
    schedule_id = (await client.post(f"/api/weeks/{week_id}/schedule")).json()["id"]
    backup_id = (await client.post(f"/api/weeks/{week_id}/schedule/regenerate")).json()["backup_id"]
    await client.put(f"/api/weeks/{week_id}/regeneration/lock", json={"locked": True})

    locked = await client.post(f"/api/schedules/{schedule_id}/backups/{backup_id}/restore")
    assert locked.status_code == 409

    await client.delete(f"/api/weeks/{week_id}/regeneration/lock")
    restored = await client.post(f"/api/schedules/{schedule_id}/backups/{backup_id}/restore")
    assert restored.status_code == 200
    assert (await client.post(f"/api/schedules/99999/backups/{backup_id}/restore")).status_code == 404
