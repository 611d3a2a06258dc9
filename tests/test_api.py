"""HTTP tests for the timeline routes."""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from schemas.timeline import DeadlineCheckResult


async def _initialize(client, connection_id: int) -> dict:
    response = await client.post(f"/api/connections/{connection_id}/timeline/stage", json={})
    assert response.status_code == 201
    return response.json()["stage"]


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "scheduler_running": False}


@pytest.mark.asyncio
async def test_unknown_connection_is_404(client):
    response = await client.get("/api/connections/404/timeline")
    assert response.status_code == 404
    assert response.json()["message"] == "Connection not found"


@pytest.mark.asyncio
async def test_initialize_then_get_timeline(client, make_connection):
    connection_id = await make_connection()

    created = await _initialize(client, connection_id)
    assert created["initialized"] is True
    assert created["stage"]["stage_type"] == "first_impression"

    response = await client.get(f"/api/connections/{connection_id}/timeline")
    assert response.status_code == 200
    timeline = response.json()["timeline"]
    assert timeline["total_stages"] == 1
    assert timeline["settings"]["follow_up_wait_days"] == 7
    assert timeline["progression_status"]["phase"] == "not_started"


@pytest.mark.asyncio
async def test_create_typed_stage_requires_current_stage_id(client, make_connection):
    connection_id = await make_connection()
    await _initialize(client, connection_id)

    response = await client.post(
        f"/api/connections/{connection_id}/timeline/stage", json={"stage_type": "follow_up"}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_typed_stage(client, make_connection):
    connection_id = await make_connection()
    first = await _initialize(client, connection_id)

    response = await client.post(
        f"/api/connections/{connection_id}/timeline/stage",
        json={"stage_type": "follow_up", "current_stage_id": first["stage"]["id"]},
    )
    assert response.status_code == 201
    stage = response.json()["stage"]
    assert stage["stage_type"] == "follow_up"
    assert stage["stage_order"] == 2


@pytest.mark.asyncio
async def test_put_stage_sent_creates_response_stage(client, make_connection):
    connection_id = await make_connection()
    first = await _initialize(client, connection_id)
    stage_id = first["stage"]["id"]

    response = await client.put(
        f"/api/connections/{connection_id}/timeline/stage/{stage_id}",
        json={"stage_status": "sent", "email_content": "Hello!"},
    )
    assert response.status_code == 200
    result = response.json()["result"]
    assert result["stage"]["stage_status"] == "sent"
    assert result["stage"]["email_content"] == "Hello!"
    assert result["next_stage_created"]["stage_type"] == "response"
    assert result["next_stage_created"]["stage_order"] == 2


@pytest.mark.asyncio
async def test_put_stage_rejects_bad_status_and_unknown_stage(client, make_connection):
    connection_id = await make_connection()
    await _initialize(client, connection_id)

    bad_status = await client.put(
        f"/api/connections/{connection_id}/timeline/stage/1", json={"stage_status": "archived"}
    )
    assert bad_status.status_code == 422

    missing = await client.put(
        f"/api/connections/{connection_id}/timeline/stage/999", json={"stage_status": "draft"}
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_stage_is_not_implemented(client, make_connection):
    connection_id = await make_connection()
    first = await _initialize(client, connection_id)

    response = await client.delete(
        f"/api/connections/{connection_id}/timeline/stage/{first['stage']['id']}"
    )
    assert response.status_code == 501
    assert "not supported" in response.json()["message"]


@pytest.mark.asyncio
async def test_advance_actions(client, make_connection):
    connection_id = await make_connection()
    url = f"/api/connections/{connection_id}/timeline/advance"

    init = await client.post(url, json={"action": "initialize"})
    assert init.status_code == 200
    stage_id = init.json()["result"]["stage"]["id"]

    draft = await client.post(
        url, json={"action": "create_draft", "stage_id": stage_id, "content": {"draft_content": "v1"}}
    )
    assert draft.json()["result"]["stage"]["draft_content"] == "v1"

    sent = await client.post(url, json={"action": "send_email", "stage_id": stage_id})
    response_stage = sent.json()["result"]["next_stage_created"]
    assert response_stage["stage_type"] == "response"

    received = await client.post(
        url, json={"action": "mark_response", "stage_id": response_stage["stage_id"]}
    )
    assert received.json()["result"]["stage"]["response_received_at"] is not None

    timeline = (await client.get(f"/api/connections/{connection_id}/timeline")).json()["timeline"]
    assert timeline["progression_status"]["phase"] == "conversation_active"


@pytest.mark.asyncio
async def test_advance_validation(client, make_connection):
    connection_id = await make_connection()
    url = f"/api/connections/{connection_id}/timeline/advance"

    missing_stage = await client.post(url, json={"action": "send_email"})
    assert missing_stage.status_code == 400
    assert "stage_id is required" in missing_stage.json()["message"]

    unknown = await client.post(url, json={"action": "archive"})
    assert unknown.status_code == 400
    assert "check_deadlines" in unknown.json()["message"]


@pytest.mark.asyncio
async def test_advance_check_deadlines_runs_sweep(client, make_connection):
    connection_id = await make_connection()
    sweep_result = DeadlineCheckResult(
        expired_stages_found=0,
        follow_ups_created=0,
        checked_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
    )
    sweep = AsyncMock(return_value=sweep_result)

    with patch("api.check_response_deadlines", sweep):
        response = await client.post(
            f"/api/connections/{connection_id}/timeline/advance", json={"action": "check_deadlines"}
        )

    assert response.status_code == 200
    assert response.json()["result"]["expired_stages_found"] == 0
    sweep.assert_awaited_once()


@pytest.mark.asyncio
async def test_settings_roundtrip_and_bounds(client, make_connection):
    connection_id = await make_connection()
    url = f"/api/connections/{connection_id}/timeline/settings"

    assert (await client.get(url)).json()["settings"]["follow_up_wait_days"] == 7

    updated = await client.put(url, json={"follow_up_wait_days": 14})
    assert updated.status_code == 200
    assert updated.json()["settings"]["follow_up_wait_days"] == 14
    assert (await client.get(url)).json()["settings"]["follow_up_wait_days"] == 14

    too_long = await client.put(url, json={"follow_up_wait_days": 45})
    assert too_long.status_code == 422
