"""Integration tests for the timeline store against in-memory SQLite."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from db import get_db
from db.repositories import connections as connections_repo
from db.repositories import timeline as timeline_repo
from timeline.errors import InvalidInput, NotFound

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_create_initial_timeline_creates_first_stage_and_settings(make_connection):
    connection_id = await make_connection()

    async with get_db() as session:
        stage, created = await timeline_repo.create_initial_timeline(session, connection_id)
        stage_id = stage.id
    assert created is True

    async with get_db() as session:
        timeline = await timeline_repo.get_timeline_stages(session, connection_id)
    assert timeline.stage_count == 1
    only = timeline.stages[0]
    assert only.id == stage_id
    assert (only.stage_order, only.stage_type, only.stage_status) == (1, "first_impression", "waiting")
    assert timeline.settings.follow_up_wait_days == 7
    assert timeline.settings.id is not None, "Settings row should be persisted"


@pytest.mark.asyncio
async def test_create_initial_timeline_is_idempotent(make_connection):
    connection_id = await make_connection()

    async with get_db() as session:
        first, _ = await timeline_repo.create_initial_timeline(session, connection_id)
        first_id = first.id
    async with get_db() as session:
        again, created = await timeline_repo.create_initial_timeline(session, connection_id)
        again_id = again.id
        count = (await timeline_repo.get_timeline_stages(session, connection_id)).stage_count

    assert created is False
    assert again_id == first_id
    assert count == 1


@pytest.mark.asyncio
async def test_create_initial_timeline_unknown_connection(database):
    async with get_db() as session:
        with pytest.raises(NotFound, match="Connection not found"):
            await timeline_repo.create_initial_timeline(session, 999)


@pytest.mark.asyncio
async def test_get_timeline_stages_requires_connection_id(database):
    async with get_db() as session:
        with pytest.raises(InvalidInput):
            await timeline_repo.get_timeline_stages(session, None)


@pytest.mark.asyncio
async def test_get_timeline_stages_defaults_settings_when_missing(make_connection):
    connection_id = await make_connection()

    async with get_db() as session:
        timeline = await timeline_repo.get_timeline_stages(session, connection_id)
    assert timeline.stages == []
    assert timeline.settings.follow_up_wait_days == 7
    assert timeline.settings.id is None, "Fallback settings must not be saved"


@pytest.mark.asyncio
async def test_stages_are_returned_in_order(make_connection):
    connection_id = await make_connection()

    async with get_db() as session:
        for order, stage_type in ((3, "follow_up"), (1, "first_impression"), (2, "response")):
            await timeline_repo.create_stage(
                session, connection_id, {"stage_type": stage_type, "stage_order": order}
            )

    async with get_db() as session:
        timeline = await timeline_repo.get_timeline_stages(session, connection_id)
        max_order = await timeline_repo.get_max_stage_order(session, connection_id)
    assert [s.stage_order for s in timeline.stages] == [1, 2, 3]
    assert [s.stage_status for s in timeline.stages] == ["waiting"] * 3
    assert max_order == 3


@pytest.mark.asyncio
async def test_get_max_stage_order_is_zero_without_stages(make_connection):
    connection_id = await make_connection()
    async with get_db() as session:
        assert await timeline_repo.get_max_stage_order(session, connection_id) == 0


@pytest.mark.asyncio
async def test_create_stage_requires_type_and_order(make_connection):
    connection_id = await make_connection()
    async with get_db() as session:
        with pytest.raises(InvalidInput):
            await timeline_repo.create_stage(session, connection_id, {"stage_order": 1})
        with pytest.raises(InvalidInput):
            await timeline_repo.create_stage(session, connection_id, {"stage_type": "response"})


@pytest.mark.asyncio
async def test_duplicate_stage_order_is_rejected_by_the_store(make_connection):
    connection_id = await make_connection()
    with pytest.raises(IntegrityError):
        async with get_db() as session:
            await timeline_repo.create_stage(
                session, connection_id, {"stage_type": "first_impression", "stage_order": 1}
            )
            await timeline_repo.create_stage(
                session, connection_id, {"stage_type": "response", "stage_order": 1}
            )


@pytest.mark.asyncio
async def test_update_stage_with_only_unknown_fields(make_connection):
    connection_id = await make_connection()
    async with get_db() as session:
        stage, _ = await timeline_repo.create_initial_timeline(session, connection_id)
        stage_id = stage.id

    async with get_db() as session:
        with pytest.raises(InvalidInput, match="No valid fields to update"):
            await timeline_repo.update_stage(session, connection_id, stage_id, {"colour": "blue"})


@pytest.mark.asyncio
async def test_update_stage_unknown_id_or_other_connection(make_connection):
    owner_id = await make_connection()
    other_id = await make_connection(full_name="Sam Patel")
    async with get_db() as session:
        stage, _ = await timeline_repo.create_initial_timeline(session, owner_id)
        stage_id = stage.id

    async with get_db() as session:
        with pytest.raises(NotFound):
            await timeline_repo.update_stage(session, owner_id, stage_id + 100, {"stage_status": "draft"})
        with pytest.raises(NotFound):
            await timeline_repo.update_stage(session, other_id, stage_id, {"stage_status": "draft"})


@pytest.mark.asyncio
async def test_update_stage_ignores_unknown_fields_and_applies_known(make_connection):
    connection_id = await make_connection()
    async with get_db() as session:
        stage, _ = await timeline_repo.create_initial_timeline(session, connection_id)
        stage_id = stage.id

    async with get_db() as session:
        updated = await timeline_repo.update_stage(
            session,
            connection_id,
            stage_id,
            {"stage_status": "draft", "draft_content": "Hi Jordan", "stage_type": "response"},
        )
        assert updated.stage_status == "draft"
        assert updated.draft_content == "Hi Jordan"
        assert updated.stage_type == "first_impression"


@pytest.mark.asyncio
async def test_get_stage_checks_ownership(make_connection):
    owner_id = await make_connection()
    other_id = await make_connection(full_name="Sam Patel")
    async with get_db() as session:
        stage, _ = await timeline_repo.create_initial_timeline(session, owner_id)
        stage_id = stage.id

    async with get_db() as session:
        assert (await timeline_repo.get_stage(session, owner_id, stage_id)).id == stage_id
        assert await timeline_repo.get_stage(session, other_id, stage_id) is None


@pytest.mark.asyncio
async def test_update_settings_inserts_then_updates(make_connection):
    connection_id = await make_connection()

    async with get_db() as session:
        settings = await timeline_repo.update_settings(session, connection_id, 10)
        assert settings.follow_up_wait_days == 10
    async with get_db() as session:
        await timeline_repo.update_settings(session, connection_id, 3)
    async with get_db() as session:
        settings = await timeline_repo.get_settings(session, connection_id)
    assert settings.follow_up_wait_days == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, 31, -1, True, "7", 7.5])
async def test_update_settings_rejects_out_of_range(make_connection, days):
    connection_id = await make_connection()
    async with get_db() as session:
        with pytest.raises(InvalidInput):
            await timeline_repo.update_settings(session, connection_id, days)


@pytest.mark.asyncio
async def test_get_expired_response_stages_filters_and_joins_user(make_connection):
    connection_id = await make_connection(user_id=42)
    past = NOW - timedelta(minutes=1)
    future = NOW + timedelta(days=3)

    async with get_db() as session:
        rows = [
            ("first_impression", 1, "sent", past),
            ("response", 2, "waiting", past),
            ("response", 3, "received", past),
            ("response", 4, "waiting", future),
            ("response", 5, "waiting", None),
        ]
        for stage_type, order, status, deadline in rows:
            await timeline_repo.create_stage(
                session,
                connection_id,
                {
                    "stage_type": stage_type,
                    "stage_order": order,
                    "stage_status": status,
                    "response_deadline": deadline,
                },
            )

    async with get_db() as session:
        expired = await timeline_repo.get_expired_response_stages(session, NOW)

    assert [(stage.stage_order, user_id) for stage, user_id in expired] == [(2, 42)]


@pytest.mark.asyncio
async def test_connection_lookup(make_connection):
    connection_id = await make_connection()
    async with get_db() as session:
        assert await connections_repo.exists(session, connection_id) is True
        assert await connections_repo.exists(session, connection_id + 1) is False
        assert (await connections_repo.get_by_id(session, connection_id)).full_name == "Jordan Lee"
