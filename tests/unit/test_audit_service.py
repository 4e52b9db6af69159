"""Unit tests for the audit sink."""

import json

import pytest
from sqlalchemy import select

from casefeed.core.database import AuditLog
from casefeed.services.audit import AuditService


@pytest.mark.asyncio
class TestAuditService:
    async def test_record_persists_event(self, session_factory):
        await AuditService(session_factory).record(
            "activities_searched", "user_a", {"query": "Kim", "totalResults": 2}
        )

        async with session_factory() as session:
            rows = (await session.execute(select(AuditLog))).scalars().all()

        assert len(rows) == 1
        assert rows[0].action == "activities_searched"
        assert rows[0].actor_id == "user_a"
        assert json.loads(rows[0].details) == {"query": "Kim", "totalResults": 2}

    async def test_record_without_metadata(self, session_factory):
        await AuditService(session_factory).record("client_activities_forbidden")

        async with session_factory() as session:
            row = (await session.execute(select(AuditLog))).scalars().one()
        assert row.details is None
        assert row.actor_id is None

    async def test_record_request(self, session_factory):
        await AuditService(session_factory).record_request(
            "GET", "/api/search/activities", 200, 12.5, actor_id="user_a"
        )

        async with session_factory() as session:
            row = (await session.execute(select(AuditLog))).scalars().one()
        assert row.action == "http_request"
        assert row.status_code == 200
        assert row.path == "/api/search/activities"

    async def test_write_failure_does_not_raise(self):
        def broken_factory():
            raise RuntimeError("disk full")

        await AuditService(broken_factory).record("activities_searched", "user_a", {"query": ""})
