"""
Tests for querying the audit trail.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditEntityType, AuditAction
from app.models.user import User
from app.services.audit_logger import build_audit_log
from app.services.audit_store import (
    AuditLogFilters,
    get_audit_log,
    get_audit_logs,
    get_entity_audit_history,
)

BASE_TIME = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


async def _seed(db: AsyncSession, rows, actor=None):
    """Insert (entity_type, entity_id, action, minutes after BASE_TIME) rows."""
    logs = []
    for entity_type, entity_id, action, minutes in rows:
        log = build_audit_log(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            summary=f"{entity_type} {action}",
            actor=actor,
        )
        log.occurred_at = BASE_TIME + timedelta(minutes=minutes)
        db.add(log)
        logs.append(log)
    await db.commit()
    return logs


class TestGetAuditLogs:
    """Filtering and pagination."""

    @pytest.mark.asyncio
    async def test_filters_are_combined(self, test_db: AsyncSession):
        await _seed(test_db, [
            ("invoice", "inv-1", "paid", 1),
            ("invoice", "inv-2", "paid", 2),
            ("invoice", "inv-3", "created", 3),
            ("quote", "q-1", "validated", 4),
            ("reservation", "r-1", "cancelled", 5),
        ])

        logs, total = await get_audit_logs(
            test_db, AuditLogFilters(entity_type=AuditEntityType.INVOICE, action=AuditAction.PAID)
        )

        assert total == 2
        assert {log.entity_id for log in logs} == {"inv-1", "inv-2"}
        assert all(log.entity_type is AuditEntityType.INVOICE for log in logs)
        assert all(log.action is AuditAction.PAID for log in logs)

    @pytest.mark.asyncio
    async def test_total_ignores_pagination(self, test_db: AsyncSession):
        await _seed(test_db, [("invoice", f"inv-{i}", "paid", i) for i in range(7)])

        logs, total = await get_audit_logs(
            test_db, AuditLogFilters(entity_type="invoice", action="paid", limit=3, offset=2)
        )

        assert total == 7
        assert len(logs) == 3
        # most recent first, skipping the two newest
        assert [log.entity_id for log in logs] == ["inv-4", "inv-3", "inv-2"]

    @pytest.mark.asyncio
    async def test_date_range_is_inclusive(self, test_db: AsyncSession):
        await _seed(test_db, [
            ("quote", "q-1", "created", 0),
            ("quote", "q-1", "updated", 10),
            ("quote", "q-1", "validated", 20),
        ])

        logs, total = await get_audit_logs(
            test_db,
            AuditLogFilters(
                start_date=BASE_TIME + timedelta(minutes=10),
                end_date=BASE_TIME + timedelta(minutes=20),
            ),
        )

        assert total == 2
        assert [log.action for log in logs] == [AuditAction.VALIDATED, AuditAction.UPDATED]

    @pytest.mark.asyncio
    async def test_filter_by_actor(self, test_db: AsyncSession, admin_user: User):
        await _seed(test_db, [("service", "s-1", "created", 1)], actor=admin_user)
        await _seed(test_db, [("service", "s-2", "created", 2)])

        logs, total = await get_audit_logs(test_db, AuditLogFilters(actor_id=admin_user.id))

        assert total == 1
        assert logs[0].entity_id == "s-1"
        assert logs[0].actor.email == admin_user.email

    @pytest.mark.asyncio
    async def test_no_match_is_empty(self, test_db: AsyncSession):
        await _seed(test_db, [("quote", "q-1", "created", 1)])

        logs, total = await get_audit_logs(test_db, AuditLogFilters(entity_id="nope"))

        assert logs == []
        assert total == 0

    @pytest.mark.asyncio
    async def test_same_timestamp_pages_are_stable(self, test_db: AsyncSession):
        """Entries written in the same instant page in id order, none twice."""
        logs = await _seed(test_db, [("workshop_task", f"t-{i}", "deleted", 1) for i in range(4)])
        expected = sorted((log.id for log in logs), reverse=True)

        seen = []
        for offset in range(4):
            page, total = await get_audit_logs(test_db, AuditLogFilters(limit=1, offset=offset))
            assert total == 4
            seen.extend(log.id for log in page)

        assert seen == expected


class TestGetAuditLog:
    """Single entry lookup."""

    @pytest.mark.asyncio
    async def test_found(self, test_db: AsyncSession):
        [seeded] = await _seed(test_db, [("workflow", "w-1", "updated", 1)])

        log = await get_audit_log(test_db, seeded.id)

        assert log is not None
        assert log.entity_type is AuditEntityType.WORKFLOW

    @pytest.mark.asyncio
    async def test_missing(self, test_db: AsyncSession):
        assert await get_audit_log(test_db, "does-not-exist") is None


class TestGetEntityAuditHistory:
    """Complete per-entity history."""

    @pytest.mark.asyncio
    async def test_history_is_complete_and_most_recent_first(self, test_db: AsyncSession):
        actions = ["created", "updated", "validated", "updated", "completed"]
        await _seed(test_db, [("quote", "q-1", action, i) for i, action in enumerate(actions)])
        await _seed(test_db, [("quote", "q-2", "created", 50)])

        history = await get_entity_audit_history(test_db, AuditEntityType.QUOTE, "q-1")

        assert len(history) == len(actions)
        assert [log.action.value for log in history] == list(reversed(actions))
        occurred = [log.occurred_at for log in history]
        assert occurred == sorted(occurred, reverse=True)

    @pytest.mark.asyncio
    async def test_history_is_not_truncated(self, test_db: AsyncSession):
        await _seed(test_db, [("invoice", "inv-1", "updated", i) for i in range(120)])

        history = await get_entity_audit_history(test_db, "invoice", "inv-1")

        assert len(history) == 120

    @pytest.mark.asyncio
    async def test_unknown_entity_has_empty_history(self, test_db: AsyncSession):
        assert await get_entity_audit_history(test_db, "reservation", "never-touched") == []
