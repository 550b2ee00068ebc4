"""
Tests for recording audit events.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog, AuditLogChange, AuditEntityType, AuditAction
from app.models.user import User
from app.services.audit_logger import (
    build_audit_log,
    get_client_ip,
    record_audit_event,
    render_summary,
    resolve_actor_name,
    status_transition_action,
)


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar()


class TestResolveActorName:
    """The frozen display name of the actor."""

    def test_full_name(self):
        user = User(first_name="Jane", last_name="Doe", email="jane@x.com")
        assert resolve_actor_name(user) == "Jane Doe"

    def test_names_are_trimmed(self):
        user = User(first_name="  Jane ", last_name="", email="jane@x.com")
        assert resolve_actor_name(user) == "Jane"

    def test_falls_back_to_email(self):
        user = User(first_name="", last_name=None, email="jane@x.com")
        assert resolve_actor_name(user) == "jane@x.com"

    def test_system_action_has_no_name(self):
        assert resolve_actor_name(None) is None


class TestStatusTransitionAction:
    """Named actions for status changes."""

    @pytest.mark.parametrize(
        "entity_type,new_status,expected",
        [
            (AuditEntityType.QUOTE, "approved", AuditAction.VALIDATED),
            (AuditEntityType.QUOTE, "rejected", AuditAction.REJECTED),
            (AuditEntityType.QUOTE, "completed", AuditAction.COMPLETED),
            (AuditEntityType.QUOTE, "cancelled", AuditAction.CANCELLED),
            (AuditEntityType.INVOICE, "paid", AuditAction.PAID),
            (AuditEntityType.INVOICE, "overdue", AuditAction.UPDATED),
            (AuditEntityType.RESERVATION, "confirmed", AuditAction.CONFIRMED),
            (AuditEntityType.RESERVATION, "cancelled", AuditAction.CANCELLED),
        ],
    )
    def test_transition(self, entity_type, new_status, expected):
        assert status_transition_action(entity_type, "pending", new_status) == expected

    def test_unchanged_status_is_plain_update(self):
        assert status_transition_action(AuditEntityType.QUOTE, "approved", "approved") == AuditAction.UPDATED

    def test_entity_without_statuses(self):
        assert status_transition_action(AuditEntityType.SERVICE, None, "approved") == AuditAction.UPDATED


class TestRenderSummary:
    """French one-line summaries."""

    def test_masculine_entity(self):
        assert render_summary(AuditEntityType.QUOTE, AuditAction.VALIDATED) == "Devis validé"

    def test_feminine_agreement(self):
        assert render_summary(AuditEntityType.INVOICE, AuditAction.PAID) == "Facture payée"
        assert render_summary(AuditEntityType.RESERVATION, AuditAction.CANCELLED) == "Réservation annulée"

    def test_subject_and_suffix(self):
        summary = render_summary(
            AuditEntityType.SERVICE, AuditAction.CREATED,
            subject="Diamantage", suffix="avec workflow associé",
        )
        assert summary == 'Service "Diamantage" créé avec workflow associé'


class TestGetClientIp:
    """Client address extraction."""

    def test_forwarded_header_wins(self):
        request = MagicMock()
        request.headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}
        assert get_client_ip(request) == "203.0.113.7"

    def test_direct_client(self):
        request = MagicMock()
        request.headers = {}
        request.client.host = "198.51.100.2"
        assert get_client_ip(request) == "198.51.100.2"

    def test_no_request(self):
        assert get_client_ip(None) is None


class TestBuildAuditLog:
    """Assembling entries without a database."""

    def test_actor_snapshot_is_frozen(self):
        actor = User(id="u-1", first_name="Jane", last_name="Doe", email="jane@x.com", role="admin")

        log = build_audit_log(
            entity_type="quote",
            entity_id="q-1",
            action="validated",
            summary="Devis validé",
            actor=actor,
            previous={"status": "pending"},
            new={"status": "approved"},
        )

        assert log.entity_type is AuditEntityType.QUOTE
        assert log.action is AuditAction.VALIDATED
        assert log.actor_id == "u-1"
        assert log.actor_role == "admin"
        assert log.actor_name == "Jane Doe"
        assert [(c.field, c.previous_value, c.new_value) for c in log.changes] == [
            ("status", "pending", "approved")
        ]

    def test_unknown_entity_type_is_rejected(self):
        with pytest.raises(ValueError):
            build_audit_log(entity_type="engagement", entity_id="x", action="created", summary="")

    def test_unknown_action_is_rejected(self):
        with pytest.raises(ValueError):
            build_audit_log(entity_type="quote", entity_id="x", action="archived", summary="")


class TestRecordAuditEvent:
    """Persisting entries through the error boundary."""

    @pytest.mark.asyncio
    async def test_records_log_with_changes(self, test_db: AsyncSession, admin_user: User):
        log = await record_audit_event(
            test_db,
            entity_type=AuditEntityType.INVOICE,
            entity_id="inv-1",
            action=AuditAction.PAID,
            summary="Facture payée",
            actor=admin_user,
            previous={"status": "pending", "amount": "90.00"},
            new={"status": "paid", "amount": "90.00"},
            metadata={"invoice_number": "FACT-01-01-001"},
        )

        assert log is not None
        stored = (
            await test_db.execute(select(AuditLog).where(AuditLog.id == log.id))
        ).scalar_one()
        assert stored.actor_id == admin_user.id
        assert stored.actor_name == "Alice Martin"
        assert stored.actor_role == "admin"
        assert stored.metadata_ == {"invoice_number": "FACT-01-01-001"}
        assert [c.field for c in stored.changes] == ["status"]
        assert stored.occurred_at is not None

    @pytest.mark.asyncio
    async def test_system_action_has_no_actor(self, test_db: AsyncSession):
        log = await record_audit_event(
            test_db,
            entity_type=AuditEntityType.USER,
            entity_id="u-9",
            action=AuditAction.CREATED,
            summary="Utilisateur créé",
            new={"email": "new@example.com"},
        )

        assert log is not None
        assert log.actor_id is None
        assert log.actor_role is None
        assert log.actor_name is None

    @pytest.mark.asyncio
    async def test_creation_has_no_change_rows(self, test_db: AsyncSession):
        log = await record_audit_event(
            test_db,
            entity_type=AuditEntityType.QUOTE,
            entity_id="q-1",
            action=AuditAction.CREATED,
            summary="Devis créé",
            new={"status": "pending", "quote_amount": "100.00"},
        )

        assert log is not None
        assert log.changes == []
        assert await _count(test_db, AuditLogChange) == 0

    @pytest.mark.asyncio
    async def test_status_only_action_without_diff(self, test_db: AsyncSession):
        """A named action is recorded even when the snapshots are identical."""
        state = {"status": "cancelled", "notes": None}

        log = await record_audit_event(
            test_db,
            entity_type=AuditEntityType.RESERVATION,
            entity_id="r-1",
            action=AuditAction.CANCELLED,
            summary="Réservation annulée",
            previous=state,
            new=dict(state),
        )

        assert log is not None
        assert log.action is AuditAction.CANCELLED
        assert await _count(test_db, AuditLog) == 1
        assert await _count(test_db, AuditLogChange) == 0

    @pytest.mark.asyncio
    async def test_invalid_action_is_swallowed(self, test_db: AsyncSession):
        log = await record_audit_event(
            test_db,
            entity_type="quote",
            entity_id="q-1",
            action="archived",
            summary="?",
        )

        assert log is None
        assert await _count(test_db, AuditLog) == 0

    @pytest.mark.asyncio
    async def test_store_failure_is_logged_and_swallowed(self, test_db: AsyncSession):
        with patch.object(
            test_db, "commit", AsyncMock(side_effect=RuntimeError("database is gone"))
        ), patch("app.services.audit_logger.capture_exception") as capture, patch(
            "app.services.audit_logger.logger"
        ) as logger:
            log = await record_audit_event(
                test_db,
                entity_type=AuditEntityType.QUOTE,
                entity_id="q-1",
                action=AuditAction.UPDATED,
                summary="Devis modifié",
                previous={"notes": "a"},
                new={"notes": "b"},
            )

        assert log is None
        logger.exception.assert_called_once()
        assert logger.exception.call_args.kwargs["extra"] == {
            "entity_type": "quote",
            "entity_id": "q-1",
            "action": "updated",
        }
        capture.assert_called_once()
        assert await _count(test_db, AuditLog) == 0

    @pytest.mark.asyncio
    async def test_actor_still_usable_after_failed_write(
        self, test_db: AsyncSession, admin_user: User
    ):
        """A failed entry must not lose the next one for the same actor."""
        real_commit = test_db.commit
        calls = []

        async def flaky_commit():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("database is gone")
            await real_commit()

        with patch.object(test_db, "commit", flaky_commit), patch(
            "app.services.audit_logger.capture_exception"
        ):
            first = await record_audit_event(
                test_db,
                entity_type=AuditEntityType.SERVICE,
                entity_id="s-1",
                action=AuditAction.CREATED,
                summary='Service "Diamantage" créé',
                actor=admin_user,
            )
            second = await record_audit_event(
                test_db,
                entity_type=AuditEntityType.WORKFLOW,
                entity_id="w-1",
                action=AuditAction.CREATED,
                summary='Workflow "Workflow Diamantage" créé',
                actor=admin_user,
            )

        assert first is None
        assert second is not None
        assert second.actor_id == admin_user.id
        assert second.actor_name == "Alice Martin"
        assert await _count(test_db, AuditLog) == 1


class TestAuditLogChangeCascade:
    """Change rows live and die with their parent entry."""

    @pytest.mark.asyncio
    async def test_deleting_log_removes_its_changes(self, test_db: AsyncSession):
        log = await record_audit_event(
            test_db,
            entity_type=AuditEntityType.QUOTE,
            entity_id="q-1",
            action=AuditAction.VALIDATED,
            summary="Devis validé",
            previous={"status": "pending", "quote_amount": "100.00"},
            new={"status": "approved", "quote_amount": "150.00"},
        )
        assert await _count(test_db, AuditLogChange) == 2

        await test_db.delete(log)
        await test_db.commit()

        assert await _count(test_db, AuditLog) == 0
        assert await _count(test_db, AuditLogChange) == 0
