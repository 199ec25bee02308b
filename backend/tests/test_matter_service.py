"""
Unit tests per MatterService (pratiche, task, scadenze, udienze, attività).
"""

import datetime
import uuid

import pytest
from sqlalchemy import select

from app.core.exceptions import BusinessValidationError, NotFoundError
from app.models.audit_log import AuditLog
from app.models.matter import Activity, Deadline, Hearing, Task
from app.schemas.matter import (
    ActivityCreate,
    DeadlineCreate,
    HearingCreate,
    MatterCreate,
    MatterUpdate,
    TaskCreate,
    TaskUpdate,
)
from app.services.matter_service import matter_service

from tests.conftest import make_client, make_user

UTC = datetime.timezone.utc
NOW = datetime.datetime(2025, 5, 10, 12, 0, tzinfo=UTC)


# ============================================================
# Pratiche
# ============================================================


class TestMatterCrud:
    """Tests per creazione, modifica ed eliminazione pratiche."""

    async def test_create_with_audit(self, db, admin, client_record):
        """Test creazione pratica: relazioni caricate e riga di audit."""
        matter = await matter_service.create(
            db,
            admin,
            MatterCreate(
                client_id=client_record.id,
                title="Reclamação trabalhista",
                practice_area="Trabalhista",
                responsible_lawyer_id=admin.id,
            ),
        )

        assert matter.status == "open"
        assert matter.client.name == "Cliente Teste Ltda"
        assert matter.responsible_lawyer.id == admin.id

        audit = (await db.execute(select(AuditLog).where(AuditLog.entity_id == matter.id))).scalars().all()
        assert [a.action for a in audit] == ["create"]
        assert audit[0].entity_type == "matter"

    async def test_create_for_foreign_client(self, db, admin, other_tenant):
        foreign = await make_client(db, other_tenant, "Cliente Beta")
        with pytest.raises(NotFoundError):
            await matter_service.create(
                db, admin, MatterCreate(client_id=foreign.id, title="Inventário", practice_area="Família")
            )

    async def test_lawyer_of_other_tenant(self, db, admin, client_record, other_tenant):
        outsider = await make_user(db, other_tenant)
        with pytest.raises(NotFoundError):
            await matter_service.create(
                db,
                admin,
                MatterCreate(
                    client_id=client_record.id,
                    title="Inventário",
                    practice_area="Família",
                    responsible_lawyer_id=outsider.id,
                ),
            )

    async def test_update_partial(self, db, admin, matter):
        updated = await matter_service.update(
            db, admin, matter.id, MatterUpdate(status="closed", risk_score=40)
        )
        assert updated.status == "closed"
        assert updated.risk_score == 40
        assert updated.title == "Ação de cobrança"

    async def test_search_and_filters(self, db, admin, tenant, matter):
        matters, total = await matter_service.get_all(db, tenant.id, search="0001234")
        assert total == 1 and matters[0].id == matter.id

        matters, total = await matter_service.get_all(db, tenant.id, status_filter="closed")
        assert total == 0 and matters == []

    async def test_delete_removes_children(self, db, admin, tenant, matter):
        """Test eliminazione pratica con task, scadenze, udienze e attività."""
        await matter_service.create_task(db, tenant.id, matter.id, TaskCreate(title="Juntar procuração"))
        await matter_service.create_deadline(
            db, tenant.id, matter.id, DeadlineCreate(title="Réplica", deadline_date=NOW)
        )
        await matter_service.create_hearing(db, tenant.id, matter.id, HearingCreate(hearing_date=NOW))
        await matter_service.create_activity(db, admin, matter.id, ActivityCreate(action="note"))

        await matter_service.delete(db, admin, matter.id)

        for model in (Task, Deadline, Hearing, Activity):
            assert (await db.execute(select(model))).scalars().all() == []
        with pytest.raises(NotFoundError):
            await matter_service.get_by_id(db, tenant.id, matter.id)

    async def test_other_tenant_cannot_read(self, db, other_tenant, matter):
        with pytest.raises(NotFoundError):
            await matter_service.get_by_id(db, other_tenant.id, matter.id)


# ============================================================
# Task
# ============================================================


class TestTasks:
    async def test_completed_at_follows_status(self, db, tenant, matter):
        """Test completed_at impostato al completamento e azzerato alla riapertura."""
        task = await matter_service.create_task(db, tenant.id, matter.id, TaskCreate(title="Protocolar"))
        assert task.completed_at is None

        task = await matter_service.update_task(db, tenant.id, task.id, TaskUpdate(status="completed"))
        assert task.completed_at is not None

        task = await matter_service.update_task(db, tenant.id, task.id, TaskUpdate(status="in_progress"))
        assert task.completed_at is None

    async def test_task_of_other_tenant(self, db, tenant, other_tenant, matter):
        task = await matter_service.create_task(db, tenant.id, matter.id, TaskCreate(title="Protocolar"))
        with pytest.raises(NotFoundError):
            await matter_service.delete_task(db, other_tenant.id, task.id)


# ============================================================
# Scadenze
# ============================================================


class TestDeadlines:
    """Tests per i filtri delle scadenze e il completamento."""

    @pytest.fixture
    async def deadlines(self, db, tenant, matter):
        created = {}
        for key, delta in (("past", -3), ("soon", 2), ("far", 30)):
            created[key] = await matter_service.create_deadline(
                db,
                tenant.id,
                matter.id,
                DeadlineCreate(title=f"Prazo {key}", deadline_date=NOW + datetime.timedelta(days=delta)),
            )
        done = await matter_service.create_deadline(
            db, tenant.id, matter.id, DeadlineCreate(title="Prazo done", deadline_date=NOW)
        )
        created["done"] = await matter_service.toggle_deadline(db, tenant.id, done.id)
        return created

    @pytest.mark.parametrize(
        "status_filter, expected",
        [
            (None, ["past", "done", "soon", "far"]),
            ("pending", ["past", "soon", "far"]),
            ("completed", ["done"]),
            ("overdue", ["past"]),
            ("upcoming", ["soon"]),
        ],
    )
    async def test_filters(self, db, tenant, deadlines, status_filter, expected):
        result = await matter_service.list_deadlines(db, tenant.id, status_filter, days=7, now=NOW)
        ids = {d.id: key for key, d in deadlines.items()}
        assert [ids[d.id] for d in result] == expected

    async def test_unknown_filter(self, db, tenant):
        with pytest.raises(BusinessValidationError):
            await matter_service.list_deadlines(db, tenant.id, "tomorrow", now=NOW)

    async def test_toggle_twice(self, db, tenant, deadlines):
        """Test il secondo toggle riapre la scadenza e azzera completed_at."""
        reopened = await matter_service.toggle_deadline(db, tenant.id, deadlines["done"].id)
        assert reopened.is_completed is False
        assert reopened.completed_at is None

    async def test_toggle_foreign(self, db, other_tenant, deadlines):
        with pytest.raises(NotFoundError):
            await matter_service.toggle_deadline(db, other_tenant.id, deadlines["soon"].id)


# ============================================================
# Udienze e attività
# ============================================================


class TestHearingsAndActivities:
    async def test_hearing_lifecycle(self, db, tenant, matter):
        hearing = await matter_service.create_hearing(
            db,
            tenant.id,
            matter.id,
            HearingCreate(hearing_date=NOW, hearing_type="Conciliação", attendees=["Dra. Ana"]),
        )
        assert hearing.status == "scheduled"
        assert [h.id for h in await matter_service.list_hearings(db, tenant.id, matter.id)] == [hearing.id]

        await matter_service.delete_hearing(db, tenant.id, hearing.id)
        assert await matter_service.list_hearings(db, tenant.id, matter.id) == []

    async def test_delete_unknown_hearing(self, db, tenant):
        with pytest.raises(NotFoundError):
            await matter_service.delete_hearing(db, tenant.id, uuid.uuid4())

    async def test_activity_written_to_audit(self, db, admin, tenant, matter):
        """Test attività registrata anche nel registro audit."""
        activity = await matter_service.create_activity(
            db, admin, matter.id, ActivityCreate(action="petition_filed", description="Inicial protocolada", metadata={"page": 3})
        )
        assert activity.meta == {"page": 3}

        audit = (await db.execute(select(AuditLog).where(AuditLog.action == "petition_filed"))).scalars().one()
        assert audit.new_data == {"description": "Inicial protocolada", "page": 3}
        assert [a.id for a in await matter_service.list_activities(db, tenant.id, matter.id)] == [activity.id]
