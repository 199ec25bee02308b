"""
Unit tests per TimeEntryService.
"""

import datetime
import uuid
from decimal import Decimal

import pytest

from app.core.exceptions import BusinessValidationError, NotFoundError
from app.schemas.invoice import InvoiceCreate
from app.schemas.time_entry import TimeEntryCreate, TimeEntryUpdate
from app.services.invoice_service import invoice_service
from app.services.time_entry_service import time_entry_service

from tests.conftest import make_client, make_entry, make_user


# ============================================================
# Registrazione
# ============================================================


class TestTimeEntryCreate:
    """Tests per la registrazione ore."""

    async def test_client_taken_from_matter(self, db, admin, matter):
        """Test senza client_id viene usato il cliente della pratica."""
        entry = await time_entry_service.create(
            db,
            admin,
            TimeEntryCreate(description="Audiência", hours=Decimal("1.25"), date=datetime.date(2025, 2, 3), matter_id=matter.id),
        )
        assert entry.client_id == matter.client_id
        assert entry.user_id == admin.id
        assert entry.invoice_id is None

    async def test_foreign_client_rejected(self, db, admin, other_tenant):
        """Test cliente di un altro studio → 404."""
        foreign = await make_client(db, other_tenant, "Cliente Beta")
        with pytest.raises(NotFoundError):
            await time_entry_service.create(
                db,
                admin,
                TimeEntryCreate(description="x", hours=Decimal("1"), date=datetime.date(2025, 2, 3), client_id=foreign.id),
            )

    async def test_list_own_only_current_user(self, db, tenant, admin, client_record, entries):
        """Test elenco limitato alle ore dell'utente, più recenti prima."""
        colleague = await make_user(db, tenant)
        await make_entry(db, colleague, client_record, "4.0")

        own = await time_entry_service.list_own(db, admin)
        assert [e.id for e in own] == [entries[1].id, entries[0].id]

        same_day = await time_entry_service.list_own(db, admin, datetime.date(2025, 1, 10))
        assert [e.id for e in same_day] == [entries[0].id]


# ============================================================
# Ore da fatturare
# ============================================================


class TestUnbilled:
    """Tests per list_unbilled."""

    async def test_requires_client(self, db, tenant):
        with pytest.raises(BusinessValidationError):
            await time_entry_service.list_unbilled(db, tenant.id, None)

    async def test_excludes_non_billable(self, db, tenant, admin, client_record, entries):
        """Test ore non fatturabili escluse, ordine per data."""
        await make_entry(db, admin, client_record, "0.5", "Cafezinho", billable=False)

        unbilled = await time_entry_service.list_unbilled(db, tenant.id, client_record.id)
        assert [e.id for e in unbilled] == [entries[0].id, entries[1].id]


# ============================================================
# Modifica ed eliminazione
# ============================================================


class TestBilledLock:
    """Tests per il blocco delle ore fatturate."""

    async def _bill(self, db, tenant, client, entries):
        await invoice_service.create(
            db,
            tenant.id,
            InvoiceCreate(client_id=client.id, time_entry_ids=[e.id for e in entries], hourly_rate=Decimal("100")),
        )

    async def test_update_unbilled(self, db, tenant, entries):
        updated = await time_entry_service.update(
            db, tenant.id, entries[0].id, TimeEntryUpdate(hours=Decimal("2.5"), description="Petição revisada")
        )
        assert updated.hours == Decimal("2.50")
        assert updated.description == "Petição revisada"

    async def test_update_billed_rejected(self, db, tenant, client_record, entries):
        await self._bill(db, tenant, client_record, entries[:1])
        with pytest.raises(BusinessValidationError):
            await time_entry_service.update(db, tenant.id, entries[0].id, TimeEntryUpdate(hours=Decimal("9")))

    async def test_delete_billed_rejected(self, db, tenant, client_record, entries):
        await self._bill(db, tenant, client_record, entries[:1])
        with pytest.raises(BusinessValidationError):
            await time_entry_service.delete(db, tenant.id, entries[0].id)

    async def test_delete_unbilled(self, db, tenant, entries):
        await time_entry_service.delete(db, tenant.id, entries[1].id)
        with pytest.raises(NotFoundError):
            await time_entry_service.get_by_id(db, tenant.id, entries[1].id)

    async def test_other_tenant_cannot_touch(self, db, other_tenant, entries):
        with pytest.raises(NotFoundError):
            await time_entry_service.delete(db, other_tenant.id, entries[0].id)
        with pytest.raises(NotFoundError):
            await time_entry_service.get_by_id(db, other_tenant.id, uuid.uuid4())
