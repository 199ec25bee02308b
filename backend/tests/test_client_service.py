"""
Unit tests per ClientService (CRM) e UserService.
"""

import pytest
from sqlalchemy import select

from app.core.exceptions import BusinessValidationError, DuplicateError, NotFoundError
from app.models.client import Contact
from app.models.user import UserRole
from app.schemas.client import ClientCreate, ClientUpdate, ContactCreate, InteractionCreate, normalize_tax_id
from app.schemas.user import UserInvite, UserUpdate
from app.services.client_service import client_service
from app.services.user_service import user_service

from tests.conftest import make_user


# ============================================================
# Clienti
# ============================================================


class TestClients:
    """Tests per clienti e lead."""

    def test_tax_id_normalized(self):
        """Test CPF/CNPJ ridotto alle sole cifre."""
        assert normalize_tax_id("123.456.789-09") == "12345678909"
        assert normalize_tax_id("12.345.678/0001-95") == "12345678000195"
        assert normalize_tax_id("  ") is None
        with pytest.raises(ValueError):
            normalize_tax_id("1234")

    async def test_duplicate_tax_id_in_same_tenant(self, db, tenant, other_tenant):
        """Test CPF duplicato nello stesso studio → 409; in un altro studio ammesso."""
        data = ClientCreate(name="João Pereira", tax_id="123.456.789-09")
        await client_service.create(db, tenant.id, data)

        with pytest.raises(DuplicateError):
            await client_service.create(db, tenant.id, data)

        other = await client_service.create(db, other_tenant.id, data)
        assert other.tax_id == "12345678909"

    async def test_search_and_status(self, db, tenant, client_record):
        await client_service.create(db, tenant.id, ClientCreate(name="Lead Promissor", status="lead"))

        clients, total = await client_service.get_all(db, tenant.id, search="promissor")
        assert total == 1 and clients[0].name == "Lead Promissor"

        clients, total = await client_service.get_all(db, tenant.id, status_filter="active")
        assert [c.id for c in clients] == [client_record.id]

    async def test_archive(self, db, tenant, client_record):
        """Test eliminazione logica: stato archived."""
        await client_service.archive(db, tenant.id, client_record.id)
        client = await client_service.get_by_id(db, tenant.id, client_record.id)
        assert client.status == "archived"

    async def test_update_foreign(self, db, other_tenant, client_record):
        with pytest.raises(NotFoundError):
            await client_service.update(db, other_tenant.id, client_record.id, ClientUpdate(name="Novo nome"))

    async def test_detail_counters(self, db, tenant, client_record, matter):
        detail = await client_service.get_detail(db, tenant.id, client_record.id)
        assert detail.matters_count == 1
        assert detail.open_invoices_count == 0
        assert detail.contacts == []


class TestContactsAndInteractions:
    async def test_single_primary_contact(self, db, tenant, client_record):
        """Test un nuovo referente primario toglie il flag agli altri."""
        first = await client_service.add_contact(
            db, tenant.id, client_record.id, ContactCreate(name="Carla", is_primary=True)
        )
        second = await client_service.add_contact(
            db, tenant.id, client_record.id, ContactCreate(name="Bruno", is_primary=True)
        )

        rows = await db.execute(select(Contact.id, Contact.is_primary).where(Contact.client_id == client_record.id))
        assert dict(rows.all()) == {first.id: False, second.id: True}

    async def test_interaction_recorded(self, db, admin, client_record):
        interaction = await client_service.add_interaction(
            db, admin, client_record.id, InteractionCreate(interaction_type="call", subject="Retorno proposta")
        )
        assert interaction.user_id == admin.id
        listed = await client_service.list_interactions(db, admin.tenant_id, client_record.id)
        assert [i.id for i in listed] == [interaction.id]


# ============================================================
# Utenti dello studio
# ============================================================


class TestUsers:
    """Tests per invito, modifica e disattivazione utenti."""

    async def test_invite_returns_temporary_password(self, db, tenant, admin):
        result = await user_service.invite(
            db, tenant.id, admin.id, UserInvite(email="nova@alfa.example.com", role="lawyer")
        )
        assert result.user.role == UserRole.LAWYER
        assert result.user.full_name == "nova"
        assert len(result.temporary_password) >= 8

    async def test_invite_duplicate_email(self, db, tenant, admin):
        with pytest.raises(DuplicateError):
            await user_service.invite(db, tenant.id, admin.id, UserInvite(email=admin.email, role="intern"))

    async def test_cannot_demote_self(self, db, tenant, admin):
        with pytest.raises(BusinessValidationError):
            await user_service.update(db, tenant.id, admin.id, UserUpdate(role="intern"), admin)
        with pytest.raises(BusinessValidationError):
            await user_service.deactivate(db, tenant.id, admin.id, admin)

    async def test_change_role_and_deactivate(self, db, tenant, admin):
        colleague = await make_user(db, tenant, UserRole.INTERN)
        updated = await user_service.update(db, tenant.id, colleague.id, UserUpdate(role="lawyer"), admin)
        assert updated.role == "lawyer"

        await user_service.deactivate(db, tenant.id, colleague.id, admin)
        assert (await user_service.get_user(db, tenant.id, colleague.id)).is_active is False

    async def test_user_of_other_tenant(self, db, other_tenant, admin):
        with pytest.raises(NotFoundError):
            await user_service.get_user(db, other_tenant.id, admin.id)
