"""
Unit tests per il controllo accessi basato sui ruoli.
"""

import pytest

from app.core import rbac
from app.models.tenant import Role
from app.models.user import UserRole
from app.schemas.tenant import RolePermissions, RoleUpdate
from app.services.tenant_service import tenant_service

from tests.conftest import make_user


# ============================================================
# Tabella statica
# ============================================================


class TestStaticPermissions:
    """Tests per can() sulla tabella ruolo → permessi."""

    async def test_admin_has_everything(self, db, tenant):
        """Test admin concede qualsiasi permesso, anche sconosciuto."""
        user = await make_user(db, tenant, UserRole.ADMIN)
        assert rbac.can(user, rbac.FINANCE_MANAGE)
        assert rbac.can(user, "qualunque.permesso")

    async def test_client_has_nothing(self, db, tenant):
        """Test il ruolo client non vede la finanza."""
        user = await make_user(db, tenant, UserRole.CLIENT)
        assert not rbac.can(user, rbac.FINANCE_VIEW)
        assert not rbac.can(user, rbac.CASES_VIEW)

    async def test_role_matrix(self, db, tenant):
        """Test alcuni permessi tipici dei ruoli intermedi."""
        lawyer = await make_user(db, tenant, UserRole.LAWYER)
        financial = await make_user(db, tenant, UserRole.FINANCIAL)
        intern = await make_user(db, tenant, UserRole.INTERN)

        assert rbac.can(lawyer, rbac.CASES_VIEW)
        assert not rbac.can(lawyer, rbac.CASES_MANAGE)
        assert rbac.can(financial, rbac.FINANCE_MANAGE)
        assert not rbac.can(financial, rbac.CASES_VIEW)
        assert rbac.can(intern, rbac.CALENDAR_VIEW)
        assert not rbac.can(intern, rbac.FINANCE_VIEW)

    def test_no_user(self):
        """Test senza sessione nessun permesso."""
        assert rbac.can(None, rbac.CALENDAR_VIEW) is False


# ============================================================
# Override per studio
# ============================================================


class TestTenantOverride:
    """Tests per can_async() con la tabella roles."""

    async def test_override_grants_only_in_its_tenant(self, db, tenant, other_tenant):
        """Test override su client concede finance.view solo nello studio che lo definisce."""
        user = await make_user(db, tenant, UserRole.CLIENT)
        other_user = await make_user(db, other_tenant, UserRole.CLIENT)

        await tenant_service.upsert_role(
            db, tenant.id, "client", RoleUpdate(permissions=[rbac.FINANCE_VIEW])
        )

        assert await rbac.can_async(db, user, tenant.id, rbac.FINANCE_VIEW)
        assert not await rbac.can_async(db, other_user, other_tenant.id, rbac.FINANCE_VIEW)
        assert not await rbac.can_async(db, user, tenant.id, rbac.FINANCE_MANAGE)

    async def test_override_falls_back_to_static(self, db, tenant):
        """Test un override che non concede il permesso non toglie quelli statici."""
        user = await make_user(db, tenant, UserRole.LAWYER)
        await tenant_service.upsert_role(db, tenant.id, "lawyer", RoleUpdate(permissions=[]))

        assert await rbac.can_async(db, user, tenant.id, rbac.CASES_VIEW)

    async def test_legacy_list_format(self, db, tenant):
        """Test permessi salvati come lista semplice."""
        user = await make_user(db, tenant, UserRole.SUPPORT)
        db.add(Role(tenant_id=tenant.id, name="support", permissions=[rbac.ALERTS_VIEW]))
        await db.commit()

        assert await rbac.can_async(db, user, tenant.id, rbac.ALERTS_VIEW)

    async def test_malformed_override_ignored(self, db, tenant):
        """Test contenuto non interpretabile → si usa la tabella statica."""
        user = await make_user(db, tenant, UserRole.INTERN)
        db.add(Role(tenant_id=tenant.id, name="intern", permissions={"allowed": "tutto"}))
        await db.commit()

        assert await rbac.can_async(db, user, tenant.id, rbac.CASES_VIEW)
        assert not await rbac.can_async(db, user, tenant.id, rbac.FINANCE_VIEW)

    async def test_effective_permissions_union(self, db, tenant):
        """Test permessi effettivi = statici ∪ override, ordinati."""
        user = await make_user(db, tenant, UserRole.INTERN)
        await tenant_service.upsert_role(
            db, tenant.id, "intern", RoleUpdate(permissions=[rbac.ALERTS_VIEW])
        )

        permissions = await rbac.effective_permissions(db, user)
        assert permissions == sorted(
            [rbac.ALERTS_VIEW, rbac.CALENDAR_VIEW, rbac.CASES_VIEW, rbac.DOCUMENTS_VIEW]
        )


class TestRolePermissionsParsing:
    """Tests per la normalizzazione dei permessi grezzi."""

    @pytest.mark.parametrize(
        "raw",
        [
            ["finance.view"],
            {"allowed": ["finance.view"]},
            '{"allowed": ["finance.view"]}',
            '["finance.view"]',
        ],
    )
    def test_accepted_shapes(self, raw):
        assert RolePermissions.model_validate(raw).allowed == ["finance.view"]

    def test_wildcard(self):
        assert RolePermissions.model_validate(["*"]).grants("documents.manage")
