"""
Service Layer per le impostazioni dello studio
Progetto: Gestionale Studio Legale

Anagrafica studio, preferenze di notifica, configurazione SMTP,
token del calendario e override dei ruoli. Le impostazioni JSON
passano sempre da TenantSettings.
"""

import logging
import secrets
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.rbac import ROLE_PERMISSIONS
from app.core.security import generate_calendar_token
from app.models.tenant import Role, Tenant
from app.schemas.tenant import (
    CalendarTokenResponse,
    NotificationSettings,
    NotificationSettingsUpdate,
    RoleUpdate,
    SmtpSettings,
    TenantSettings,
    TenantUpdate,
)
from app.services.audit_service import record_audit

# Logger per questo modulo
logger = logging.getLogger(__name__)


def build_ics_url(tenant_id: uuid.UUID, token: str) -> str:
    """URL del feed ICS accessibile senza sessione."""
    return f"{settings.public_base_url}/api/calendar/ics?tid={tenant_id}&token={token}"


class TenantService:
    """
    Service per la gestione dello studio corrente.

    Tutti i metodi ricevono il tenant_id dell'utente autenticato.
    """

    async def get_tenant(self, db: AsyncSession, tenant_id: uuid.UUID) -> Tenant:
        tenant = await db.get(Tenant, tenant_id)
        if tenant is None or not tenant.is_active:
            raise NotFoundError("Studio non trovato")
        return tenant

    async def get_settings(self, db: AsyncSession, tenant_id: uuid.UUID) -> TenantSettings:
        """Impostazioni normalizzate dello studio."""
        tenant = await self.get_tenant(db, tenant_id)
        return TenantSettings.from_raw(tenant.settings)

    async def _save_settings(self, db: AsyncSession, tenant: Tenant, new: TenantSettings) -> None:
        # Nuovo dict: SQLAlchemy non traccia le mutazioni in-place del JSON
        tenant.settings = new.to_raw()
        await db.commit()

    # ------------------------------------------------------------
    # Anagrafica
    # ------------------------------------------------------------
    async def update_tenant(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        data: TenantUpdate,
    ) -> Tenant:
        """Aggiorna l'anagrafica dello studio e registra l'audit."""
        tenant = await self.get_tenant(db, tenant_id)
        changes = data.model_dump(exclude_unset=True)
        old = {key: getattr(tenant, key) for key in changes}

        for key, value in changes.items():
            setattr(tenant, key, value)

        record_audit(
            db,
            tenant_id=tenant_id,
            user_id=user_id,
            action="update",
            entity_type="tenant",
            entity_id=tenant_id,
            old_data=old,
            new_data=changes,
        )
        await db.commit()
        logger.info("Anagrafica studio %s aggiornata: %s", tenant_id, sorted(changes))
        return tenant

    # ------------------------------------------------------------
    # Notifiche
    # ------------------------------------------------------------
    async def update_notifications(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        data: NotificationSettingsUpdate,
    ) -> NotificationSettings:
        """Unisce le preferenze inviate a quelle esistenti (giorni limitati a 1..30)."""
        tenant = await self.get_tenant(db, tenant_id)
        current = TenantSettings.from_raw(tenant.settings)

        merged = current.notifications.model_dump()
        merged.update(data.model_dump(exclude_unset=True, exclude_none=True))
        current.notifications = NotificationSettings.model_validate(merged)

        await self._save_settings(db, tenant, current)
        return current.notifications

    # ------------------------------------------------------------
    # SMTP
    # ------------------------------------------------------------
    async def update_smtp(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        data: SmtpSettings,
    ) -> SmtpSettings:
        """
        Sostituisce la configurazione SMTP.

        Se la password non viene inviata si mantiene quella salvata.
        """
        tenant = await self.get_tenant(db, tenant_id)
        current = TenantSettings.from_raw(tenant.settings)

        if data.password is None and current.smtp is not None:
            data = data.model_copy(update={"password": current.smtp.password})
        current.smtp = data

        await self._save_settings(db, tenant, current)
        logger.info("Configurazione SMTP aggiornata per lo studio %s", tenant_id)
        return data

    # ------------------------------------------------------------
    # Token calendario
    # ------------------------------------------------------------
    async def get_calendar_token(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
    ) -> CalendarTokenResponse:
        """Restituisce il token del feed ICS, generandolo se assente o troppo corto."""
        tenant = await self.get_tenant(db, tenant_id)
        current = TenantSettings.from_raw(tenant.settings)

        if not current.calendar.has_valid_token:
            current.calendar.token = generate_calendar_token()
            await self._save_settings(db, tenant, current)

        return CalendarTokenResponse(
            token=current.calendar.token,
            ics_url=build_ics_url(tenant_id, current.calendar.token),
        )

    async def rotate_calendar_token(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
    ) -> CalendarTokenResponse:
        """Genera un nuovo token: il precedente URL ICS smette di funzionare."""
        tenant = await self.get_tenant(db, tenant_id)
        current = TenantSettings.from_raw(tenant.settings)
        current.calendar.token = generate_calendar_token()
        await self._save_settings(db, tenant, current)

        logger.info("Token calendario ruotato per lo studio %s", tenant_id)
        return CalendarTokenResponse(
            token=current.calendar.token,
            ics_url=build_ics_url(tenant_id, current.calendar.token),
        )

    async def verify_calendar_token(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        token: str,
    ) -> bool:
        """True se il token coincide con quello salvato per lo studio."""
        tenant = await db.get(Tenant, tenant_id)
        if tenant is None or not tenant.is_active:
            return False
        calendar = TenantSettings.from_raw(tenant.settings).calendar
        return calendar.has_valid_token and secrets.compare_digest(calendar.token, token)

    # ------------------------------------------------------------
    # Override ruoli
    # ------------------------------------------------------------
    async def list_roles(self, db: AsyncSession, tenant_id: uuid.UUID) -> list[Role]:
        result = await db.execute(
            select(Role).where(Role.tenant_id == tenant_id).order_by(Role.name)
        )
        return list(result.scalars().all())

    async def upsert_role(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        name: str,
        data: RoleUpdate,
    ) -> Role:
        """Crea o sostituisce l'override dei permessi di un ruolo."""
        if name not in ROLE_PERMISSIONS:
            raise NotFoundError(f"Ruolo '{name}' inesistente")

        result = await db.execute(
            select(Role).where(Role.tenant_id == tenant_id, Role.name == name)
        )
        role: Optional[Role] = result.scalar_one_or_none()
        if role is None:
            role = Role(tenant_id=tenant_id, name=name)
            db.add(role)

        role.description = data.description
        role.permissions = {"allowed": sorted(set(data.permissions))}
        await db.commit()

        logger.info("Override permessi ruolo '%s' aggiornato (studio %s)", name, tenant_id)
        return role


tenant_service = TenantService()
