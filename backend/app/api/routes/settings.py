"""
Router FastAPI per le impostazioni dello studio
Progetto: Gestionale Studio Legale

Anagrafica studio, preferenze di notifica, configurazione SMTP,
token del calendario, utenti e override dei permessi per ruolo.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import rbac
from app.core.database import get_db
from app.core.deps import AdminUser, ManagerUser, require_permission
from app.models.user import User
from app.schemas.tenant import (
    CalendarTokenResponse,
    NotificationSettings,
    NotificationSettingsUpdate,
    RoleRead,
    RoleUpdate,
    SmtpSettings,
    SmtpSettingsRead,
    TenantRead,
    TenantUpdate,
)
from app.schemas.user import UserInvite, UserInviteResponse, UserResponse, UserUpdate
from app.services.tenant_service import tenant_service
from app.services.user_service import user_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/settings",
    tags=["Impostazioni"],
)

SettingsViewer = require_permission(rbac.SETTINGS_VIEW)
NotificationsManager = require_permission(rbac.SETTINGS_MANAGE_NOTIFICATIONS)


# -------------------------------------------------------------------
# Studio
# -------------------------------------------------------------------

@router.get(
    "/tenant",
    name="studio_dettaglio",
    summary="Anagrafica studio",
    response_model=TenantRead,
)
async def get_tenant(
    current_user: User = Depends(SettingsViewer),
    db: AsyncSession = Depends(get_db),
) -> TenantRead:
    tenant = await tenant_service.get_tenant(db, current_user.tenant_id)
    return TenantRead.model_validate(tenant)


@router.put(
    "/tenant",
    name="studio_aggiorna",
    summary="Aggiorna anagrafica studio",
    response_model=TenantRead,
)
async def update_tenant(
    tenant_data: TenantUpdate,
    current_user: ManagerUser,
    db: AsyncSession = Depends(get_db),
) -> TenantRead:
    """Solo admin e partner; la modifica viene registrata nell'audit log."""
    tenant = await tenant_service.update_tenant(db, current_user.tenant_id, current_user.id, tenant_data)
    return TenantRead.model_validate(tenant)


# -------------------------------------------------------------------
# Notifiche
# -------------------------------------------------------------------

@router.get(
    "/notifications",
    name="notifiche_dettaglio",
    summary="Preferenze di notifica",
    response_model=NotificationSettings,
)
async def get_notifications(
    current_user: User = Depends(SettingsViewer),
    db: AsyncSession = Depends(get_db),
) -> NotificationSettings:
    """Restituisce le preferenze con i valori di default per i campi mancanti."""
    tenant_settings = await tenant_service.get_settings(db, current_user.tenant_id)
    return tenant_settings.notifications


@router.patch(
    "/notifications",
    name="notifiche_aggiorna",
    summary="Aggiorna preferenze di notifica",
    response_model=NotificationSettings,
)
async def update_notifications(
    notification_data: NotificationSettingsUpdate,
    current_user: User = Depends(NotificationsManager),
    db: AsyncSession = Depends(get_db),
) -> NotificationSettings:
    """I giorni di preavviso vengono limitati all'intervallo 1-30."""
    return await tenant_service.update_notifications(db, current_user.tenant_id, notification_data)


# -------------------------------------------------------------------
# SMTP
# -------------------------------------------------------------------

@router.get(
    "/smtp",
    name="smtp_dettaglio",
    summary="Configurazione SMTP",
    description="La password non viene mai restituita.",
    response_model=SmtpSettingsRead,
)
async def get_smtp(
    current_user: User = Depends(SettingsViewer),
    db: AsyncSession = Depends(get_db),
) -> SmtpSettingsRead:
    tenant_settings = await tenant_service.get_settings(db, current_user.tenant_id)
    return SmtpSettingsRead.from_settings(tenant_settings.smtp)


@router.put(
    "/smtp",
    name="smtp_aggiorna",
    summary="Aggiorna configurazione SMTP",
    response_model=SmtpSettingsRead,
)
async def update_smtp(
    smtp_data: SmtpSettings,
    current_user: User = Depends(NotificationsManager),
    db: AsyncSession = Depends(get_db),
) -> SmtpSettingsRead:
    """Se la password è omessa resta valida quella già salvata."""
    smtp = await tenant_service.update_smtp(db, current_user.tenant_id, smtp_data)
    return SmtpSettingsRead.from_settings(smtp)


# -------------------------------------------------------------------
# Calendario
# -------------------------------------------------------------------

@router.get(
    "/calendar-token",
    name="calendario_token",
    summary="Token del feed ICS",
    response_model=CalendarTokenResponse,
)
async def get_calendar_token(
    current_user: User = Depends(SettingsViewer),
    db: AsyncSession = Depends(get_db),
) -> CalendarTokenResponse:
    """Restituisce token e URL del feed; il token viene creato se assente."""
    return await tenant_service.get_calendar_token(db, current_user.tenant_id)


@router.post(
    "/calendar-token",
    name="calendario_token_ruota",
    summary="Rigenera il token del feed ICS",
    response_model=CalendarTokenResponse,
)
async def rotate_calendar_token(
    current_user: User = Depends(NotificationsManager),
    db: AsyncSession = Depends(get_db),
) -> CalendarTokenResponse:
    return await tenant_service.rotate_calendar_token(db, current_user.tenant_id)


# -------------------------------------------------------------------
# Utenti
# -------------------------------------------------------------------

@router.get(
    "/users",
    name="utenti_lista",
    summary="Utenti dello studio",
    response_model=list[UserResponse],
)
async def get_users(
    current_user: ManagerUser,
    db: AsyncSession = Depends(get_db),
) -> list[UserResponse]:
    users = await user_service.list_users(db, current_user.tenant_id)
    return [UserResponse.model_validate(u) for u in users]


@router.post(
    "/users/invite",
    name="utente_invita",
    summary="Invita utente",
    response_model=UserInviteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def invite_user(
    invite_data: UserInvite,
    current_user: ManagerUser,
    db: AsyncSession = Depends(get_db),
) -> UserInviteResponse:
    """
    Crea l'utente con una password temporanea, restituita una sola volta.

    Raises:
        DuplicateError: Email già registrata
    """
    return await user_service.invite(db, current_user.tenant_id, current_user.id, invite_data)


@router.patch(
    "/users/{user_id}",
    name="utente_aggiorna",
    summary="Aggiorna utente",
    response_model=UserResponse,
)
async def update_user(
    user_id: uuid.UUID,
    user_data: UserUpdate,
    current_user: ManagerUser,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await user_service.update(db, current_user.tenant_id, user_id, user_data, current_user)
    return UserResponse.model_validate(user)


@router.delete(
    "/users/{user_id}",
    name="utente_disattiva",
    summary="Disattiva utente",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def deactivate_user(
    user_id: uuid.UUID,
    current_user: ManagerUser,
    db: AsyncSession = Depends(get_db),
) -> None:
    await user_service.deactivate(db, current_user.tenant_id, user_id, current_user)


# -------------------------------------------------------------------
# Ruoli
# -------------------------------------------------------------------

@router.get(
    "/roles",
    name="ruoli_lista",
    summary="Override permessi per ruolo",
    response_model=list[RoleRead],
)
async def get_roles(
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
) -> list[RoleRead]:
    roles = await tenant_service.list_roles(db, current_user.tenant_id)
    return [RoleRead.model_validate(r) for r in roles]


@router.put(
    "/roles/{name}",
    name="ruolo_aggiorna",
    summary="Imposta override permessi",
    response_model=RoleRead,
)
async def upsert_role(
    name: str,
    role_data: RoleUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
) -> RoleRead:
    """
    Crea o sostituisce i permessi del ruolo per lo studio corrente.

    I permessi si sommano a quelli statici del ruolo.
    """
    role = await tenant_service.upsert_role(db, current_user.tenant_id, name, role_data)
    return RoleRead.model_validate(role)
