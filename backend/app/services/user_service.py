"""
Service Layer per la gestione degli utenti dello studio
Progetto: Gestionale Studio Legale

Elenco, invito, modifica e disattivazione degli utenti del tenant corrente.
"""

import logging
import secrets
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BusinessValidationError, DuplicateError, NotFoundError
from app.core.security import hash_password
from app.models.user import User, UserRole
from app.schemas.user import UserInvite, UserInviteResponse, UserResponse, UserUpdate
from app.services.audit_service import record_audit

# Logger per questo modulo
logger = logging.getLogger(__name__)


class UserService:
    """Service per gli utenti di uno studio."""

    async def list_users(self, db: AsyncSession, tenant_id: uuid.UUID) -> list[User]:
        result = await db.execute(
            select(User).where(User.tenant_id == tenant_id).order_by(User.full_name)
        )
        return list(result.scalars().all())

    async def get_user(self, db: AsyncSession, tenant_id: uuid.UUID, user_id: uuid.UUID) -> User:
        """
        Recupera un utente dello studio.

        Raises:
            NotFoundError: Se l'utente non esiste nello studio
        """
        user = await db.get(User, user_id)
        if user is None or user.tenant_id != tenant_id:
            raise NotFoundError(f"Utente con ID {user_id} non trovato")
        return user

    async def invite(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        invited_by: uuid.UUID,
        data: UserInvite,
    ) -> UserInviteResponse:
        """
        Crea un utente con password temporanea.

        La password viene restituita una sola volta nella risposta.

        Raises:
            DuplicateError: Se l'email è già registrata
        """
        existing = await db.execute(select(User.id).where(User.email == data.email))
        if existing.first() is not None:
            raise DuplicateError(f"L'email {data.email} è già registrata")

        temporary_password = secrets.token_urlsafe(9)
        user = User(
            tenant_id=tenant_id,
            email=data.email,
            hashed_password=hash_password(temporary_password),
            full_name=data.full_name or data.email.split("@")[0],
            role=UserRole(data.role).value,
        )
        db.add(user)
        await db.flush()

        record_audit(
            db,
            tenant_id=tenant_id,
            user_id=invited_by,
            action="invite",
            entity_type="user",
            entity_id=user.id,
            new_data={"email": user.email, "role": user.role},
        )
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise DuplicateError(f"L'email {data.email} è già registrata")

        logger.info("Utente %s invitato nello studio %s", user.email, tenant_id)
        return UserInviteResponse(
            user=UserResponse.model_validate(user),
            temporary_password=temporary_password,
        )

    async def update(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        data: UserUpdate,
        current_user: User,
    ) -> User:
        """Aggiorna nome, ruolo o stato di un utente."""
        user = await self.get_user(db, tenant_id, user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if user.id == current_user.id and (
            changes.get("is_active") is False
            or ("role" in changes and UserRole(changes["role"]).value != user.role)
        ):
            raise BusinessValidationError("Non puoi disattivare o cambiare ruolo al tuo utente")

        if "role" in changes:
            changes["role"] = UserRole(changes["role"]).value

        old = {key: getattr(user, key) for key in changes}
        for key, value in changes.items():
            setattr(user, key, value)

        record_audit(
            db,
            tenant_id=tenant_id,
            user_id=current_user.id,
            action="update",
            entity_type="user",
            entity_id=user.id,
            old_data=old,
            new_data=changes,
        )
        await db.commit()
        return user

    async def deactivate(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        current_user: User,
    ) -> None:
        """Disattiva l'utente (l'utente resta collegato a ore e documenti)."""
        user = await self.get_user(db, tenant_id, user_id)
        if user.id == current_user.id:
            raise BusinessValidationError("Non puoi eliminare il tuo utente")

        user.is_active = False
        record_audit(
            db,
            tenant_id=tenant_id,
            user_id=current_user.id,
            action="delete",
            entity_type="user",
            entity_id=user.id,
        )
        await db.commit()
        logger.info("Utente %s disattivato (studio %s)", user.email, tenant_id)


user_service = UserService()
