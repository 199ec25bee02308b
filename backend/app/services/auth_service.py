"""
Servizio per l'autenticazione
Progetto: Gestionale Studio Legale

Business logic per registrazione studio, login e refresh token.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, DuplicateError, NotFoundError
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.models.tenant import Tenant
from app.models.user import User, UserRole
from app.schemas.tenant import TenantSettings
from app.schemas.token import TokenResponse
from app.schemas.user import TenantRegistration, UserLogin

# Logger per questo modulo
logger = logging.getLogger(__name__)


def issue_tokens(user: User) -> TokenResponse:
    """Genera la coppia access/refresh per l'utente."""
    return TokenResponse(
        access_token=create_access_token(str(user.id), str(user.tenant_id), user.role),
        refresh_token=create_refresh_token(str(user.id), str(user.tenant_id), user.role),
        token_type="bearer",
    )


class AuthService:
    """Servizio per la gestione dell'autenticazione."""

    async def register(self, db: AsyncSession, data: TenantRegistration) -> User:
        """
        Registra un nuovo studio con il suo primo utente.

        Il primo utente di ogni studio è sempre admin.

        Raises:
            DuplicateError: Se l'email è già registrata
        """
        result = await db.execute(select(User.id).where(User.email == data.email))
        if result.first() is not None:
            raise DuplicateError(f"L'email {data.email} è già registrata")

        tenant = Tenant(name=data.tenant_name, settings=TenantSettings().to_raw())
        db.add(tenant)
        await db.flush()

        user = User(
            tenant_id=tenant.id,
            email=data.email,
            hashed_password=hash_password(data.password),
            full_name=data.full_name,
            role=UserRole.ADMIN.value,
        )
        db.add(user)
        await db.commit()

        logger.info("Registrato studio %s con amministratore %s", tenant.id, user.email)
        return user

    async def login(self, db: AsyncSession, data: UserLogin) -> TokenResponse:
        """
        Autentica un utente e restituisce i token JWT.

        Raises:
            AuthenticationError: Credenziali errate o utente disattivato
        """
        result = await db.execute(select(User).where(User.email == data.email))
        user = result.scalar_one_or_none()

        if not user or not verify_password(data.password, user.hashed_password):
            logger.info("Login fallito per %s", data.email)
            raise AuthenticationError("Email o password non corretti")

        if not user.is_active:
            raise AuthenticationError("Utente disattivato")

        return issue_tokens(user)

    async def refresh(self, db: AsyncSession, refresh_token: str) -> TokenResponse:
        """
        Aggiorna i token JWT usando un refresh token.

        Raises:
            AuthenticationError: Token invalido, non di refresh o utente non valido
        """
        token_data = decode_token(refresh_token)

        if token_data.type != "refresh":
            raise AuthenticationError("Token di accesso non valido per il refresh")

        try:
            user_id = UUID(token_data.sub)
        except ValueError:
            raise AuthenticationError("ID utente invalido nel token")

        user = await db.get(User, user_id)
        if not user or not user.is_active:
            raise AuthenticationError("Utente non trovato o disattivato")

        return issue_tokens(user)

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> User:
        """
        Recupera un utente per ID.

        Raises:
            NotFoundError: Se l'utente non esiste
        """
        user = await db.get(User, user_id)
        if not user:
            raise NotFoundError(f"Utente con ID {user_id} non trovato")
        return user


def get_auth_service() -> AuthService:
    """Factory function per ottenere un'istanza del servizio."""
    return AuthService()
