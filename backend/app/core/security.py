"""
Modulo di sicurezza per autenticazione JWT
Progetto: Gestionale Studio Legale

Funzioni per hashing password, gestione token JWT e token calendario.
"""

import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.schemas.token import TokenPayload

# Context per hashing password
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hasha una password in chiaro."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifica una password in chiaro contro una hashata.

    Args:
        plain_password: Password in chiaro
        hashed_password: Password hashata

    Returns:
        True se la password corrisponde, False altrimenti
    """
    return pwd_context.verify(plain_password, hashed_password)


def _encode(user_id: str, tenant_id: str, role: str, token_type: str, expires: timedelta) -> str:
    payload = {
        "sub": user_id,
        "tid": tenant_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + expires,
        "type": token_type,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, tenant_id: str, role: str) -> str:
    """
    Crea un token di accesso JWT.

    Args:
        user_id: ID dell'utente
        tenant_id: ID dello studio dell'utente
        role: Ruolo dell'utente

    Returns:
        Token JWT codificato
    """
    return _encode(
        user_id,
        tenant_id,
        role,
        "access",
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: str, tenant_id: str, role: str) -> str:
    """Crea un token di refresh JWT."""
    return _encode(
        user_id,
        tenant_id,
        role,
        "refresh",
        timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str) -> TokenPayload:
    """
    Decodifica e valida un token JWT.

    Args:
        token: Token JWT da decodificare

    Returns:
        TokenPayload con i dati del token

    Raises:
        AuthenticationError: Se il token è invalido o scaduto
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise AuthenticationError(f"Token invalido o scaduto: {e}")

    if not payload.get("sub") or payload.get("exp") is None:
        raise AuthenticationError("Token invalido: missing subject")

    return TokenPayload(
        sub=payload["sub"],
        tid=payload.get("tid"),
        role=payload.get("role", ""),
        exp=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        type=payload.get("type", ""),
    )


def generate_calendar_token() -> str:
    """Token casuale URL-safe per l'accesso al feed ICS senza sessione."""
    return secrets.token_urlsafe(24)


__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "generate_calendar_token",
]
