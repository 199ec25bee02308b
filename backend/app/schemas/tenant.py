"""
Schemas Pydantic per Tenant, impostazioni studio e ruoli
Progetto: Gestionale Studio Legale

La colonna JSON Tenant.settings viene sempre letta e scritta attraverso
TenantSettings: ogni sezione ha campi espliciti, la lettura tollera dati
storici malformati e la scrittura valida l'intero record.
"""

import json
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)

REMINDER_DAYS_DEFAULT = 3
REMINDER_DAYS_MIN = 1
REMINDER_DAYS_MAX = 30
CALENDAR_TOKEN_MIN_LENGTH = 16


def clamp_reminder_days(value: Any) -> int:
    """Converte in intero e limita a 1..30; valori non numerici o nulli → 3."""
    try:
        days = int(float(value))
    except (TypeError, ValueError):
        return REMINDER_DAYS_DEFAULT
    if days == 0:
        return REMINDER_DAYS_DEFAULT
    return min(REMINDER_DAYS_MAX, max(REMINDER_DAYS_MIN, days))


# -------------------------------------------------------------------
# Sezioni impostazioni
# -------------------------------------------------------------------

class NotificationChannel(str, Enum):
    """Canali di notifica degli avvisi."""
    IN_APP = "in-app"
    EMAIL = "email"


class SmtpSettings(BaseModel):
    """
    Configurazione SMTP dello studio.

    Accetta anche le chiavi storiche "pass" e "from".
    """

    model_config = ConfigDict(populate_by_name=True)

    host: Optional[str] = Field(None, description="Host SMTP")
    port: Optional[int] = Field(None, ge=1, le=65535, description="Porta SMTP")
    secure: bool = Field(False, description="Connessione TLS implicita (SMTPS)")
    user: Optional[str] = Field(None, description="Utente SMTP")
    password: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("password", "pass"),
        description="Password SMTP",
    )
    from_address: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("from_address", "from"),
        description="Mittente delle email",
    )

    @property
    def is_configured(self) -> bool:
        """True se host, porta, utente, password e mittente sono tutti presenti."""
        return all([self.host, self.port, self.user, self.password, self.from_address])


class NotificationSettings(BaseModel):
    """Preferenze di notifica: giorni di preavviso e canali attivi."""

    deadlines_reminder_days: int = Field(
        REMINDER_DAYS_DEFAULT,
        description="Giorni di preavviso per le scadenze (1-30)",
    )
    hearings_reminder_days: int = Field(
        REMINDER_DAYS_DEFAULT,
        description="Giorni di preavviso per le udienze (1-30)",
    )
    channels: list[NotificationChannel] = Field(
        default_factory=lambda: [NotificationChannel.IN_APP],
        description="Canali attivi",
    )

    @field_validator("deadlines_reminder_days", "hearings_reminder_days", mode="before")
    @classmethod
    def clamp_days(cls, v: Any) -> int:
        return clamp_reminder_days(v)

    @field_validator("channels", mode="before")
    @classmethod
    def drop_unknown_channels(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return [NotificationChannel.IN_APP]
        known = {c.value for c in NotificationChannel}
        return [c for c in v if c in known]

    @property
    def email_enabled(self) -> bool:
        return NotificationChannel.EMAIL in self.channels


class CalendarSettings(BaseModel):
    """Token per l'accesso al feed ICS senza sessione."""

    token: Optional[str] = Field(None, description="Token calendario")

    @property
    def has_valid_token(self) -> bool:
        return bool(self.token) and len(self.token) >= CALENDAR_TOKEN_MIN_LENGTH


class TenantSettings(BaseModel):
    """
    Record strutturato delle impostazioni dello studio.

    Le chiavi sconosciute vengono conservate per non perdere dati
    scritti da altre versioni dell'applicazione.
    """

    model_config = ConfigDict(extra="allow")

    smtp: Optional[SmtpSettings] = None
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    calendar: CalendarSettings = Field(default_factory=CalendarSettings)

    @classmethod
    def from_raw(cls, raw: Any) -> "TenantSettings":
        """
        Costruisce le impostazioni da un valore JSON grezzo.

        Una sezione non valida viene sostituita dal suo default (e loggata)
        invece di rendere illeggibile l'intero record.
        """
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError:
                logger.warning("Impostazioni tenant non in formato JSON, uso i default")
                raw = {}
        if not isinstance(raw, dict):
            return cls()

        data = dict(raw)
        sections = {
            "smtp": SmtpSettings,
            "notifications": NotificationSettings,
            "calendar": CalendarSettings,
        }
        for key, schema in sections.items():
            if key not in data or data[key] is None:
                continue
            try:
                data[key] = schema.model_validate(data[key])
            except ValidationError as e:
                logger.warning("Sezione impostazioni '%s' non valida, uso il default: %s", key, e)
                data.pop(key)
        return cls.model_validate(data)

    def to_raw(self) -> dict[str, Any]:
        """Serializza per la colonna JSON."""
        return self.model_dump(mode="json", exclude_none=True)


# -------------------------------------------------------------------
# Schemas API impostazioni
# -------------------------------------------------------------------

class NotificationSettingsUpdate(BaseModel):
    """Aggiornamento parziale delle preferenze di notifica."""

    deadlines_reminder_days: Optional[int] = None
    hearings_reminder_days: Optional[int] = None
    channels: Optional[list[NotificationChannel]] = None


class SmtpSettingsRead(BaseModel):
    """Configurazione SMTP restituita al client (password mascherata)."""

    host: Optional[str] = None
    port: Optional[int] = None
    secure: bool = False
    user: Optional[str] = None
    from_address: Optional[str] = None
    has_password: bool = False
    configured: bool = False

    @classmethod
    def from_settings(cls, smtp: Optional[SmtpSettings]) -> "SmtpSettingsRead":
        if smtp is None:
            return cls()
        return cls(
            host=smtp.host,
            port=smtp.port,
            secure=smtp.secure,
            user=smtp.user,
            from_address=smtp.from_address,
            has_password=bool(smtp.password),
            configured=smtp.is_configured,
        )


class CalendarTokenResponse(BaseModel):
    """Token calendario e URL completo del feed ICS."""

    token: str
    ics_url: str


# -------------------------------------------------------------------
# Schemas Tenant
# -------------------------------------------------------------------

class TenantRead(BaseModel):
    """Dati anagrafici dello studio."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    tax_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime


class TenantUpdate(BaseModel):
    """Aggiornamento anagrafica studio."""

    name: Optional[str] = Field(None, min_length=2, max_length=200)
    tax_id: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)


# -------------------------------------------------------------------
# Schemas Ruoli
# -------------------------------------------------------------------

class RolePermissions(BaseModel):
    """
    Permessi di un ruolo in forma normalizzata.

    Forme grezze accettate: ["perm", ...], {"allowed": [...]}, oppure una
    stringa JSON di una delle due. Tutte diventano {"allowed": [...]}.
    """

    allowed: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize(cls, raw: Any) -> Any:
        if isinstance(raw, str):
            raw = json.loads(raw)
        if raw is None:
            return {"allowed": []}
        if isinstance(raw, (list, tuple)):
            return {"allowed": [p for p in raw if isinstance(p, str)]}
        if isinstance(raw, dict):
            allowed = raw.get("allowed") or []
            if not isinstance(allowed, list):
                raise ValueError("'allowed' deve essere una lista di permessi")
            return {"allowed": [p for p in allowed if isinstance(p, str)]}
        raise ValueError("Formato permessi non riconosciuto")

    def grants(self, permission: str) -> bool:
        return "*" in self.allowed or permission in self.allowed


class RoleRead(BaseModel):
    """Override permessi di un ruolo per lo studio."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    permissions: RolePermissions

    @field_validator("permissions", mode="before")
    @classmethod
    def parse_permissions(cls, v: Any) -> Any:
        if isinstance(v, RolePermissions):
            return v
        return RolePermissions.model_validate(v)


class RoleUpdate(BaseModel):
    """Creazione/aggiornamento dell'override di un ruolo."""

    description: Optional[str] = None
    permissions: list[str] = Field(..., description="Permessi concessi ('*' = tutti)")
