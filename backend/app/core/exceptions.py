"""
Eccezioni Custom per l'applicazione.
Progetto: Gestionale Studio Legale

Definisce eccezioni specifiche del dominio per una gestione
centralizzata degli errori. Ogni eccezione porta con sé lo status HTTP
e un codice errore stabile per il frontend; la traduzione in risposta
avviene negli exception handler registrati in main.py.

NOTA: BusinessValidationError è distinta da pydantic.ValidationError.
- pydantic.ValidationError: errori di formato/tipo nell'input (→ 400 con lista issues)
- BusinessValidationError: violazioni di regole di business (→ 400 con messaggio)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "DuplicateError",
    "BusinessValidationError",
    "ValidationError",       # alias di BusinessValidationError
    "ConflictError",
    "ServiceUnavailableError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il frontend
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "Errore interno del server"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.detail = detail if detail is not None else self.default_detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Corpo JSON della risposta di errore."""
        body: Dict[str, Any] = {"detail": self.detail, "error_code": self.error_code}
        if self.extra:
            body.update(self.extra)
        return body


class AuthenticationError(AppException):
    """Sessione assente, token invalido o scaduto."""

    status_code: int = 401
    error_code: str = "UNAUTHORIZED"
    default_detail: str = "Autenticazione richiesta"


class AuthorizationError(AppException):
    """
    Eccezione sollevata per accesso non autorizzato.

    Utilizzata quando il ruolo dell'utente (o l'override del tenant)
    non concede il permesso richiesto.

    Esempi di utilizzo:
        - "Permesso richiesto: finance.manage"
        - "Solo admin e partner possono gestire gli utenti"
    """

    status_code: int = 403
    error_code: str = "FORBIDDEN"
    default_detail: str = "Accesso non autorizzato"


class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.

    Vale anche per risorse esistenti ma appartenenti a un altro tenant:
    l'esistenza di dati di altri studi non viene mai rivelata.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"
    default_detail: str = "Risorsa non trovata"


class DuplicateError(AppException):
    """Violazione di unicità rilevata dall'applicazione (es. email o CPF/CNPJ già presente)."""

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"
    default_detail: str = "Risorsa già esistente"


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    Esempi di utilizzo:
        - "Alcune ore sono invalide o già fatturate"
        - "Impossibile eliminare una fattura con pagamenti registrati"
        - "SMTP non configurato"
    """

    status_code: int = 400
    error_code: str = "BUSINESS_VALIDATION_ERROR"
    default_detail: str = "Validazione dati fallita"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


# Alias per compatibilità
ValidationError = BusinessValidationError


class ConflictError(AppException):
    """
    Eccezione sollevata per conflitti di stato o di integrità.

    Utilizzata ad esempio quando due richieste concorrenti generano lo
    stesso numero fattura e il vincolo di unicità rifiuta la seconda.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"
    default_detail: str = "Conflitto di stato"


class ServiceUnavailableError(AppException):
    """Dipendenza esterna (SMTP, motore PDF) non raggiungibile o non installata."""

    status_code: int = 503
    error_code: str = "SERVICE_UNAVAILABLE"
    default_detail: str = "Servizio temporaneamente non disponibile"
