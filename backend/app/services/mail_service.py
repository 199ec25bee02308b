"""
Invio email via SMTP
Progetto: Gestionale Studio Legale

Usa la configurazione SMTP salvata nelle impostazioni dello studio.
smtplib è bloccante: l'invio gira nel threadpool di FastAPI.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage

from fastapi.concurrency import run_in_threadpool

from app.core.exceptions import BusinessValidationError, ServiceUnavailableError
from app.schemas.tenant import SmtpSettings

# Logger per questo modulo
logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10


def _build_message(sender: str, to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    return message


def _send_all(smtp: SmtpSettings, recipients: list[str], subject: str, body: str) -> int:
    """Apre una connessione e invia un messaggio per destinatario."""
    context = ssl.create_default_context()

    if smtp.secure:
        server: smtplib.SMTP = smtplib.SMTP_SSL(
            smtp.host, smtp.port, timeout=SMTP_TIMEOUT_SECONDS, context=context
        )
    else:
        server = smtplib.SMTP(smtp.host, smtp.port, timeout=SMTP_TIMEOUT_SECONDS)

    sent = 0
    with server:
        server.ehlo()
        if not smtp.secure and server.has_extn("starttls"):
            server.starttls(context=context)
            server.ehlo()
        server.login(smtp.user, smtp.password)

        for to in recipients:
            server.send_message(_build_message(smtp.from_address, to, subject, body))
            logger.info("[SMTP EMAIL] To=%s | Subject=%s", to, subject)
            sent += 1
    return sent


async def send_plain_text(
    smtp: SmtpSettings,
    recipients: list[str],
    subject: str,
    body: str,
) -> int:
    """
    Invia la stessa email testuale a ogni destinatario.

    Returns:
        Numero di email inviate

    Raises:
        BusinessValidationError: Configurazione SMTP incompleta
        ServiceUnavailableError: Server SMTP non raggiungibile o errore di invio
    """
    if not smtp.is_configured:
        raise BusinessValidationError("SMTP not configured")

    try:
        return await run_in_threadpool(_send_all, smtp, recipients, subject, body)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Invio email fallito tramite %s:%s: %s", smtp.host, smtp.port, e)
        raise ServiceUnavailableError("Invio email non riuscito")
