"""
Service Layer per gli avvisi
Progetto: Gestionale Studio Legale

Aggrega scadenze non completate (in arrivo o già scadute) e udienze
programmate nella finestra di preavviso dello studio; invia il
riepilogo via email agli utenti operativi.
"""

import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import BusinessValidationError
from app.models.matter import Deadline, Hearing, HearingStatus, Matter
from app.models.mixins import as_utc, utcnow
from app.models.user import User, UserRole
from app.schemas.alert import AlertEmailResult, AlertItem, AlertList, AlertType
from app.schemas.tenant import NotificationSettings, TenantSettings
from app.services import mail_service
from app.services.tenant_service import tenant_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

# Ruoli che ricevono il riepilogo giornaliero
DIGEST_ROLES = (UserRole.PARTNER.value, UserRole.LAWYER.value, UserRole.SECRETARY.value)


def days_until(moment: datetime, now: datetime) -> int:
    """Giorni mancanti arrotondati per eccesso (negativi se già passato)."""
    return math.ceil((as_utc(moment) - now).total_seconds() / SECONDS_PER_DAY)


def format_datetime(moment: datetime) -> str:
    return as_utc(moment).strftime("%d/%m/%Y %H:%M")


class AlertService:
    """Service per avvisi e riepilogo email."""

    async def _load(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        notifications: NotificationSettings,
        now: datetime,
    ) -> tuple[list[Deadline], list[Hearing]]:
        deadline_end = now + timedelta(days=notifications.deadlines_reminder_days)
        hearing_end = now + timedelta(days=notifications.hearings_reminder_days)

        deadlines = await db.execute(
            select(Deadline)
            .where(
                Deadline.tenant_id == tenant_id,
                Deadline.is_completed.is_(False),
                or_(
                    Deadline.deadline_date < now,
                    Deadline.deadline_date.between(now, deadline_end),
                ),
            )
            .options(selectinload(Deadline.matter).selectinload(Matter.client))
            .order_by(Deadline.deadline_date)
        )
        hearings = await db.execute(
            select(Hearing)
            .where(
                Hearing.tenant_id == tenant_id,
                Hearing.status == HearingStatus.SCHEDULED.value,
                Hearing.hearing_date.between(now, hearing_end),
            )
            .options(selectinload(Hearing.matter))
            .order_by(Hearing.hearing_date)
        )
        return list(deadlines.scalars().all()), list(hearings.scalars().all())

    async def get_alerts(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> AlertList:
        """Avvisi dello studio ordinati per data."""
        now = now or utcnow()
        notifications = (await tenant_service.get_settings(db, tenant_id)).notifications
        deadlines, hearings = await self._load(db, tenant_id, notifications, now)

        items = [
            AlertItem(
                id=d.id,
                type=AlertType.DEADLINE,
                title=d.title,
                date=as_utc(d.deadline_date),
                days_until=days_until(d.deadline_date, now),
                matter_id=d.matter_id,
                matter_title=d.matter.title if d.matter else None,
                client_name=d.matter.client.name if d.matter and d.matter.client else None,
            )
            for d in deadlines
        ]
        items += [
            AlertItem(
                id=h.id,
                type=AlertType.HEARING,
                title=f"Audiência: {h.hearing_type or 'Geral'}",
                date=as_utc(h.hearing_date),
                days_until=days_until(h.hearing_date, now),
                matter_id=h.matter_id,
                matter_title=h.matter.title if h.matter else None,
            )
            for h in hearings
        ]
        items.sort(key=lambda item: item.date)

        return AlertList(
            deadlines_reminder_days=notifications.deadlines_reminder_days,
            hearings_reminder_days=notifications.hearings_reminder_days,
            items=items,
        )

    def build_digest(
        self,
        tenant_name: str,
        deadlines: list[Deadline],
        hearings: list[Hearing],
        now: datetime,
    ) -> str:
        """Corpo testuale del riepilogo email."""
        lines = [f"Escritório: {tenant_name}", ""]

        if deadlines:
            lines.append("Prazos:")
            for d in deadlines:
                parts = [d.title, format_datetime(d.deadline_date), d.matter.title if d.matter else ""]
                if d.matter and d.matter.client:
                    parts.append(d.matter.client.name)
                if as_utc(d.deadline_date) < now:
                    parts.append("ATRASADO")
                lines.append("- " + " • ".join(parts))
            lines.append("")

        if hearings:
            lines.append("Audiências:")
            for h in hearings:
                parts = [
                    h.hearing_type or "Audiência",
                    format_datetime(h.hearing_date),
                    h.matter.title if h.matter else "",
                ]
                lines.append("- " + " • ".join(parts))
            lines.append("")

        return "\n".join(lines)

    async def send_email_digest(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> AlertEmailResult:
        """
        Invia il riepilogo degli avvisi agli utenti partner, lawyer e secretary.

        Raises:
            BusinessValidationError: SMTP non configurato, canale email
                disattivato o nessun destinatario
        """
        now = now or utcnow()
        tenant = await tenant_service.get_tenant(db, tenant_id)
        tenant_settings = TenantSettings.from_raw(tenant.settings)

        if tenant_settings.smtp is None or not tenant_settings.smtp.is_configured:
            raise BusinessValidationError("SMTP not configured")
        if not tenant_settings.notifications.email_enabled:
            raise BusinessValidationError("Email channel disabled")

        deadlines, hearings = await self._load(db, tenant_id, tenant_settings.notifications, now)
        if not deadlines and not hearings:
            return AlertEmailResult(success=True, sent=0)

        result = await db.execute(
            select(User.email).where(
                User.tenant_id == tenant_id,
                User.is_active.is_(True),
                User.role.in_(DIGEST_ROLES),
            )
        )
        recipients = [email for email in result.scalars().all() if email]
        if not recipients:
            raise BusinessValidationError("No recipients")

        body = self.build_digest(tenant.name, deadlines, hearings, now)
        subject = f"Alertas do dia ({now.strftime('%d/%m/%Y')})"
        sent = await mail_service.send_plain_text(tenant_settings.smtp, recipients, subject, body)

        logger.info("Riepilogo avvisi inviato a %d destinatari (studio %s)", sent, tenant_id)
        return AlertEmailResult(success=True, sent=sent, recipients=recipients)


alert_service = AlertService()
