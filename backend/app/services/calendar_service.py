"""
Service Layer per il calendario
Progetto: Gestionale Studio Legale

Eventi del calendario (scadenze e udienze) ed export ICS (RFC 5545).
Le scadenze sono eventi di giornata intera, le udienze eventi orari
in UTC di durata configurabile.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.exceptions import BusinessValidationError
from app.models.matter import Deadline, Hearing, HearingStatus
from app.models.mixins import as_utc, utcnow
from app.schemas.alert import AlertType, CalendarEvent

# Logger per questo modulo
logger = logging.getLogger(__name__)

CRLF = "\r\n"
PRODID = "-//Gestionale Studio Legale//Calendar//PT-BR"


def escape_text(value: str) -> str:
    """Escape dei valori TEXT: backslash, punto e virgola, virgola e a capo."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "\\n")
    )


def format_utc(moment: datetime) -> str:
    """Data/ora UTC in forma base (es. 20250110T143000Z)."""
    return as_utc(moment).strftime("%Y%m%dT%H%M%SZ")


def format_date(moment: datetime) -> str:
    return as_utc(moment).strftime("%Y%m%d")


def build_ics(
    deadlines: list[Deadline],
    hearings: list[Hearing],
    now: Optional[datetime] = None,
) -> str:
    """
    Compone il calendario ICS.

    Ogni riga termina con CRLF; UID = <id>@<calendar_domain>.
    """
    stamp = format_utc(now or utcnow())
    domain = settings.calendar_domain
    lines = [
        "BEGIN:VCALENDAR",
        f"PRODID:{PRODID}",
        "VERSION:2.0",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]

    for d in deadlines:
        start = as_utc(d.deadline_date)
        matter_title = d.matter.title if d.matter else None
        lines += [
            "BEGIN:VEVENT",
            f"UID:{d.id}@{domain}",
            f"DTSTAMP:{stamp}",
            f"SUMMARY:{escape_text('Prazo: ' + d.title)}",
            f"DESCRIPTION:{escape_text('Processo: ' + matter_title if matter_title else 'Prazo')}",
            f"DTSTART;VALUE=DATE:{format_date(start)}",
            f"DTEND;VALUE=DATE:{format_date(start + timedelta(days=1))}",
            "END:VEVENT",
        ]

    duration = timedelta(minutes=settings.hearing_duration_minutes)
    for h in hearings:
        start = as_utc(h.hearing_date)
        matter_title = h.matter.title if h.matter else None
        lines += [
            "BEGIN:VEVENT",
            f"UID:{h.id}@{domain}",
            f"DTSTAMP:{stamp}",
            f"SUMMARY:{escape_text('Audiência: ' + (h.hearing_type or 'Geral'))}",
            f"DESCRIPTION:{escape_text('Processo: ' + matter_title if matter_title else 'Audiência')}",
        ]
        if h.location:
            lines.append(f"LOCATION:{escape_text(h.location)}")
        lines += [
            f"DTSTART:{format_utc(start)}",
            f"DTEND:{format_utc(start + duration)}",
            "END:VEVENT",
        ]

    lines.append("END:VCALENDAR")
    return CRLF.join(lines) + CRLF


class CalendarService:
    """Service per eventi ed export ICS."""

    async def _load(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> tuple[list[Deadline], list[Hearing]]:
        deadlines = await db.execute(
            select(Deadline)
            .where(Deadline.tenant_id == tenant_id, Deadline.deadline_date.between(start, end))
            .options(selectinload(Deadline.matter))
            .order_by(Deadline.deadline_date)
        )
        hearings = await db.execute(
            select(Hearing)
            .where(Hearing.tenant_id == tenant_id, Hearing.hearing_date.between(start, end))
            .options(selectinload(Hearing.matter))
            .order_by(Hearing.hearing_date)
        )
        return list(deadlines.scalars().all()), list(hearings.scalars().all())

    async def list_events(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> list[CalendarEvent]:
        """
        Scadenze e udienze nell'intervallo [start, end].

        Raises:
            BusinessValidationError: Intervallo mancante o invertito
        """
        if start is None or end is None:
            raise BusinessValidationError("I parametri start ed end sono obbligatori")
        if end < start:
            raise BusinessValidationError("end deve essere successivo a start")

        deadlines, hearings = await self._load(db, tenant_id, start, end)
        duration = timedelta(minutes=settings.hearing_duration_minutes)

        events = [
            CalendarEvent(
                id=d.id,
                type=AlertType.DEADLINE,
                title=d.title,
                start=as_utc(d.deadline_date),
                end=as_utc(d.deadline_date),
                all_day=True,
                matter_id=d.matter_id,
                is_completed=d.is_completed,
            )
            for d in deadlines
        ]
        events += [
            CalendarEvent(
                id=h.id,
                type=AlertType.HEARING,
                title=f"Audiência: {h.hearing_type or 'Geral'}",
                start=as_utc(h.hearing_date),
                end=as_utc(h.hearing_date) + duration,
                all_day=False,
                matter_id=h.matter_id,
                location=h.location,
                is_completed=h.status == HearingStatus.COMPLETED.value,
            )
            for h in hearings
        ]
        events.sort(key=lambda event: event.start)
        return events

    async def export_ics(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> str:
        """Feed ICS dalla finestra configurata (default -30/+180 giorni)."""
        now = now or utcnow()
        start = now - timedelta(days=settings.ics_past_days)
        end = now + timedelta(days=settings.ics_future_days)

        deadlines, hearings = await self._load(db, tenant_id, start, end)
        logger.debug(
            "Export ICS studio %s: %d scadenze, %d udienze", tenant_id, len(deadlines), len(hearings)
        )
        return build_ics(deadlines, hearings, now)


calendar_service = CalendarService()
