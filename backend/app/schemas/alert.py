"""
Schemas Pydantic per avvisi e calendario
Progetto: Gestionale Studio Legale
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class AlertType(str, Enum):
    DEADLINE = "deadline"
    HEARING = "hearing"


class AlertItem(BaseModel):
    """Scadenza o udienza in arrivo (o scaduta)."""

    id: uuid.UUID
    type: AlertType
    title: str
    date: datetime
    days_until: int
    matter_id: Optional[uuid.UUID] = None
    matter_title: Optional[str] = None
    client_name: Optional[str] = None


class AlertList(BaseModel):
    deadlines_reminder_days: int
    hearings_reminder_days: int
    items: list[AlertItem]


class AlertEmailResult(BaseModel):
    success: bool
    sent: int
    recipients: list[str] = []


class CalendarEvent(BaseModel):
    """Evento del calendario (scadenza o udienza)."""

    id: uuid.UUID
    type: AlertType
    title: str
    start: datetime
    end: datetime
    all_day: bool
    matter_id: Optional[uuid.UUID] = None
    location: Optional[str] = None
    is_completed: bool = False
