"""
Schemas Pydantic per le Pratiche
Progetto: Gestionale Studio Legale

Contiene gli schemas per Matter, Task, Deadline, Hearing e Activity.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field

from app.models.matter import HearingStatus, MatterStatus, TaskPriority, TaskStatus
from app.schemas.client import ClientSummary


# -------------------------------------------------------------------
# Schemas per Matter
# -------------------------------------------------------------------

class MatterBase(BaseModel):
    """Campi condivisi di una pratica."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    client_id: uuid.UUID = Field(..., description="UUID del cliente")
    process_number: Optional[str] = Field(None, max_length=50, description="Numero processo")
    title: str = Field(..., min_length=3, max_length=255, description="Titolo")
    description: Optional[str] = None
    court: Optional[str] = Field(None, max_length=150)
    district: Optional[str] = Field(None, max_length=100)
    department: Optional[str] = Field(None, max_length=100)
    instance: Optional[str] = Field(None, max_length=50)
    practice_area: str = Field(..., min_length=2, max_length=100, description="Area del diritto")
    responsible_lawyer_id: Optional[uuid.UUID] = None
    status: MatterStatus = MatterStatus.OPEN
    risk_score: Optional[int] = Field(None, ge=0, le=100, description="Rischio 0-100")
    tags: list[str] = Field(default_factory=list)


class MatterCreate(MatterBase):
    pass


class MatterUpdate(BaseModel):
    """Aggiornamento parziale di una pratica."""

    model_config = ConfigDict(use_enum_values=True)

    client_id: Optional[uuid.UUID] = None
    process_number: Optional[str] = Field(None, max_length=50)
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = None
    court: Optional[str] = Field(None, max_length=150)
    district: Optional[str] = Field(None, max_length=100)
    department: Optional[str] = Field(None, max_length=100)
    instance: Optional[str] = Field(None, max_length=50)
    practice_area: Optional[str] = Field(None, min_length=2, max_length=100)
    responsible_lawyer_id: Optional[uuid.UUID] = None
    status: Optional[MatterStatus] = None
    risk_score: Optional[int] = Field(None, ge=0, le=100)
    tags: Optional[list[str]] = None


class LawyerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    full_name: str
    email: str


class MatterRead(MatterBase):
    id: uuid.UUID
    tenant_id: uuid.UUID
    client: Optional[ClientSummary] = None
    responsible_lawyer: Optional[LawyerSummary] = None
    created_at: datetime
    updated_at: datetime


class MatterList(BaseModel):
    """Lista paginata delle pratiche."""

    items: list[MatterRead] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1)

    @computed_field
    def total_pages(self) -> int:
        if self.per_page > 0:
            return (self.total + self.per_page - 1) // self.per_page
        return 0


class MatterSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    process_number: Optional[str] = None


# -------------------------------------------------------------------
# Schemas per Task
# -------------------------------------------------------------------

class TaskCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    assigned_to_id: Optional[uuid.UUID] = None


class TaskUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    assigned_to_id: Optional[uuid.UUID] = None


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    matter_id: Optional[uuid.UUID] = None
    assigned_to_id: Optional[uuid.UUID] = None
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: str
    status: str
    completed_at: Optional[datetime] = None
    created_at: datetime


# -------------------------------------------------------------------
# Schemas per Deadline
# -------------------------------------------------------------------

class DeadlineCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    deadline_date: datetime = Field(..., description="Data di scadenza")
    alert_days_before: int = Field(3, ge=0, le=365, description="Giorni di preavviso")


class DeadlineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    matter_id: uuid.UUID
    title: str
    description: Optional[str] = None
    deadline_date: datetime
    alert_days_before: int
    is_completed: bool
    completed_at: Optional[datetime] = None
    created_at: datetime


class DeadlineWithMatter(DeadlineRead):
    """Scadenza con riferimento alla pratica (elenco globale)."""

    matter: Optional[MatterSummary] = None


# -------------------------------------------------------------------
# Schemas per Hearing
# -------------------------------------------------------------------

class HearingCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    hearing_date: datetime = Field(..., description="Data e ora udienza")
    hearing_type: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=255)
    attendees: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    status: HearingStatus = HearingStatus.SCHEDULED


class HearingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    matter_id: uuid.UUID
    hearing_date: datetime
    hearing_type: Optional[str] = None
    location: Optional[str] = None
    attendees: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    status: str
    created_at: datetime


# -------------------------------------------------------------------
# Schemas per Activity
# -------------------------------------------------------------------

class ActivityCreate(BaseModel):
    action: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    matter_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    action: str
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("meta", "metadata"),
    )
    created_at: datetime
