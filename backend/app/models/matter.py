"""
Modelli SQLAlchemy per le Pratiche
Progetto: Gestionale Studio Legale

Contiene:
- Matter: pratica/processo seguito per un cliente
- Task: attività da svolgere (anche non legate a una pratica)
- Deadline: scadenza processuale
- Hearing: udienza
- Activity: diario della pratica
"""

from __future__ import annotations

import datetime
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TenantMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.client import Client
    from app.models.user import User


class MatterStatus(str, Enum):
    """Stato della pratica."""
    OPEN = "open"
    PENDING = "pending"
    CLOSED = "closed"
    ARCHIVED = "archived"


class TaskPriority(str, Enum):
    """Priorità di un'attività."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    """Stato di un'attività."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class HearingStatus(str, Enum):
    """Stato di un'udienza."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Matter(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """
    Modello per le pratiche (processi).

    Attributes:
        client_id: Cliente assistito
        process_number: Numero di ruolo / numero processo
        title: Titolo della pratica
        court, district, department, instance: Dati dell'ufficio giudiziario
        practice_area: Area del diritto
        responsible_lawyer_id: Avvocato responsabile
        status: open | pending | closed | archived
        risk_score: Valutazione rischio 0-100
        tags: Etichette libere

    Relationships:
        client, responsible_lawyer, tasks, deadlines, hearings, activities
    """

    __tablename__ = "matters"

    # ------------------------------------------------------------
    # Colonne Relazioni
    # ------------------------------------------------------------
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del cliente",
    )

    responsible_lawyer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        doc="Avvocato responsabile",
    )

    # ------------------------------------------------------------
    # Colonne Dati Pratica
    # ------------------------------------------------------------
    process_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Numero del processo",
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False, doc="Titolo")

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    court: Mapped[Optional[str]] = mapped_column(String(150), nullable=True, doc="Tribunale")
    district: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, doc="Foro/comarca")
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, doc="Sezione")
    instance: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, doc="Grado di giudizio")

    practice_area: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Area del diritto (civile, lavoro, tributario, ...)",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MatterStatus.OPEN.value,
        doc="Stato: open, pending, closed, archived",
    )

    risk_score: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Valutazione rischio (0-100)",
    )

    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="matters",
        lazy="selectin",
        doc="Cliente assistito",
    )

    responsible_lawyer: Mapped[Optional["User"]] = relationship(
        "User",
        lazy="selectin",
        doc="Avvocato responsabile",
    )

    tasks: Mapped[List["Task"]] = relationship(
        "Task",
        back_populates="matter",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Task.due_date",
    )

    deadlines: Mapped[List["Deadline"]] = relationship(
        "Deadline",
        back_populates="matter",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Deadline.deadline_date",
    )

    hearings: Mapped[List["Hearing"]] = relationship(
        "Hearing",
        back_populates="matter",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Hearing.hearing_date",
    )

    activities: Mapped[List["Activity"]] = relationship(
        "Activity",
        back_populates="matter",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Activity.created_at.desc()",
    )

    __table_args__ = (
        Index("ix_matters_tenant_status", "tenant_id", "status"),
        Index("ix_matters_client_id", "client_id"),
        Index("ix_matters_process_number", "process_number"),
        CheckConstraint(
            "status IN ('open', 'pending', 'closed', 'archived')",
            name="ck_matters_status",
        ),
        CheckConstraint(
            "risk_score IS NULL OR (risk_score >= 0 AND risk_score <= 100)",
            name="ck_matters_risk_score",
        ),
    )

    def __repr__(self) -> str:
        return f"<Matter(id={self.id}, title={self.title}, status={self.status})>"


class Task(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """
    Attività da svolgere.

    completed_at viene valorizzato quando lo stato passa a 'completed'
    e azzerato quando esce da quello stato.
    """

    __tablename__ = "tasks"

    matter_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("matters.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    assigned_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    due_date: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    priority: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=TaskPriority.MEDIUM.value,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TaskStatus.PENDING.value,
    )

    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    matter: Mapped[Optional["Matter"]] = relationship("Matter", back_populates="tasks")

    __table_args__ = (
        CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'urgent')",
            name="ck_tasks_priority",
        ),
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed', 'cancelled')",
            name="ck_tasks_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title={self.title}, status={self.status})>"


class Deadline(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """Scadenza processuale di una pratica."""

    __tablename__ = "deadlines"

    matter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("matters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    deadline_date: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Data di scadenza",
    )

    alert_days_before: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=3,
        doc="Giorni di preavviso",
    )

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    matter: Mapped["Matter"] = relationship("Matter", back_populates="deadlines")

    __table_args__ = (
        Index("ix_deadlines_tenant_date", "tenant_id", "deadline_date"),
        CheckConstraint("alert_days_before >= 0", name="ck_deadlines_alert_days"),
    )

    def __repr__(self) -> str:
        return f"<Deadline(id={self.id}, title={self.title}, date={self.deadline_date})>"


class Hearing(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """Udienza di una pratica."""

    __tablename__ = "hearings"

    matter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("matters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    hearing_date: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Data e ora dell'udienza",
    )

    hearing_type: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Tipo udienza (istruttoria, conciliazione, ...)",
    )

    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    attendees: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=HearingStatus.SCHEDULED.value,
    )

    matter: Mapped["Matter"] = relationship("Matter", back_populates="hearings")

    __table_args__ = (
        Index("ix_hearings_tenant_date", "tenant_id", "hearing_date"),
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled')",
            name="ck_hearings_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Hearing(id={self.id}, date={self.hearing_date}, status={self.status})>"


class Activity(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """Voce del diario di una pratica."""

    __tablename__ = "activities"

    matter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("matters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    action: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    meta: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )

    matter: Mapped["Matter"] = relationship("Matter", back_populates="activities")

    def __repr__(self) -> str:
        return f"<Activity(id={self.id}, action={self.action})>"
