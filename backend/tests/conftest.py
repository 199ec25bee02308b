"""
Pytest configuration and fixtures.

I test girano su SQLite in memoria (aiosqlite) con lo stesso schema
dei modelli: ogni test riceve un database vuoto e i dati di base
(studio, utenti, cliente, pratica) tramite fixture.
"""

import os
import tempfile

# Configurazione prima dell'import di app.*: Settings è un singleton
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="legal-test-"))

import datetime
import uuid
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.core.security import create_access_token, hash_password
from app.main import app
from app.models import Base
from app.models.client import Client
from app.models.matter import Matter
from app.models.tenant import Tenant
from app.models.time_entry import TimeEntry
from app.models.user import User, UserRole
from app.schemas.tenant import TenantSettings

UTC = datetime.timezone.utc


# ============================================================
# Database
# ============================================================


@pytest.fixture
async def engine():
    """Engine SQLite in memoria condiviso da tutte le sessioni del test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        # SQLite non applica le foreign key senza il pragma
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sessione usata dai test di service."""
    async with session_factory() as session:
        yield session


# ============================================================
# Dati di base
# ============================================================


async def make_tenant(db: AsyncSession, name: str = "Studio Alfa") -> Tenant:
    tenant = Tenant(name=name, settings=TenantSettings().to_raw())
    db.add(tenant)
    await db.commit()
    return tenant


async def make_user(
    db: AsyncSession,
    tenant: Tenant,
    role: UserRole = UserRole.ADMIN,
    email: str = None,
) -> User:
    user = User(
        tenant_id=tenant.id,
        email=email or f"{role.value}-{uuid.uuid4().hex[:8]}@example.com",
        hashed_password=hash_password("Password123"),
        full_name=f"Utente {role.value}",
        role=role.value,
    )
    db.add(user)
    await db.commit()
    return user


async def make_client(db: AsyncSession, tenant: Tenant, name: str = "Cliente Teste Ltda") -> Client:
    client = Client(
        tenant_id=tenant.id,
        client_type="pj",
        name=name,
        email="cliente@example.com",
        status="active",
        lead_stage="new",
        tags=[],
    )
    db.add(client)
    await db.commit()
    return client


async def make_entry(
    db: AsyncSession,
    user: User,
    client: Client,
    hours: str,
    description: str = "Analisi contratto",
    day: datetime.date = datetime.date(2025, 1, 10),
    billable: bool = True,
) -> TimeEntry:
    entry = TimeEntry(
        tenant_id=user.tenant_id,
        user_id=user.id,
        client_id=client.id,
        description=description,
        hours=Decimal(hours),
        date=day,
        billable=billable,
    )
    db.add(entry)
    await db.commit()
    return entry


@pytest.fixture
async def tenant(db) -> Tenant:
    return await make_tenant(db)


@pytest.fixture
async def other_tenant(db) -> Tenant:
    return await make_tenant(db, name="Studio Beta")


@pytest.fixture
async def admin(db, tenant) -> User:
    return await make_user(db, tenant, UserRole.ADMIN, email="admin@alfa.example.com")


@pytest.fixture
async def client_record(db, tenant) -> Client:
    return await make_client(db, tenant)


@pytest.fixture
async def matter(db, tenant, client_record) -> Matter:
    matter = Matter(
        tenant_id=tenant.id,
        client_id=client_record.id,
        process_number="0001234-56.2025.8.26.0100",
        title="Ação de cobrança",
        practice_area="Cível",
        status="open",
        tags=[],
    )
    db.add(matter)
    await db.commit()
    return matter


@pytest.fixture
async def entries(db, admin, client_record) -> list[TimeEntry]:
    """Due registrazioni: 2.0h e 1.5h."""
    return [
        await make_entry(db, admin, client_record, "2.0", "Redazione petição inicial"),
        await make_entry(db, admin, client_record, "1.5", "Reunião com cliente", datetime.date(2025, 1, 11)),
    ]


# ============================================================
# Client HTTP
# ============================================================


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(str(user.id), str(user.tenant_id), user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def api(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Client httpx sull'app con get_db puntato al database di test."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
