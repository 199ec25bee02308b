"""
Service Layer per la contabilità
Progetto: Gestionale Studio Legale

Movimenti manuali e riepilogo del mese. I movimenti legati alle
fatture vengono creati da invoice_service.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BusinessValidationError, NotFoundError
from app.models.mixins import utcnow
from app.models.transaction import Transaction, TransactionType
from app.schemas.finance import FinanceDashboard, TransactionCreate, TransactionRead

# Logger per questo modulo
logger = logging.getLogger(__name__)


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Primo istante del mese di `now` e primo istante del mese successivo (UTC)."""
    start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)
    return start, end


class FinanceService:
    """Service per i movimenti contabili."""

    async def list_transactions(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        transaction_type: Optional[TransactionType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[Transaction]:
        """Movimenti dello studio, più recenti prima."""
        stmt = select(Transaction).where(Transaction.tenant_id == tenant_id)
        if transaction_type is not None:
            stmt = stmt.where(Transaction.transaction_type == TransactionType(transaction_type).value)
        if start_date is not None:
            stmt = stmt.where(Transaction.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(Transaction.date <= end_date)

        result = await db.execute(stmt.order_by(Transaction.date.desc(), Transaction.created_at.desc()))
        return list(result.scalars().all())

    async def create_transaction(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        data: TransactionCreate,
    ) -> Transaction:
        """Registra un movimento manuale."""
        transaction = Transaction(
            tenant_id=tenant_id,
            transaction_type=data.type,
            category=data.category,
            description=data.description,
            amount=data.amount,
            date=data.date,
            status=data.status,
        )
        db.add(transaction)
        await db.commit()

        logger.info("Movimento %s di %s registrato (%s)", data.type, data.amount, data.category)
        return transaction

    async def delete_transaction(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        transaction_id: uuid.UUID,
    ) -> None:
        """
        Elimina un movimento manuale.

        Raises:
            NotFoundError: Movimento non trovato
            BusinessValidationError: Movimento generato da una fattura
        """
        transaction = await db.get(Transaction, transaction_id)
        if transaction is None or transaction.tenant_id != tenant_id:
            raise NotFoundError(f"Movimento {transaction_id} non trovato")
        if transaction.invoice_id is not None:
            raise BusinessValidationError(
                "I movimenti generati dalla fatturazione non possono essere eliminati"
            )

        await db.delete(transaction)
        await db.commit()

    async def dashboard(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> FinanceDashboard:
        """Entrate, uscite e saldo del mese corrente con gli ultimi 5 movimenti."""
        start, end = month_bounds(now or utcnow())

        totals = await db.execute(
            select(Transaction.transaction_type, func.coalesce(func.sum(Transaction.amount), 0))
            .where(
                Transaction.tenant_id == tenant_id,
                Transaction.date >= start,
                Transaction.date < end,
            )
            .group_by(Transaction.transaction_type)
        )
        by_type = {row[0]: Decimal(str(row[1])) for row in totals.all()}
        revenue = by_type.get(TransactionType.REVENUE.value, Decimal("0"))
        expense = by_type.get(TransactionType.EXPENSE.value, Decimal("0"))

        recent = await db.execute(
            select(Transaction)
            .where(Transaction.tenant_id == tenant_id)
            .order_by(Transaction.date.desc(), Transaction.created_at.desc())
            .limit(5)
        )

        return FinanceDashboard(
            period_start=start,
            period_end=end,
            revenue=revenue,
            expense=expense,
            balance=revenue - expense,
            recent_transactions=[TransactionRead.model_validate(t) for t in recent.scalars().all()],
        )


finance_service = FinanceService()
