"""Sequence Service - collision-free document numbers"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from homedelivery.config import settings
from homedelivery.models import DocumentSequence
from homedelivery.utils.time import period_key


class SequenceService:
    @staticmethod
    async def next_value(db: AsyncSession, scope: str) -> int:
        """
        Increment and return the counter for a scope.

        The counter row is locked for the rest of the caller's transaction, so
        concurrent runs for the same scope serialize on it. The unique scope
        column catches two transactions creating the same counter at once.
        """
        result = await db.execute(
            select(DocumentSequence)
            .where(DocumentSequence.scope == scope)
            .with_for_update()
        )
        sequence = result.scalar_one_or_none()
        if sequence is None:
            sequence = DocumentSequence(scope=scope, last_value=0)
            db.add(sequence)
        sequence.last_value += 1
        await db.flush()
        return sequence.last_value

    @staticmethod
    def format_number(prefix: str, month: int, year: int, value: int) -> str:
        """e.g. BILL-202406-000042"""
        return f"{prefix}-{period_key(month, year)}-{value:06d}"

    @staticmethod
    async def next_bill_number(db: AsyncSession, month: int, year: int) -> str:
        prefix = settings.BILL_NUMBER_PREFIX
        value = await SequenceService.next_value(db, f"{prefix}-{period_key(month, year)}")
        return SequenceService.format_number(prefix, month, year, value)

    @staticmethod
    async def next_receipt_number(db: AsyncSession, month: int, year: int) -> str:
        prefix = settings.RECEIPT_NUMBER_PREFIX
        value = await SequenceService.next_value(db, f"{prefix}-{period_key(month, year)}")
        return SequenceService.format_number(prefix, month, year, value)
