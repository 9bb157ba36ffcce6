from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from decimal import Decimal
from typing import List, Optional, Tuple
import uuid

from crowdlend.core.ledger import money
from crowdlend.modules.transactions.models import Transaction, TransactionType, TransactionStatus


class TransactionService:
    """Ledger writer and reader"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _generate_reference() -> str:
        return f"TXN-{uuid.uuid4().hex[:12].upper()}"

    def record(
        self,
        transaction_type: TransactionType,
        amount: Decimal,
        user_id: int,
        reference_type: str,
        reference_id: int,
        description: Optional[str] = None,
        external_reference: Optional[str] = None
    ) -> Transaction:
        """
        Add a ledger row to the caller's unit of work.

        Does not flush or commit: the row lands together with the state
        change it documents.
        """
        txn = Transaction(
            reference_code=self._generate_reference(),
            transaction_type=transaction_type,
            status=TransactionStatus.COMPLETED,
            amount=money(amount),
            user_id=user_id,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
            external_reference=external_reference
        )
        self.db.add(txn)
        return txn

    async def list_for_user(
        self,
        user_id: int,
        transaction_type: Optional[TransactionType] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Transaction], int]:
        query = select(Transaction).where(Transaction.user_id == user_id)
        if transaction_type:
            query = query.where(Transaction.transaction_type == transaction_type)

        count_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar()

        query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total
