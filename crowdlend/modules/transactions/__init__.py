# Transaction ledger module
from crowdlend.modules.transactions.models import Transaction, TransactionType, TransactionStatus
from crowdlend.modules.transactions.services import TransactionService

__all__ = ["Transaction", "TransactionType", "TransactionStatus", "TransactionService"]
