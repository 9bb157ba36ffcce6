from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from crowdlend.core.database import Base
import enum


class TransactionType(str, enum.Enum):
    """Monetary events recorded in the ledger"""
    DONATION = "DONATION"
    LOAN_FUNDING = "LOAN_FUNDING"
    LOAN_REPAYMENT = "LOAN_REPAYMENT"


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Transaction(Base):
    """Append-only ledger row; never updated after insert"""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    reference_code = Column(String(50), unique=True, index=True, nullable=False)
    transaction_type = Column(SQLEnum(TransactionType), nullable=False, index=True)
    status = Column(SQLEnum(TransactionStatus), default=TransactionStatus.COMPLETED, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # What the money moved against: campaign or loan
    reference_type = Column(String(50), nullable=False)
    reference_id = Column(Integer, nullable=False)

    # Payment gateway reference, populated once a gateway is integrated
    external_reference = Column(String(100), nullable=True)
    description = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Transaction(id={self.id}, type={self.transaction_type}, amount={self.amount})>"
