from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, DateTime, Text,
    UniqueConstraint, CheckConstraint, Enum as SQLEnum
)
from sqlalchemy.sql import func
from crowdlend.core.database import Base
import enum


class LoanStatus(str, enum.Enum):
    """
    Loan lifecycle.

    FUNDED means approved and open for lender contributions; the loan becomes
    ACTIVE once fully subscribed.
    """
    REQUESTED = "REQUESTED"
    FUNDED = "FUNDED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    DEFAULTED = "DEFAULTED"
    REJECTED = "REJECTED"


class RepaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class Loan(Base):
    """Peer-funded loan owned by a single borrower"""
    __tablename__ = "loans"
    __table_args__ = (
        CheckConstraint("funded_amount <= requested_amount", name="ck_loans_funded_within_requested"),
    )

    id = Column(Integer, primary_key=True, index=True)
    borrower_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    purpose = Column(String(500), nullable=False)

    # Terms
    requested_amount = Column(Numeric(15, 2), nullable=False)
    funded_amount = Column(Numeric(15, 2), default=0, nullable=False)  # never exceeds requested_amount
    interest_rate = Column(Numeric(5, 2), nullable=False)  # annual, percent
    duration = Column(Integer, nullable=False)  # months

    status = Column(SQLEnum(LoanStatus), default=LoanStatus.REQUESTED, nullable=False, index=True)

    # Decision
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    start_date = Column(DateTime(timezone=True), nullable=True)  # set when fully funded
    defaulted_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Loan(id={self.id}, status={self.status}, funded={self.funded_amount}/{self.requested_amount})>"


class LoanFunding(Base):
    """One lender's contribution toward one loan; immutable"""
    __tablename__ = "loan_fundings"

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    lender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    external_reference = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class LoanRepayment(Base):
    """One scheduled installment of a loan"""
    __tablename__ = "loan_repayments"
    __table_args__ = (
        UniqueConstraint("loan_id", "emi_number", name="uq_loan_repayments_loan_emi"),
    )

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    emi_number = Column(Integer, nullable=False)  # 1..duration
    due_date = Column(DateTime(timezone=True), nullable=False)

    # Computed components
    principal = Column(Numeric(15, 2), nullable=False)
    interest = Column(Numeric(15, 2), nullable=False)
    total_amount = Column(Numeric(15, 2), nullable=False)
    balance_after = Column(Numeric(15, 2), nullable=False)

    # Payment
    status = Column(SQLEnum(RepaymentStatus), default=RepaymentStatus.PENDING, nullable=False)
    paid_amount = Column(Numeric(15, 2), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    external_reference = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<LoanRepayment(loan={self.loan_id}, emi={self.emi_number}, status={self.status})>"
