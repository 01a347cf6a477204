from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, CheckConstraint, Enum as SQLEnum
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class LoanState(str, enum.Enum):
    """Loan lifecycle states, in the only order a loan may move through them"""
    PROPOSED = "PROPOSED"
    APPROVED = "APPROVED"
    INVESTED = "INVESTED"
    DISBURSED = "DISBURSED"


class Loan(Base):
    """
    Peer-funded loan.
    Approval fields are populated once APPROVED, disbursement fields once DISBURSED.
    """
    __tablename__ = "loans"
    __table_args__ = (
        CheckConstraint(
            "invested_amount >= 0 AND invested_amount <= principal_amount",
            name="ck_loans_invested_within_principal"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    borrower_id = Column(Integer, nullable=False, index=True)
    principal_amount = Column(Numeric(precision=15, scale=2), nullable=False)
    rate = Column(Numeric(precision=7, scale=4), nullable=False)
    roi = Column(Numeric(precision=7, scale=4), nullable=False)
    agreement_link = Column(String(2048), nullable=False)

    state = Column(SQLEnum(LoanState), default=LoanState.PROPOSED, nullable=False, index=True)
    invested_amount = Column(Numeric(precision=15, scale=2), default=0, nullable=False)

    # Approval
    approval_proof = Column(String(2048), nullable=True)
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    # Disbursement
    disbursement_proof = Column(String(2048), nullable=True)
    disbursed_by = Column(Integer, nullable=True)
    disbursed_at = Column(DateTime(timezone=True), nullable=True)

    # Bumped by every conditional update
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Investment(Base):
    """One investor's contribution to one loan, immutable once written"""
    __tablename__ = "investments"

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    investor_id = Column(Integer, nullable=False, index=True)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

