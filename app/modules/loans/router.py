from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from app.core.dependencies import get_loan_lifecycle
from app.modules.loans.models import LoanState
from app.modules.loans.schemas import (
    LoanCreate, LoanApprove, LoanInvest, LoanDisburse,
    LoanResponse, LoanStateEnum, InvestmentResponse
)
from app.modules.loans.services import LoanLifecycle

router = APIRouter(prefix="/loans", tags=["loans"])


@router.post("", response_model=LoanResponse, status_code=status.HTTP_201_CREATED)
async def create_loan(
    loan: LoanCreate,
    lifecycle: LoanLifecycle = Depends(get_loan_lifecycle)
):
    """Propose a new loan"""
    return await lifecycle.create_loan(
        borrower_id=loan.borrower_id,
        principal_amount=loan.principal_amount,
        rate=loan.rate,
        roi=loan.roi,
        agreement_link=str(loan.agreement_link)
    )


@router.get("", response_model=List[LoanResponse])
async def read_loans(
    state: Optional[LoanStateEnum] = Query(None, description="Filter by lifecycle state"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    lifecycle: LoanLifecycle = Depends(get_loan_lifecycle)
):
    state_filter = LoanState(state.value) if state else None
    return await lifecycle.list_loans(state=state_filter, skip=skip, limit=limit)


@router.get("/{loan_id}", response_model=LoanResponse)
async def read_loan(
    loan_id: int,
    lifecycle: LoanLifecycle = Depends(get_loan_lifecycle)
):
    return await lifecycle.get_loan(loan_id)


@router.get("/{loan_id}/investments", response_model=List[InvestmentResponse])
async def read_loan_investments(
    loan_id: int,
    lifecycle: LoanLifecycle = Depends(get_loan_lifecycle)
):
    return await lifecycle.list_investments(loan_id)


@router.post("/{loan_id}/approve", response_model=LoanResponse)
async def approve_loan(
    loan_id: int,
    approval: LoanApprove,
    lifecycle: LoanLifecycle = Depends(get_loan_lifecycle)
):
    """
    Approve a proposed loan.
    
    - Only loans in the PROPOSED state can be approved
    """
    return await lifecycle.approve_loan(
        loan_id,
        approval_proof=approval.approval_proof,
        approved_by=approval.approved_by,
        approved_date=approval.approved_date
    )


@router.post("/{loan_id}/invest", response_model=LoanResponse)
async def invest_in_loan(
    loan_id: int,
    investment: LoanInvest,
    lifecycle: LoanLifecycle = Depends(get_loan_lifecycle)
):
    """
    Invest in an approved loan.
    
    - The total invested can never exceed the principal
    - Reaching the principal exactly moves the loan to INVESTED
    """
    return await lifecycle.invest_in_loan(loan_id, investment.investor_id, investment.amount)


@router.post("/{loan_id}/disburse", response_model=LoanResponse)
async def disburse_loan(
    loan_id: int,
    disbursement: LoanDisburse,
    lifecycle: LoanLifecycle = Depends(get_loan_lifecycle)
):
    """Disburse a fully invested loan to the borrower"""
    return await lifecycle.disburse_loan(
        loan_id,
        disbursement_proof=disbursement.disbursement_proof,
        disbursed_by=disbursement.disbursed_by
    )
