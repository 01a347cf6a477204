from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from dateutil.parser import isoparse
import logging

from app.core.exceptions import AmountExceedsPrincipal, LoanNotFound
from app.modules.loans.models import Investment, Loan, LoanState
from app.modules.loans.repository import LoanRepository
from app.modules.loans.state_machine import LoanAction, ensure_transition, funded_state
from app.modules.notifications.notifier import FundingNotifier, dispatch_fully_funded

logger = logging.getLogger(__name__)


def parse_approved_date(value: str) -> datetime:
    """Parse an ISO date or datetime string; naive values are taken as UTC"""
    parsed = isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class LoanLifecycle:
    """
    Drives a loan through PROPOSED -> APPROVED -> INVESTED -> DISBURSED.

    Every command loads the current record, checks the guard table and the
    funding rule, and only then writes. Business-rule failures therefore
    never leave a partial mutation behind. Updates are conditional on the
    version read at the start of the command, so a concurrent writer causes
    ConcurrentLoanUpdate instead of a lost update.
    """

    def __init__(self, repository: LoanRepository, notifier: FundingNotifier):
        self.repository = repository
        self.notifier = notifier

    async def _get_or_raise(self, loan_id: int) -> Loan:
        loan = await self.repository.find_loan(loan_id)
        if loan is None:
            raise LoanNotFound(loan_id)
        return loan

    async def get_loan(self, loan_id: int) -> Loan:
        return await self._get_or_raise(loan_id)

    async def list_loans(self, state: Optional[LoanState] = None, skip: int = 0, limit: int = 100) -> List[Loan]:
        return await self.repository.list_loans(state=state, skip=skip, limit=limit)

    async def list_investments(self, loan_id: int) -> List[Investment]:
        await self._get_or_raise(loan_id)
        return await self.repository.list_investments(loan_id)

    async def create_loan(
        self,
        borrower_id: int,
        principal_amount: Decimal,
        rate: Decimal,
        roi: Decimal,
        agreement_link: str
    ) -> Loan:
        """Create a loan in the PROPOSED state with nothing invested yet"""
        async with self.repository.transaction():
            loan = await self.repository.create_loan({
                "borrower_id": borrower_id,
                "principal_amount": principal_amount,
                "rate": rate,
                "roi": roi,
                "agreement_link": agreement_link,
                "state": LoanState.PROPOSED,
                "invested_amount": Decimal("0"),
            })
        logger.info(f"Loan {loan.id} proposed by borrower {borrower_id} for {principal_amount}")
        return loan

    async def approve_loan(self, loan_id: int, approval_proof: str, approved_by: int, approved_date: str) -> Loan:
        """Approve a PROPOSED loan, recording who approved it, when, and the proof"""
        loan = await self._get_or_raise(loan_id)
        transition = ensure_transition(loan, LoanAction.APPROVE)

        async with self.repository.transaction():
            updated = await self.repository.update_loan(
                loan_id,
                {
                    "state": transition.target,
                    "approval_proof": approval_proof,
                    "approved_by": approved_by,
                    "approved_at": parse_approved_date(approved_date),
                },
                expected_version=loan.version
            )
        logger.info(f"Loan {loan_id} approved by {approved_by}")
        return updated

    async def invest_in_loan(self, loan_id: int, investor_id: int, amount: Decimal) -> Loan:
        """
        Record an investment in an APPROVED loan.

        The loan update and the investment record are written in one
        transaction. When the running total reaches the principal exactly the
        loan becomes INVESTED and a fully-funded notification is dispatched
        after commit; its outcome never affects this call.
        """
        loan = await self._get_or_raise(loan_id)
        ensure_transition(loan, LoanAction.INVEST)

        total_invested = Decimal(loan.invested_amount) + Decimal(amount)
        if total_invested > loan.principal_amount:
            logger.warning(
                f"Rejected investment of {amount} in loan {loan_id}: "
                f"{total_invested} exceeds principal {loan.principal_amount}"
            )
            raise AmountExceedsPrincipal()

        async with self.repository.transaction():
            updated = await self.repository.update_loan(
                loan_id,
                {
                    "invested_amount": total_invested,
                    "state": funded_state(total_invested, loan.principal_amount),
                },
                expected_version=loan.version
            )
            await self.repository.create_investment({
                "loan_id": loan_id,
                "investor_id": investor_id,
                "amount": amount,
            })
        logger.info(f"Investor {investor_id} invested {amount} in loan {loan_id} ({total_invested}/{loan.principal_amount})")

        if LoanState(updated.state) == LoanState.INVESTED:
            logger.info(f"Loan {loan_id} fully funded")
            dispatch_fully_funded(self.notifier, loan_id)

        return updated

    async def disburse_loan(self, loan_id: int, disbursement_proof: str, disbursed_by: int) -> Loan:
        """Mark an INVESTED loan as disbursed to the borrower"""
        loan = await self._get_or_raise(loan_id)
        transition = ensure_transition(loan, LoanAction.DISBURSE)

        async with self.repository.transaction():
            updated = await self.repository.update_loan(
                loan_id,
                {
                    "state": transition.target,
                    "disbursement_proof": disbursement_proof,
                    "disbursed_by": disbursed_by,
                    "disbursed_at": datetime.now(timezone.utc),
                },
                expected_version=loan.version
            )
        logger.info(f"Loan {loan_id} disbursed by {disbursed_by}")
        return updated
