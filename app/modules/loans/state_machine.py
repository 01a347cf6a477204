"""
Loan lifecycle guard table.

Each action is legal from exactly one source state. Adding a state or an
action means editing ``TRANSITIONS`` and nothing else.

    PROPOSED --approve--> APPROVED --invest (final)--> INVESTED --disburse--> DISBURSED
                          APPROVED --invest (partial)--> APPROVED
"""
from decimal import Decimal
from typing import NamedTuple
import enum

from app.core.exceptions import InvalidStateTransition
from app.modules.loans.models import LoanState


class LoanAction(str, enum.Enum):
    APPROVE = "approve"
    INVEST = "invest"
    DISBURSE = "disburse"


class Transition(NamedTuple):
    source: LoanState
    target: LoanState
    message: str


TRANSITIONS = {
    LoanAction.APPROVE: Transition(
        LoanState.PROPOSED, LoanState.APPROVED,
        "Loan can only be approved from the proposed state."
    ),
    LoanAction.INVEST: Transition(
        LoanState.APPROVED, LoanState.INVESTED,
        "Loan can only be invested in from the approved state."
    ),
    LoanAction.DISBURSE: Transition(
        LoanState.INVESTED, LoanState.DISBURSED,
        "Loan can only be disbursed from the invested state."
    ),
}


def ensure_transition(loan, action: LoanAction) -> Transition:
    """Return the transition for ``action``, or raise if ``loan`` is in the wrong state"""
    transition = TRANSITIONS[action]
    if LoanState(loan.state) != transition.source:
        raise InvalidStateTransition(transition.message)
    return transition


def funded_state(total_invested: Decimal, principal_amount: Decimal) -> LoanState:
    """INVESTED only on an exact match with the principal, otherwise still APPROVED"""
    if total_invested == principal_amount:
        return TRANSITIONS[LoanAction.INVEST].target
    return TRANSITIONS[LoanAction.INVEST].source
