# Loans module
from app.modules.loans.models import Loan, Investment, LoanState
from app.modules.loans.services import LoanLifecycle

__all__ = ["Loan", "Investment", "LoanState", "LoanLifecycle"]
