"""
Domain error taxonomy for the loan lifecycle.

Every error raised by the lifecycle core derives from ``LoanError`` and knows
the HTTP status it maps to, so the API layer renders all of them through a
single exception handler.
"""
from fastapi import status


class LoanError(Exception):
    """Base class for loan lifecycle errors"""
    code = "LOAN_ERROR"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class LoanNotFound(LoanError):
    code = "LOAN_NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, loan_id: int):
        super().__init__(f"Loan {loan_id} not found")
        self.loan_id = loan_id


class InvalidStateTransition(LoanError):
    code = "INVALID_STATE_TRANSITION"


class AmountExceedsPrincipal(LoanError):
    code = "AMOUNT_EXCEEDS_PRINCIPAL"

    def __init__(self, message: str = "Invested amount exceeds loan principal."):
        super().__init__(message)


class ConcurrentLoanUpdate(LoanError):
    """The loan changed between read and conditional update"""
    code = "CONCURRENT_UPDATE"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, loan_id: int):
        super().__init__(f"Loan {loan_id} was modified concurrently, re-read and retry")
        self.loan_id = loan_id


class StorageFailure(LoanError):
    code = "STORAGE_FAILURE"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Storage is unavailable"):
        super().__init__(message)
