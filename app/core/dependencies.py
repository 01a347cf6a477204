from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db, get_redis
from app.modules.loans.repository import SQLAlchemyLoanRepository
from app.modules.loans.services import LoanLifecycle
from app.modules.notifications.notifier import FundingNotifier, RedisFundingNotifier


async def get_loan_repository(
    db: AsyncSession = Depends(get_db)
) -> SQLAlchemyLoanRepository:
    """Storage collaborator bound to the request's session"""
    return SQLAlchemyLoanRepository(db)


async def get_funding_notifier() -> FundingNotifier:
    """Outbound notifier publishing onto the shared Redis pool"""
    redis = await get_redis()
    return RedisFundingNotifier(redis)


async def get_loan_lifecycle(
    repository: SQLAlchemyLoanRepository = Depends(get_loan_repository),
    notifier: FundingNotifier = Depends(get_funding_notifier)
) -> LoanLifecycle:
    """A lifecycle instance per request, parameterized by its collaborators"""
    return LoanLifecycle(repository, notifier)
