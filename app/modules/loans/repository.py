"""
Storage collaborator for the loan lifecycle.

``LoanRepository`` is the contract the lifecycle service depends on;
``SQLAlchemyLoanRepository`` implements it over an ``AsyncSession``. Writes
only flush, ``transaction()`` decides when they become durable.
"""
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConcurrentLoanUpdate, LoanNotFound, StorageFailure
from app.modules.loans.models import Investment, Loan, LoanState

logger = logging.getLogger(__name__)


class LoanRepository(ABC):
    """Typed read/write operations on loans and investments"""

    @abstractmethod
    async def find_loan(self, loan_id: int) -> Optional[Loan]:
        """Load the current record, or None if the id is unknown"""

    @abstractmethod
    async def list_loans(self, state: Optional[LoanState] = None, skip: int = 0, limit: int = 100) -> List[Loan]:
        pass

    @abstractmethod
    async def create_loan(self, fields: Dict[str, Any]) -> Loan:
        pass

    @abstractmethod
    async def update_loan(self, loan_id: int, changes: Dict[str, Any], expected_version: Optional[int] = None) -> Loan:
        """
        Apply ``changes`` to one loan and bump its version.
        When ``expected_version`` is given the update only applies if the stored
        version still matches, otherwise ConcurrentLoanUpdate is raised.
        """

    @abstractmethod
    async def create_investment(self, fields: Dict[str, Any]) -> Investment:
        pass

    @abstractmethod
    async def list_investments(self, loan_id: int) -> List[Investment]:
        pass

    @abstractmethod
    def transaction(self):
        """Async context manager making the enclosed writes all-or-nothing"""


class SQLAlchemyLoanRepository(LoanRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _storage_errors(self) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Storage operation failed: {str(e)}")
            raise StorageFailure() from e

    async def find_loan(self, loan_id: int) -> Optional[Loan]:
        async with self._storage_errors():
            return await self.db.get(Loan, loan_id, populate_existing=True)

    async def list_loans(self, state: Optional[LoanState] = None, skip: int = 0, limit: int = 100) -> List[Loan]:
        query = select(Loan).order_by(Loan.id).offset(skip).limit(limit)
        if state is not None:
            query = query.where(Loan.state == state)
        async with self._storage_errors():
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def create_loan(self, fields: Dict[str, Any]) -> Loan:
        loan = Loan(**fields)
        async with self._storage_errors():
            self.db.add(loan)
            await self.db.flush()
            await self.db.refresh(loan)
        return loan

    async def update_loan(self, loan_id: int, changes: Dict[str, Any], expected_version: Optional[int] = None) -> Loan:
        stmt = update(Loan).where(Loan.id == loan_id).values(**changes, version=Loan.version + 1)
        if expected_version is not None:
            stmt = stmt.where(Loan.version == expected_version)

        async with self._storage_errors():
            result = await self.db.execute(stmt.execution_options(synchronize_session=False))
            if result.rowcount == 0:
                if expected_version is not None and await self.db.get(Loan, loan_id) is not None:
                    raise ConcurrentLoanUpdate(loan_id)
                raise LoanNotFound(loan_id)
            return await self.db.get(Loan, loan_id, populate_existing=True)

    async def create_investment(self, fields: Dict[str, Any]) -> Investment:
        investment = Investment(**fields)
        async with self._storage_errors():
            self.db.add(investment)
            await self.db.flush()
            await self.db.refresh(investment)
        return investment

    async def list_investments(self, loan_id: int) -> List[Investment]:
        query = select(Investment).where(Investment.loan_id == loan_id).order_by(Investment.id)
        async with self._storage_errors():
            result = await self.db.execute(query)
            return list(result.scalars().all())

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLAlchemyLoanRepository"]:
        try:
            yield self
            async with self._storage_errors():
                await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
