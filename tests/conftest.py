"""
Test configuration and fixtures for PeerLend backend tests.
"""
import pytest
from typing import AsyncGenerator
from decimal import Decimal
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from main import app
from app.core.database import Base, get_db
from app.core.dependencies import get_funding_notifier
from app.modules.loans.models import Loan, LoanState
from app.modules.loans.repository import LoanRepository
from app.modules.loans.services import LoanLifecycle
from app.modules.notifications.notifier import FundingNotifier, drain_notifications


# ============================================================
# Database Fixtures
# ============================================================

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create test database engine"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield engine
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for each test"""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ============================================================
# Collaborator Fixtures
# ============================================================

@pytest.fixture
def notifier():
    """Funding notifier double; records calls, never touches Redis"""
    return AsyncMock(spec=FundingNotifier)


@pytest.fixture
def mock_repository():
    """Storage collaborator double with a working transaction() context manager"""
    repository = AsyncMock(spec=LoanRepository)
    tx = MagicMock()
    tx.__aenter__ = AsyncMock(return_value=repository)
    tx.__aexit__ = AsyncMock(return_value=False)
    repository.transaction = MagicMock(return_value=tx)
    return repository


@pytest.fixture
def lifecycle(mock_repository, notifier):
    return LoanLifecycle(mock_repository, notifier)


@pytest.fixture
async def client(db_session, notifier) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and notifier overrides"""
    
    async def override_get_db():
        yield db_session
    
    async def override_get_funding_notifier():
        return notifier
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_funding_notifier] = override_get_funding_notifier
    
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    
    await drain_notifications()
    app.dependency_overrides.clear()


# ============================================================
# Loan Fixtures
# ============================================================

@pytest.fixture
def loan_record():
    """Build in-memory loan records as the repository would return them"""

    def _make(**overrides) -> Loan:
        fields = {
            "id": 1,
            "borrower_id": 123456,
            "principal_amount": Decimal("1000"),
            "rate": Decimal("5"),
            "roi": Decimal("10"),
            "agreement_link": "http://agreement.link",
            "state": LoanState.PROPOSED,
            "invested_amount": Decimal("0"),
            "version": 1,
        }
        fields.update(overrides)
        return Loan(**fields)

    return _make


@pytest.fixture
def loan_factory(db_session):
    """Persist a loan in a given state"""

    async def _create(state: LoanState = LoanState.PROPOSED, **overrides) -> Loan:
        fields = {
            "borrower_id": 123456,
            "principal_amount": Decimal("1000.00"),
            "rate": Decimal("5"),
            "roi": Decimal("10"),
            "agreement_link": "http://agreement.link",
            "state": state,
            "invested_amount": Decimal("0.00"),
        }
        if state in (LoanState.APPROVED, LoanState.INVESTED, LoanState.DISBURSED):
            fields.update(
                approval_proof="http://proof.image",
                approved_by=123,
                approved_at=datetime(2024, 8, 17, tzinfo=timezone.utc),
            )
        if state in (LoanState.INVESTED, LoanState.DISBURSED):
            fields["invested_amount"] = fields["principal_amount"]
        if state == LoanState.DISBURSED:
            fields.update(
                disbursement_proof="http://proof.image",
                disbursed_by=123,
                disbursed_at=datetime.now(timezone.utc),
            )
        fields.update(overrides)

        loan = Loan(**fields)
        db_session.add(loan)
        await db_session.commit()
        await db_session.refresh(loan)
        return loan

    return _create
