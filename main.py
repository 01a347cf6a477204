from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
from app.core.database import Base, async_engine, close_redis
from app.core.config import settings
from app.core.exceptions import LoanError
from app.core.logging_config import setup_logging
from app.modules.loans.router import router as loans_router
from app.modules.notifications.router import router as notifications_router
from app.modules.notifications.notifier import drain_notifications

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    # Startup
    setup_logging(settings.LOG_LEVEL)
    async with async_engine.begin() as conn:
        # Create all tables (for development - use Alembic in production)
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{settings.APP_NAME} API started ({settings.ENVIRONMENT})")
    
    yield
    
    # Shutdown
    await drain_notifications()
    await close_redis()
    await async_engine.dispose()


app = FastAPI(
    title="PeerLend API",
    description="Peer-funded loan lifecycle: propose, approve, invest, disburse",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(loans_router)
app.include_router(notifications_router)


@app.exception_handler(LoanError)
async def loan_error_handler(request: Request, exc: LoanError):
    """Render lifecycle errors as structured JSON with their mapped status"""
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Welcome to PeerLend API",
        "version": settings.APP_VERSION,
        "docs": "/docs"
    }
