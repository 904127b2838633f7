from fastapi import FastAPI, HTTPException, Request, Depends, status
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from typing import List
import io
import structlog
import time
from contextlib import asynccontextmanager

from models import Transaction, TransactionResult, AccountReport, BatchResult, ErrorResponse, HealthResponse
from services import LedgerService, get_ledger_service
from repositories import get_account_repository, get_transaction_log
from errors import LedgerError, AccountNotFound, DuplicateTransaction
from csv_io import read_transactions
from config import configure_logging, get_settings

settings = get_settings()
configure_logging(settings)

logger = structlog.get_logger()

# Rate limiting
limiter = Limiter(key_func=get_remote_address)


def write_rate_limit() -> str:
    return f"{get_settings().rate_limit_per_minute}/minute"


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Payments Ledger API")
    yield
    # Shutdown
    logger.info("Shutting down Payments Ledger API")

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Applies deposits, withdrawals and dispute lifecycles to client accounts",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    logger.info(
        "Request started",
        method=request.method,
        url=str(request.url),
        client_ip=request.client.host if request.client else None
    )

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time=round(process_time, 4)
    )

    return response

# Dependency injection.
# Handlers are async and the ledger is synchronous, so requests are applied
# one at a time on the event loop in arrival order.
def get_service(
    account_repo=Depends(get_account_repository),
    transaction_log=Depends(get_transaction_log)
) -> LedgerService:
    return get_ledger_service(account_repo, transaction_log)

# Health check endpoint
@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check API health and get ledger statistics"
)
async def health_check(
    account_repo=Depends(get_account_repository),
    transaction_log=Depends(get_transaction_log)
):
    return HealthResponse(
        status="healthy",
        accounts_count=account_repo.get_accounts_count(),
        transactions_recorded=transaction_log.get_transactions_count()
    )

# Single transaction endpoint
@app.post(
    "/transactions",
    response_model=TransactionResult,
    status_code=status.HTTP_201_CREATED,
    summary="Apply Transaction",
    description="Apply a deposit, withdrawal, dispute, resolve or chargeback to its client account",
    responses={
        201: {"description": "Transaction applied (unresolvable dispute references are accepted as no-ops)"},
        400: {"description": "Account locked, insufficient funds or missing amount"},
        409: {"description": "Transaction id already used"},
        422: {"description": "Malformed transaction record"},
        429: {"description": "Rate limit exceeded"}
    }
)
@limiter.limit(write_rate_limit)
async def create_transaction(
    request: Request,
    transaction: Transaction,
    service: LedgerService = Depends(get_service)
):
    logger.info(
        "Transaction request received",
        client=transaction.client,
        tx=transaction.tx,
        type=transaction.type.value
    )

    account = service.process_transaction(transaction)

    return TransactionResult(status="processed", tx=transaction.tx, account=account.report())

# Batch endpoint
@app.post(
    "/transactions/batch",
    response_model=BatchResult,
    summary="Apply Transaction Batch",
    description="Apply a CSV stream (type,client,tx,amount); rejected rows are counted, not fatal"
)
@limiter.limit(write_rate_limit)
async def create_transaction_batch(
    request: Request,
    service: LedgerService = Depends(get_service)
):
    body = await request.body()
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Batch body must be UTF-8 encoded CSV")

    return service.process_stream(read_transactions(io.StringIO(text)))

@app.get(
    "/accounts",
    response_model=List[AccountReport],
    summary="List Accounts",
    description="Current state of every known client account"
)
async def list_accounts(service: LedgerService = Depends(get_service)):
    return service.get_reports()

@app.get(
    "/accounts/{client}",
    response_model=AccountReport,
    summary="Get Account",
    responses={404: {"description": "Account not found"}}
)
async def get_account(client: int, service: LedgerService = Depends(get_service)):
    return service.get_report(client)

@app.post(
    "/accounts/{client}/unlock",
    response_model=AccountReport,
    summary="Unlock Account",
    description="Administrative unlock; funds and open disputes are left untouched",
    responses={404: {"description": "Account not found"}}
)
async def unlock_account(client: int, service: LedgerService = Depends(get_service)):
    return service.unlock_account(client)

# Exception handlers
@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    if isinstance(exc, AccountNotFound):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, DuplicateTransaction):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST

    logger.warning(
        "Transaction rejected",
        client=exc.client,
        tx=exc.tx,
        error_code=exc.error_code,
        url=str(request.url)
    )

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            detail=exc.detail,
            error_code=exc.error_code
        ).model_dump(mode="json")
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            detail=exc.detail,
            error_code=f"HTTP_{exc.status_code}"
        ).model_dump(mode="json")
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        error=str(exc),
        url=str(request.url),
        method=request.method,
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            detail="Internal server error",
            error_code="INTERNAL_ERROR"
        ).model_dump(mode="json")
    )

# Root endpoint
@app.get("/", include_in_schema=False)
async def root():
    return {"message": settings.app_name, "docs": "/docs"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
