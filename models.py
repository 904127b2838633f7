from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from enum import Enum
from typing import List, Literal, Optional
from datetime import datetime
from decimal import Decimal, ROUND_DOWN, localcontext


# Reports are rendered with four decimal places, truncated rather than rounded
REPORT_PRECISION = Decimal("0.0001")

MAX_CLIENT_ID = 2**16 - 1
MAX_TX_ID = 2**32 - 1

# Record amounts: up to 12 integer digits and 8 decimal places
AMOUNT_MAX_DIGITS = 20
AMOUNT_DECIMAL_PLACES = 8


def truncate_amount(value: Decimal) -> Decimal:
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the four decimals
        ctx.prec = max(ctx.prec, value.adjusted() + 6)
        return value.quantize(REPORT_PRECISION, rounding=ROUND_DOWN)


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"


FUNDS_MOVEMENTS = (TransactionType.deposit, TransactionType.withdrawal)


class Transaction(BaseModel):
    """A single input record.

    Deposits and withdrawals must carry an amount. Disputes, resolves and
    chargebacks reference an earlier transaction through ``tx``; an amount
    given on them is dropped.
    """

    model_config = ConfigDict(frozen=True)

    type: TransactionType = Field(..., description="Transaction type")
    client: int = Field(..., ge=0, le=MAX_CLIENT_ID, description="Client account identifier")
    tx: int = Field(..., ge=0, le=MAX_TX_ID, description="Transaction identifier")
    amount: Optional[Decimal] = Field(
        None,
        ge=0,
        max_digits=AMOUNT_MAX_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        description="Amount moved, required for deposits and withdrawals"
    )

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def normalize_amount(cls, v, info):
        transaction_type = info.data.get('type')
        if transaction_type is not None and transaction_type not in FUNDS_MOVEMENTS:
            return None
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @property
    def is_funds_movement(self) -> bool:
        return self.type in FUNDS_MOVEMENTS


class AccountReport(BaseModel):
    client: int = Field(..., description="Client account identifier")
    available: Decimal = Field(..., description="Funds the client may withdraw")
    held: Decimal = Field(..., description="Funds tied up in open disputes")
    total: Decimal = Field(..., description="Available plus held funds")
    locked: bool = Field(..., description="Whether deposits and withdrawals are blocked")

    @field_serializer('available', 'held', 'total', when_used='json')
    def serialize_amount(self, v: Decimal) -> float:
        return float(truncate_amount(v))


class TransactionResult(BaseModel):
    status: Literal["processed"] = Field(..., description="Transaction status")
    tx: int = Field(..., description="Transaction identifier")
    account: AccountReport = Field(..., description="Account state after the transaction")
    timestamp: datetime = Field(default_factory=datetime.now, description="Processing timestamp")


class BatchResult(BaseModel):
    processed: int = Field(..., description="Records applied successfully")
    failed: int = Field(..., description="Records rejected or skipped")
    accounts: List[AccountReport] = Field(default_factory=list, description="Final account states")


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Error description")
    error_code: str = Field(..., description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(default_factory=datetime.now)
    accounts_count: int = Field(..., description="Number of accounts in system")
    transactions_recorded: int = Field(..., description="Deposits and withdrawals held in the transaction log")
