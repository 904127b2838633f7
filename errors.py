from typing import Optional


class LedgerError(Exception):
    """Base class for failures attributable to a single transaction."""

    error_code = "LEDGER_ERROR"
    detail = "Transaction could not be applied"

    def __init__(self, client: Optional[int] = None, tx: Optional[int] = None, detail: Optional[str] = None):
        self.client = client
        self.tx = tx
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class AccountLocked(LedgerError):
    error_code = "ACCOUNT_LOCKED"
    detail = "Account is locked"


class InsufficientBalance(LedgerError):
    error_code = "INSUFFICIENT_BALANCE"
    detail = "Insufficient available funds for withdrawal"


class AmountMissing(LedgerError):
    error_code = "AMOUNT_MISSING"
    detail = "Deposit and withdrawal records require an amount"


class DuplicateTransaction(LedgerError):
    error_code = "DUPLICATE_TRANSACTION"
    detail = "Transaction id already used"


class AccountNotFound(LedgerError):
    error_code = "ACCOUNT_NOT_FOUND"
    detail = "Account not found"
