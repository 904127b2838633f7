from typing import Iterable, List
import structlog

from account import Account
from errors import AccountNotFound, DuplicateTransaction, LedgerError
from models import AccountReport, BatchResult, Transaction, TransactionType
from repositories import AccountRepository, TransactionLog

logger = structlog.get_logger()


class LedgerService:
    """Feeds transactions to their accounts in arrival order."""

    def __init__(self, account_repo: AccountRepository, transaction_log: TransactionLog):
        self.account_repo = account_repo
        self.transaction_log = transaction_log

    def process_transaction(self, transaction: Transaction) -> Account:
        """Apply a single transaction. Raises LedgerError on rejection."""

        logger.debug(
            "Processing transaction",
            client=transaction.client,
            tx=transaction.tx,
            type=transaction.type.value,
            amount=str(transaction.amount) if transaction.amount is not None else None
        )

        if transaction.is_funds_movement and self.transaction_log.contains(transaction.tx):
            raise DuplicateTransaction(client=transaction.client, tx=transaction.tx)

        account = self.account_repo.get_or_create(transaction.client)

        original = None
        if transaction.type == TransactionType.dispute:
            original = self.transaction_log.locate(transaction.client, transaction.tx)

        account.apply(transaction, original)

        if transaction.is_funds_movement:
            self.transaction_log.record(transaction)

        logger.debug(
            "Transaction applied",
            client=transaction.client,
            tx=transaction.tx,
            total=str(account.total),
            locked=account.locked
        )

        return account

    def process_stream(self, transactions: Iterable[Transaction]) -> BatchResult:
        """Apply every transaction in order; rejections are logged and skipped."""
        processed = 0
        failed = 0

        for transaction in transactions:
            try:
                self.process_transaction(transaction)
            except LedgerError as e:
                failed += 1
                logger.warning(
                    "Transaction rejected",
                    client=e.client,
                    tx=e.tx,
                    type=transaction.type.value,
                    error_code=e.error_code,
                    detail=e.detail
                )
                continue
            processed += 1

        logger.info("Stream processed", processed=processed, failed=failed)

        return BatchResult(processed=processed, failed=failed, accounts=self.get_reports())

    def get_report(self, client: int) -> AccountReport:
        account = self.account_repo.get(client)
        if account is None:
            raise AccountNotFound(client=client)
        return account.report()

    def get_reports(self) -> List[AccountReport]:
        return [account.report() for account in self.account_repo.all()]

    def unlock_account(self, client: int) -> AccountReport:
        account = self.account_repo.get(client)
        if account is None:
            raise AccountNotFound(client=client)

        account.unlock()
        logger.info("Account unlocked", client=client)
        return account.report()


def get_ledger_service(
    account_repo: AccountRepository,
    transaction_log: TransactionLog
) -> LedgerService:
    return LedgerService(account_repo, transaction_log)
