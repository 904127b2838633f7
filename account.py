from decimal import Decimal
from typing import Dict, Optional
import structlog

from models import AccountReport, Transaction, TransactionType
from errors import AccountLocked, AmountMissing, InsufficientBalance

logger = structlog.get_logger()


class Account:
    """Per-client transaction state machine.

    Only ``total``, ``locked`` and the disputed records are stored; held and
    available funds are derived from them. Every failing transition raises
    before touching any state.
    """

    def __init__(self, client: int):
        self.client = client
        self.total = Decimal("0")
        self.locked = False
        # tx id -> original deposit/withdrawal currently under dispute
        self.disputed: Dict[int, Transaction] = {}

    def held(self) -> Decimal:
        return sum((tx.amount for tx in self.disputed.values()), Decimal("0"))

    def available(self) -> Decimal:
        return self.total - self.held()

    def unlock(self) -> None:
        """Administrative recovery; funds and open disputes are untouched."""
        self.locked = False

    def report(self) -> AccountReport:
        held = self.held()
        return AccountReport(
            client=self.client,
            available=self.total - held,
            held=held,
            total=self.total,
            locked=self.locked
        )

    def apply(self, transaction: Transaction, resolved_original: Optional[Transaction] = None) -> None:
        """Apply one transaction to the account.

        ``resolved_original`` is only consulted for disputes; it is the
        earlier deposit or withdrawal the dispute refers to, or None when the
        reference could not be resolved.
        """
        if transaction.type == TransactionType.deposit:
            self._deposit(transaction)
        elif transaction.type == TransactionType.withdrawal:
            self._withdraw(transaction)
        elif transaction.type == TransactionType.dispute:
            self._dispute(resolved_original)
        elif transaction.type == TransactionType.resolve:
            self._resolve(transaction.tx)
        elif transaction.type == TransactionType.chargeback:
            self._chargeback(transaction.tx)

    def _deposit(self, transaction: Transaction) -> None:
        if self.locked:
            raise AccountLocked(client=self.client, tx=transaction.tx)
        if transaction.amount is None:
            raise AmountMissing(client=self.client, tx=transaction.tx)

        self.total += transaction.amount

    def _withdraw(self, transaction: Transaction) -> None:
        if self.locked:
            raise AccountLocked(client=self.client, tx=transaction.tx)
        if transaction.amount is None:
            raise AmountMissing(client=self.client, tx=transaction.tx)

        if self.available() - transaction.amount < 0:
            raise InsufficientBalance(client=self.client, tx=transaction.tx)

        self.total -= transaction.amount

    def _dispute(self, original: Optional[Transaction]) -> None:
        if original is None or not original.is_funds_movement or original.amount is None:
            logger.debug("Dispute reference not resolvable, ignoring", client=self.client)
            return

        if original.tx in self.disputed:
            logger.debug("Transaction already under dispute", client=self.client, tx=original.tx)
            return

        self.disputed[original.tx] = original
        # A disputed withdrawal is credited back provisionally so that
        # available funds stay unchanged while the amount is held.
        if original.type == TransactionType.withdrawal:
            self.total += original.amount

    def _resolve(self, tx_id: int) -> None:
        original = self.disputed.pop(tx_id, None)
        if original is None:
            logger.debug("Resolve for undisputed transaction, ignoring", client=self.client, tx=tx_id)
            return

        if original.type == TransactionType.withdrawal:
            self.total -= original.amount

    def _chargeback(self, tx_id: int) -> None:
        original = self.disputed.pop(tx_id, None)
        if original is None:
            logger.debug("Chargeback for undisputed transaction, ignoring", client=self.client, tx=tx_id)
            return

        if original.type == TransactionType.deposit:
            self.total -= original.amount
        self.locked = True
