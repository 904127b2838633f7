from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from account import Account
from models import Transaction


class AccountRepository(ABC):
    @abstractmethod
    def get(self, client: int) -> Optional[Account]:
        """Get account. Returns None if account doesn't exist."""
        pass

    @abstractmethod
    def get_or_create(self, client: int) -> Account:
        """Get account, creating an empty one on first reference."""
        pass

    @abstractmethod
    def all(self) -> List[Account]:
        """Get all accounts ordered by client id."""
        pass

    @abstractmethod
    def get_accounts_count(self) -> int:
        """Get total number of accounts."""
        pass


class TransactionLog(ABC):
    """History of applied deposits and withdrawals, used to resolve disputes."""

    @abstractmethod
    def record(self, transaction: Transaction) -> None:
        """Store an applied deposit or withdrawal."""
        pass

    @abstractmethod
    def contains(self, tx: int) -> bool:
        """Check if a transaction id has already been recorded."""
        pass

    @abstractmethod
    def locate(self, client: int, tx: int) -> Optional[Transaction]:
        """Find the deposit or withdrawal a dispute refers to.

        Only transactions recorded earlier in the stream are visible, so a
        reference to a future transaction resolves to None. The original
        must also belong to the disputing client.
        """
        pass

    @abstractmethod
    def get_transactions_count(self) -> int:
        """Get total number of recorded transactions."""
        pass


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}

    def get(self, client: int) -> Optional[Account]:
        return self.accounts.get(client)

    def get_or_create(self, client: int) -> Account:
        account = self.accounts.get(client)
        if account is None:
            account = Account(client)
            self.accounts[client] = account
        return account

    def all(self) -> List[Account]:
        return [self.accounts[client] for client in sorted(self.accounts)]

    def get_accounts_count(self) -> int:
        return len(self.accounts)


class InMemoryTransactionLog(TransactionLog):
    def __init__(self):
        self.store: Dict[int, Transaction] = {}

    def record(self, transaction: Transaction) -> None:
        if not transaction.is_funds_movement:
            raise ValueError(f"Only deposits and withdrawals are recorded, got {transaction.type.value}")
        self.store.setdefault(transaction.tx, transaction)

    def contains(self, tx: int) -> bool:
        return tx in self.store

    def locate(self, client: int, tx: int) -> Optional[Transaction]:
        original = self.store.get(tx)
        if original is None or original.client != client:
            return None
        return original

    def get_transactions_count(self) -> int:
        return len(self.store)


_account_repo = InMemoryAccountRepository()
_transaction_log = InMemoryTransactionLog()


def get_account_repository() -> AccountRepository:
    return _account_repo


def get_transaction_log() -> TransactionLog:
    return _transaction_log


def reset_repositories():
    """Reset all repositories to initial state (for testing only)."""
    global _account_repo, _transaction_log
    _account_repo = InMemoryAccountRepository()
    _transaction_log = InMemoryTransactionLog()
