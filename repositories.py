from abc import ABC, abstractmethod
from typing import Dict, Iterator, Optional, Set, Tuple
from decimal import Decimal
from models import Account, TransactionRecord


class AccountRepository(ABC):
    @abstractmethod
    def get_or_create(self, client_id: int) -> Account:
        """Get the client's account, creating a zeroed one if it doesn't exist."""
        pass

    @abstractmethod
    def all(self) -> Iterator[Tuple[int, Account]]:
        """Iterate over (client_id, account) pairs in no particular order."""
        pass

    @abstractmethod
    def get_accounts_count(self) -> int:
        """Get total number of accounts."""
        pass


class TransactionLogRepository(ABC):
    @abstractmethod
    def record(self, tx_id: int, owner_client: int, amount: Decimal, is_deposit: bool) -> bool:
        """Store a transaction. Returns False and changes nothing if tx_id is taken."""
        pass

    @abstractmethod
    def lookup(self, tx_id: int) -> Optional[TransactionRecord]:
        """Get stored transaction. Returns None if it is unknown or forgotten."""
        pass

    @abstractmethod
    def forget(self, tx_id: int) -> None:
        """Remove a transaction if present."""
        pass

    @abstractmethod
    def contains(self, tx_id: int) -> bool:
        """Check whether tx_id is currently stored."""
        pass

    @abstractmethod
    def get_transactions_count(self) -> int:
        """Get total number of stored transactions."""
        pass


class DisputeRepository(ABC):
    @abstractmethod
    def open(self, tx_id: int) -> bool:
        """Mark tx_id as disputed. Returns False if it already was."""
        pass

    @abstractmethod
    def close(self, tx_id: int) -> bool:
        """Clear the dispute on tx_id. Returns False if it wasn't disputed."""
        pass

    @abstractmethod
    def is_disputed(self, tx_id: int) -> bool:
        """Check whether tx_id is under an open dispute."""
        pass

    @abstractmethod
    def get_disputes_count(self) -> int:
        """Get number of open disputes."""
        pass


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}

    def get_or_create(self, client_id: int) -> Account:
        account = self.accounts.get(client_id)
        if account is None:
            account = Account()
            self.accounts[client_id] = account
        return account

    def all(self) -> Iterator[Tuple[int, Account]]:
        return iter(self.accounts.items())

    def get_accounts_count(self) -> int:
        return len(self.accounts)


class InMemoryTransactionLogRepository(TransactionLogRepository):
    def __init__(self):
        self.store: Dict[int, TransactionRecord] = {}

    def record(self, tx_id: int, owner_client: int, amount: Decimal, is_deposit: bool) -> bool:
        if tx_id in self.store:
            return False
        self.store[tx_id] = TransactionRecord(
            owner_client=owner_client,
            amount=amount,
            is_deposit=is_deposit
        )
        return True

    def lookup(self, tx_id: int) -> Optional[TransactionRecord]:
        return self.store.get(tx_id)

    def forget(self, tx_id: int) -> None:
        self.store.pop(tx_id, None)

    def contains(self, tx_id: int) -> bool:
        return tx_id in self.store

    def get_transactions_count(self) -> int:
        return len(self.store)


class InMemoryDisputeRepository(DisputeRepository):
    def __init__(self):
        self.disputed: Set[int] = set()

    def open(self, tx_id: int) -> bool:
        if tx_id in self.disputed:
            return False
        self.disputed.add(tx_id)
        return True

    def close(self, tx_id: int) -> bool:
        if tx_id not in self.disputed:
            return False
        self.disputed.remove(tx_id)
        return True

    def is_disputed(self, tx_id: int) -> bool:
        return tx_id in self.disputed

    def get_disputes_count(self) -> int:
        return len(self.disputed)
