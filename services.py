from typing import Callable, Dict, Iterable, List, Optional
from decimal import Decimal
import structlog

from models import Account, BalanceReport, OperationRecord, OperationType, TransitionOutcome
from repositories import (
    AccountRepository,
    DisputeRepository,
    InMemoryAccountRepository,
    InMemoryDisputeRepository,
    InMemoryTransactionLogRepository,
    TransactionLogRepository,
)

# Configure structured logging
logger = structlog.get_logger()


class TransactionService:
    """Applies a stream of operations to the account ledger.

    Each transition checks its preconditions in order and returns the first
    failing one as a ``TransitionOutcome``; state is only touched once every
    precondition holds. One service instance owns the state of one run.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        transaction_repo: TransactionLogRepository,
        dispute_repo: DisputeRepository,
        detailed_logging: bool = False
    ):
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo
        self.dispute_repo = dispute_repo
        self.detailed_logging = detailed_logging
        self._transitions: Dict[OperationType, Callable[[Account, OperationRecord], TransitionOutcome]] = {
            OperationType.deposit: self.apply_deposit,
            OperationType.withdrawal: self.apply_withdrawal,
            OperationType.dispute: self.apply_dispute,
            OperationType.resolve: self.apply_resolve,
            OperationType.chargeback: self.apply_chargeback,
        }

    def process(self, record: OperationRecord) -> TransitionOutcome:
        """Apply a single operation and run dispute cleanup where it applies."""
        account = self.account_repo.get_or_create(record.client)
        outcome = self._transitions[record.type](account, record)

        if record.type in (OperationType.resolve, OperationType.chargeback):
            self._cleanup(record.tx)

        if outcome is not TransitionOutcome.applied and self.detailed_logging:
            logger.debug(
                "Operation rejected",
                type=record.type.value,
                client=record.client,
                tx=record.tx,
                reason=outcome.value
            )

        return outcome

    def process_all(self, records: Iterable[OperationRecord]) -> int:
        """Apply every operation in order. Returns the number applied."""
        processed = 0
        applied = 0
        for record in records:
            processed += 1
            if self.process(record) is TransitionOutcome.applied:
                applied += 1

        logger.info(
            "Operation stream processed",
            operations=processed,
            applied=applied,
            rejected=processed - applied,
            accounts=self.account_repo.get_accounts_count(),
            open_disputes=self.dispute_repo.get_disputes_count()
        )
        return applied

    def balances(self) -> List[BalanceReport]:
        """Final balances for every client seen, ordered by client id."""
        return [
            BalanceReport.from_account(client_id, account)
            for client_id, account in sorted(self.account_repo.all(), key=lambda item: item[0])
        ]

    def apply_deposit(self, account: Account, record: OperationRecord) -> TransitionOutcome:
        outcome = self._check_funds_movement(account, record, is_deposit=True)
        if outcome is not TransitionOutcome.applied:
            return outcome

        account.available += record.amount
        self.transaction_repo.record(record.tx, record.client, record.amount, is_deposit=True)
        return TransitionOutcome.applied

    def apply_withdrawal(self, account: Account, record: OperationRecord) -> TransitionOutcome:
        outcome = self._check_funds_movement(account, record, is_deposit=False)
        if outcome is not TransitionOutcome.applied:
            return outcome

        account.available -= record.amount
        self.transaction_repo.record(record.tx, record.client, record.amount, is_deposit=False)
        return TransitionOutcome.applied

    def apply_dispute(self, account: Account, record: OperationRecord) -> TransitionOutcome:
        transaction = self.transaction_repo.lookup(record.tx)
        if transaction is None:
            return TransitionOutcome.unknown_transaction
        if transaction.owner_client != record.client:
            return TransitionOutcome.client_mismatch
        # A withdrawal has already left the account; holding it would double count
        if not transaction.is_deposit:
            return TransitionOutcome.not_a_deposit
        if not self.dispute_repo.open(record.tx):
            return TransitionOutcome.already_disputed

        account.available -= transaction.amount
        account.held += transaction.amount
        return TransitionOutcome.applied

    def apply_resolve(self, account: Account, record: OperationRecord) -> TransitionOutcome:
        outcome = self._close_dispute(record)
        if outcome is not TransitionOutcome.applied:
            return outcome

        amount = self.transaction_repo.lookup(record.tx).amount
        account.held -= amount
        account.available += amount
        return TransitionOutcome.applied

    def apply_chargeback(self, account: Account, record: OperationRecord) -> TransitionOutcome:
        outcome = self._close_dispute(record)
        if outcome is not TransitionOutcome.applied:
            return outcome

        account.held -= self.transaction_repo.lookup(record.tx).amount
        account.locked = True
        return TransitionOutcome.applied

    def _check_funds_movement(
        self,
        account: Account,
        record: OperationRecord,
        is_deposit: bool
    ) -> TransitionOutcome:
        if record.amount is None:
            return TransitionOutcome.missing_amount
        if record.amount <= Decimal("0"):
            return TransitionOutcome.non_positive_amount
        if account.locked:
            return TransitionOutcome.account_locked
        if not is_deposit and account.available < record.amount:
            return TransitionOutcome.insufficient_funds
        if self.transaction_repo.contains(record.tx):
            return TransitionOutcome.duplicate_transaction
        return TransitionOutcome.applied

    def _close_dispute(self, record: OperationRecord) -> TransitionOutcome:
        """Shared gate for resolve and chargeback; closes the dispute on success."""
        transaction = self.transaction_repo.lookup(record.tx)
        if transaction is None:
            return TransitionOutcome.unknown_transaction
        if transaction.owner_client != record.client:
            return TransitionOutcome.client_mismatch
        if not self.dispute_repo.close(record.tx):
            return TransitionOutcome.not_disputed
        return TransitionOutcome.applied

    def _cleanup(self, tx_id: int) -> None:
        # Resolved and charged back transactions can never be disputed again
        if not self.dispute_repo.is_disputed(tx_id):
            self.transaction_repo.forget(tx_id)


# Factory function for dependency injection
def get_transaction_service(
    account_repo: Optional[AccountRepository] = None,
    transaction_repo: Optional[TransactionLogRepository] = None,
    dispute_repo: Optional[DisputeRepository] = None,
    detailed_logging: bool = False
) -> TransactionService:
    return TransactionService(
        account_repo or InMemoryAccountRepository(),
        transaction_repo or InMemoryTransactionLogRepository(),
        dispute_repo or InMemoryDisputeRepository(),
        detailed_logging=detailed_logging
    )
