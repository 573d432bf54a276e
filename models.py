from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum
from typing import Optional
from decimal import Decimal


MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1
MAX_AMOUNT_DIGITS = 28


class OperationType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"


class TransitionOutcome(str, Enum):
    """Result of applying one operation to the engine state.

    Anything other than ``applied`` names the first precondition that failed.
    Rejections are normal input and are never raised.
    """

    applied = "applied"
    missing_amount = "missing_amount"
    non_positive_amount = "non_positive_amount"
    account_locked = "account_locked"
    insufficient_funds = "insufficient_funds"
    duplicate_transaction = "duplicate_transaction"
    unknown_transaction = "unknown_transaction"
    client_mismatch = "client_mismatch"
    not_a_deposit = "not_a_deposit"
    already_disputed = "already_disputed"
    not_disputed = "not_disputed"


class OperationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: OperationType = Field(..., description="Operation kind")
    client: int = Field(
        ...,
        ge=0,
        le=MAX_CLIENT_ID,
        description="Client identifier"
    )
    tx: int = Field(
        ...,
        ge=0,
        le=MAX_TRANSACTION_ID,
        description="Globally unique transaction identifier"
    )
    amount: Optional[Decimal] = Field(
        None,
        description="Operation amount, present for deposits and withdrawals"
    )

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def blank_amount_is_absent(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('amount')
    @classmethod
    def amount_fits_precision(cls, v):
        if v is not None and len(v.as_tuple().digits) > MAX_AMOUNT_DIGITS:
            raise ValueError(f'Amount cannot have more than {MAX_AMOUNT_DIGITS} significant digits')
        return v


class TransactionRecord(BaseModel):
    """Deposit or withdrawal kept around while it may still be disputed."""

    model_config = ConfigDict(frozen=True)

    owner_client: int = Field(..., description="Client that created the transaction")
    amount: Decimal = Field(..., description="Original transaction amount")
    is_deposit: bool = Field(..., description="Only deposits can be disputed")


class Account(BaseModel):
    available: Decimal = Field(default=Decimal("0"), description="Funds usable for withdrawal")
    held: Decimal = Field(default=Decimal("0"), description="Funds frozen by open disputes")
    locked: bool = Field(default=False, description="Set forever by a chargeback")

    @property
    def total(self) -> Decimal:
        return self.available + self.held


class BalanceReport(BaseModel):
    client: int = Field(..., description="Client identifier")
    available: Decimal = Field(..., description="Available funds")
    held: Decimal = Field(..., description="Held funds")
    total: Decimal = Field(..., description="Available plus held")
    locked: bool = Field(..., description="Whether the account is locked")

    @classmethod
    def from_account(cls, client_id: int, account: Account) -> "BalanceReport":
        return cls(
            client=client_id,
            available=account.available,
            held=account.held,
            total=account.total,
            locked=account.locked,
        )
