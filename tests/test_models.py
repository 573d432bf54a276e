import pytest
from decimal import Decimal
from pydantic import ValidationError

from models import Account, BalanceReport, OperationRecord, OperationType


class TestOperationRecord:
    """Test input record validation."""

    def test_parse_deposit(self):
        """Test a well formed deposit row."""
        record = OperationRecord.model_validate(
            {"type": "Deposit", "client": "1", "tx": "1", "amount": "1.2345"}
        )

        assert record.type is OperationType.deposit
        assert record.client == 1
        assert record.tx == 1
        assert record.amount == Decimal("1.2345")

    def test_case_insensitive_type(self):
        """Test operation kinds are matched regardless of case."""
        upper = OperationRecord.model_validate({"type": "WITHDRAWAL", "client": "2", "tx": "2", "amount": "2.0"})
        mixed = OperationRecord.model_validate({"type": "ChargeBack", "client": "2", "tx": "2"})

        assert upper.type is OperationType.withdrawal
        assert mixed.type is OperationType.chargeback

    def test_missing_amount(self):
        """Test dispute rows carry no amount."""
        record = OperationRecord.model_validate({"type": "dispute", "client": "1", "tx": "1"})
        assert record.amount is None

    def test_blank_amount_is_absent(self):
        """Test an empty amount column is treated as no amount."""
        record = OperationRecord.model_validate({"type": "resolve", "client": "1", "tx": "1", "amount": ""})
        assert record.amount is None

    def test_unknown_type_rejected(self):
        """Test an unknown operation kind is a parse failure."""
        with pytest.raises(ValidationError):
            OperationRecord.model_validate({"type": "transfer", "client": "1", "tx": "1", "amount": "1"})

    @pytest.mark.parametrize("client", ["-1", "65536", "abc", ""])
    def test_client_id_range(self, client):
        """Test client ids must fit in 16 bits."""
        with pytest.raises(ValidationError):
            OperationRecord.model_validate({"type": "deposit", "client": client, "tx": "1", "amount": "1"})

    @pytest.mark.parametrize("tx", ["-1", "4294967296", "x1"])
    def test_transaction_id_range(self, tx):
        """Test transaction ids must fit in 32 bits."""
        with pytest.raises(ValidationError):
            OperationRecord.model_validate({"type": "deposit", "client": "1", "tx": tx, "amount": "1"})

    def test_unparseable_amount_rejected(self):
        """Test a non-numeric amount is a parse failure."""
        with pytest.raises(ValidationError):
            OperationRecord.model_validate({"type": "deposit", "client": "1", "tx": "1", "amount": "ten"})

    def test_wide_amount_accepted(self):
        """Test amounts up to 28 significant digits are kept exactly."""
        amount = "123456789012345678901234.5678"
        record = OperationRecord.model_validate({"type": "deposit", "client": "1", "tx": "1", "amount": amount})

        assert record.amount == Decimal(amount)

    def test_too_many_digits_rejected(self):
        """Test amounts beyond 28 significant digits are a parse failure."""
        with pytest.raises(ValidationError, match="significant digits"):
            OperationRecord.model_validate(
                {"type": "deposit", "client": "1", "tx": "1", "amount": "12345678901234567890123456789"}
            )

    def test_negative_amount_parses(self):
        """Test negative amounts reach the engine, which ignores them."""
        record = OperationRecord.model_validate({"type": "deposit", "client": "1", "tx": "1", "amount": "-3.5"})
        assert record.amount == Decimal("-3.5")


class TestAccount:
    """Test account state."""

    def test_new_account_is_zeroed(self):
        account = Account()

        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert not account.locked

    def test_total_is_available_plus_held(self):
        account = Account(available=Decimal("-2.5"), held=Decimal("10"))

        assert account.total == Decimal("7.5")

    def test_balance_report_from_account(self):
        account = Account(available=Decimal("1.5"), held=Decimal("2"), locked=True)
        report = BalanceReport.from_account(3, account)

        assert report.client == 3
        assert report.total == Decimal("3.5")
        assert report.locked
