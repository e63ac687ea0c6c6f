"""
test_core.py - Unit tests for core.py

Tests:
- PaymentStatus wire values
- Error hierarchy and kinds
- Money validation and id generation
- Record mutability rules
"""

import dataclasses

import pytest

from wallet import (
    Account, Payment, Favorite, Progress, PaymentStatus, ErrorKind,
    WalletError, PhoneRegistered, AmountNonPositive, AccountNotFound,
    PaymentNotFound, FavoriteNotFound, InsufficientBalance, AlreadyRejected,
    PaymentCompleted, DumpIOError, DumpParseError,
)
from wallet.core import check_money, check_field, new_id


class TestPaymentStatus:

    def test_wire_values(self):
        assert PaymentStatus.OK.value == "OK"
        assert PaymentStatus.FAIL.value == "FAIL"
        assert PaymentStatus.IN_PROGRESS.value == "INPROGRESS"

    def test_parse_from_wire(self):
        assert PaymentStatus("INPROGRESS") is PaymentStatus.IN_PROGRESS

    def test_new_payment_defaults_to_in_progress(self):
        p = Payment(id="p1", account_id=1, amount=10, category="auto")
        assert p.status is PaymentStatus.IN_PROGRESS


class TestErrors:

    @pytest.mark.parametrize("cls, kind", [
        (PhoneRegistered, ErrorKind.PHONE_REGISTERED),
        (AmountNonPositive, ErrorKind.AMOUNT_NON_POSITIVE),
        (AccountNotFound, ErrorKind.ACCOUNT_NOT_FOUND),
        (PaymentNotFound, ErrorKind.PAYMENT_NOT_FOUND),
        (FavoriteNotFound, ErrorKind.FAVORITE_NOT_FOUND),
        (InsufficientBalance, ErrorKind.INSUFFICIENT_BALANCE),
        (AlreadyRejected, ErrorKind.ALREADY_REJECTED),
        (PaymentCompleted, ErrorKind.PAYMENT_COMPLETED),
        (DumpIOError, ErrorKind.IO_ERROR),
        (DumpParseError, ErrorKind.PARSE_ERROR),
    ])
    def test_every_error_has_its_kind(self, cls, kind):
        err = cls("boom")
        assert isinstance(err, WalletError)
        assert err.kind is kind
        assert str(err) == "boom"

    def test_kinds_are_distinct(self):
        assert len({k.value for k in ErrorKind}) == len(ErrorKind)


class TestMoney:

    def test_accepts_int(self):
        assert check_money(5) == 5
        assert check_money(-5) == -5

    @pytest.mark.parametrize("bad", [1.5, "10", True, None])
    def test_rejects_non_int(self, bad):
        with pytest.raises(TypeError):
            check_money(bad)

    def test_no_wraparound_past_int64(self):
        big = 2 ** 63 - 1
        assert check_money(big) + big == 2 ** 64 - 2


class TestRecords:

    def test_new_id_unique(self):
        ids = {new_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_favorite_is_frozen(self):
        fav = Favorite(id="f1", account_id=1, name="car", amount=100, category="auto")
        with pytest.raises(dataclasses.FrozenInstanceError):
            fav.amount = 1

    def test_progress_is_frozen(self):
        progress = Progress(part=1, result=10)
        with pytest.raises(dataclasses.FrozenInstanceError):
            progress.result = 0

    def test_account_balance_is_mutable(self):
        account = Account(id=1, phone="+1", balance=0)
        account.balance += 10
        assert account.balance == 10


class TestCheckField:

    def test_accepts_plain_text(self):
        assert check_field("car wash", "name") == "car wash"
        assert check_field("", "category") == ""

    @pytest.mark.parametrize("value", ["a;b", "a\nb", "a\rb"])
    def test_rejects_reserved(self, value):
        with pytest.raises(ValueError):
            check_field(value, "category")

    def test_extra_reserved(self):
        assert check_field("a|b", "category") == "a|b"
        with pytest.raises(ValueError):
            check_field("a|b", "phone", ";\n\r|")

    def test_rejects_non_str(self):
        with pytest.raises(TypeError):
            check_field(5, "name")
