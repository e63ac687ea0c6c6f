"""
Atomicity Conformance Tests

INVARIANT: Operations are all-or-nothing.

    ∀ operation O:
        O raises ⟹ the store is exactly as before O

Every refused deposit, payment, reject, repeat or favorite is checked
against a value snapshot taken just before it.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

import pytest

from wallet import (
    Service, WalletError, AmountNonPositive, InsufficientBalance,
    AccountNotFound, PaymentNotFound, FavoriteNotFound, AlreadyRejected,
)

from helpers import add_account, store_snapshot


def _funded(balance: int):
    svc = Service()
    account, _ = add_account(svc, "+992000000001", balance)
    return svc, account


class TestAtomicityProperties:

    @given(st.integers(min_value=0, max_value=1_000), st.integers(min_value=-1_000, max_value=0))
    @settings(max_examples=50)
    def test_non_positive_payment_changes_nothing(self, balance, amount):
        svc, account = _funded(balance)
        before = store_snapshot(svc)
        with pytest.raises(AmountNonPositive):
            svc.pay(account.id, amount, "auto")
        assert store_snapshot(svc) == before

    @given(st.integers(min_value=0, max_value=1_000), st.integers(min_value=1, max_value=1_000))
    @settings(max_examples=50)
    def test_overdraft_changes_nothing(self, balance, excess):
        svc, account = _funded(balance)
        before = store_snapshot(svc)
        with pytest.raises(InsufficientBalance):
            svc.pay(account.id, balance + excess, "auto")
        assert store_snapshot(svc) == before

    @given(st.integers(min_value=2, max_value=1_000))
    @settings(max_examples=50)
    def test_failed_repeat_changes_nothing(self, balance):
        svc, account = _funded(balance)
        payment = svc.pay(account.id, balance // 2 + 1, "auto")
        before = store_snapshot(svc)
        with pytest.raises(InsufficientBalance):
            svc.repeat(payment.id)
        assert store_snapshot(svc) == before


class TestRefusedLookups:

    @pytest.mark.parametrize("call, error", [
        (lambda s: s.deposit(99, 10), AccountNotFound),
        (lambda s: s.pay(99, 10, "auto"), AccountNotFound),
        (lambda s: s.reject("missing"), PaymentNotFound),
        (lambda s: s.repeat("missing"), PaymentNotFound),
        (lambda s: s.favorite_payment("missing", "x"), PaymentNotFound),
        (lambda s: s.pay_from_favorite("missing"), FavoriteNotFound),
    ])
    def test_unknown_ids_change_nothing(self, call, error):
        svc, account = _funded(1_000)
        svc.pay(account.id, 100, "auto")
        before = store_snapshot(svc)
        with pytest.raises(error):
            call(svc)
        assert store_snapshot(svc) == before

    def test_double_reject_changes_nothing(self):
        svc, account = _funded(1_000)
        payment = svc.pay(account.id, 100, "auto")
        svc.reject(payment.id)
        before = store_snapshot(svc)
        with pytest.raises(AlreadyRejected):
            svc.reject(payment.id)
        assert store_snapshot(svc) == before

    def test_reject_with_missing_account_changes_nothing(self):
        svc, account = _funded(1_000)
        payment = svc.pay(account.id, 100, "auto")
        # Corrupt the store: the payment's account disappears.
        svc._accounts.pop(account.id)
        before = store_snapshot(svc)
        with pytest.raises(WalletError) as exc:
            svc.reject(payment.id)
        assert isinstance(exc.value, AccountNotFound)
        assert store_snapshot(svc) == before
