"""
Dump Round-Trip and Merge Conformance Tests

INVARIANTS:
    Export then Import into a fresh service reproduces the same id-keyed
    accounts, payments and favorites, with payment order preserved.

    Import merges by id: importing the same dump twice, or into a service
    that already holds those ids, changes nothing.
"""

import tempfile

from hypothesis import given, settings
from hypothesis import strategies as st

import pytest

from wallet import Service, PaymentStatus, WalletError, RESERVED_FIELD_CHARS

from helpers import store_snapshot


# Text fields may hold anything but ';' and line breaks; phones also not '|'.
field_text = st.text(st.characters(exclude_characters=RESERVED_FIELD_CHARS), max_size=12)
phone_text = st.text(
    st.characters(exclude_characters=RESERVED_FIELD_CHARS + "|"), min_size=1, max_size=12,
).filter(str.strip)


@st.composite
def populated(draw):
    """A service with accounts, payments (some rejected) and favorites."""
    svc = Service()
    for phone in draw(st.lists(phone_text, max_size=4, unique=True)):
        account = svc.register_account(phone)
        svc.deposit(account.id, draw(st.integers(min_value=1, max_value=100_000)))
    for account in svc.accounts():
        for amount in draw(st.lists(st.integers(min_value=1, max_value=5_000), max_size=8)):
            try:
                svc.pay(account.id, amount, draw(field_text))
            except WalletError:
                pass
    for payment in svc.payments():
        if draw(st.booleans()):
            svc.reject(payment.id)
        if draw(st.booleans()):
            svc.favorite_payment(payment.id, draw(field_text))
    return svc


class TestDumpProperties:

    @given(populated())
    @settings(max_examples=40, deadline=None)
    def test_round_trip(self, svc):
        with tempfile.TemporaryDirectory() as tmp:
            svc.export_dir(tmp)
            restored = Service()
            restored.import_dir(tmp)

        assert store_snapshot(restored) == store_snapshot(svc)
        assert [p.id for p in restored.payments()] == [p.id for p in svc.payments()]
        assert restored.next_account_id == max((a.id for a in svc.accounts()), default=0)

    @given(populated())
    @settings(max_examples=30, deadline=None)
    def test_import_twice_is_noop(self, svc):
        with tempfile.TemporaryDirectory() as tmp:
            svc.export_dir(tmp)
            restored = Service()
            restored.import_dir(tmp)
            once = store_snapshot(restored)
            restored.import_dir(tmp)

        assert store_snapshot(restored) == once
        assert len(restored.payments()) == len(svc.payments())

    @given(populated())
    @settings(max_examples=30, deadline=None)
    def test_memory_wins_over_disk(self, svc):
        with tempfile.TemporaryDirectory() as tmp:
            svc.export_dir(tmp)
            # Diverge in memory after the dump was taken.
            for payment in svc.payments():
                if payment.status is PaymentStatus.IN_PROGRESS:
                    svc.reject(payment.id)
            before = store_snapshot(svc)
            svc.import_dir(tmp)

        assert store_snapshot(svc) == before

    @given(st.text(max_size=16), st.text(max_size=16))
    @settings(max_examples=80, deadline=None)
    def test_any_text_round_trips_or_is_refused(self, category, name):
        svc = Service()
        account = svc.register_account("+992000000001")
        svc.deposit(account.id, 1_000)
        if set(category) & set(RESERVED_FIELD_CHARS):
            with pytest.raises(ValueError):
                svc.pay(account.id, 10, category)
            assert svc.payments() == []
            category = "fallback"
        payment = svc.pay(account.id, 10, category)
        if set(name) & set(RESERVED_FIELD_CHARS):
            with pytest.raises(ValueError):
                svc.favorite_payment(payment.id, name)
            assert svc.favorites() == []
            name = "fallback"
        svc.favorite_payment(payment.id, name)

        with tempfile.TemporaryDirectory() as tmp:
            svc.export_dir(tmp)
            restored = Service()
            restored.import_dir(tmp)

        assert store_snapshot(restored) == store_snapshot(svc)
