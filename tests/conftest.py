"""
conftest.py - Shared pytest fixtures for wallet tests

Provides services in a few standard states:
- empty
- one funded account
- one account with a single payment
- three accounts sharing a 50-payment log
"""

import pytest

from wallet import Service

from helpers import DEFAULT_PHONE, DEFAULT_BALANCE, add_account


@pytest.fixture
def service():
    """Fresh service with no accounts."""
    return Service()


@pytest.fixture
def funded_service():
    """Service with account 1 holding 10_000 and no payments."""
    svc = Service()
    add_account(svc, DEFAULT_PHONE, 10_000)
    return svc


@pytest.fixture
def paid_service():
    """Service with account 1: deposit 10_000 then one payment of 1_000 'auto'."""
    svc = Service()
    account, payments = add_account(svc, DEFAULT_PHONE, 10_000, [(1_000, "auto")])
    return svc, account, payments[0]


@pytest.fixture
def busy_service():
    """Three accounts and 50 payments interleaved between them."""
    svc = Service()
    accounts = [add_account(svc, f"+99200000000{i}", DEFAULT_BALANCE)[0] for i in range(1, 4)]
    for n in range(50):
        account = accounts[n % 3]
        svc.pay(account.id, 100 + n, ("auto", "food", "pharmacy")[n % 3])
    return svc
