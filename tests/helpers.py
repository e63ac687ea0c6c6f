"""
helpers.py - Test helpers shared by unit and conformance tests

Builds accounts with payments and compares service stores by value.
"""

from typing import Dict, List, Tuple

from wallet import Service, Account, Payment, PaymentStatus


DEFAULT_PHONE = "+992000000001"
DEFAULT_BALANCE = 10_000_000_000_00


def add_account(
    svc: Service,
    phone: str,
    balance: int,
    payments: List[Tuple[int, str]] = (),
) -> Tuple[Account, List[Payment]]:
    """Register, fund and pay in one step. Fails the test on any error."""
    account = svc.register_account(phone)
    if balance:
        svc.deposit(account.id, balance)
    made = [svc.pay(account.id, amount, category) for amount, category in payments]
    return account, made


def store_snapshot(svc: Service) -> Dict[str, dict]:
    """Id-keyed value view of a service's store, for equality checks."""
    return {
        "accounts": {a.id: (a.phone, a.balance) for a in svc.accounts()},
        "payments": {
            p.id: (p.account_id, p.amount, p.category, p.status) for p in svc.payments()
        },
        "favorites": {
            f.id: (f.account_id, f.name, f.amount, f.category) for f in svc.favorites()
        },
    }


def expected_balance(deposits: int, payments: List[Payment]) -> int:
    """Balance implied by deposits and the non-FAIL payments."""
    return deposits - sum(p.amount for p in payments if p.status is not PaymentStatus.FAIL)
