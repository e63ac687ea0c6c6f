#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Wallet Step by Step

A walkthrough of the wallet service. Each step builds on the previous one.
Press Enter to advance.

WHAT YOU'LL LEARN:
  1-4:   Foundation     - Accounts, deposits, payments, the balance rule
  5-7:   Lifecycle      - Rejections, repeats, favorites
  8-9:   Aggregation    - Sharded sums and filters, progress streams
  10-11: Persistence    - Directory dumps, history files
  12:    Load Test      - Many accounts, many payments, many workers

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from pathlib import Path
import logging
import random
import sys
import tempfile
import time

from wallet import (
    Service, PaymentStatus, WalletError,
    ACCOUNTS_DUMP, PAYMENTS_DUMP, FAVORITES_DUMP,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    alice_phone: str = "+992000000001"
    bob_phone: str = "+992000000002"
    alice_deposit: int = 100_000
    bob_deposit: int = 25_000

    # Load test parameters (Step 12)
    load_test_accounts: int = 1_000
    load_test_payments: int = 200_000
    load_test_workers: int = 8


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_accounts(svc: Service):
    for account in svc.accounts():
        print(f"  account {account.id}  {account.phone}  balance={account.balance:,}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-4)
# ============================================================================

def step_01_register():
    step_header(1, "Registering Accounts",
        "Accounts are identified by a phone number and get increasing ids.")

    print("""
    An account has three fields:

    - id:      assigned by the service, 1, 2, 3, ...
    - phone:   unique across the service
    - balance: starts at zero, never goes negative

    We create the service with verbose=True so every accepted and refused
    operation is logged.
    """)

    wait_for_enter()

    print(">>> svc = Service(verbose=True)")
    svc = Service(verbose=True)
    print(f">>> svc.register_account({CONFIG.alice_phone!r})")
    svc.register_account(CONFIG.alice_phone)
    print(f">>> svc.register_account({CONFIG.bob_phone!r})")
    svc.register_account(CONFIG.bob_phone)

    section_header("Duplicate Phone")
    print(f">>> svc.register_account({CONFIG.alice_phone!r})")
    try:
        svc.register_account(CONFIG.alice_phone)
    except WalletError as e:
        print(f"Refused: {e.kind.value} ({e})")

    section_header("State")
    show_accounts(svc)
    print(f"\nnext_account_id = {svc.next_account_id}")
    return svc


def step_02_deposit(svc: Service):
    step_header(2, "Deposits",
        "Deposits are the only way money enters an account.")

    alice, bob = svc.accounts()
    print(f">>> svc.deposit({alice.id}, {CONFIG.alice_deposit})")
    svc.deposit(alice.id, CONFIG.alice_deposit)
    print(f">>> svc.deposit({bob.id}, {CONFIG.bob_deposit})")
    svc.deposit(bob.id, CONFIG.bob_deposit)

    section_header("Non-positive Amounts")
    print(f">>> svc.deposit({alice.id}, 0)")
    try:
        svc.deposit(alice.id, 0)
    except WalletError as e:
        print(f"Refused: {e.kind.value}")

    show_accounts(svc)
    return svc


def step_03_pay(svc: Service):
    step_header(3, "Payments",
        "A payment debits immediately and starts IN_PROGRESS.")

    alice = svc.accounts()[0]
    print(f">>> payment = svc.pay({alice.id}, 12_000, 'auto')")
    payment = svc.pay(alice.id, 12_000, "auto")
    print(f"\n{payment!r}")
    print(f"Status on the wire: {payment.status.value}")

    section_header("Insufficient Balance")
    print(f">>> svc.pay({alice.id}, 10**9, 'auto')")
    try:
        svc.pay(alice.id, 10 ** 9, "auto")
    except WalletError as e:
        print(f"Refused: {e.kind.value}")

    show_accounts(svc)
    return svc, payment


def step_04_balance_rule(svc: Service):
    step_header(4, "The Balance Rule",
        "balance = deposits - sum of payments that are not FAIL.")

    deposits = {svc.accounts()[0].id: CONFIG.alice_deposit,
                svc.accounts()[1].id: CONFIG.bob_deposit}
    for account in svc.accounts():
        spent = sum(p.amount for p in svc.payments()
                    if p.account_id == account.id and p.status is not PaymentStatus.FAIL)
        ok = account.balance == deposits[account.id] - spent
        print(f"  account {account.id}: {deposits[account.id]:,} - {spent:,} = "
              f"{account.balance:,}  {'OK' if ok else 'BROKEN'}")
    return svc


# ============================================================================
# PHASE 2: LIFECYCLE (Steps 5-7)
# ============================================================================

def step_05_reject(svc: Service, payment):
    step_header(5, "Rejecting a Payment",
        "Reject refunds once and marks the payment FAIL.")

    print(f">>> svc.reject({payment.id!r})")
    svc.reject(payment.id)
    print(f"Status: {payment.status.value}")
    show_accounts(svc)

    section_header("Rejecting Twice")
    try:
        svc.reject(payment.id)
    except WalletError as e:
        print(f"Refused: {e.kind.value}. The account is not credited again.")
    show_accounts(svc)
    return svc


def step_06_repeat(svc: Service, payment):
    step_header(6, "Repeating a Payment",
        "Repeat issues a brand new payment with the same terms.")

    print(f">>> again = svc.repeat({payment.id!r})")
    again = svc.repeat(payment.id)
    print(f"\noriginal: {payment!r}")
    print(f"repeat:   {again!r}")
    show_accounts(svc)
    return svc, again


def step_07_favorites(svc: Service, payment):
    step_header(7, "Favorites",
        "A favorite is a named template: account, amount and category.")

    print(f">>> fav = svc.favorite_payment({payment.id!r}, 'car wash')")
    fav = svc.favorite_payment(payment.id, "car wash")
    print(f"\n{fav}")

    print("\n>>> svc.pay_from_favorite(fav.id)")
    svc.pay_from_favorite(fav.id)
    show_accounts(svc)
    return svc


# ============================================================================
# PHASE 3: AGGREGATION (Steps 8-9)
# ============================================================================

def step_08_sharded_scans(svc: Service):
    step_header(8, "Sharded Sums and Filters",
        "The payment log is split into contiguous shards, one per worker.")

    rng = random.Random(7)
    alice, bob = svc.accounts()
    for _ in range(40):
        account = rng.choice([alice, bob])
        svc.pay(account.id, rng.randint(1, 300), rng.choice(["auto", "food", "pharmacy"]))

    section_header("Sum Across Worker Counts")
    for workers in (1, 2, 3, 7):
        print(f"  sum_payments(workers={workers}) = {svc.sum_payments(workers):,}")

    section_header("Filters")
    mine = svc.filter_payments(bob.id, workers=4)
    food = svc.filter_payments_by_fn(lambda p: p.category == "food", workers=4)
    print(f"  payments of account {bob.id}: {len(mine)}")
    print(f"  food payments:          {len(food)}")
    return svc


def step_09_progress(svc: Service):
    step_header(9, "Progress Streams",
        "Each chunk reports its partial sum; the stream ends when all are done.")

    print(">>> for progress in svc.sum_payments_with_progress(chunk_size=10): ...")
    total = 0
    for progress in svc.sum_payments_with_progress(chunk_size=10):
        total += progress.result
        print(f"  part={progress.part}  result={progress.result:,}")
    print(f"\nStream total {total:,} == sum_payments() {svc.sum_payments():,}")
    return svc


# ============================================================================
# PHASE 4: PERSISTENCE (Steps 10-11)
# ============================================================================

def step_10_dump(svc: Service, workdir: Path):
    step_header(10, "Directory Dumps",
        "Export writes one ';'-separated file per collection; import merges by id.")

    target = workdir / "dump"
    print(f">>> svc.export_dir({str(target)!r})")
    svc.export_dir(target)
    for name in (ACCOUNTS_DUMP, PAYMENTS_DUMP, FAVORITES_DUMP):
        path = target / name
        if path.exists():
            first = path.read_text(encoding="utf-8").splitlines()[0]
            print(f"  {name:<15} {first}")

    section_header("Import Into a Fresh Service")
    restored = Service()
    restored.import_dir(target)
    print(f"  {restored!r}")
    print(f"  sums match: {restored.sum_payments() == svc.sum_payments()}")

    section_header("Import Again")
    restored.import_dir(target)
    print(f"  {restored!r}  (existing ids are never overwritten)")
    return svc


def step_11_history(svc: Service, workdir: Path):
    step_header(11, "Account History Files",
        "One account's payments, split across numbered files.")

    alice = svc.accounts()[0]
    history = svc.export_account_history(alice.id)
    written = svc.history_to_files(history, workdir / "history", 10)
    print(f"  {len(history)} payments -> {[p.name for p in written]}")
    return svc


# ============================================================================
# PHASE 5: SCALABILITY (Step 12)
# ============================================================================

def step_12_load_test():
    """Stress test to show the scans scale."""
    num_accounts = CONFIG.load_test_accounts
    num_payments = CONFIG.load_test_payments
    workers = CONFIG.load_test_workers

    step_header(12, "Load Test (Scalability)",
        f"{num_accounts:,} accounts, {num_payments:,} payments, {workers} workers.")

    wait_for_enter()

    svc = Service(verbose=False)
    rng = random.Random(42)

    section_header("Phase 1: Accounts")
    t0 = time.time()
    accounts = []
    for i in range(num_accounts):
        account = svc.register_account(f"+992{i:09d}")
        svc.deposit(account.id, 10 ** 9)
        accounts.append(account)
    t1 = time.time()
    print(f"Registered {num_accounts:,} accounts in {t1-t0:.2f}s")

    section_header("Phase 2: Payments")
    t0 = time.time()
    for _ in range(num_payments):
        svc.pay(rng.choice(accounts).id, rng.randint(1, 1_000), "load")
    t1 = time.time()
    print(f"Recorded {num_payments:,} payments in {t1-t0:.2f}s "
          f"({num_payments/(t1-t0):,.0f} payments/s)")

    section_header("Phase 3: Scans")
    for k in (1, workers):
        t0 = time.time()
        total = svc.sum_payments(k)
        t1 = time.time()
        print(f"  sum_payments(workers={k}) = {total:,} in {t1-t0:.3f}s")

    t0 = time.time()
    parts = sum(1 for _ in svc.sum_payments_with_progress(chunk_size=10_000, workers=workers))
    t1 = time.time()
    print(f"  progress stream: {parts} chunks in {t1-t0:.3f}s")


def main():
    """Run the complete tutorial."""
    logging.basicConfig(level=logging.INFO, format="    [%(levelname)s] %(message)s")

    print("=" * 70)
    print("       WALLET - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    svc = step_01_register()
    wait_for_enter()
    svc = step_02_deposit(svc)
    wait_for_enter()
    svc, payment = step_03_pay(svc)
    wait_for_enter()
    svc = step_04_balance_rule(svc)
    wait_for_enter()

    svc = step_05_reject(svc, payment)
    wait_for_enter()
    svc, again = step_06_repeat(svc, payment)
    wait_for_enter()
    svc = step_07_favorites(svc, again)
    wait_for_enter()

    # Quiet from here on; the scans would log every payment.
    svc.verbose = False
    svc = step_08_sharded_scans(svc)
    wait_for_enter()
    svc = step_09_progress(svc)
    wait_for_enter()

    with tempfile.TemporaryDirectory() as tmp:
        svc = step_10_dump(svc, Path(tmp))
        wait_for_enter()
        step_11_history(svc, Path(tmp))
        wait_for_enter()

    step_12_load_test()

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    You've learned:

    FOUNDATION
      - Accounts have unique phones and increasing ids
      - balance = deposits - non-FAIL payments, never negative

    LIFECYCLE
      - Reject refunds exactly once
      - Repeat and favorites always go through pay()

    AGGREGATION
      - Worker count never changes a sum
      - Progress streams close after the last chunk

    Next steps:
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
