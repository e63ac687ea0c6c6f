"""
service.py - Stateful wallet service

The Service class owns the ledger store (accounts, payments, favorites) and is
the only code that mutates it.

Key responsibilities:
    - Registers accounts and assigns monotonically increasing ids
    - Applies deposits, payments and refunds under the balance invariant:
          balance == deposits - sum(amount of non-FAIL payments)
    - Derives payments from past payments (repeat) and from favorites
    - Delegates log scans to aggregation.py and file I/O to dump.py

Every mutating operation validates first and writes last, so a raised
WalletError means nothing changed.
"""

from __future__ import annotations
from dataclasses import replace
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from . import aggregation, dump
from .core import (
    # Types
    Account, Payment, Favorite, Progress, Money, PaymentStatus,
    # Constants
    DEFAULT_PROGRESS_CHUNK_SIZE, RESERVED_FIELD_CHARS, ACCOUNT_RECORD_TERMINATOR,
    # Exceptions
    PhoneRegistered, AmountNonPositive, AccountNotFound, PaymentNotFound,
    FavoriteNotFound, InsufficientBalance, AlreadyRejected, PaymentCompleted,
    # Helpers
    check_money, check_field, new_id,
)


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class Service:
    """
    In-memory wallet with payment lifecycle and parallel log scans.

    Storage is three insertion-ordered dicts keyed by id. Iteration order is
    insertion order; dumps and aggregation shards rely on it.

    Thread Safety:
        Mutating operations must be serialized by the caller. Aggregations
        may run many threads, but only while no mutation is in flight.

    Example:
        svc = Service()
        acc = svc.register_account("+992000000001")
        svc.deposit(acc.id, 10_000)
        payment = svc.pay(acc.id, 1_000, "auto")
        svc.reject(payment.id)
    """

    def __init__(
        self,
        verbose: bool = False,
        progress_chunk_size: int = DEFAULT_PROGRESS_CHUNK_SIZE,
    ):
        """
        Create an empty service.

        Args:
            verbose: Log accepted and refused operations at INFO/WARNING
            progress_chunk_size: Payments per chunk for sum_payments_with_progress()
        """
        if progress_chunk_size <= 0:
            raise ValueError(f"progress_chunk_size must be > 0, got {progress_chunk_size}")
        self.verbose = verbose
        self.progress_chunk_size = progress_chunk_size
        # Grows monotonically; on load it becomes max(existing ids).
        self._next_account_id: int = 0
        self._accounts: Dict[int, Account] = {}
        self._payments: Dict[str, Payment] = {}
        self._favorites: Dict[str, Favorite] = {}

    def _report(self, message: str, *args) -> None:
        if self.verbose:
            logger.info(message, *args)
        else:
            logger.debug(message, *args)

    def _refuse(self, error: Exception) -> Exception:
        if self.verbose:
            logger.warning("refused: %s", error)
        return error

    # ========================================================================
    # READ ACCESS
    # ========================================================================

    @property
    def next_account_id(self) -> int:
        """Id counter. Equals the largest id handed out or loaded."""
        return self._next_account_id

    def accounts(self) -> List[Account]:
        """Accounts in insertion order (the list is a copy, the records are live)."""
        return list(self._accounts.values())

    def payments(self) -> List[Payment]:
        """Payments in insertion order (the list is a copy, the records are live)."""
        return list(self._payments.values())

    def favorites(self) -> List[Favorite]:
        """Favorites in insertion order."""
        return list(self._favorites.values())

    def find_account_by_id(self, account_id: int) -> Account:
        """
        Look up an account.

        Raises:
            AccountNotFound: If no account has this id
        """
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFound(f"account {account_id} not found")
        return account

    def find_payment_by_id(self, payment_id: str) -> Payment:
        """
        Look up a payment.

        Raises:
            PaymentNotFound: If no payment has this id
        """
        payment = self._payments.get(payment_id)
        if payment is None:
            raise PaymentNotFound(f"payment {payment_id} not found")
        return payment

    def find_favorite_by_id(self, favorite_id: str) -> Favorite:
        """
        Look up a favorite.

        Raises:
            FavoriteNotFound: If no favorite has this id
        """
        favorite = self._favorites.get(favorite_id)
        if favorite is None:
            raise FavoriteNotFound(f"favorite {favorite_id} not found")
        return favorite

    # ========================================================================
    # ACCOUNTS (Mutating)
    # ========================================================================

    def register_account(self, phone: str) -> Account:
        """
        Register a new account with a zero balance.

        Duplicate detection is a linear scan, fine for thousands of accounts.

        Args:
            phone: Non-empty phone number

        Returns:
            The new Account, with id = previous counter + 1

        Raises:
            ValueError: If phone is empty or contains ';', '|' or a line break
            PhoneRegistered: If another account already uses this phone
        """
        check_field(phone, "phone", RESERVED_FIELD_CHARS + ACCOUNT_RECORD_TERMINATOR)
        if not phone.strip():
            raise ValueError("phone cannot be empty")
        for account in self._accounts.values():
            if account.phone == phone:
                raise self._refuse(PhoneRegistered(f"phone {phone} already registered"))

        self._next_account_id += 1
        account = Account(id=self._next_account_id, phone=phone, balance=0)
        self._accounts[account.id] = account
        self._report("registered account %d (%s)", account.id, phone)
        return account

    def deposit(self, account_id: int, amount: Money) -> None:
        """
        Credit an account.

        Raises:
            AmountNonPositive: If amount <= 0
            AccountNotFound: If the account does not exist
        """
        if check_money(amount) <= 0:
            raise self._refuse(AmountNonPositive(f"deposit amount must be > 0, got {amount}"))
        account = self.find_account_by_id(account_id)
        account.balance += amount
        self._report("deposit %d to account %d, balance %d", amount, account_id, account.balance)

    # ========================================================================
    # PAYMENTS (Mutating)
    # ========================================================================

    def pay(self, account_id: int, amount: Money, category: str) -> Payment:
        """
        Debit an account and record an IN_PROGRESS payment.

        Every derived operation (repeat, pay_from_favorite) goes through here,
        so preconditions are always checked against current state.

        Raises:
            ValueError: If category contains ';' or a line break
            AmountNonPositive: If amount <= 0
            AccountNotFound: If the account does not exist
            InsufficientBalance: If amount exceeds the balance
        """
        check_field(category, "category")
        if check_money(amount) <= 0:
            raise self._refuse(AmountNonPositive(f"payment amount must be > 0, got {amount}"))
        account = self.find_account_by_id(account_id)
        if account.balance < amount:
            raise self._refuse(InsufficientBalance(
                f"account {account_id}: balance {account.balance} < {amount}"
            ))

        payment = Payment(
            id=new_id(),
            account_id=account_id,
            amount=amount,
            category=category,
            status=PaymentStatus.IN_PROGRESS,
        )
        account.balance -= amount
        self._payments[payment.id] = payment
        self._report("paid %d from account %d [%s], id=%s", amount, account_id, category, payment.id)
        return payment

    def reject(self, payment_id: str) -> None:
        """
        Fail an IN_PROGRESS payment and refund its amount.

        A payment is refunded at most once: rejecting it again raises instead
        of crediting the account a second time.

        Raises:
            PaymentNotFound: If the payment does not exist
            AlreadyRejected: If the payment is already FAIL
            PaymentCompleted: If the payment is OK
            AccountNotFound: If the payment's account is missing (store corrupted)
        """
        payment = self.find_payment_by_id(payment_id)
        if payment.status is PaymentStatus.FAIL:
            raise self._refuse(AlreadyRejected(f"payment {payment_id} already rejected"))
        if payment.status is PaymentStatus.OK:
            raise self._refuse(PaymentCompleted(f"payment {payment_id} is completed"))
        account = self.find_account_by_id(payment.account_id)

        payment.status = PaymentStatus.FAIL
        account.balance += payment.amount
        self._report("rejected payment %s, refunded %d to account %d",
                     payment_id, payment.amount, account.id)

    def repeat(self, payment_id: str) -> Payment:
        """
        Issue a new payment with the same account, amount and category.

        This is a fresh pay(), not a resurrection: the original may be FAIL.

        Raises:
            PaymentNotFound: If the payment does not exist
            WalletError: Anything pay() raises
        """
        payment = self.find_payment_by_id(payment_id)
        return self.pay(payment.account_id, payment.amount, payment.category)

    # ========================================================================
    # FAVORITES (Mutating)
    # ========================================================================

    def favorite_payment(self, payment_id: str, name: str) -> Favorite:
        """
        Save a payment's account, amount and category as a named template.

        Raises:
            ValueError: If name contains ';' or a line break
            PaymentNotFound: If the payment does not exist
        """
        check_field(name, "name")
        payment = self.find_payment_by_id(payment_id)
        favorite = Favorite(
            id=new_id(),
            account_id=payment.account_id,
            name=name,
            amount=payment.amount,
            category=payment.category,
        )
        self._favorites[favorite.id] = favorite
        self._report("favorite %r (%s) from payment %s", name, favorite.id, payment_id)
        return favorite

    def pay_from_favorite(self, favorite_id: str) -> Payment:
        """
        Pay using a favorite's account, amount and category.

        Raises:
            FavoriteNotFound: If the favorite does not exist
            WalletError: Anything pay() raises
        """
        favorite = self.find_favorite_by_id(favorite_id)
        return self.pay(favorite.account_id, favorite.amount, favorite.category)

    # ========================================================================
    # AGGREGATION
    # ========================================================================

    def sum_payments(self, workers: int = 1) -> Money:
        """Sum of all payment amounts regardless of status. See aggregation.sum_payments()."""
        return aggregation.sum_payments(self.payments(), workers)

    def filter_payments(self, account_id: int, workers: int = 1) -> List[Payment]:
        """
        Value copies of one account's payments.

        Raises:
            AccountNotFound: If the account does not exist
        """
        self.find_account_by_id(account_id)
        return aggregation.filter_payments(self.payments(), account_id, workers)

    def filter_payments_by_fn(
        self,
        predicate: aggregation.PaymentPredicate,
        workers: int = 1,
    ) -> List[Payment]:
        """Value copies of payments matching ``predicate``. Never raises for an empty match."""
        return aggregation.filter_payments_by_fn(self.payments(), predicate, workers)

    def sum_payments_with_progress(
        self,
        chunk_size: Optional[int] = None,
        workers: Optional[int] = None,
    ) -> Iterator[Progress]:
        """
        Stream of per-chunk partial sums; the stream closes when all chunks finish.

        Args:
            chunk_size: Overrides the service's progress_chunk_size
            workers: Bound on concurrently running chunk tasks
        """
        return aggregation.sum_payments_with_progress(
            self.payments(),
            chunk_size=self.progress_chunk_size if chunk_size is None else chunk_size,
            workers=workers,
        )

    # ========================================================================
    # HISTORY
    # ========================================================================

    def export_account_history(self, account_id: int) -> List[Payment]:
        """
        Value copies of one account's payments in insertion order.

        Raises:
            AccountNotFound: If the account does not exist
        """
        self.find_account_by_id(account_id)
        return [replace(p) for p in self._payments.values() if p.account_id == account_id]

    def history_to_files(self, payments: List[Payment], directory: PathLike, records_per_file: int) -> List[Path]:
        """Write payments into numbered dump files. See dump.history_to_files()."""
        return dump.history_to_files(payments, directory, records_per_file)

    # ========================================================================
    # PERSISTENCE
    # ========================================================================

    def export_dir(self, directory: PathLike) -> None:
        """Write the store to ``directory``. See dump.export_dir()."""
        dump.export_dir(self, directory)

    def import_dir(self, directory: PathLike) -> None:
        """Merge the dumps in ``directory`` into the store. See dump.import_dir()."""
        dump.import_dir(self, directory)

    def export_to_file(self, path: PathLike) -> None:
        """Write all accounts to a single file. See dump.export_accounts_file()."""
        dump.export_accounts_file(self, path)

    def import_from_file(self, path: PathLike) -> None:
        """Merge accounts from a single-file export. See dump.import_accounts_file()."""
        dump.import_accounts_file(self, path)

    def merge_account(self, account: Account) -> bool:
        """Insert a loaded account unless its id exists. Returns True if inserted."""
        if account.id in self._accounts:
            return False
        self._accounts[account.id] = account
        self._next_account_id = max(self._next_account_id, account.id)
        return True

    def merge_payment(self, payment: Payment) -> bool:
        """Insert a loaded payment unless its id exists. Returns True if inserted."""
        if payment.id in self._payments:
            return False
        self._payments[payment.id] = payment
        return True

    def merge_favorite(self, favorite: Favorite) -> bool:
        """Insert a loaded favorite unless its id exists. Returns True if inserted."""
        if favorite.id in self._favorites:
            return False
        self._favorites[favorite.id] = favorite
        return True

    def has_account(self, account_id: int) -> bool:
        """Check if an account id is registered."""
        return account_id in self._accounts

    def __repr__(self) -> str:
        return (f"Service({len(self._accounts)} accounts, {len(self._payments)} payments, "
                f"{len(self._favorites)} favorites)")
