"""
Core types for the wallet service.

This module provides the foundational data structures of the wallet:
1. Money: integer amounts in minimal currency units
2. Records: Account, Payment, Favorite, Progress
3. Enums: PaymentStatus, ErrorKind
4. Exceptions: WalletError and one subclass per error kind
5. Constants: tuning knobs and dump file names

Nothing in this module mutates service state.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import uuid


# ============================================================================
# CONSTANTS
# ============================================================================

# Number of payments summed by one task of the streaming sum.
DEFAULT_PROGRESS_CHUNK_SIZE = 100_000

# Dump file layout.
DUMP_SEPARATOR = ";"
ACCOUNTS_DUMP = "accounts.dump"
PAYMENTS_DUMP = "payments.dump"
FAVORITES_DUMP = "favorites.dump"
HISTORY_STEM = "payments"
DUMP_SUFFIX = ".dump"

# Record terminator of the single-file account export.
ACCOUNT_RECORD_TERMINATOR = "|"

# Characters a text field may not contain, or its dump line would not parse.
RESERVED_FIELD_CHARS = DUMP_SEPARATOR + "\n\r"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Amount in the smallest currency unit. Python ints never wrap, so sums over
# the whole payment log are always exact.
Money = int


def check_money(amount: Money) -> Money:
    """
    Reject values that cannot be Money.

    bool is an int subclass but is never a meaningful amount.

    Raises:
        TypeError: If amount is not an int
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"Money must be int, got {type(amount).__name__}")
    return amount


def check_field(value: str, name: str, reserved: str = RESERVED_FIELD_CHARS) -> str:
    """
    Reject text that cannot be written as one dump field.

    Raises:
        TypeError: If value is not a str
        ValueError: If value contains a character of ``reserved``
    """
    if not isinstance(value, str):
        raise TypeError(f"{name} must be str, got {type(value).__name__}")
    bad = sorted(set(value) & set(reserved))
    if bad:
        raise ValueError(f"{name} cannot contain {bad!r}: {value!r}")
    return value


def new_id() -> str:
    """Return a fresh opaque identifier for payments and favorites."""
    return str(uuid.uuid4())


# ============================================================================
# ENUMS
# ============================================================================

class PaymentStatus(Enum):
    """
    Lifecycle status of a payment.

    IN_PROGRESS: Initial status of every new payment.
    FAIL: The payment was rejected and its amount refunded.
    OK: Reserved terminal status. No operation produces it, but it
        survives a dump round-trip.

    The enum value is the wire form used in dump files.
    """
    OK = "OK"
    FAIL = "FAIL"
    IN_PROGRESS = "INPROGRESS"


class ErrorKind(Enum):
    """Classification of every error the wallet can surface."""
    PHONE_REGISTERED = "phone_registered"
    AMOUNT_NON_POSITIVE = "amount_non_positive"
    ACCOUNT_NOT_FOUND = "account_not_found"
    PAYMENT_NOT_FOUND = "payment_not_found"
    FAVORITE_NOT_FOUND = "favorite_not_found"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    ALREADY_REJECTED = "already_rejected"
    PAYMENT_COMPLETED = "payment_completed"
    IO_ERROR = "io_error"
    PARSE_ERROR = "parse_error"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class WalletError(Exception):
    """Base exception for all wallet errors. ``kind`` identifies the failure."""
    kind: ErrorKind


class PhoneRegistered(WalletError):
    """Raised when registering a phone that another account already uses."""
    kind = ErrorKind.PHONE_REGISTERED


class AmountNonPositive(WalletError):
    """Raised when a deposit or payment amount is zero or negative."""
    kind = ErrorKind.AMOUNT_NON_POSITIVE


class AccountNotFound(WalletError):
    """Raised when an account id does not resolve."""
    kind = ErrorKind.ACCOUNT_NOT_FOUND


class PaymentNotFound(WalletError):
    """Raised when a payment id does not resolve."""
    kind = ErrorKind.PAYMENT_NOT_FOUND


class FavoriteNotFound(WalletError):
    """Raised when a favorite id does not resolve."""
    kind = ErrorKind.FAVORITE_NOT_FOUND


class InsufficientBalance(WalletError):
    """Raised when a payment exceeds the account balance."""
    kind = ErrorKind.INSUFFICIENT_BALANCE


class AlreadyRejected(WalletError):
    """Raised when rejecting a payment that has already been refunded."""
    kind = ErrorKind.ALREADY_REJECTED


class PaymentCompleted(WalletError):
    """Raised when rejecting a payment in the terminal OK status."""
    kind = ErrorKind.PAYMENT_COMPLETED


class DumpIOError(WalletError):
    """Raised when the dump codec fails at the filesystem layer."""
    kind = ErrorKind.IO_ERROR


class DumpParseError(WalletError):
    """Raised when a dump file contains a malformed record."""
    kind = ErrorKind.PARSE_ERROR


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(slots=True)
class Account:
    """
    A wallet account.

    Attributes:
        id: Numeric id assigned by the service (> 0, strictly increasing).
        phone: Phone number, unique across the service.
        balance: Current balance in minimal units. Never negative after a
                 successful operation.

    Only ``balance`` changes after registration.
    """
    id: int
    phone: str
    balance: Money = 0


@dataclass(slots=True)
class Payment:
    """
    An authorized debit against an account.

    Attributes:
        id: Opaque unique id.
        account_id: Id of the debited account.
        amount: Debited amount (> 0 at creation).
        category: Free-form spending category ("auto", "food", ...).
        status: Lifecycle status. The only field mutated after creation.
    """
    id: str
    account_id: int
    amount: Money
    category: str
    status: PaymentStatus = PaymentStatus.IN_PROGRESS

    def __repr__(self) -> str:
        return (f"Payment({self.id[:8]} acc={self.account_id} "
                f"{self.amount} {self.category} {self.status.value})")


@dataclass(frozen=True, slots=True)
class Favorite:
    """
    A named, reusable payment template. Immutable.

    Attributes:
        id: Opaque unique id.
        account_id: Id of the account future payments debit.
        name: Caller-chosen label.
        amount: Amount of every payment made from this template (> 0).
        category: Category of every payment made from this template.
    """
    id: str
    account_id: int
    name: str
    amount: Money
    category: str


@dataclass(frozen=True, slots=True)
class Progress:
    """One record of the streaming sum: ``result`` is a chunk's partial sum."""
    part: int
    result: Money
