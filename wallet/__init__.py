"""
wallet - In-memory Wallet Service

Accounts, payments and favorite payment templates with a strict balance
invariant, parallel scans over the payment log, and plain-text dumps.

Usage:
    from wallet import Service, PaymentStatus

    svc = Service()
    account = svc.register_account("+992000000001")
    svc.deposit(account.id, 10_000)

    payment = svc.pay(account.id, 1_000, "auto")
    svc.reject(payment.id)                     # refunds, status -> FAIL
    again = svc.repeat(payment.id)             # fresh payment, same terms

    favorite = svc.favorite_payment(again.id, "car wash")
    svc.pay_from_favorite(favorite.id)

    total = svc.sum_payments(workers=4)
    svc.export_dir("./dump")
"""

# Core types
from .core import (
    Money,
    PaymentStatus,
    Account,
    Payment,
    Favorite,
    Progress,
    ErrorKind,
    WalletError,
    PhoneRegistered,
    AmountNonPositive,
    AccountNotFound,
    PaymentNotFound,
    FavoriteNotFound,
    InsufficientBalance,
    AlreadyRejected,
    PaymentCompleted,
    DumpIOError,
    DumpParseError,
    DEFAULT_PROGRESS_CHUNK_SIZE,
    RESERVED_FIELD_CHARS,
    ACCOUNTS_DUMP,
    PAYMENTS_DUMP,
    FAVORITES_DUMP,
)

# Service
from .service import Service

# Aggregation
from .aggregation import (
    shard_bounds,
    sum_payments,
    filter_payments,
    filter_payments_by_fn,
    sum_payments_with_progress,
)

# Dumps
from .dump import (
    export_dir,
    import_dir,
    export_accounts_file,
    import_accounts_file,
    history_to_files,
    history_file_names,
)

__all__ = [
    # Core
    'Money', 'PaymentStatus', 'Account', 'Payment', 'Favorite', 'Progress',
    'ErrorKind', 'WalletError', 'PhoneRegistered', 'AmountNonPositive',
    'AccountNotFound', 'PaymentNotFound', 'FavoriteNotFound',
    'InsufficientBalance', 'AlreadyRejected', 'PaymentCompleted',
    'DumpIOError', 'DumpParseError',
    'DEFAULT_PROGRESS_CHUNK_SIZE', 'RESERVED_FIELD_CHARS', 'ACCOUNTS_DUMP', 'PAYMENTS_DUMP', 'FAVORITES_DUMP',
    # Service
    'Service',
    # Aggregation
    'shard_bounds', 'sum_payments', 'filter_payments', 'filter_payments_by_fn',
    'sum_payments_with_progress',
    # Dumps
    'export_dir', 'import_dir', 'export_accounts_file', 'import_accounts_file',
    'history_to_files', 'history_file_names',
]

__version__ = '1.0.0'
