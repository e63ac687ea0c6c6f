"""
dump.py - Plain-text persistence for the wallet

Line formats (fields separated by ';', records terminated by '\\n'):

    accounts.dump   <id>;<phone>;<balance>
    payments.dump   <id>;<accountId>;<amount>;<category>;<status>
    favorites.dump  <id>;<accountId>;<name>;<amount>;<category>

status is one of OK, FAIL, INPROGRESS. Amounts are decimal integers.

Export writes only non-empty collections. Import treats a missing file as an
empty collection and merges by id: a record whose id is already in memory is
skipped. Each file is parsed completely before anything from it is merged,
so a malformed line leaves that file's records out entirely; files loaded
before it stay loaded.
"""

from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, List, Sequence, TypeVar, Union

from .core import (
    Account, Payment, Favorite, PaymentStatus,
    DumpIOError, DumpParseError,
    DUMP_SEPARATOR, ACCOUNTS_DUMP, PAYMENTS_DUMP, FAVORITES_DUMP,
    HISTORY_STEM, DUMP_SUFFIX, ACCOUNT_RECORD_TERMINATOR,
)

if TYPE_CHECKING:
    from .service import Service


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
T = TypeVar("T")


# ============================================================================
# RECORD CODECS
# ============================================================================

def _join(*fields) -> str:
    return DUMP_SEPARATOR.join(str(f) for f in fields)


def format_account(account: Account) -> str:
    return _join(account.id, account.phone, account.balance)


def format_payment(payment: Payment) -> str:
    return _join(payment.id, payment.account_id, payment.amount, payment.category, payment.status.value)


def format_favorite(favorite: Favorite) -> str:
    return _join(favorite.id, favorite.account_id, favorite.name, favorite.amount, favorite.category)


def _split(line: str, expected: int) -> List[str]:
    fields = line.split(DUMP_SEPARATOR)
    if len(fields) != expected:
        raise ValueError(f"expected {expected} fields, got {len(fields)}")
    return fields


def _parse_int(raw: str, name: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} is not an integer: {raw!r}") from None


def _require_id(raw: str, name: str) -> str:
    if not raw:
        raise ValueError(f"{name} cannot be empty")
    return raw


def _parse_amount(raw: str) -> int:
    amount = _parse_int(raw, "amount")
    if amount <= 0:
        raise ValueError(f"amount must be > 0, got {amount}")
    return amount


def parse_account(line: str) -> Account:
    raw_id, phone, raw_balance = _split(line, 3)
    account_id = _parse_int(raw_id, "account id")
    if account_id <= 0:
        raise ValueError(f"account id must be > 0, got {account_id}")
    balance = _parse_int(raw_balance, "balance")
    if balance < 0:
        raise ValueError(f"balance must be >= 0, got {balance}")
    return Account(id=account_id, phone=phone, balance=balance)


def parse_payment(line: str) -> Payment:
    payment_id, raw_account, raw_amount, category, raw_status = _split(line, 5)
    try:
        status = PaymentStatus(raw_status)
    except ValueError:
        raise ValueError(f"unknown payment status: {raw_status!r}") from None
    return Payment(
        id=_require_id(payment_id, "payment id"),
        account_id=_parse_int(raw_account, "account id"),
        amount=_parse_amount(raw_amount),
        category=category,
        status=status,
    )


def parse_favorite(line: str) -> Favorite:
    favorite_id, raw_account, name, raw_amount, category = _split(line, 5)
    return Favorite(
        id=_require_id(favorite_id, "favorite id"),
        account_id=_parse_int(raw_account, "account id"),
        name=name,
        amount=_parse_amount(raw_amount),
        category=category,
    )


# ============================================================================
# FILE HELPERS
# ============================================================================

def _write_lines(path: Path, lines: Iterable[str]) -> None:
    try:
        with path.open("w", encoding="utf-8", newline="\n") as f:
            for line in lines:
                f.write(line + "\n")
    except OSError as e:
        raise DumpIOError(f"cannot write {path}: {e}") from e
    logger.debug("wrote %s", path)


def _read_records(path: Path, parse: Callable[[str], T]) -> List[T]:
    """Parse every non-empty line of ``path``. Missing file -> []."""
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            text = f.read()
    except FileNotFoundError:
        logger.debug("no %s, treating as empty", path)
        return []
    except OSError as e:
        raise DumpIOError(f"cannot read {path}: {e}") from e

    records = []
    for line_no, line in enumerate(text.split("\n"), start=1):
        # Accept CRLF dumps.
        if line.endswith("\r"):
            line = line[:-1]
        if not line:
            continue
        try:
            records.append(parse(line))
        except ValueError as e:
            raise DumpParseError(f"{path.name} line {line_no}: {e}") from e
    logger.debug("read %d records from %s", len(records), path)
    return records


def _make_dir(directory: Path) -> None:
    try:
        directory.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as e:
        raise DumpIOError(f"cannot create {directory}: {e}") from e


# ============================================================================
# DIRECTORY DUMP
# ============================================================================

def export_dir(service: Service, directory: PathLike) -> None:
    """
    Write the service's store to ``directory``, creating it if needed.

    Only non-empty collections get a file. Records are written in insertion
    order.

    Raises:
        DumpIOError: If the directory or a file cannot be written
    """
    directory = Path(directory)
    _make_dir(directory)

    accounts = service.accounts()
    payments = service.payments()
    favorites = service.favorites()
    if accounts:
        _write_lines(directory / ACCOUNTS_DUMP, map(format_account, accounts))
    if payments:
        _write_lines(directory / PAYMENTS_DUMP, map(format_payment, payments))
    if favorites:
        _write_lines(directory / FAVORITES_DUMP, map(format_favorite, favorites))
    logger.info("exported %d accounts, %d payments, %d favorites to %s",
                len(accounts), len(payments), len(favorites), directory)


def _check_owner(service: Service, records: Sequence, path: Path) -> None:
    for record in records:
        if not service.has_account(record.account_id):
            raise DumpParseError(
                f"{path.name}: record {record.id} refers to unknown account {record.account_id}"
            )


def _check_phones(service: Service, accounts: Sequence[Account], path: Path) -> None:
    # Only records that will actually be merged can clash.
    taken = {a.phone for a in service.accounts()}
    merged_ids = set()
    for account in accounts:
        if service.has_account(account.id) or account.id in merged_ids:
            continue
        if account.phone in taken:
            raise DumpParseError(
                f"{path.name}: account {account.id} reuses phone {account.phone}"
            )
        taken.add(account.phone)
        merged_ids.add(account.id)


def import_dir(service: Service, directory: PathLike) -> None:
    """
    Merge the dump files in ``directory`` into the service.

    Files are loaded accounts first, then payments, then favorites, so
    payments and favorites can be checked against the loaded accounts.
    Records with an id already in memory are ignored. The account id counter
    becomes the maximum id seen.

    Raises:
        DumpIOError: If a file exists but cannot be read
        DumpParseError: On the first malformed record, a new account reusing a
                        phone, or a payment/favorite whose
                        account does not exist
    """
    directory = Path(directory)

    path = directory / ACCOUNTS_DUMP
    accounts = _read_records(path, parse_account)
    _check_phones(service, accounts, path)
    added = sum(service.merge_account(a) for a in accounts)

    path = directory / PAYMENTS_DUMP
    payments = _read_records(path, parse_payment)
    _check_owner(service, payments, path)
    added_payments = sum(service.merge_payment(p) for p in payments)

    path = directory / FAVORITES_DUMP
    favorites = _read_records(path, parse_favorite)
    _check_owner(service, favorites, path)
    added_favorites = sum(service.merge_favorite(f) for f in favorites)

    logger.info("imported %d accounts, %d payments, %d favorites from %s",
                added, added_payments, added_favorites, directory)


# ============================================================================
# SINGLE-FILE ACCOUNT EXPORT
# ============================================================================

def export_accounts_file(service: Service, path: PathLike) -> None:
    """
    Write all accounts to one file as ``<id>;<phone>;<balance>|`` records.

    Raises:
        DumpIOError: If the file cannot be written
    """
    path = Path(path)
    payload = "".join(format_account(a) + ACCOUNT_RECORD_TERMINATOR for a in service.accounts())
    try:
        path.write_text(payload, encoding="utf-8")
    except OSError as e:
        raise DumpIOError(f"cannot write {path}: {e}") from e
    logger.debug("wrote %s", path)


def import_accounts_file(service: Service, path: PathLike) -> None:
    """
    Merge accounts from a file written by export_accounts_file().

    Raises:
        DumpIOError: If the file cannot be read
        DumpParseError: On a malformed record, or a new account reusing a phone
    """
    path = Path(path)
    try:
        payload = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DumpIOError(f"cannot read {path}: {e}") from e

    accounts = []
    for index, record in enumerate(payload.split(ACCOUNT_RECORD_TERMINATOR), start=1):
        record = record.strip()
        if not record:
            continue
        try:
            accounts.append(parse_account(record))
        except ValueError as e:
            raise DumpParseError(f"{path.name} record {index}: {e}") from e
    _check_phones(service, accounts, path)
    for account in accounts:
        service.merge_account(account)


# ============================================================================
# HISTORY EXPORT
# ============================================================================

def history_file_names(total: int, records_per_file: int) -> List[str]:
    """
    Names of the files history_to_files() writes for ``total`` records.

    One file is ``payments.dump``; several are ``payments1.dump``,
    ``payments2.dump``, ...
    """
    if total == 0:
        return []
    if total <= records_per_file:
        return [HISTORY_STEM + DUMP_SUFFIX]
    count = -(-total // records_per_file)
    return [f"{HISTORY_STEM}{n}{DUMP_SUFFIX}" for n in range(1, count + 1)]


def history_to_files(payments: Sequence[Payment], directory: PathLike, records_per_file: int) -> List[Path]:
    """
    Write payments in order, ``records_per_file`` per file, into ``directory``.

    The last file holds the remainder. Empty input writes nothing.

    Args:
        payments: Payments to write, typically from export_account_history()
        directory: Target directory (created if absent)
        records_per_file: Maximum records per file (> 0)

    Returns:
        Paths written, in order

    Raises:
        ValueError: If records_per_file <= 0
        DumpIOError: If a file cannot be written
    """
    if records_per_file <= 0:
        raise ValueError(f"records_per_file must be > 0, got {records_per_file}")
    names = history_file_names(len(payments), records_per_file)
    if not names:
        return []

    directory = Path(directory)
    _make_dir(directory)
    written = []
    for n, name in enumerate(names):
        chunk = payments[n * records_per_file:(n + 1) * records_per_file]
        path = directory / name
        _write_lines(path, map(format_payment, chunk))
        written.append(path)
    logger.debug("history: %d payments in %d file(s) under %s",
                 len(payments), len(written), os.fspath(directory))
    return written
