"""
Moving transactions between daily notes and journal files.

Export collects the hledger fences of daily notes in a date range into
one journal file. Import splits a journal file by date and appends each
day's transactions to the matching daily note. Notes are processed one
after another; a note that cannot be read or dated is logged and
skipped without stopping the batch.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional, Sequence

from hlnotes.config import Config, MissingConfigurationError
from hlnotes.dates import (
    DateParseError,
    extract_date_text,
    format_date,
    note_date_from_path,
    parse_date,
)
from hlnotes.formatter import (
    format_date_aware_reimport,
    format_transaction,
    render_note_block,
)
from hlnotes.journal import (
    FENCE_TAG,
    TransactionParseError,
    extract_block,
    find_fence,
    parse_accounts,
    parse_journal,
    parse_transaction,
    split_block,
)
from hlnotes.model import Posting, Transaction, validate_for_submission
from hlnotes.storage import StorageError, Vault, normalize_path

logger = logging.getLogger(__name__)

JOURNAL_EXTENSIONS = (".journal", ".hledger", ".ledger")

_INVALID_NAME_RE = re.compile(r'[\\/:*?"<>|]')


@dataclass
class ExportResult:
    """Summary of an export run."""

    path: Optional[str] = None
    notes: list[str] = field(default_factory=list)
    transaction_count: int = 0
    skipped: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class ImportResult:
    """Summary of an import run."""

    notes: list[str] = field(default_factory=list)
    transaction_count: int = 0
    skipped: list[tuple[str, str]] = field(default_factory=list)


def _in_range(value: date, start: Optional[date], end: Optional[date]) -> bool:
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def filter_by_date_range(
    paths: Sequence[str],
    start: Optional[date],
    end: Optional[date],
    fmt: str,
) -> list[str]:
    """
    Keep Markdown notes whose filename date lies in [start, end].

    Both ends are inclusive; None leaves that end open.
    """
    result = []
    for path in paths:
        normalized = path.replace("\\", "/")
        if not normalized.lower().endswith(".md"):
            continue
        note_date = note_date_from_path(normalized, fmt)
        if note_date is not None and _in_range(note_date, start, end):
            result.append(path)
    return result


def group_by_date(
    transactions: Sequence[str],
    start: Optional[date],
    end: Optional[date],
    fmt: str,
) -> dict[date, list[str]]:
    """
    Group dated transaction spans by date, keeping only [start, end].

    Spans without a leading date are dropped. A leading token that
    looks like a date but is not one (2024-02-30) is dropped with a
    warning.
    Order within a date follows the input order.
    """
    grouped: dict[date, list[str]] = {}
    for transaction in transactions:
        token = extract_date_text(transaction, fmt)
        if token is None:
            continue
        txn_date = parse_date(token, fmt)
        if txn_date is None:
            logger.warning("Skipping transaction with invalid date: %s", token)
            continue
        if not _in_range(txn_date, start, end):
            continue
        grouped.setdefault(txn_date, []).append(transaction)
    return grouped


def resolve_note_path(note_date: date, fmt: str, base_folder: str) -> str:
    """
    Path of the daily note for ``note_date``.

    In a hierarchical format such as ``YYYY/MM/YYYY-MM-DD`` everything
    before the last ``/`` names the subfolder and the rest the file.
    """
    if "/" in fmt:
        folder_format, file_format = fmt.rsplit("/", 1)
        sub_folder = format_date(note_date, folder_format)
        file_name = format_date(note_date, file_format) + ".md"
        return normalize_path(f"{base_folder}/{sub_folder}/{file_name}")

    file_name = format_date(note_date, fmt) + ".md"
    return normalize_path(f"{base_folder}/{file_name}")


def validate_journal_name(name: str) -> str:
    """
    Check a journal file name given by the user.

    Returns the trimmed name.

    Raises:
        ValueError: if the name is empty, contains a path or reserved
            character, or lacks a journal extension
    """
    trimmed = name.strip()
    if not trimmed:
        raise ValueError("File name cannot be empty.")
    if _INVALID_NAME_RE.search(trimmed):
        raise ValueError(
            "File name contains invalid characters "
            '(e.g., \\ / : * ? " < > |).'
        )
    if not trimmed.endswith(JOURNAL_EXTENSIONS):
        raise ValueError(
            "File should have .journal, .hledger, or .ledger extension"
        )
    return trimmed


def choose_journal_path(
    path: str, exists: Callable[[str], bool], replace: bool
) -> str:
    """
    Pick the file an export writes to.

    With ``replace`` the path itself is used. Otherwise an existing file
    is never touched: ``_1``, ``_2``, ... is inserted before the
    extension until a free name is found.
    """
    if replace or not exists(path):
        return path

    slash = path.rfind("/")
    dot = path.rfind(".")
    if dot <= slash + 1:
        stem, ext = path, ""
    else:
        stem, ext = path[:dot], path[dot:]

    counter = 1
    while exists(f"{stem}_{counter}{ext}"):
        counter += 1
    return f"{stem}_{counter}{ext}"


def merge_into_note(existing: Optional[str], content: str, header: str) -> str:
    """
    Add transaction text to a daily note.

    - No note yet: the note is the header followed by a new fence.
    - Note with a fence: the text is appended inside the fence, after
      one blank line unless the fence already ends with one.
    - Note without a fence: header and fence are appended at the end.
    """
    body = content.rstrip("\n") + "\n"
    fence = f"```{FENCE_TAG}\n{body}```\n"

    if existing is None:
        return f"{header}\n\n{fence}"

    match = find_fence(existing)
    if match is None:
        return f"{existing.rstrip()}\n\n{header}\n\n{fence}"

    current = match.group(1)
    if not current.strip():
        inner = body
    elif current.endswith("\n\n"):
        inner = current + body
    elif current.endswith("\n"):
        inner = current + "\n" + body
    else:
        inner = current + "\n\n" + body
    return existing[: match.start(1)] + inner + existing[match.end(1) :]


def _read_optional(vault: Vault, path: str) -> Optional[str]:
    return vault.read(path) if vault.exists(path) else None


def _note_transactions(
    vault: Vault, path: str, config: Config
) -> list[str]:
    """Dated journal text for every transaction in one daily note."""
    note_date = note_date_from_path(path, config.daily_notes_date_format)
    if note_date is None:
        raise DateParseError(path, config.daily_notes_date_format)

    block = extract_block(vault.read(path))
    return [
        format_date_aware_reimport(
            transaction, note_date, config.journal_date_format
        )
        for transaction in split_block(block)
    ]


def _collect_from_notes(
    vault: Vault,
    config: Config,
    start: Optional[date],
    end: Optional[date],
    skipped: list[tuple[str, str]],
    notes: Optional[list[str]] = None,
) -> list[str]:
    files = vault.list_files(config.daily_notes_folder)
    filtered = filter_by_date_range(
        files, start, end, config.daily_notes_date_format
    )
    logger.debug("%d of %d notes in range", len(filtered), len(files))

    transactions = []
    for path in filtered:
        try:
            found = _note_transactions(vault, path, config)
        except DateParseError as e:
            logger.warning("Skipping %s: %s", path, e)
            skipped.append((path, str(e)))
            continue
        except StorageError as e:
            logger.error("Error processing file %s: %s", path, e)
            skipped.append((path, str(e)))
            continue
        if found and notes is not None:
            notes.append(path)
        transactions.extend(found)
    return transactions


def export_journal(
    vault: Vault,
    config: Config,
    start: Optional[date],
    end: Optional[date],
    file_name: str,
    replace: bool = False,
) -> ExportResult:
    """
    Write the transactions of daily notes in [start, end] to a journal.

    Returns an ExportResult whose ``path`` is None when no transactions
    were found (nothing is written in that case).

    Raises:
        MissingConfigurationError: if folders or formats are not set
        ValueError: if ``file_name`` is not a valid journal name
        StorageError: if the notes folder cannot be listed or the
            journal cannot be written
    """
    config.require_folders()
    file_name = validate_journal_name(file_name)

    result = ExportResult()
    transactions = _collect_from_notes(
        vault, config, start, end, result.skipped, result.notes
    )
    if not transactions:
        logger.info("No hledger content found in notes within range")
        return result

    content = "\n\n".join(transactions) + "\n"
    target = choose_journal_path(
        normalize_path(f"{config.journal_folder}/{file_name}"),
        vault.exists,
        replace,
    )
    vault.write(target, content)
    logger.info("Wrote %d transactions to %s", len(transactions), target)

    result.path = target
    result.transaction_count = len(transactions)
    return result


def import_journal(
    vault: Vault,
    config: Config,
    start: Optional[date],
    end: Optional[date],
    file_name: str,
) -> ImportResult:
    """
    Append the transactions of a journal in [start, end] to daily notes.

    Raises:
        MissingConfigurationError: if folders or formats are not set
        StorageError: if the journal file is missing or unreadable
    """
    config.require_folders()
    journal_path = normalize_path(f"{config.journal_folder}/{file_name}")
    if not vault.exists(journal_path):
        raise StorageError(journal_path, "journal file not found")

    spans = parse_journal(
        vault.read(journal_path), config.journal_date_format
    )
    grouped = group_by_date(spans, start, end, config.journal_date_format)

    result = ImportResult()
    for txn_date, transactions in grouped.items():
        note_path = resolve_note_path(
            txn_date,
            config.daily_notes_date_format,
            config.daily_notes_folder,
        )
        block = render_note_block(
            transactions, config.include_date, config.journal_date_format
        )
        try:
            existing = _read_optional(vault, note_path)
            vault.write(
                note_path,
                merge_into_note(existing, block, config.transaction_header),
            )
        except StorageError as e:
            logger.error("Error writing note %s: %s", note_path, e)
            result.skipped.append((note_path, str(e)))
            continue
        result.notes.append(note_path)
        result.transaction_count += len(transactions)

    return result


def add_entry(
    vault: Vault,
    config: Config,
    txn_date: date,
    description: str,
    postings: Sequence[Posting],
) -> str:
    """
    Validate one transaction and add it to its daily note.

    Returns the path of the note written.

    Raises:
        MissingConfigurationError: if the daily notes folder is not set
        ValidationError: if the postings are rejected
        StorageError: if the note cannot be read or written
    """
    config.require_daily_notes()
    validate_for_submission(postings).raise_for_error()

    text = format_transaction(
        txn_date,
        description,
        postings,
        config.transaction_settings(),
        config.format_config(),
    )
    note_path = resolve_note_path(
        txn_date, config.daily_notes_date_format, config.daily_notes_folder
    )
    existing = _read_optional(vault, note_path)
    vault.write(
        note_path, merge_into_note(existing, text, config.transaction_header)
    )
    logger.info("Added transaction to %s", note_path)
    return note_path


def collect_transactions(
    vault: Vault,
    config: Config,
    start: Optional[date],
    end: Optional[date],
    journal_file: Optional[str] = None,
) -> list[Transaction]:
    """
    Parse transactions in [start, end] for listing.

    Reads the given journal file, or the daily notes when no journal is
    named. Spans that do not parse are logged and left out.
    """
    if journal_file:
        if not config.journal_folder:
            raise MissingConfigurationError(
                "Please set a journal folder in settings"
            )
        path = normalize_path(f"{config.journal_folder}/{journal_file}")
        spans = parse_journal(vault.read(path), config.journal_date_format)
    else:
        config.require_daily_notes()
        spans = _collect_from_notes(vault, config, start, end, [])

    grouped = group_by_date(spans, start, end, config.journal_date_format)
    transactions = []
    for txn_date in sorted(grouped):
        for span in grouped[txn_date]:
            try:
                transactions.append(
                    parse_transaction(
                        span, config.journal_date_format, config.amount_format
                    )
                )
            except TransactionParseError as e:
                logger.warning("Skipping transaction: %s", e)
    return transactions


def load_accounts(vault: Vault, config: Config) -> list[str]:
    """
    Account names declared in the accounts file.

    Returns an empty list when no accounts file is configured or found.
    """
    if not config.accounts_file:
        return []
    path = normalize_path(f"{config.journal_folder}/{config.accounts_file}")
    if not vault.exists(path):
        logger.info("Accounts file not found: %s", path)
        return []
    return parse_accounts(vault.read(path))
