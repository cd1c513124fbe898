"""
Command-line interface for hlnotes.

Provides the main entry point and argument parsing for all commands.
"""

import argparse
import logging
import os
import re
import sys
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from hlnotes import __version__
from hlnotes.amounts import NUMBER_FORMATS
from hlnotes.config import Config, MissingConfigurationError, load_config
from hlnotes.formatter import format_transaction
from hlnotes.model import Posting, ValidationError, validate_for_submission
from hlnotes.output import AccountRow, OutputFormatter, TransactionRow
from hlnotes.roundtrip import (
    add_entry,
    collect_transactions,
    export_journal,
    import_journal,
    load_accounts,
)
from hlnotes.storage import StorageError, Vault

logger = logging.getLogger("hlnotes")


def parse_date(date_str: str) -> date:
    """Parse a date string in YYYY-MM-DD format."""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError as e:
        raise argparse.ArgumentTypeError(
            f"Invalid date format: {date_str}. Use YYYY-MM-DD."
        ) from e


def parse_date_range(range_str: str) -> tuple[Optional[date], Optional[date]]:
    """
    Parse a date range string like 'A..B', 'A..', or '..B'.

    Returns (start_date, end_date) where either may be None.
    Both start and end are inclusive.
    """
    if ".." not in range_str:
        raise argparse.ArgumentTypeError(
            f"Invalid date range: {range_str}. Use format A..B, A.., or ..B"
        )

    parts = range_str.split("..", 1)
    start_str, end_str = parts[0].strip(), parts[1].strip()

    start_date = parse_date(start_str) if start_str else None
    end_date = parse_date(end_str) if end_str else None

    if start_date and end_date and end_date < start_date:
        raise argparse.ArgumentTypeError(
            f"Invalid date range: {range_str}. End is before start."
        )

    return (start_date, end_date)


# Suffixes accepted on entered amounts: 1.5k, 2m
_AMOUNT_SUFFIXES = {"k": Decimal(1000), "m": Decimal(1000000)}


def parse_amount_value(text: str) -> Decimal:
    """
    Parse an entered amount, allowing a ``k`` or ``m`` multiplier.

    ``1.5k`` gives 1500 and ``2m`` gives 2000000. NaN and infinities
    are rejected.

    Raises:
        ValueError: if the text is not a finite number
    """
    value = text.strip()
    multiplier = Decimal(1)
    suffix = value[-1:].lower()
    if suffix in _AMOUNT_SUFFIXES:
        multiplier = _AMOUNT_SUFFIXES[suffix]
        value = value[:-1]
    try:
        amount = Decimal(value) * multiplier
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {text}") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {text}")
    return amount


def parse_posting(values: list[str], default_currency: str) -> Posting:
    """
    Build a posting from ``ACCOUNT AMOUNT [CURRENCY]`` arguments.

    Raises:
        ValueError: if the argument count or the amount is invalid
    """
    if len(values) not in (2, 3):
        raise ValueError(
            f"Invalid posting: {' '.join(values)}. "
            f"Use ACCOUNT AMOUNT [CURRENCY]"
        )
    account = values[0]
    amount = parse_amount_value(values[1])
    currency = values[2] if len(values) == 3 else default_currency
    return Posting(account=account, amount=amount, currency=currency)


def parse_postings(
    groups: list[list[str]], default_currency: str
) -> list[Posting]:
    """
    Build postings from the values of repeated ``-p`` options.

    When there are exactly two postings and the second is given as an
    account only, it receives the negated first amount in the first
    posting's currency.
    """
    if len(groups) == 2 and len(groups[1]) == 1:
        first = parse_posting(groups[0], default_currency)
        second = Posting(
            account=groups[1][0],
            amount=-first.amount,
            currency=first.currency,
        )
        return [first, second]
    return [parse_posting(values, default_currency) for values in groups]


def rank_accounts(
    accounts: list[str], pattern: re.Pattern, limit: Optional[int] = 10
) -> list[str]:
    """
    Accounts matching pattern, best suggestions first.

    Matches at the start of the name come first, then earlier matches,
    then shorter names. Ties keep the accounts file order. At most
    ``limit`` names are returned; a falsy limit returns all of them.
    """
    scored = []
    for account in accounts:
        match = pattern.search(account)
        if match is not None:
            key = (match.start() != 0, match.start(), len(account))
            scored.append((key, account))
    scored.sort(key=lambda item: item[0])
    ranked = [account for _, account in scored]
    return ranked[:limit] if limit else ranked


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="hlnotes",
        description="hledger transactions in daily Markdown notes",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--vault", metavar="PATH", help="Path to the notes vault"
    )
    parser.add_argument(
        "--notes-folder",
        metavar="FOLDER",
        help="Daily notes folder, relative to the vault",
    )
    parser.add_argument(
        "--journal-folder",
        metavar="FOLDER",
        help="Journal folder, relative to the vault",
    )
    parser.add_argument(
        "--format",
        choices=["table", "csv", "json"],
        default="table",
        help="Output format for listings (default: table)",
    )
    parser.add_argument(
        "--no-header",
        action="store_true",
        help="Omit header row in table/CSV output",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug messages",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # add command
    add_parser = subparsers.add_parser(
        "add", help="Add a transaction to its daily note"
    )
    add_parser.add_argument(
        "date", type=parse_date, metavar="YYYY-MM-DD", help="Transaction date"
    )
    add_parser.add_argument(
        "-d", "--description", default="", help="Transaction description"
    )
    add_parser.add_argument(
        "-p",
        "--posting",
        dest="postings",
        action="append",
        nargs="+",
        metavar="ARG",
        required=True,
        help=(
            "Posting as ACCOUNT AMOUNT [CURRENCY]; repeat for each posting. "
            "AMOUNT may end in k or m (1.5k). With two postings the second "
            "AMOUNT may be left out"
        ),
    )
    add_parser.add_argument(
        "--amount-format",
        choices=NUMBER_FORMATS,
        help="Number format for amounts",
    )
    add_parser.add_argument(
        "--no-date",
        action="store_true",
        help="Leave the date out of the transaction text",
    )
    add_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the transaction instead of writing it",
    )

    # export command
    export_parser = subparsers.add_parser(
        "export", help="Export transactions from daily notes to a journal"
    )
    export_parser.add_argument(
        "--date",
        type=parse_date_range,
        metavar="A..B",
        required=True,
        help="Date range (inclusive both ends)",
    )
    export_parser.add_argument(
        "--file",
        default=f"{date.today().year}.journal",
        help="Journal file name in the journal folder",
    )
    export_parser.add_argument(
        "--replace",
        action="store_true",
        help="Overwrite the journal file if it exists",
    )

    # import command
    import_parser = subparsers.add_parser(
        "import", help="Import transactions from a journal into daily notes"
    )
    import_parser.add_argument(
        "--date",
        type=parse_date_range,
        metavar="A..B",
        required=True,
        help="Date range (inclusive both ends)",
    )
    import_parser.add_argument(
        "--file",
        default="hledger.journal",
        help="Journal file name in the journal folder",
    )

    # list command
    list_parser = subparsers.add_parser(
        "list", help="List transactions from daily notes or a journal"
    )
    list_parser.add_argument(
        "--date",
        type=parse_date_range,
        metavar="A..B",
        help="Date range (inclusive both ends)",
    )
    list_parser.add_argument(
        "--file",
        help="Read this journal file instead of the daily notes",
    )
    list_parser.add_argument(
        "--account",
        metavar="PATTERN",
        help="Only transactions with a posting matching pattern",
    )
    list_parser.add_argument(
        "--regex", action="store_true", help="Treat pattern as regex"
    )
    list_parser.add_argument(
        "--reverse", action="store_true", help="Reverse date order"
    )
    list_parser.add_argument(
        "--limit", type=int, metavar="N", help="Limit output to N rows"
    )
    list_parser.add_argument(
        "--offset", type=int, metavar="N", help="Skip first N rows"
    )

    # accounts command
    accounts_parser = subparsers.add_parser(
        "accounts", help="Search accounts in the accounts file"
    )
    accounts_parser.add_argument(
        "pattern",
        nargs="?",
        default="",
        help="Account name pattern (substring match by default)",
    )
    accounts_parser.add_argument(
        "--regex", action="store_true", help="Treat pattern as regex"
    )
    accounts_parser.add_argument(
        "--case-sensitive",
        action="store_true",
        help="Use case-sensitive matching",
    )
    accounts_parser.add_argument(
        "--tree", action="store_true", help="Render as account tree"
    )
    accounts_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        metavar="N",
        help="Show at most N ranked matches (default: 10, 0 for all)",
    )

    # doctor command
    subparsers.add_parser("doctor", help="Print diagnostic info")

    return parser


def _configure_logging(verbose: bool) -> None:
    """Attach a stderr handler to the package logger."""
    for old in list(logger.handlers):
        logger.removeHandler(old)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _open_vault(config: Config) -> Vault:
    """Return the configured vault or raise MissingConfigurationError."""
    vault_path = config.resolve_vault_path()
    if vault_path is None:
        raise MissingConfigurationError(
            "No vault configured. Use --vault or HLNOTES_VAULT_PATH."
        )
    if not vault_path.is_dir():
        raise MissingConfigurationError(f"Vault not found: {vault_path}")
    return Vault(vault_path)


def compile_pattern(
    pattern: str, is_regex: bool, case_sensitive: bool
) -> re.Pattern:
    """Compile a search pattern, escaping it unless it is a regex."""
    flags = 0 if case_sensitive else re.IGNORECASE
    if not is_regex:
        pattern = re.escape(pattern)
    return re.compile(pattern, flags)


def cmd_add(args, config: Config) -> int:
    """Handle the add command."""
    try:
        postings = parse_postings(args.postings, config.default_currency())
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    result = validate_for_submission(postings)
    if not result.ok:
        print(f"Error: {result.error}", file=sys.stderr)
        return 2

    if args.dry_run:
        print(
            format_transaction(
                args.date,
                args.description,
                postings,
                config.transaction_settings(),
                config.format_config(),
            )
        )
        return 0

    try:
        vault = _open_vault(config)
        known = load_accounts(vault, config)
        for posting in postings:
            if known and posting.account not in known:
                logger.warning(
                    "Account not in %s: %s",
                    config.accounts_file,
                    posting.account,
                )
        note_path = add_entry(
            vault, config, args.date, args.description, postings
        )
    except (MissingConfigurationError, ValidationError, StorageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"Transaction saved to {note_path}")
    return 0


def cmd_export(args, config: Config) -> int:
    """Handle the export command."""
    start, end = args.date
    try:
        vault = _open_vault(config)
        result = export_journal(
            vault, config, start, end, args.file, replace=args.replace
        )
    except (MissingConfigurationError, StorageError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    for path, reason in result.skipped:
        print(f"Skipped {path}: {reason}", file=sys.stderr)

    if result.path is None:
        print(
            "No hledger content found in the daily notes within the "
            "date range.",
            file=sys.stderr,
        )
        return 1

    print(
        f"Exported {result.transaction_count} transactions from "
        f"{len(result.notes)} notes to {result.path}"
    )
    return 0


def cmd_import(args, config: Config) -> int:
    """Handle the import command."""
    start, end = args.date
    try:
        vault = _open_vault(config)
        result = import_journal(vault, config, start, end, args.file)
    except (MissingConfigurationError, StorageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    for path, reason in result.skipped:
        print(f"Skipped {path}: {reason}", file=sys.stderr)

    if not result.notes:
        print("No transactions found in the date range.", file=sys.stderr)
        return 1

    print(
        f"Imported {result.transaction_count} transactions into "
        f"{len(result.notes)} notes"
    )
    return 0


def cmd_list(args, config: Config) -> int:
    """Handle the list command."""
    start, end = args.date if args.date else (None, None)
    try:
        vault = _open_vault(config)
        transactions = collect_transactions(
            vault, config, start, end, journal_file=args.file
        )
    except (MissingConfigurationError, StorageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.account:
        try:
            pattern = compile_pattern(args.account, args.regex, False)
        except re.error as e:
            print(f"Invalid regex: {e}", file=sys.stderr)
            return 2
        transactions = [
            t
            for t in transactions
            if any(pattern.search(p.account) for p in t.postings)
        ]

    if not transactions:
        return 1  # No matches

    rows = [TransactionRow.from_transaction(t) for t in transactions]
    if args.reverse:
        rows.reverse()
    if args.offset:
        rows = rows[args.offset :]
    if args.limit:
        rows = rows[: args.limit]

    formatter = OutputFormatter(
        format_type=args.format,
        show_header=not args.no_header,
    )
    formatter.format_transactions(rows)
    return 0


def _with_parents(names: list[str]) -> list[str]:
    """Add the implied parent accounts of each name."""
    result = set(names)
    for name in names:
        parts = name.split(":")
        for i in range(1, len(parts)):
            result.add(":".join(parts[:i]))
    return sorted(result)


def cmd_accounts(args, config: Config) -> int:
    """Handle the accounts command."""
    try:
        pattern = compile_pattern(
            args.pattern, args.regex, args.case_sensitive
        )
    except re.error as e:
        print(f"Error: Invalid regex pattern: {e}", file=sys.stderr)
        return 2

    try:
        vault = _open_vault(config)
        accounts = load_accounts(vault, config)
    except (MissingConfigurationError, StorageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.tree:
        names = _with_parents([a for a in accounts if pattern.search(a)])
    elif args.pattern:
        names = rank_accounts(accounts, pattern, args.limit)
    else:
        names = sorted(accounts)

    if not names:
        return 1  # No matches

    rows = [
        AccountRow(name=name, depth=name.count(":") if args.tree else 0)
        for name in names
    ]

    formatter = OutputFormatter(
        format_type=args.format,
        show_header=not args.no_header,
    )
    formatter.format_accounts(rows, tree_mode=args.tree)
    return 0


def cmd_doctor(args, config: Config) -> int:
    """Handle the doctor command - print diagnostics."""
    print("hlnotes diagnostic information")
    print("=" * 40)
    print(f"Version: {__version__}")
    print()

    vault_path = config.resolve_vault_path()
    print(f"Vault path: {vault_path}")
    if vault_path is not None:
        print(f"Vault exists: {vault_path.is_dir()}")
        if vault_path.is_dir():
            vault = Vault(vault_path)
            for label, folder in (
                ("Daily notes folder", config.daily_notes_folder),
                ("Journal folder", config.journal_folder),
            ):
                present = bool(folder) and vault.exists(folder)
                print(f"  {label} exists: {present}")

    print()
    print("Configuration:")
    print(f"  Daily notes folder: {config.daily_notes_folder or '(not set)'}")
    print(f"  Daily notes date format: {config.daily_notes_date_format}")
    print(f"  Transaction header: {config.transaction_header}")
    print(f"  Journal folder: {config.journal_folder or '(not set)'}")
    print(f"  Journal date format: {config.journal_date_format}")
    print(f"  Accounts file: {config.accounts_file}")
    print(f"  Currencies: {', '.join(config.currencies)}")
    print(f"  Include date: {config.include_date}")
    print(f"  Line length: {config.line_length}")
    print(f"  Amount format: {config.amount_format}")
    print(f"  Currency placement: {config.currency_placement}")
    print(f"  Currency spacing: {config.currency_spacing}")

    print()
    print("Environment:")
    print(
        f"  HLNOTES_VAULT_PATH: "
        f"{os.environ.get('HLNOTES_VAULT_PATH', '(not set)')}"
    )

    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    # Load config with CLI overrides
    config = load_config(
        vault_path=args.vault,
        daily_notes_folder=args.notes_folder,
        journal_folder=args.journal_folder,
        include_date=(
            False if getattr(args, "no_date", False) else None
        ),
        amount_format=getattr(args, "amount_format", None),
    )

    try:
        config.format_config()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    # Handle commands
    if args.command == "add":
        return cmd_add(args, config)
    elif args.command == "export":
        return cmd_export(args, config)
    elif args.command == "import":
        return cmd_import(args, config)
    elif args.command == "list":
        return cmd_list(args, config)
    elif args.command == "accounts":
        return cmd_accounts(args, config)
    elif args.command == "doctor":
        return cmd_doctor(args, config)
    elif args.command is None:
        parser.print_help()
        return 0
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
