"""
Journal text parsing for hlnotes.

Two splitting strategies are used. A whole journal file is split on
header lines that start with a date. A fenced ``hledger`` block inside a
note is split on blank lines, since its transactions may have no date.
"""

import re
from decimal import Decimal
from typing import Optional

from hlnotes.amounts import AmountParseError, parse_amount
from hlnotes.dates import compile_matcher, compile_remover, parse_date
from hlnotes.model import Posting, Transaction

FENCE_TAG = "hledger"

_FENCE_RE = re.compile(
    r"```" + FENCE_TAG + r"[ \t]*\n([\s\S]*?)```", re.IGNORECASE
)

_BLANK_LINES_RE = re.compile(r"\n\s*\n+")

# Account and amount are separated by two or more spaces or a tab
_POSTING_SPLIT_RE = re.compile(r"\s{2,}|\t")

# An amount written directly after the account, as in an over-long line
# that got no padding: a symbol currency and a two-decimal number
_GLUED_AMOUNT_RE = re.compile(
    r"^(?P<account>\S.*?)"
    r"(?P<amount>-?[^\w\s:;-]+ ?-?\d[\d,. ]*[.,]\d\d"
    r"|-?\d[\d,. ]*[.,]\d\d ?[^\w\s:;]+)$"
)

_ACCOUNT_RE = re.compile(r"^account\s+([^;]+)")


class TransactionParseError(ValueError):
    """Raised when a transaction span cannot be turned into a model."""

    pass


def parse_journal(text: str, fmt: str) -> list[str]:
    """
    Split journal file content into transaction text spans.

    A line starting with a date opens a new transaction. Following
    lines are kept only if indented with a space or tab; anything else
    (top-level comments, directives, blank lines) is dropped.

    Returns an empty list if no transaction header is found.
    """
    matcher = compile_matcher(fmt)
    transactions = []
    current: list[str] = []

    for line in text.split("\n"):
        if matcher.match(line):
            if current:
                transactions.append("\n".join(current))
            current = [line]
        elif current and line.startswith((" ", "\t")):
            current.append(line)

    if current:
        transactions.append("\n".join(current))

    return transactions


def find_fence(note_text: str) -> Optional[re.Match]:
    """Return the match for the first hledger fence in a note, if any."""
    return _FENCE_RE.search(note_text)


def extract_block(note_text: str) -> Optional[str]:
    """
    Return the content of the note's hledger fences.

    Multiple fences in the same note are joined with a blank line.
    Returns None if the note has no non-empty fence.
    """
    blocks = [m.group(1).strip() for m in _FENCE_RE.finditer(note_text)]
    blocks = [b for b in blocks if b]
    if not blocks:
        return None
    return "\n\n".join(blocks)


def split_block(content: Optional[str]) -> list[str]:
    """Split fenced block content into transactions on blank lines."""
    if not content:
        return []
    chunks = (chunk.strip() for chunk in _BLANK_LINES_RE.split(content))
    return [chunk for chunk in chunks if chunk]


def parse_accounts(text: str) -> list[str]:
    """
    Read account names from an accounts file.

    Only lines of the form ``account NAME`` are used; a trailing
    ``; comment`` is dropped.
    """
    accounts = []
    seen = set()
    for line in text.split("\n"):
        match = _ACCOUNT_RE.match(line.strip())
        if not match:
            continue
        name = match.group(1).strip()
        if name and name not in seen:
            seen.add(name)
            accounts.append(name)
    return accounts


def _strip_comment(line: str) -> str:
    return line.split(";", 1)[0].rstrip()


_RawPosting = tuple[
    str, Optional[Decimal], str, Optional[Decimal], Optional[str]
]


def _split_glued(line: str) -> list[str]:
    head, sep, tail = line.partition("@@")
    match = _GLUED_AMOUNT_RE.match(head.rstrip())
    if match is None:
        return [line]
    return [match.group("account"), match.group("amount") + sep + tail]


def _parse_posting(line: str, variant: str) -> _RawPosting:
    parts = _POSTING_SPLIT_RE.split(line.strip(), maxsplit=1)
    if len(parts) == 1:
        parts = _split_glued(parts[0])
    account = parts[0].strip()
    if len(parts) == 1 or not parts[1].strip():
        return account, None, "", None, None

    amount_text = parts[1].strip()
    exchange_amount = None
    exchange_currency = None
    if "@@" in amount_text:
        amount_text, exchange_text = amount_text.split("@@", 1)
        exchange_amount, exchange_currency = parse_amount(
            exchange_text, variant
        )

    amount, currency = parse_amount(amount_text, variant)
    return account, amount, currency, exchange_amount, exchange_currency


def parse_transaction(span: str, fmt: str, variant: str) -> Transaction:
    """
    Build a Transaction from one dated transaction span.

    The header must begin with a date in ``fmt``; an optional ``*`` or
    ``!`` status mark is dropped from the description. A single posting
    without an amount receives the balancing amount when the other
    postings share one currency.

    Raises:
        TransactionParseError: if the span has no valid date, no
            postings, or an unreadable amount
    """
    lines = span.split("\n")
    header = lines[0]
    match = compile_matcher(fmt).match(header)
    if match is None:
        raise TransactionParseError(f"Missing date: {header!r}")
    txn_date = parse_date(match.group(0), fmt)
    if txn_date is None:
        raise TransactionParseError(f"Invalid date: {match.group(0)!r}")

    description = compile_remover(fmt).sub("", header, count=1)
    description = _strip_comment(description).strip()
    if description[:1] in ("*", "!"):
        description = description[1:].strip()

    raw_postings = []
    for line in lines[1:]:
        stripped = line.strip()
        if not stripped or stripped.startswith((";", "#")):
            continue
        try:
            raw_postings.append(
                _parse_posting(_strip_comment(stripped), variant)
            )
        except AmountParseError as e:
            raise TransactionParseError(f"{e} in {header!r}") from e

    if not raw_postings:
        raise TransactionParseError(f"No postings: {header!r}")

    elided = [p for p in raw_postings if p[1] is None]
    if len(elided) > 1:
        raise TransactionParseError(
            f"More than one posting without amount: {header!r}"
        )

    postings = []
    for raw in raw_postings:
        account, amount, currency, exchange_amount, exchange_currency = raw
        if amount is None:
            currencies = {p[2] for p in raw_postings if p[1] is not None}
            if len(currencies) != 1:
                raise TransactionParseError(
                    f"Cannot infer elided amount: {header!r}"
                )
            currency = currencies.pop()
            amount = -sum(
                (p[1] for p in raw_postings if p[1] is not None),
                Decimal("0"),
            )
        postings.append(
            Posting(
                account=account,
                amount=amount,
                currency=currency,
                exchange_amount=exchange_amount,
                exchange_currency=exchange_currency,
            )
        )

    return Transaction(
        date=txn_date, description=description, postings=tuple(postings)
    )
