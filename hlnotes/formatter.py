"""
Transaction text rendering for hlnotes.

Turns entered postings into journal text and re-dates transactions that
move between daily notes and a journal file.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from hlnotes.amounts import FormatConfig, format_posting_line
from hlnotes.dates import compile_matcher, compile_remover, format_date
from hlnotes.model import Posting, normalize_exchange

INDENT = "    "

# A first line with a run of 3+ spaces is a posting, not a description
_POSTING_HEURISTIC_RE = re.compile(r"\s{3,}")


@dataclass(frozen=True)
class TransactionSettings:
    """Settings that control how a transaction header is written."""

    include_date: bool = True
    journal_date_format: str = "YYYY-MM-DD"


def format_transaction(
    txn_date: date,
    description: str,
    postings: Sequence[Posting],
    settings: TransactionSettings,
    config: FormatConfig,
) -> str:
    """
    Render a transaction as journal text without a trailing newline.

    With ``include_date`` the header is the date plus description and
    postings are indented by four spaces. Without it, the header is the
    description alone (omitted when empty) and postings are not
    indented, since the daily note already gives the date.
    """
    lines = []
    if settings.include_date:
        header = format_date(txn_date, settings.journal_date_format)
        if description:
            header += " " + description
        lines.append(header)
    elif description:
        lines.append(description)

    padding = INDENT if settings.include_date else ""
    for posting in normalize_exchange(postings):
        lines.append(
            padding
            + format_posting_line(
                posting.account,
                posting.amount,
                posting.currency,
                config,
                posting.exchange_amount,
                posting.exchange_currency,
            )
        )

    return "\n".join(lines).rstrip()


def format_date_aware_reimport(raw: str, target_date: date, fmt: str) -> str:
    """
    Attach ``target_date`` to a transaction taken from a daily note.

    - If the first line already starts with a date in ``fmt`` it is kept
      as is and only the other lines are re-indented to four spaces.
    - If the first line looks like a posting, the date goes on its own
      line and every line is indented.
    - Otherwise the date is prefixed to the first line (the description)
      and the remaining lines are indented.
    """
    lines = raw.split("\n")
    first_line = lines[0].rstrip()

    if compile_matcher(fmt).match(first_line.lstrip()):
        body = [INDENT + line.strip() for line in lines[1:]]
        return "\n".join([first_line.lstrip()] + body)

    formatted_date = format_date(target_date, fmt)
    if _POSTING_HEURISTIC_RE.search(first_line):
        body = [INDENT + line.strip() for line in lines]
        return "\n".join([formatted_date] + body)

    header = f"{formatted_date} {first_line.strip()}"
    body = [INDENT + line.strip() for line in lines[1:]]
    return "\n".join([header] + body)


def strip_transaction_dates(spans: Sequence[str], fmt: str) -> list[str]:
    """
    Remove leading dates and indentation for notes kept without dates.

    The header loses its date (and is dropped if nothing is left);
    every other line loses its indentation.
    """
    remover = compile_remover(fmt)
    result = []
    for span in spans:
        lines = span.split("\n")
        header = remover.sub("", lines[0].strip(), count=1).strip()
        body = [line.strip() for line in lines[1:]]
        result.append("\n".join(([header] if header else []) + body))
    return result


def render_note_block(
    spans: Sequence[str], include_date: bool, fmt: str
) -> str:
    """Join transactions for a fenced block, one blank line apart."""
    if not include_date:
        spans = strip_transaction_dates(spans, fmt)
    return "\n\n".join(s for s in spans if s.strip()) + "\n"
