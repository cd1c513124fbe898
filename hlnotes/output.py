"""
Output formatting for hlnotes.

Supports table, CSV, and JSON output of transaction and account listings.
"""

import csv
import json
import sys
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from tabulate import tabulate

from hlnotes.model import Transaction


@dataclass
class PostingRow:
    """Represents a posting row for output."""

    date: date
    description: str
    account: str
    amount: Decimal
    currency: str
    exchange_amount: Optional[Decimal] = None
    exchange_currency: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON/CSV output."""
        result = {
            "date": self.date.isoformat(),
            "description": self.description,
            "account": self.account,
            "amount": str(self.amount),
            "currency": self.currency,
        }
        if self.exchange_amount is not None:
            result["exchange_amount"] = str(self.exchange_amount)
            result["exchange_currency"] = self.exchange_currency
        return result


@dataclass
class TransactionRow:
    """Represents a transaction with its postings."""

    date: date
    description: str
    exchange: bool
    postings: list[PostingRow]

    @classmethod
    def from_transaction(cls, txn: Transaction) -> "TransactionRow":
        return cls(
            date=txn.date,
            description=txn.description,
            exchange=txn.is_exchange,
            postings=[
                PostingRow(
                    date=txn.date,
                    description=txn.description,
                    account=p.account,
                    amount=p.amount,
                    currency=p.currency,
                    exchange_amount=p.exchange_amount,
                    exchange_currency=p.exchange_currency,
                )
                for p in txn.postings
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "date": self.date.isoformat(),
            "description": self.description,
            "exchange": self.exchange,
            "postings": [p.to_dict() for p in self.postings],
        }


@dataclass
class AccountRow:
    """Represents an account row for output."""

    name: str
    depth: int = 0  # For tree display

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name}


class OutputFormatter:
    """Formats output in various formats."""

    def __init__(
        self,
        format_type: str = "table",
        show_header: bool = True,
    ):
        """
        Initialize formatter.

        Args:
            format_type: "table", "csv", or "json"
            show_header: Include header row (table/csv)
        """
        self.format_type = format_type
        self.show_header = show_header

    def format_transactions(
        self,
        rows: list[TransactionRow],
        file=None,
    ) -> None:
        """
        Format and output transaction rows.

        Args:
            rows: List of TransactionRow objects
            file: Output file (default: stdout)
        """
        if file is None:
            file = sys.stdout

        if not rows:
            return

        if self.format_type == "json":
            self._format_transactions_json(rows, file)
        elif self.format_type == "csv":
            # CSV flattens to postings with transaction info
            postings = [p for tx in rows for p in tx.postings]
            self._format_postings_csv(postings, file)
        else:
            self._format_postings_table(rows, file)

    def format_accounts(
        self,
        rows: list[AccountRow],
        tree_mode: bool = False,
        file=None,
    ) -> None:
        """
        Format and output account rows.

        Args:
            rows: List of AccountRow objects
            tree_mode: Display as tree with indentation
            file: Output file (default: stdout)
        """
        if file is None:
            file = sys.stdout

        if not rows:
            return

        if self.format_type == "json":
            data = [row.to_dict() for row in rows]
            json.dump(data, file, indent=2, ensure_ascii=False)
            print(file=file)
        elif self.format_type == "csv":
            writer = csv.DictWriter(file, fieldnames=["name"])
            if self.show_header:
                writer.writeheader()
            for row in rows:
                writer.writerow(row.to_dict())
        else:
            self._format_accounts_table(rows, tree_mode, file)

    def _format_postings_table(
        self, rows: list[TransactionRow], file
    ) -> None:
        """Format postings as a table, one line per posting."""
        headers = ["Date", "Description", "Account", "Amount", "Ccy"]

        has_exchange = any(tx.exchange for tx in rows)
        if has_exchange:
            headers.extend(["@@ Amount", "@@ Ccy"])

        table_data = []
        for tx in rows:
            for i, posting in enumerate(tx.postings):
                # Date and description only on the first posting
                line = [
                    str(tx.date) if i == 0 else "",
                    _truncate(tx.description, 40) if i == 0 else "",
                    _truncate(posting.account, 40),
                    _format_amount(posting.amount),
                    posting.currency,
                ]
                if has_exchange:
                    line.extend(
                        [
                            _format_amount(posting.exchange_amount),
                            posting.exchange_currency or "",
                        ]
                    )
                table_data.append(line)

        if self.show_header:
            print(
                tabulate(
                    table_data,
                    headers=headers,
                    tablefmt="simple",
                    disable_numparse=True,
                ),
                file=file,
            )
        else:
            print(
                tabulate(table_data, tablefmt="plain", disable_numparse=True),
                file=file,
            )

    def _format_postings_csv(self, rows: list[PostingRow], file) -> None:
        """Format postings as CSV."""
        fieldnames = [
            "date",
            "description",
            "account",
            "amount",
            "currency",
        ]

        has_exchange = any(r.exchange_amount is not None for r in rows)
        if has_exchange:
            fieldnames.extend(["exchange_amount", "exchange_currency"])

        writer = csv.DictWriter(
            file, fieldnames=fieldnames, extrasaction="ignore"
        )
        if self.show_header:
            writer.writeheader()

        for row in rows:
            writer.writerow(row.to_dict())

    def _format_transactions_json(
        self, rows: list[TransactionRow], file
    ) -> None:
        """Format transactions as JSON array."""
        data = [row.to_dict() for row in rows]
        json.dump(data, file, indent=2, ensure_ascii=False)
        print(file=file)

    def _format_accounts_table(
        self, rows: list[AccountRow], tree_mode: bool, file
    ) -> None:
        """Format accounts as table."""
        if tree_mode:
            # tabulate strips leading whitespace, so print the tree directly
            if self.show_header:
                print("Account", file=file)
            for row in rows:
                print("  " * row.depth + row.name.split(":")[-1], file=file)
            return

        table_data = [[row.name] for row in rows]

        if self.show_header:
            print(
                tabulate(table_data, headers=["Account"], tablefmt="simple"),
                file=file,
            )
        else:
            print(tabulate(table_data, tablefmt="plain"), file=file)


def _truncate(text: str, max_len: int) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _format_amount(amount: Optional[Decimal]) -> str:
    """Format a decimal amount for display."""
    if amount is None:
        return ""
    return f"{amount:,.2f}"
