"""
Transaction model and balance validation for hlnotes.

A transaction is a dated, ordered group of postings. Regular
transactions must sum to zero. A two-posting transaction between two
different currencies is an exchange and is exempt from the zero-sum
check; whether a posting list is an exchange is always derived from the
postings themselves.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

# Tolerance for the zero-sum check
BALANCE_EPSILON = Decimal("0.0001")


class ValidationError(Exception):
    """Base class for rejected transaction input."""

    pass


class EmptyAccountError(ValidationError):
    """Raised when a posting has a blank account name."""

    def __init__(self):
        super().__init__("Please fill in all account names")


class ZeroAmountError(ValidationError):
    """Raised when a posting amount is exactly zero."""

    def __init__(self):
        super().__init__("Amounts cannot be zero")


class InvalidAmountError(ValidationError):
    """Raised when a posting amount is NaN or infinite."""

    def __init__(self):
        super().__init__("Amounts must be finite numbers")


class UnbalancedError(ValidationError):
    """Raised when a regular transaction does not sum to zero."""

    def __init__(self, total: Decimal):
        self.total = total
        super().__init__(
            f"Transaction does not balance. Total is {total:.2f}"
        )


@dataclass(frozen=True)
class Posting:
    """One account/amount/currency line of a transaction."""

    account: str
    amount: Decimal
    currency: str
    exchange_amount: Optional[Decimal] = None
    exchange_currency: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    """A dated group of postings."""

    date: date
    description: str
    postings: tuple[Posting, ...] = field(default_factory=tuple)

    @property
    def is_exchange(self) -> bool:
        return is_exchange(self.postings)

    def balance(self) -> dict[str, Decimal]:
        """Sum of posting amounts per currency."""
        totals: dict[str, Decimal] = {}
        for posting in self.postings:
            totals[posting.currency] = (
                totals.get(posting.currency, Decimal("0")) + posting.amount
            )
        return totals


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validate_for_submission."""

    error: Optional[ValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def is_exchange(postings: Sequence[Posting]) -> bool:
    """True for two non-zero postings in two different currencies."""
    return (
        len(postings) == 2
        and postings[0].currency != postings[1].currency
        and postings[0].amount != 0
        and postings[1].amount != 0
    )


def validate_for_submission(postings: Sequence[Posting]) -> ValidationResult:
    """
    Check user-entered postings before they are written.

    Checks, in order: every account is non-blank, every amount is a
    finite number, no amount is zero, and (unless the postings form an
    exchange) the signed total is within BALANCE_EPSILON of zero.
    """
    if any(not p.account.strip() for p in postings):
        return ValidationResult(EmptyAccountError())

    if any(not p.amount.is_finite() for p in postings):
        return ValidationResult(InvalidAmountError())

    if any(p.amount == 0 for p in postings):
        return ValidationResult(ZeroAmountError())

    if not is_exchange(postings):
        total = sum((p.amount for p in postings), Decimal("0"))
        if abs(total) > BALANCE_EPSILON:
            return ValidationResult(UnbalancedError(total))

    return ValidationResult()


def normalize_exchange(postings: Sequence[Posting]) -> tuple[Posting, ...]:
    """
    Prepare exchange postings for output.

    When both legs were entered as positive amounts the second leg is
    negated. The second leg also carries the first leg's absolute amount
    and currency as its exchange annotation. Non-exchange postings are
    returned unchanged.
    """
    if not is_exchange(postings):
        return tuple(postings)

    first, second = postings
    amount = second.amount
    if first.amount > 0 and second.amount > 0:
        amount = -amount

    return (
        first,
        replace(
            second,
            amount=amount,
            exchange_amount=abs(first.amount),
            exchange_currency=first.currency,
        ),
    )
