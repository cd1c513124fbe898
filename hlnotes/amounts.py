"""
Amount formatting for hlnotes.

Renders signed decimal amounts with a currency according to a locale
variant and aligns posting lines to a fixed width.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

NUMBER_FORMATS = ("comma-dot", "space-comma", "dot-comma")
CURRENCY_PLACEMENTS = ("prepend", "append")

# variant -> (thousands separator, decimal mark)
_SEPARATORS = {
    "comma-dot": (",", "."),
    "space-comma": (" ", ","),
    "dot-comma": (".", ","),
}

_CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


class AmountParseError(ValueError):
    """Raised when an amount string cannot be read back."""

    pass


@dataclass(frozen=True)
class FormatConfig:
    """How amounts are rendered in posting lines."""

    number_format: str = "comma-dot"
    currency_spacing: bool = True
    currency_placement: str = "prepend"
    line_length: int = 80

    def __post_init__(self):
        if self.number_format not in NUMBER_FORMATS:
            raise ValueError(f"Unknown number format: {self.number_format}")
        if self.currency_placement not in CURRENCY_PLACEMENTS:
            raise ValueError(
                f"Unknown currency placement: {self.currency_placement}"
            )
        if self.line_length <= 0:
            raise ValueError("line_length must be positive")


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal, going through str() for floats."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise AmountParseError(f"Invalid amount: {value!r}") from e


def _round(value: Number) -> Decimal:
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def format_number(value: Number, variant: str) -> str:
    """
    Format a number with two decimals and thousands grouping.

    Rounds half-up to cents, so 1000.555 gives "1,000.56" in the
    comma-dot variant. Negative values get a single leading "-".
    """
    thousands, mark = _SEPARATORS[variant]
    rounded = _round(value)
    sign = "-" if rounded < 0 else ""
    grouped = f"{abs(rounded):,.2f}"
    integer_part, decimal_part = grouped.split(".")
    return f"{sign}{integer_part.replace(',', thousands)}{mark}{decimal_part}"


def format_amount(value: Number, currency: str, config: FormatConfig) -> str:
    """Format an amount with its currency; the sign sits next to the digits."""
    rounded = _round(value)
    sign = "-" if rounded < 0 else ""
    number = format_number(abs(rounded), config.number_format)
    space = " " if config.currency_spacing else ""

    if config.currency_placement == "prepend":
        return f"{currency}{space}{sign}{number}"
    return f"{sign}{number}{space}{currency}"


def format_posting_line(
    account: str,
    amount: Number,
    currency: str,
    config: FormatConfig,
    exchange_amount: Optional[Number] = None,
    exchange_currency: Optional[str] = None,
) -> str:
    """
    Format one posting line with the amount right-aligned.

    The account is flush left and the amount ends at column
    ``config.line_length``. Lines that are already too long are not
    truncated. An exchange pair is appended as ``@@ <amount>``.
    """
    formatted = format_amount(amount, currency, config)
    padding = " " * max(0, config.line_length - len(account) - len(formatted))
    line = f"{account}{padding}{formatted}"

    if exchange_amount is not None and exchange_currency is not None:
        exchange = format_amount(
            abs(to_decimal(exchange_amount)), exchange_currency, config
        )
        line += f" @@ {exchange}"

    return line


_AMOUNT_RE = re.compile(
    r"^(?P<pre>[^\d]*?)\s*(?P<num>-?\d(?:[\d,. ]*\d)?)\s*(?P<post>[^\d]*)$"
)


def parse_amount(text: str, variant: str) -> tuple[Decimal, str]:
    """
    Read an amount written by format_amount back into (value, currency).

    Accepts the currency on either side and a sign placed either before
    the digits or before a prepended currency ("-$ 5.00").
    """
    thousands, mark = _SEPARATORS[variant]
    match = _AMOUNT_RE.match(text.strip())
    if match is None:
        raise AmountParseError(f"Invalid amount: {text!r}")

    pre = match.group("pre").strip()
    post = match.group("post").strip()
    number = match.group("num")

    negative = number.startswith("-")
    if pre.startswith("-"):
        negative = not negative
        pre = pre[1:].strip()
    if pre.endswith("-"):
        negative = not negative
        pre = pre[:-1].strip()

    if pre and post:
        raise AmountParseError(f"Currency on both sides: {text!r}")
    currency = pre or post

    digits = number.lstrip("-").replace(thousands, "")
    if thousands != " ":
        digits = digits.replace(" ", "")
    digits = digits.replace(mark, ".")
    try:
        value = Decimal(digits)
    except InvalidOperation as e:
        raise AmountParseError(f"Invalid amount: {text!r}") from e

    return (-value if negative else value, currency)
