"""
Date format handling for hlnotes.

Date formats are moment-style token strings such as ``YYYY-MM-DD`` or
``DD/MM/YYYY``. Supported tokens are YYYY, YY, MM, M, DD and D; the
separators ``-``, ``/`` and ``.`` are matched literally. Any other
character is passed through to the generated regex unchanged, so a
malformed format may produce a pattern that matches nothing or too much.
"""

import re
from datetime import date
from functools import lru_cache
from typing import Optional

# Expansion order matters: longer tokens must be replaced first.
_TOKEN_PATTERNS = (
    ("YYYY", r"\d{4}"),
    ("YY", r"\d{2}"),
    ("MM", r"\d{2}"),
    ("M", r"\d{1,2}"),
    ("DD", r"\d{2}"),
    ("D", r"\d{1,2}"),
)

_SEPARATORS = ("/", ".", "-")

_TOKEN_RE = re.compile(r"YYYY|YY|MM|M|DD|D")

# Named groups used for strict parsing
_GROUP_PATTERNS = {
    "YYYY": r"(?P<year>\d{4})",
    "YY": r"(?P<year2>\d{2})",
    "MM": r"(?P<month>\d{2})",
    "M": r"(?P<month>\d{1,2})",
    "DD": r"(?P<day>\d{2})",
    "D": r"(?P<day>\d{1,2})",
}


class DateParseError(ValueError):
    """Raised when text does not parse under a date format."""

    def __init__(self, text: str, fmt: str):
        self.text = text
        self.fmt = fmt
        super().__init__(f"Could not parse date {text!r} with format {fmt!r}")


def _expand(fmt: str) -> str:
    pattern = fmt
    for token, digits in _TOKEN_PATTERNS:
        pattern = pattern.replace(token, digits)
    for sep in _SEPARATORS:
        pattern = pattern.replace(sep, "\\" + sep)
    return pattern


@lru_cache(maxsize=None)
def compile_matcher(fmt: str) -> re.Pattern:
    """Regex matching a date rendered with ``fmt`` at the start of a line."""
    return re.compile("^" + _expand(fmt))


@lru_cache(maxsize=None)
def compile_remover(fmt: str) -> re.Pattern:
    """Like compile_matcher, but also consumes whitespace after the date."""
    return re.compile("^" + _expand(fmt) + r"\s*")


@lru_cache(maxsize=None)
def _compile_parser(fmt: str) -> re.Pattern:
    parts = []
    seen = set()
    pos = 0
    for match in _TOKEN_RE.finditer(fmt):
        parts.append(re.escape(fmt[pos : match.start()]))
        token = match.group(0)
        group = _GROUP_PATTERNS[token]
        name = group[4 : group.index(">")]
        if name in seen:
            # Repeated fields (e.g. YYYY-MM/YYYY-MM-DD) must agree
            parts.append(f"(?P={name})")
        else:
            seen.add(name)
            parts.append(group)
        pos = match.end()
    parts.append(re.escape(fmt[pos:]))
    return re.compile("".join(parts))


def format_date(value: date, fmt: str) -> str:
    """Render a date using the token format."""

    def _render(match: re.Match) -> str:
        token = match.group(0)
        if token == "YYYY":
            return f"{value.year:04d}"
        if token == "YY":
            return f"{value.year % 100:02d}"
        if token == "MM":
            return f"{value.month:02d}"
        if token == "M":
            return str(value.month)
        if token == "DD":
            return f"{value.day:02d}"
        return str(value.day)

    return _TOKEN_RE.sub(_render, fmt)


def parse_date(text: str, fmt: str) -> Optional[date]:
    """
    Strictly parse ``text`` with ``fmt``.

    The whole string must match and the result must be a real calendar
    date. Two-digit years follow the usual pivot: 00-68 are 20xx,
    69-99 are 19xx.

    Returns None if the text does not parse.
    """
    match = _compile_parser(fmt).fullmatch(text)
    if match is None:
        return None

    fields = match.groupdict()
    if fields.get("year") is not None:
        year = int(fields["year"])
    elif fields.get("year2") is not None:
        short = int(fields["year2"])
        year = 2000 + short if short <= 68 else 1900 + short
    else:
        return None
    if fields.get("month") is None or fields.get("day") is None:
        return None

    try:
        return date(year, int(fields["month"]), int(fields["day"]))
    except ValueError:
        return None


def require_date(text: str, fmt: str) -> date:
    """Parse like parse_date, raising DateParseError on failure."""
    result = parse_date(text, fmt)
    if result is None:
        raise DateParseError(text, fmt)
    return result


def extract_date_text(transaction: str, fmt: str) -> Optional[str]:
    """Return the leading date token of a transaction, as written."""
    match = compile_matcher(fmt).match(transaction)
    return match.group(0) if match else None


def extract_date(transaction: str, fmt: str) -> Optional[date]:
    """Return the leading date of a transaction, or None."""
    token = extract_date_text(transaction, fmt)
    if token is None:
        return None
    return parse_date(token, fmt)


def note_date_from_path(path: str, fmt: str) -> Optional[date]:
    """
    Derive a daily note's date from its path.

    For a flat format the basename (without ``.md``) is parsed. For a
    hierarchical format such as ``YYYY-MM/YYYY-MM-DD`` the trailing path
    segments covering the folder part are joined and parsed together.
    """
    normalized = path.replace("\\", "/")
    stem = re.sub(r"\.md$", "", normalized, flags=re.IGNORECASE)
    depth = fmt.count("/") + 1
    segments = stem.split("/")
    if len(segments) < depth:
        return None
    return parse_date("/".join(segments[-depth:]), fmt)
