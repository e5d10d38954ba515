"""Render cell values as display text using their Excel number format.

Workbook files store raw values plus a number format code; the formatted
text a spreadsheet application shows is never written to the file. This
module covers the format shapes that make up the bulk of real workbooks:
General, fixed decimals with optional thousands separators, percentages,
literal prefixes and suffixes such as currency symbols or parentheses,
separate negative and zero sections, text (``@``) and date/time patterns.
Anything else falls back to General.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from openpyxl.styles.numbers import is_date_format

EXCEL_EPOCH = datetime(1899, 12, 30)

_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_DAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

_FIXED_NUMBER = re.compile(
    r"^(?P<prefix>[^#0.,%]*)"
    r"(?P<int>#,##0|0)(?:\.(?P<dec>0+))?(?P<pct>%)?"
    r"(?P<suffix>[^#0.,%]*)$"
)
_MARKER = re.compile(r"\[[^\]]*\]")
_LITERAL = re.compile(r'"([^"]*)"|\\(.)|_(.)|\*(.)')
_PLACEHOLDER = re.compile(r"[#0?]")
_DATE_TOKEN = re.compile(
    r'"[^"]*"|\\.|\[[^\]]*\]|am/pm|a/p|yyyy|yy|mmmmm|mmmm|mmm|mm|m'
    r"|dddd|ddd|dd|d|hh|h|ss|s|.",
    re.IGNORECASE,
)
_ELAPSED = re.compile(r"^\[(h+|m+|s+)\]$", re.IGNORECASE)


def render_display_text(value: Any, number_format: str | None) -> str | None:
    """Render ``value`` the way a spreadsheet would display it.

    Args:
        value: Decoded cell value (text, number, boolean or temporal).
        number_format: The cell's number format code.

    Returns:
        Display text, or None when there is nothing to render.
    """
    if value is None:
        return None
    number_format = number_format or "General"

    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, date, time, timedelta)):
        return _render_temporal(value, _first_section(number_format))
    if isinstance(value, (int, float)):
        return _render_number(value, number_format)
    return str(value)


def _first_section(fmt: str) -> str:
    return fmt.split(";", 1)[0].strip()


def _number_section(fmt: str, value: int | float) -> tuple[str, int | float, bool]:
    """Pick the format section for ``value``.

    The second section formats negatives and the third formats zero. A
    negative value rendered by its own section loses its sign; any minus
    sign comes from the section's literals. The flag is True when the
    section is the first one.
    """
    sections = [section.strip() for section in fmt.split(";")]
    if value < 0 and len(sections) >= 2:
        return sections[1], -value, False
    if value == 0 and len(sections) >= 3:
        return sections[2], value, False
    return sections[0], value, True


def _literal_text(text: str) -> str:
    # Padding (_x) prints a space and fills (*x) print nothing.
    def replace(match: re.Match[str]) -> str:
        quoted, escaped, padded, _fill = match.groups()
        if quoted is not None:
            return quoted
        if escaped is not None:
            return escaped
        if padded is not None:
            return " "
        return ""

    return _LITERAL.sub(replace, text)


def format_general(value: int | float) -> str:
    """Render a number with the General format."""
    if isinstance(value, int):
        return str(value)
    if value.is_integer() and abs(value) < 1e11:
        return str(int(value))
    return format(value, ".10g")


def _render_number(value: int | float, fmt: str) -> str:
    section, amount, is_first = _number_section(fmt, value)
    section = _MARKER.sub("", section)
    if not section and not is_first:
        # An empty negative or zero section hides the value.
        return ""
    if section.lower() in ("general", "@", ""):
        return format_general(amount)

    match = _FIXED_NUMBER.match(section)
    if match is None:
        if not _PLACEHOLDER.search(_LITERAL.sub("", section)):
            return _literal_text(section)
        return format_general(value)

    decimals = len(match.group("dec") or "")
    thousands = "," if match.group("int") == "#,##0" else ""
    percent = ""
    if match.group("pct"):
        amount = amount * 100
        percent = "%"
    prefix = _literal_text(match.group("prefix"))
    suffix = _literal_text(match.group("suffix"))
    return f"{prefix}{amount:{thousands}.{decimals}f}{percent}{suffix}"


def _render_temporal(value: datetime | date | time | timedelta, fmt: str) -> str:
    elapsed = value if isinstance(value, timedelta) else None
    moment = as_datetime(value)

    if not is_date_format(fmt):
        return moment.isoformat(sep=" ")

    tokens: list[str] = _DATE_TOKEN.findall(fmt)
    twelve_hour = any(token.lower() in ("am/pm", "a/p") for token in tokens)
    parts: list[str] = []

    for index, token in enumerate(tokens):
        lower = token.lower()
        if lower in ("m", "mm") and _is_minute(tokens, index):
            parts.append(f"{moment.minute:02d}" if lower == "mm" else str(moment.minute))
        else:
            parts.append(_render_token(token, moment, elapsed, twelve_hour))

    return "".join(parts)


def _is_minute(tokens: list[str], index: int) -> bool:
    """An ``m``/``mm`` token means minutes right after hours or before seconds."""
    for token in reversed(tokens[:index]):
        lower = token.lower()
        if lower in ("h", "hh") or _ELAPSED.match(token):
            return True
        if lower.isalpha():
            break
    for token in tokens[index + 1 :]:
        lower = token.lower()
        if lower in ("s", "ss"):
            return True
        if lower.isalpha():
            break
    return False


def _render_token(
    token: str,
    moment: datetime,
    elapsed: timedelta | None,
    twelve_hour: bool,
) -> str:
    lower = token.lower()
    hour = moment.hour
    if twelve_hour:
        hour = hour % 12 or 12

    if token.startswith('"'):
        return token[1:-1]
    if token.startswith("\\"):
        return token[1:]
    if token.startswith("["):
        return _render_elapsed(token, moment, elapsed)

    renderers = {
        "yyyy": lambda: f"{moment.year:04d}",
        "yy": lambda: f"{moment.year % 100:02d}",
        "mmmmm": lambda: _MONTH_NAMES[moment.month - 1][0],
        "mmmm": lambda: _MONTH_NAMES[moment.month - 1],
        "mmm": lambda: _MONTH_NAMES[moment.month - 1][:3],
        "mm": lambda: f"{moment.month:02d}",
        "m": lambda: str(moment.month),
        "dddd": lambda: _DAY_NAMES[moment.weekday()],
        "ddd": lambda: _DAY_NAMES[moment.weekday()][:3],
        "dd": lambda: f"{moment.day:02d}",
        "d": lambda: str(moment.day),
        "hh": lambda: f"{hour:02d}",
        "h": lambda: str(hour),
        "ss": lambda: f"{moment.second:02d}",
        "s": lambda: str(moment.second),
        "am/pm": lambda: "AM" if moment.hour < 12 else "PM",
        "a/p": lambda: "A" if moment.hour < 12 else "P",
    }
    renderer = renderers.get(lower)
    return renderer() if renderer else token


def _render_elapsed(token: str, moment: datetime, elapsed: timedelta | None) -> str:
    match = _ELAPSED.match(token)
    if match is None:
        # Colour and locale markers such as [Red] or [$-409].
        return ""
    total = elapsed if elapsed is not None else moment - EXCEL_EPOCH
    seconds = int(total.total_seconds())
    unit = match.group(1).lower()
    if unit.startswith("h"):
        amount = seconds // 3600
    elif unit.startswith("m"):
        amount = seconds // 60
    else:
        amount = seconds
    return str(amount).zfill(len(unit))


def as_datetime(value: datetime | date | time | timedelta) -> datetime:
    """Anchor any temporal cell value to a naive UTC datetime.

    Times and durations are measured from the spreadsheet epoch.
    """
    if isinstance(value, timedelta):
        return EXCEL_EPOCH + value
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    return datetime.combine(EXCEL_EPOCH.date(), value.replace(tzinfo=None))
