"""
Time formatting helpers for the date/time macros.

Templates written for the browser client use moment.js format tokens
(``LT``, ``LL``, ``dddd``, ``YYYY-MM-DD``...) and expect moment's humanized
durations ("a few seconds", "3 hours", "in 2 days"). This module renders both
from plain ``datetime`` objects.
"""

import logging
import re
from datetime import datetime, timezone, timedelta
from typing import Optional, Union

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)


MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
WEEKDAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# Localized (en) long date formats
LONG_FORMATS = {
    "LTS": "h:mm:ss A",
    "LT": "h:mm A",
    "L": "MM/DD/YYYY",
    "LL": "MMMM D, YYYY",
    "LLL": "MMMM D, YYYY h:mm A",
    "LLLL": "dddd, MMMM D, YYYY h:mm A",
    "l": "M/D/YYYY",
    "ll": "MMM D, YYYY",
    "lll": "MMM D, YYYY h:mm A",
    "llll": "ddd, MMM D, YYYY h:mm A",
}

_TOKEN_PATTERN = re.compile(
    r'\[[^\[\]]*\]'
    r'|LTS|LT|LLLL|LLL|LL|L|llll|lll|ll|l'
    r'|YYYY|YY|Q'
    r'|MMMM|MMM|MM|Mo|M'
    r'|DDDD|DDD|Do|DD|D'
    r'|dddd|ddd|dd|do|d|E|e'
    r'|WW|Wo|W'
    r'|HH|H|hh|h|kk|k|mm|m|ss|s|SSS|SS|S'
    r'|A|a|ZZ|Z|X|x'
)

# Date stamps written by older chat files: 2024-6-1@15h45m30s or 2024-6-1 @15h 45m 30s 120ms
_HUMANIZED_STAMP = re.compile(
    r'^(\d{4})-(\d{1,2})-(\d{1,2})\s*@\s*(\d{1,2})h\s*(\d{1,2})m\s*(\d{1,2})s(?:\s*(\d{1,3})ms)?$'
)

Timestamp = Union[datetime, int, float, str, None]


def ordinal(n: int) -> str:
    """Return the English ordinal for n (1st, 2nd, 11th...)."""
    if 11 <= n % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _utc_offset(dt: datetime, separator: str) -> str:
    offset = dt.utcoffset()
    if offset is None:
        offset = dt.astimezone().utcoffset() or timedelta(0)
    minutes = int(offset.total_seconds() // 60)
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}{separator}{mins:02d}"


def _render_token(dt: datetime, token: str) -> str:
    if token.startswith("["):
        return token[1:-1]
    if token in LONG_FORMATS:
        return format_moment(dt, LONG_FORMATS[token])

    weekday = (dt.weekday() + 1) % 7  # Sunday = 0
    hour12 = dt.hour % 12 or 12

    if token == "YYYY":
        return f"{dt.year:04d}"
    if token == "YY":
        return f"{dt.year % 100:02d}"
    if token == "Q":
        return str((dt.month - 1) // 3 + 1)
    if token == "MMMM":
        return MONTHS[dt.month - 1]
    if token == "MMM":
        return MONTHS[dt.month - 1][:3]
    if token == "MM":
        return f"{dt.month:02d}"
    if token == "Mo":
        return ordinal(dt.month)
    if token == "M":
        return str(dt.month)
    if token == "DDDD":
        return f"{dt.timetuple().tm_yday:03d}"
    if token == "DDD":
        return str(dt.timetuple().tm_yday)
    if token == "Do":
        return ordinal(dt.day)
    if token == "DD":
        return f"{dt.day:02d}"
    if token == "D":
        return str(dt.day)
    if token == "dddd":
        return WEEKDAYS[weekday]
    if token == "ddd":
        return WEEKDAYS[weekday][:3]
    if token == "dd":
        return WEEKDAYS[weekday][:2]
    if token == "do":
        return ordinal(weekday)
    if token in ("d", "e"):
        return str(weekday)
    if token == "E":
        return str(dt.isoweekday())
    if token == "WW":
        return f"{dt.isocalendar()[1]:02d}"
    if token == "Wo":
        return ordinal(dt.isocalendar()[1])
    if token == "W":
        return str(dt.isocalendar()[1])
    if token == "HH":
        return f"{dt.hour:02d}"
    if token == "H":
        return str(dt.hour)
    if token == "hh":
        return f"{hour12:02d}"
    if token == "h":
        return str(hour12)
    if token == "kk":
        return f"{dt.hour or 24:02d}"
    if token == "k":
        return str(dt.hour or 24)
    if token == "mm":
        return f"{dt.minute:02d}"
    if token == "m":
        return str(dt.minute)
    if token == "ss":
        return f"{dt.second:02d}"
    if token == "s":
        return str(dt.second)
    if token == "SSS":
        return f"{dt.microsecond // 1000:03d}"
    if token == "SS":
        return f"{dt.microsecond // 10000:02d}"
    if token == "S":
        return str(dt.microsecond // 100000)
    if token == "A":
        return "AM" if dt.hour < 12 else "PM"
    if token == "a":
        return "am" if dt.hour < 12 else "pm"
    if token == "ZZ":
        return _utc_offset(dt, "")
    if token == "Z":
        return _utc_offset(dt, ":")
    if token == "X":
        return str(int(dt.timestamp()))
    if token == "x":
        return str(int(dt.timestamp() * 1000))
    return token


def format_moment(dt: datetime, fmt: str) -> str:
    """
    Format a datetime using moment.js format tokens.

    Text inside square brackets is copied literally; characters that are not
    tokens pass through unchanged.

    Examples:
        format_moment(dt, "LT")          -> "3:07 PM"
        format_moment(dt, "LL")          -> "March 5, 2024"
        format_moment(dt, "dddd [the] Do") -> "Tuesday the 5th"
    """
    return _TOKEN_PATTERN.sub(lambda m: _render_token(dt, m.group(0)), fmt)


def humanize_duration(seconds: float, with_suffix: bool = False) -> str:
    """
    Describe a duration the way moment's ``duration.humanize()`` does.

    Args:
        seconds: Duration in seconds; negative values are in the past
        with_suffix: Add "in ..." / "... ago"
    """
    elapsed = abs(seconds)
    secs = round(elapsed)
    minutes = round(elapsed / 60)
    hours = round(elapsed / 3600)
    days = round(elapsed / 86400)
    # moment converts days to months through the 400-year Gregorian cycle
    months = round(elapsed / 86400 * 4800 / 146097)
    years = round(elapsed / 86400 * 400 / 146097)

    if secs < 45:
        phrase = "a few seconds"
    elif minutes <= 1:
        phrase = "a minute"
    elif minutes < 45:
        phrase = f"{minutes} minutes"
    elif hours <= 1:
        phrase = "an hour"
    elif hours < 22:
        phrase = f"{hours} hours"
    elif days <= 1:
        phrase = "a day"
    elif days < 26:
        phrase = f"{days} days"
    elif months <= 1:
        phrase = "a month"
    elif months < 11:
        phrase = f"{months} months"
    elif years <= 1:
        phrase = "a year"
    else:
        phrase = f"{years} years"

    if not with_suffix:
        return phrase
    return f"in {phrase}" if seconds > 0 else f"{phrase} ago"


def parse_timestamp(value: Timestamp) -> Optional[datetime]:
    """
    Parse a message timestamp into an aware datetime.

    Accepts datetimes, epoch milliseconds (numbers or digit strings), the
    ``2024-6-1@15h45m30s`` stamps of older chat files, and anything
    dateutil can read. Naive values are taken as local time.

    Returns:
        Aware datetime, or None if the value cannot be parsed
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (ValueError, OverflowError, OSError) as e:
            logger.debug(f"Out of range timestamp {value!r}: {e}")
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return parse_timestamp(int(text))

        stamp = _HUMANIZED_STAMP.match(text)
        if stamp:
            year, month, day, hour, minute, second = (int(g) for g in stamp.groups()[:6])
            millis = int(stamp.group(7) or 0)
            try:
                parsed = datetime(year, month, day, hour, minute, second, millis * 1000)
            except ValueError:
                logger.debug(f"Out of range timestamp: {value!r}")
                return None
        else:
            try:
                parsed = date_parser.parse(text)
            except (ValueError, OverflowError) as e:
                logger.debug(f"Could not parse timestamp {value!r}: {e}")
                return None
    else:
        return None

    try:
        if parsed.tzinfo is None:
            parsed = parsed.astimezone()
        # datetime only rejects offsets of a day or more when they are read
        parsed.utcoffset()
    except (ValueError, OverflowError, OSError) as e:
        logger.debug(f"Unusable timestamp {value!r}: {e}")
        return None
    return parsed


def at_utc_offset(now: datetime, offset: int) -> Optional[datetime]:
    """
    Shift a time to a fixed UTC offset.

    Offsets below 16 in magnitude are hours, anything larger is minutes.

    Returns None when the offset is a day or more. moment would still shift
    the clock by such an offset, but ``datetime.timezone`` cannot represent
    it, so {{time_UTC}} renders as an empty string instead.
    """
    minutes = offset * 60 if abs(offset) < 16 else offset
    if abs(minutes) >= 24 * 60:
        return None
    if now.tzinfo is None:
        now = now.astimezone()
    return now.astimezone(timezone(timedelta(minutes=minutes)))
