from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser


DEFAULT_TIMEZONE = "Asia/Dubai"

# Canonical partition key for "which day" a transaction belongs to.
DATE_KEY_FORMAT = "%d/%m/%Y"

_DATE_KEY_RE = re.compile(r"^\d{2}/\d{2}/\d{4}$")
_LOOSE_DMY_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_PARENTHETICAL_RE = re.compile(r"\s*\(.*\)\s*$")
# JS Date strings write "GMT+0400"; dateutil would read that POSIX-style (sign flipped)
_GMT_OFFSET_RE = re.compile(r"\b(?:GMT|UTC)(?=[+-]\d)")

# Fill values that differ in every date field (day 28 exists in every month)
_FILL_A = datetime(2000, 1, 1)
_FILL_B = datetime(2001, 2, 28)


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def salon_zone(name: str | None = None) -> ZoneInfo:
    """Resolve the configured salon timezone, falling back to the default."""
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)


def _parse_lenient(raw: str) -> Optional[datetime]:
    """
    ISO first, then whatever dateutil makes of a locale string.

    The result keeps its tzinfo when the source carried an offset and is
    naive otherwise.
    """
    iso = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass

    cleaned = _GMT_OFFSET_RE.sub("", _PARENTHETICAL_RE.sub("", raw))
    # dateutil fills missing fields from default=; two different defaults
    # expose a partial date ("June 2024", "2024") as disagreement.
    try:
        first = date_parser.parse(cleaned, dayfirst=True, default=_FILL_A)
        second = date_parser.parse(cleaned, dayfirst=True, default=_FILL_B)
    except (ValueError, OverflowError, TypeError):
        return None
    if first.date() != second.date():
        return None
    return first


def _to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """
    Best-effort parse of a stored timestamp into a UTC-naive datetime.

    Accepts datetime objects, ISO-8601 strings and the locale strings
    older clients wrote. Naive values are taken as UTC. Returns None
    instead of raising.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return _to_utc_naive(raw)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    if not isinstance(raw, str):
        return None
    s = raw.strip()
    if not s:
        return None
    parsed = _parse_lenient(s)
    return _to_utc_naive(parsed) if parsed is not None else None


def normalize_date_key(raw: Any, tz: str | None = None) -> str:
    """
    Canonicalize a stored date into the DD/MM/YYYY partition key.

    Strings already in canonical form are returned unchanged. ISO dates,
    D/M/YYYY with missing zero padding and locale strings such as
    "1 June 2024" are reformatted; values carrying a UTC offset are
    converted to the salon timezone first. Anything else yields "",
    which never matches a real day.
    """
    if raw is None:
        return ""

    if isinstance(raw, datetime):
        if raw.tzinfo is not None:
            raw = raw.astimezone(salon_zone(tz))
        return raw.strftime(DATE_KEY_FORMAT)
    if isinstance(raw, date):
        return raw.strftime(DATE_KEY_FORMAT)
    if not isinstance(raw, str):
        return ""

    s = raw.strip()
    if not s:
        return ""
    if _DATE_KEY_RE.match(s):
        return s

    loose = _LOOSE_DMY_RE.match(s)
    if loose:
        day, month, year = (int(part) for part in loose.groups())
        try:
            return date(year, month, day).strftime(DATE_KEY_FORMAT)
        except ValueError:
            return ""

    if _ISO_DATE_RE.match(s):
        try:
            return date.fromisoformat(s).strftime(DATE_KEY_FORMAT)
        except ValueError:
            return ""

    parsed = _parse_lenient(s)
    if parsed is None:
        return ""
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(salon_zone(tz))
    return parsed.strftime(DATE_KEY_FORMAT)


def dates_match(record_key: str, target_key: str) -> bool:
    """Exact key equality; the empty sentinel never matches anything."""
    return bool(record_key) and bool(target_key) and record_key == target_key


def date_key_to_date(key: str) -> Optional[date]:
    """Parse a canonical key back into a date (None when it is not one)."""
    if not key or not _DATE_KEY_RE.match(key):
        return None
    try:
        return datetime.strptime(key, DATE_KEY_FORMAT).date()
    except ValueError:
        return None


def today_date_key(tz: str | None = None, *, now: datetime | None = None) -> str:
    """Today's partition key in the salon timezone."""
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(salon_zone(tz)).strftime(DATE_KEY_FORMAT)


def format_clock_time(raw: Any, tz: str | None = None) -> str:
    """
    Parse any stored timestamp and render it as "h:mm AM/PM" in the salon
    timezone. Unparseable input gives "N/A".
    """
    parsed = parse_timestamp(raw)
    if parsed is None:
        return "N/A"

    local = parsed.replace(tzinfo=timezone.utc).astimezone(salon_zone(tz))
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def format_display_time(raw: Any, tz: str | None = None) -> str:
    """
    Display label for a transaction time; never raises.

    Empty input gives "N/A". Any string containing ':' is treated as an
    existing display value and returned unchanged, full timestamps
    included. Everything else goes through format_clock_time().
    """
    if raw is None:
        return "N/A"
    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            return "N/A"
        if ":" in s:
            return s
    elif not isinstance(raw, (datetime, date)):
        return "N/A"
    return format_clock_time(raw, tz)
