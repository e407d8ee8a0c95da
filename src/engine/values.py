from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Iterable, Optional

import pandas as pd


TRUE_TOKENS = {"yes", "true", "1"}
DATE_METHODS = ("to_datetime", "ToDatetime", "to_pydatetime")
# pandas resolves these against the wall clock.
RELATIVE_TOKENS = {"now", "today"}

_MONEY_STRIP = re.compile(r"[$,\s]")


def parse_money(raw: object, default: Optional[float] = 0.0) -> Optional[float]:
    """Parse a currency value such as "$1,234.56" or "(1,234.56)".

    Parentheses are accounting notation for a negative amount. Anything that does
    not parse to a finite number returns ``default``.
    """
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else default

    text = _MONEY_STRIP.sub("", str(raw))
    if not text:
        return default
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]
    try:
        value = float(text)
    except ValueError:
        return default
    if not math.isfinite(value):
        return default
    return -value if negative else value


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_wrapper(raw: object) -> Optional[datetime]:
    for method in DATE_METHODS:
        try:
            convert = getattr(raw, method, None)
            if not callable(convert):
                continue
            value = convert()
        except Exception:  # pylint: disable=broad-except
            # Any failure inside a foreign timestamp wrapper means no date.
            return None
        return parse_date(value) if not isinstance(value, type(raw)) else None
    return None


def parse_date(raw: object) -> Optional[datetime]:
    """Resolve the date encodings found in the store to an aware UTC datetime.

    Accepts datetimes, dates, epoch milliseconds, ISO-ish strings and timestamp
    wrappers exposing a ``to_datetime()`` style method. Returns None otherwise.
    """
    if raw is None or raw is pd.NaT or isinstance(raw, bool):
        return None
    try:
        if isinstance(raw, pd.Timestamp):
            return None if pd.isna(raw) else _as_utc(raw.to_pydatetime())
        if isinstance(raw, datetime):
            return _as_utc(raw)
        if isinstance(raw, date):
            return datetime(raw.year, raw.month, raw.day, tzinfo=timezone.utc)
        if isinstance(raw, (int, float)):
            if not math.isfinite(raw):
                return None
            return datetime.fromtimestamp(raw / 1000.0, tz=timezone.utc)
        if isinstance(raw, str):
            text = raw.strip()
            if not text or text.lower() in RELATIVE_TOKENS:
                return None
            parsed = pd.to_datetime(text, errors="coerce", utc=True)
            if pd.isna(parsed):
                return None
            return parsed.to_pydatetime()
    except (ValueError, TypeError, OverflowError, OSError):
        return None
    return _from_wrapper(raw)


def parse_boolean(raw: object) -> bool:
    if raw is True:
        return True
    if raw is None or raw is False:
        return False
    return str(raw).strip().lower() in TRUE_TOKENS


def latest_date(values: Iterable[Optional[datetime]]) -> Optional[datetime]:
    # Null dates never win against a real date.
    dated = [value for value in values if value is not None]
    if not dated:
        return None
    return max(dated)
