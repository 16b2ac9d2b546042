"""
Typed cell accessors.

Rows are open-ended ``{column: scalar}`` records. Every numeric, date and
label coercion used by the filters and the chart engine goes through here.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import Any, Optional

import pandas as pd
from dateutil import parser as dateutil_parser

_HAS_DIGIT = re.compile(r"\d")

UNKNOWN_LABEL = "Unknown"


def is_missing(value: Any) -> bool:
    """None, NaN/NaT and empty strings count as missing cells."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NaT


def to_number(value: Any) -> float:
    """Coerce a cell to float, defaulting to 0 for anything non-numeric."""
    if value is None or isinstance(value, (date, datetime)):
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        out = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            out = float(text)
        except ValueError:
            return 0.0
    else:
        try:
            out = float(value)
        except (TypeError, ValueError):
            return 0.0
    if math.isnan(out) or math.isinf(out):
        return 0.0
    return out


def is_numeric(value: Any) -> bool:
    """True for numbers and for non-blank strings that parse as numbers."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return not math.isnan(value)
    if isinstance(value, str) and value.strip():
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a cell as a naive datetime.

    Only date objects and strings are candidates; bare numbers are never
    treated as dates. Timezone-aware values are normalised to naive UTC.
    """
    if value is None or value is pd.NaT or isinstance(value, bool):
        return None
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text or not _HAS_DIGIT.search(text):
            return None
        try:
            parsed = dateutil_parser.parse(text, default=datetime(2000, 1, 1))
        except (ValueError, OverflowError):
            return None
    else:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_calendar_date(value: Any) -> Optional[date]:
    parsed = parse_date(value)
    return parsed.date() if parsed else None


def looks_like_date(value: Any) -> bool:
    """Stricter check used by the classifier: short strings never qualify."""
    if isinstance(value, (date, datetime)):
        return True
    if isinstance(value, str):
        return len(value) > 6 and parse_date(value) is not None
    return False


def to_label(value: Any, default: str = UNKNOWN_LABEL) -> str:
    """String form of a cell for grouping; missing cells fall back to ``default``."""
    # Only missing cells take the default; 0 and False keep labels of their own.
    if is_missing(value):
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def normalize_token(value: Any) -> str:
    return str(value).strip().lower()
