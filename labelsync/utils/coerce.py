"""
Lenient conversions for upstream values (numbers as strings, epoch-ms dates, ...).
"""
import math
from datetime import datetime, timezone
from typing import Any, Iterable, Optional


def to_float(value: Any, default: float = 0.0) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def to_int(value: Any, default: int = 0) -> int:
    """Integer part of a number or numeric string ("2", "2.0", 2.7 -> 2)."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    number = to_float(value, default=math.nan)
    if math.isnan(number):
        return default
    return int(number)


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Parse ISO-8601 strings ("Z" suffix allowed), date-only strings, or epoch
    milliseconds. Returns a naive UTC datetime, or None when unparseable.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return to_datetime(int(text))
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def clean_text(value: Any) -> str:
    """Stripped string for str inputs, "" for anything else."""
    return value.strip() if isinstance(value, str) else ""


def join_names(parts: Iterable[Any]) -> str:
    return " ".join(str(p).strip() for p in parts if p and str(p).strip()).strip()


def optional_str(value: Any) -> Optional[str]:
    """str() of any present value (numbers included), None for None or ""."""
    if value is None or value == "":
        return None
    return str(value)
