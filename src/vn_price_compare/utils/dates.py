from __future__ import annotations

from datetime import date, datetime

_INPUT_FORMATS = ("%Y-%m-%d", "%d/%m/%Y")


def to_iso_date(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def to_slash_date(day: date) -> str:
    return f"{day.day:02d}/{day.month:02d}/{day.year:04d}"


def parse_date(text: str) -> date:
    """Aceita YYYY-MM-DD ou DD/MM/YYYY."""
    value = text.strip()
    for fmt in _INPUT_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date: {text!r} (expected YYYY-MM-DD or DD/MM/YYYY)")
