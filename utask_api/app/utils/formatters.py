"""
Formatting helpers for values shown to users.

The marketplace targets Brazilian users, so money, dates and
distances follow pt-BR conventions: ``R$ 1.234,56``, ``31/12/2024``
and ``1,5 km``.  The helpers are pure functions and accept the loose
inputs stored in the database (ISO strings or ``datetime`` objects).
"""

from datetime import date, datetime
from typing import Union


DateLike = Union[str, date, datetime]


def _swap_separators(text: str) -> str:
    # "1,234.56" -> "1.234,56"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_currency(value: float) -> str:
    """Format a value as Brazilian reais, e.g. ``R$ 1.234,56``."""
    formatted = _swap_separators(f"{abs(value):,.2f}")
    sign = "-" if value < 0 else ""
    return f"{sign}R$ {formatted}"


def _parse(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # SQLite's CURRENT_TIMESTAMP uses a space instead of "T"
    return datetime.fromisoformat(text.replace(" ", "T", 1))


def format_date(value: DateLike | None) -> str:
    """Return ``dd/mm/yyyy``; empty input gives an empty string.

    Service dates are free text, so a value that is not an ISO date is
    returned unchanged.
    """
    if not value:
        return ""
    try:
        return _parse(value).strftime("%d/%m/%Y")
    except ValueError:
        return str(value)


def format_distance(distance_km: float) -> str:
    """Format a distance in kilometres.

    Distances under one kilometre are shown in whole metres
    (``350 m``), longer ones with one decimal (``1,5 km``).
    """
    if distance_km < 1:
        return f"{round(distance_km * 1000)} m"
    return f"{distance_km:.1f}".replace(".", ",") + " km"
