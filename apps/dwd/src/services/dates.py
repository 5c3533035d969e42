from __future__ import annotations

import re
from datetime import date
from typing import Optional

_GERMAN_DATE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_german_date(value: str) -> Optional[date]:
    """Parse ``DD.MM.YYYY`` (single digit day/month allowed) into a date.

    Returns ``None`` for anything that is not a real calendar date, so a
    malformed cell can never turn into a plausible looking but wrong date.
    """
    match = _GERMAN_DATE.match(value.strip())
    if match is None:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_german_date(value: str) -> Optional[str]:
    """Convert ``18.03.2025`` into ``2025-03-18``; ``None`` when invalid."""
    parsed = parse_german_date(value)
    if parsed is None:
        return None
    return parsed.isoformat()


def parse_station_date(value: str) -> Optional[date]:
    """Accept either the upstream German form or the normalized ISO form."""
    text = value.strip()
    if _ISO_DATE.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    return parse_german_date(text)
