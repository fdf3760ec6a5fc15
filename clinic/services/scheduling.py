from datetime import datetime
from typing import Tuple
import re

from ..core.exceptions import InvalidInputError

_SLOT_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")


def parse_slot(slot: str) -> Tuple[int, int]:
    """Convert a 12-hour clock slot such as ``"2:30 PM"`` to ``(14, 30)``.

    12 AM is midnight (hour 0) and 12 PM is noon (hour 12).
    """
    match = _SLOT_PATTERN.match(slot or "")
    if not match:
        raise InvalidInputError(f"Invalid time slot '{slot}'. Expected format 'h:mm AM|PM'")

    hours, minutes, modifier = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if not 1 <= hours <= 12 or not 0 <= minutes <= 59:
        raise InvalidInputError(f"Invalid time slot '{slot}'")

    if modifier == "PM" and hours != 12:
        hours += 12
    elif modifier == "AM" and hours == 12:
        hours = 0

    return hours, minutes


def apply_slot(date_time: datetime, slot: str) -> datetime:
    """Keep the calendar date of ``date_time`` and move it to ``slot``."""
    hours, minutes = parse_slot(slot)
    return date_time.replace(hour=hours, minute=minutes, second=0, microsecond=0)
