import re

from autofix.errors import InvalidRequest

MINUTES_PER_DAY = 24 * 60

_HHMM_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")


def parse_hhmm(value: str, allow_end_of_day: bool = False) -> int:
    """Convert a zero-padded 24-hour ``HH:MM`` string to minutes since midnight.

    ``24:00`` is accepted only with ``allow_end_of_day`` (a closing time).
    """
    match = _HHMM_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise InvalidRequest(f"Time must use the HH:MM format, got {value!r}.")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if allow_end_of_day and hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if hours > 23 or minutes > 59:
        raise InvalidRequest(f"Time {value!r} is not a valid time of day.")

    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise InvalidRequest(f"Minute of day out of range: {minutes}.")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
