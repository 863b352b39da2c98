"""ISO-8601 duration helpers for recipe times."""

import re
from typing import Optional

_ISO_DURATION = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$", re.IGNORECASE)


def duration_minutes(iso: Optional[str]) -> Optional[int]:
    """Return whole minutes for a ``PT#H#M#S`` string, or None if it doesn't match."""
    if not iso or not isinstance(iso, str):
        return None
    match = _ISO_DURATION.match(iso.strip())
    if not match:
        return None
    hours, minutes = match.group(1), match.group(2)
    return int(hours or 0) * 60 + int(minutes or 0)


def format_minutes(minutes: int) -> Optional[str]:
    """Render minutes as ``"{h}h {m}m"``, omitting zero parts."""
    hours, mins = divmod(minutes, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if mins:
        parts.append(f"{mins}m")
    return " ".join(parts) or None


def parse_duration(iso: Optional[str]) -> Optional[str]:
    """
    Convert an ISO-8601 duration to a display string.

    Strings that are not ISO durations are assumed to be human readable
    already and are returned unchanged.

    Examples:
        >>> parse_duration("PT1H30M")
        '1h 30m'
        >>> parse_duration("About 20 minutes")
        'About 20 minutes'
    """
    if iso is None or iso == "":
        return None
    if not isinstance(iso, str):
        return str(iso)
    minutes = duration_minutes(iso)
    if minutes is None:
        return iso
    return format_minutes(minutes)


def residual_time(
    prep: Optional[str], cook: Optional[str], total: Optional[str]
) -> Optional[str]:
    """
    Time left over once prep and cook are subtracted from the total.

    Captures unattended time such as freezing or resting. Missing prep/cook
    count as zero; a missing total yields None, as does a residual <= 0
    (e.g. totals that assume steps run in parallel).
    """
    total_minutes = duration_minutes(total)
    if not total_minutes:
        return None
    remaining = total_minutes - (duration_minutes(prep) or 0) - (duration_minutes(cook) or 0)
    if remaining <= 0:
        return None
    return format_minutes(remaining)
