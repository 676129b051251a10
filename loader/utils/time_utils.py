"""Horodatages: heure locale stockée + identifiant de fuseau."""
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo


def format_offset(offset: timedelta) -> str:
    """Formate un décalage fixe: `Z`, `+02:00`, `-05:30`, `+05:45:30`."""
    if offset == timedelta(0):
        return "Z"

    sign = "+" if offset > timedelta(0) else "-"
    total_seconds = abs(int(offset.total_seconds()))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    result = f"{sign}{hours:02d}:{minutes:02d}"
    if seconds:
        result += f":{seconds:02d}"
    return result


def resolve_time_zone(value: Optional[datetime], default_zone_id: str) -> Optional[str]:
    """
    Identifiant de fuseau à stocker pour un horodatage.

    - fuseau nommé (ZoneInfo) → son identifiant (`Europe/Berlin`)
    - décalage fixe → sa forme texte (`+02:00`)
    - horodatage naïf → fuseau local du processus
    """
    if value is None:
        return None

    tzinfo = value.tzinfo
    if isinstance(tzinfo, ZoneInfo):
        return tzinfo.key

    offset = value.utcoffset()
    if offset is not None:
        return format_offset(offset)

    return default_zone_id


def to_local(value: Optional[datetime]) -> Optional[datetime]:
    """Heure murale sans fuseau (la zone est stockée à part)."""
    if value is None:
        return None
    return value.replace(tzinfo=None)
