from datetime import date

from config import settings
from utils.datetime_utils import parse_date, today_for_tz


def resolve_today(today: str | None) -> date:
    """The single "today" a request hands to the core: explicit override, else the configured zone's date."""
    if today:
        return parse_date(today)
    return today_for_tz(settings.TIMEZONE or None)
