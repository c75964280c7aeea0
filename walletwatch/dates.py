# walletwatch/dates.py
import logging
from datetime import date, datetime, timezone
from typing import Optional, Tuple

logger = logging.getLogger("walletwatch.dates")

# Date field validation on the server expects this format
FILEMAKER_DATE_FORMAT = "%m/%d/%Y"

DATE_FORMATS = ["%Y-%m-%d", "%m/%d/%Y"]
TIMESTAMP_FORMATS = ["%Y-%m-%d %H:%M:%S", "%m/%d/%Y %H:%M:%S", "%Y-%m-%dT%H:%M:%S"]


def format_filemaker_date(value: date) -> str:
    return value.strftime(FILEMAKER_DATE_FORMAT)


def parse_date(s) -> Optional[date]:
    """Try each known date format, None if none match"""
    if not s:
        return None
    s = str(s).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def parse_record_date(s, record_id=None) -> Tuple[date, bool]:
    """Parse a record's date field, falling back to today.

    Returns ``(date, used_fallback)``. A record with a missing or unreadable
    date is kept and dated today instead of failing the whole fetch.
    """
    parsed = parse_date(s)
    if parsed is not None:
        return parsed, False
    if s:
        logger.warning(f"Record {record_id}: unparseable date {s!r}, using today")
    return date.today(), True


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(s) -> Optional[datetime]:
    """Parse a creation timestamp; ISO-8601 first, then the fallback patterns.

    Aware values are converted to naive UTC so all timestamps compare.
    """
    if not s:
        return None
    s = str(s).strip()
    iso = s[:-1] + "+00:00" if s.endswith("Z") else s
    try:
        return _naive_utc(datetime.fromisoformat(iso))
    except ValueError:
        pass
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    logger.warning(f"Unparseable creation timestamp {s!r}")
    return None
