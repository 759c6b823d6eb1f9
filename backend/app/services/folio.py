"""Quote folio numbering.

A folio looks like ``BHL070425C12``: prefix, creation date as DDMMYY in the
distributor's local timezone, a literal ``C`` and a per-day sequence number
that is not zero-padded.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.app.models.quote import Quote
from backend.app.services.exceptions import FolioAllocationError

SEQUENCE_SEPARATOR = "C"


def local_date(now: datetime, tz_name: str) -> date:
    """Calendar date of *now* in *tz_name*; naive datetimes are taken as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=ZoneInfo("UTC"))
    return now.astimezone(ZoneInfo(tz_name)).date()


def local_day_bounds(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """UTC instants where local *day* starts and where the next day starts."""
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def folio_date_prefix(day: date, prefix: str = "BHL") -> str:
    return f"{prefix}{day:%d%m%y}"


def parse_sequence(folio: str, date_prefix: str) -> int:
    """Return the full numeric suffix after ``<date_prefix>C``."""
    head = date_prefix + SEQUENCE_SEPARATOR
    digits = folio[len(head):] if folio.startswith(head) else ""
    if not digits.isdigit():
        raise FolioAllocationError(f"Malformed folio in storage: {folio!r}")
    return int(digits)


def find_last_folio(db: Session, date_prefix: str) -> str | None:
    """Highest-numbered folio issued for *date_prefix*, or None.

    Sorting by length first keeps ``...C10`` above ``...C9``; within equal
    lengths the plain string order matches numeric order.
    """
    row = (
        db.query(Quote.folio)
        .filter(Quote.folio.like(f"{date_prefix}{SEQUENCE_SEPARATOR}%"))
        .order_by(func.length(Quote.folio).desc(), Quote.folio.desc())
        .first()
    )
    return row[0] if row else None


def next_folio(db: Session, *, day: date, prefix: str = "BHL") -> str:
    date_prefix = folio_date_prefix(day, prefix)
    last = find_last_folio(db, date_prefix)
    sequence = 1 if last is None else parse_sequence(last, date_prefix) + 1
    return f"{date_prefix}{SEQUENCE_SEPARATOR}{sequence}"
