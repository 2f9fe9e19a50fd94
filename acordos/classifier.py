"""
Due-date classification of client records.

Every comparison is made on calendar days against an explicit ``today``;
nothing in this module reads the clock. Paid status suppresses both
due-today and overdue regardless of the date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Sequence

from acordos.records import ClientRecord
from acordos.shared import PAID_MARKER, SOURCE_MANUAL, normalize_label


class ViewFilter(str, Enum):
    ALL = "TODOS"
    DUE_TODAY = "VENCE_HOJE"
    OVERDUE = "ATRASADO"
    PAID = "PAGO"
    PENDING = "PENDENTE"


def is_paid(record: ClientRecord) -> bool:
    # Literal substring: "não pago" also reads as paid.
    return PAID_MARKER in normalize_label(record.status)


def is_due_today(record: ClientRecord, today: date) -> bool:
    if record.due_date is None:
        return False
    return record.due_date == today and not is_paid(record)


def is_overdue(record: ClientRecord, today: date) -> bool:
    if record.due_date is None:
        return False
    return record.due_date < today and not is_paid(record)


def days_late(record: ClientRecord, today: date) -> int:
    """Whole days between the due date and today; negative for future dates, 0 without a due date."""
    if record.due_date is None:
        return 0
    return (today - record.due_date).days


def badge(record: ClientRecord, today: date) -> str:
    if is_paid(record):
        return "paid"
    if is_overdue(record, today):
        return "overdue"
    if is_due_today(record, today):
        return "due_today"
    return "neutral"


def matches_filter(record: ClientRecord, view_filter: ViewFilter, today: date) -> bool:
    if view_filter is ViewFilter.PAID:
        return is_paid(record)
    if view_filter is ViewFilter.PENDING:
        return not is_paid(record)
    if view_filter is ViewFilter.DUE_TODAY:
        return is_due_today(record, today)
    if view_filter is ViewFilter.OVERDUE:
        return is_overdue(record, today)
    return True


def matches_query(record: ClientRecord, query: str) -> bool:
    needle = query.strip().lower()
    if not needle:
        return True
    return any(needle in value.lower() for value in (record.national_id, record.name, record.phone))


def filter_view(
    records: Iterable[ClientRecord],
    view_filter: ViewFilter = ViewFilter.ALL,
    query: str = "",
    *,
    today: date,
) -> list[ClientRecord]:
    return [r for r in records if matches_filter(r, view_filter, today) and matches_query(r, query)]


@dataclass(frozen=True)
class Summary:
    total: int
    pending: int
    paid: int
    due_today: int
    overdue: int
    manual: int

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "paid": self.paid,
            "due_today": self.due_today,
            "overdue": self.overdue,
            "manual": self.manual,
        }


def summarize(records: Sequence[ClientRecord], today: date) -> Summary:
    paid = sum(1 for r in records if is_paid(r))
    return Summary(
        total=len(records),
        pending=len(records) - paid,
        paid=paid,
        due_today=sum(1 for r in records if is_due_today(r, today)),
        overdue=sum(1 for r in records if is_overdue(r, today)),
        manual=sum(1 for r in records if r.source == SOURCE_MANUAL),
    )


def upcoming_due_counts(records: Sequence[ClientRecord], today: date, days: int = 7) -> list[tuple[date, int]]:
    """Unpaid records falling due on each of the next ``days`` calendar days, today first."""
    counts = []
    for offset in range(days):
        day = today + timedelta(days=offset)
        counts.append((day, sum(1 for r in records if r.due_date == day and not is_paid(r))))
    return counts
