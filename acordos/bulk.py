from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Iterable

from acordos.classifier import days_late, is_due_today, is_overdue, is_paid
from acordos.records import ClientRecord
from acordos.shared import BREACH_MIN_DAYS_LATE, COUNTRY_PREFIX, LATE_WINDOW, PHONE_MIN_DIGITS, only_digits


class SelectionMode(str, Enum):
    DUE_TODAY = "HOJE"
    BREACH = "QUEBRAS"
    LATE_1_5 = "ATRASADO_1_5"


def matches_mode(record: ClientRecord, mode: SelectionMode, today: date) -> bool:
    if is_paid(record):
        return False
    if mode is SelectionMode.DUE_TODAY:
        return is_due_today(record, today)
    if not is_overdue(record, today):
        return False
    late = days_late(record, today)
    if mode is SelectionMode.BREACH:
        return late >= BREACH_MIN_DAYS_LATE
    low, high = LATE_WINDOW
    return low <= late <= high


def outreach_phone(phone: str) -> str:
    """Digits with the Brazilian country prefix, or '' when too short to dial."""
    digits = only_digits(phone)
    if len(digits) < PHONE_MIN_DIGITS:
        return ""
    return digits if digits.startswith(COUNTRY_PREFIX) else f"{COUNTRY_PREFIX}{digits}"


def select_records(view: Iterable[ClientRecord], mode: SelectionMode, today: date) -> list[ClientRecord]:
    return [record for record in view if matches_mode(record, mode, today)]


def select_phones(view: Iterable[ClientRecord], mode: SelectionMode, today: date) -> list[str]:
    phones = []
    for record in select_records(view, mode, today):
        phone = outreach_phone(record.phone)
        if phone:
            phones.append(phone)
    return phones


def bulk_text(phones: Iterable[str]) -> str:
    return "\n".join(phones)
