from __future__ import annotations

import math
import re
import unicodedata
from datetime import date, datetime
from typing import Any

HEADER_SCAN_LIMIT = 25
HEADER_MIN_FILLED_CELLS = 3

NATIONAL_ID_MIN_DIGITS = 8
PHONE_MIN_DIGITS = 10
WHATSAPP_MIN_DIGITS = 12
COUNTRY_PREFIX = "55"
PAID_MARKER = "pago"

BREACH_MIN_DAYS_LATE = 6
LATE_WINDOW = (1, 5)

SOURCE_MANUAL = "manual"
SOURCE_IMPORTED = "imported"
VALID_SOURCES = (SOURCE_MANUAL, SOURCE_IMPORTED)

CANONICAL_FIELDS = (
    "national_id",
    "name",
    "amount",
    "due_date",
    "phone",
    "negotiation_type",
    "status",
    "notes",
)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9 ]")
_NON_DIGIT_RE = re.compile(r"\D")


def normalize_label(value: Any) -> str:
    """Case-fold, strip accents and collapse everything but [a-z0-9] to single spaces."""
    text = clean_text(value).lower()
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(_NON_ALNUM_RE.sub(" ", stripped).split())


def only_digits(value: Any) -> str:
    return _NON_DIGIT_RE.sub("", clean_text(value))


def is_blank(value: Any) -> bool:
    return clean_text(value) == ""


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).replace("\xa0", " ").replace("\x00", "").strip()


def format_br_date(value: date | None) -> str:
    return value.strftime("%d/%m/%Y") if value else ""
