from __future__ import annotations

import logging
import math
import numbers
import re
import warnings
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Sequence

import pandas as pd

from acordos.header_detection import ColumnMapping, detect_header_row, header_keys, map_columns
from acordos.records import Amount, ClientRecord
from acordos.shared import SOURCE_IMPORTED, clean_text, is_blank

logger = logging.getLogger(__name__)

DMY_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
BRL_NUMBER_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?$")

# Windows 1900 date system. Serials up to 60 sit before the phantom
# 1900-02-29, so they count from one day later.
EXCEL_ORIGIN = "1899-12-30"
EXCEL_ORIGIN_PRE_LEAP_BUG = "1899-12-31"
EXCEL_LEAP_BUG_SERIAL = 60


@dataclass
class ImportResult:
    records: list[ClientRecord]
    header_row: int
    mapping: ColumnMapping
    dropped_rows: int = 0
    warnings: list[str] = field(default_factory=list)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def excel_serial_to_date(serial: float) -> date | None:
    number = float(serial)
    if math.isnan(number) or math.isinf(number):
        return None
    days = math.floor(number)
    if days < 1:
        return None
    origin = EXCEL_ORIGIN_PRE_LEAP_BUG if days <= EXCEL_LEAP_BUG_SERIAL else EXCEL_ORIGIN
    try:
        parsed = pd.to_datetime(days, unit="D", origin=origin, errors="coerce")
    except (OverflowError, ValueError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def _parse_generic_date(text: str) -> date | None:
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            parsed = pd.to_datetime(text, errors="coerce")
    except (OverflowError, TypeError, ValueError):
        return None
    if pd.isna(parsed) or not isinstance(parsed, pd.Timestamp):
        return None
    if parsed.tzinfo is not None:
        return parsed.to_pydatetime().astimezone().date()
    return parsed.date()


def parse_due_date(value: Any) -> date | None:
    """
    Turn a due-date cell into a calendar day.

    Priority: native date/datetime, spreadsheet serial number, DD/MM/YYYY
    text, then generic date parsing. Anything else yields None.
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if _is_number(value):
        return excel_serial_to_date(value)

    text = clean_text(value)
    if not text:
        return None

    match = DMY_RE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    return _parse_generic_date(text)


def raw_amount(value: Any) -> Amount:
    if _is_number(value):
        if isinstance(value, numbers.Integral):
            return int(value)
        number = float(value)
        return "" if math.isnan(number) else number
    return clean_text(value)


def parse_brl_amount(value: Any) -> Amount:
    """'1.234,56' -> 1234.56. Blank gives ''; anything unparseable comes back as typed."""
    if _is_number(value):
        return raw_amount(value)
    text = clean_text(value)
    if not text:
        return ""
    candidate = text.replace(".", "").replace(",", ".")
    if BRL_NUMBER_RE.fullmatch(candidate):
        return float(candidate)
    return text


def normalize_row(raw: Mapping[str, Any], mapping: ColumnMapping, record_id: str = "") -> ClientRecord | None:
    def pick(field_name: str) -> Any:
        column = mapping.column_for(field_name)
        if column is None:
            return ""
        return raw.get(column, "")

    national_id = clean_text(pick("national_id"))
    name = clean_text(pick("name"))
    phone = clean_text(pick("phone"))
    if not (national_id or name or phone):
        return None

    return ClientRecord(
        id=record_id,
        national_id=national_id,
        name=name,
        amount=raw_amount(pick("amount")),
        due_date=parse_due_date(pick("due_date")),
        phone=phone,
        negotiation_type=clean_text(pick("negotiation_type")),
        status=clean_text(pick("status")),
        notes=clean_text(pick("notes")),
        source=SOURCE_IMPORTED,
    )


def keyed_rows(rows: Sequence[Sequence[Any]], header_idx: int) -> tuple[list[str], list[dict[str, Any]]]:
    """Second pass: every row below the header as a header-keyed dict, blank rows skipped."""
    body = rows[header_idx + 1 :]
    width = max([len(rows[header_idx])] + [len(row) for row in body])
    header = list(rows[header_idx]) + [""] * (width - len(rows[header_idx]))
    keys = header_keys(header)

    keyed: list[dict[str, Any]] = []
    for row in body:
        cells = list(row) + [""] * (width - len(row))
        if all(is_blank(cell) for cell in cells):
            continue
        keyed.append(dict(zip(keys, cells)))
    return keys, keyed


def normalize_sheet(rows: Sequence[Sequence[Any]]) -> ImportResult:
    rows = [list(row or ()) for row in rows]
    if not rows:
        return ImportResult(records=[], header_row=0, mapping=map_columns([]), warnings=["Sheet is empty"])

    header_idx = detect_header_row(rows)
    keys, keyed = keyed_rows(rows, header_idx)
    mapping = map_columns(keys)

    records: list[ClientRecord] = []
    dropped = 0
    for raw in keyed:
        record = normalize_row(raw, mapping, record_id=str(len(records) + 1))
        if record is None:
            dropped += 1
            continue
        records.append(record)

    result_warnings: list[str] = []
    missing = mapping.missing()
    if missing:
        result_warnings.append(f"No column found for: {', '.join(missing)}")

    logger.debug(
        "Header row %d, mapped %s, kept %d rows, dropped %d",
        header_idx,
        mapping.resolved(),
        len(records),
        dropped,
    )
    return ImportResult(
        records=records,
        header_row=header_idx,
        mapping=mapping,
        dropped_rows=dropped,
        warnings=result_warnings,
    )
