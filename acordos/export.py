from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Iterable, Sequence

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from acordos.records import ClientRecord
from acordos.shared import format_br_date

EXPORT_HEADERS = (
    "CPF",
    "Nome",
    "Valor",
    "Vencimento",
    "Telefone",
    "Tipo de negociação",
    "Status",
    "Obs",
    "Promessa",
    "Origem",
)
XLSX_SHEET_NAME = "Clientes"
HEADER_COLOR = "1565C0"
NOTES_COLUMN = EXPORT_HEADERS.index("Obs") + 1


def export_rows(records: Iterable[ClientRecord]) -> list[list[Any]]:
    return [
        [
            record.national_id,
            record.name,
            record.amount,
            format_br_date(record.due_date),
            record.phone,
            record.negotiation_type,
            record.status,
            record.notes,
            format_br_date(record.promise_date),
            record.source,
        ]
        for record in records
    ]


def _csv_field(value: Any, delimiter: str) -> str:
    text = "" if value is None else str(value)
    if delimiter in text or '"' in text or "\n" in text or "\r" in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def to_csv_text(rows: Sequence[Sequence[Any]], delimiter: str = ",") -> str:
    """Header line plus one line per row; a field is quoted only when it has to be."""
    lines = [delimiter.join(_csv_field(value, delimiter) for value in EXPORT_HEADERS)]
    lines.extend(delimiter.join(_csv_field(value, delimiter) for value in row) for row in rows)
    return "\n".join(lines)


def _column_widths(rows: Sequence[Sequence[Any]], min_width: int = 10, max_width: int = 50) -> list[int]:
    widths = [max(min_width, len(header) + 2) for header in EXPORT_HEADERS]
    for row in rows[:300]:
        for i, value in enumerate(row):
            widths[i] = max(widths[i], min(max_width, len(str(value)) + 2))
    return widths


def build_workbook(rows: Sequence[Sequence[Any]]) -> openpyxl.Workbook:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = XLSX_SHEET_NAME
    ws.append(list(EXPORT_HEADERS))
    for row in rows:
        ws.append(list(row))

    font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor=HEADER_COLOR)
    for cell in ws[1]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center")
    ws.freeze_panes = "A2"
    for i, width in enumerate(_column_widths(rows), start=1):
        ws.column_dimensions[get_column_letter(i)].width = width
    for cell in ws[get_column_letter(NOTES_COLUMN)][1:]:
        cell.alignment = Alignment(wrap_text=True, vertical="top")
    return wb


def to_xlsx_bytes(rows: Sequence[Sequence[Any]]) -> bytes:
    buffer = io.BytesIO()
    build_workbook(rows).save(buffer)
    return buffer.getvalue()


def write_xlsx(rows: Sequence[Sequence[Any]], path: "str | Path") -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    build_workbook(rows).save(path)
    return path
