"""
loader.py: workbook reader for collection exports

Supports: .xlsx .xlsm .xls .ods .csv .txt

Public API:
    workbook = load_workbook_file("path/to/export.xlsx")
    workbook.sheet_names        # every sheet, in workbook order
    rows = workbook.rows()      # first sheet, row-major raw cells
    rows = workbook.rows("Acordos março")

Cells keep their native types where the format has them (datetime, int,
float); text formats yield strings, except plain numeric text, which
becomes int/float. Nothing here knows about headers:
the raw rows go straight to acordos.header_detection.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import chardet
import openpyxl
import pandas as pd

from acordos.errors import ImportFileError

logger = logging.getLogger(__name__)

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS     = {".csv", ".txt"}
OPENPYXL_FORMATS = {".xlsx", ".xlsm"}
PANDAS_FORMATS   = {".xls", ".ods"}
ALL_FORMATS      = TEXT_FORMATS | OPENPYXL_FORMATS | PANDAS_FORMATS

TEXT_SHEET_NAME = "Sheet1"

# No leading zeros, so ids like "01234567890" keep their digits.
PLAIN_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?")


# ══════════════════════════════════════════════════════════════════════════════
# TEXT DECODING
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw)
    detected = result.get("encoding")
    return detected or "utf-8"


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Strategy per line: UTF-8, then the detected encoding, then latin-1,
    then CP1252 with replacement. Null bytes are stripped. CRLF and bare CR
    line endings come back as LF.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.splitlines():
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc:
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    text = "\n".join(decoded_lines)
    return text.lstrip("\ufeff")


def _detect_delimiter(text: str) -> str:
    sample_lines = [line for line in text.splitlines() if line.strip()][:25]
    if not sample_lines:
        return ","
    try:
        return csv.Sniffer().sniff("\n".join(sample_lines), delimiters=",;\t|").delimiter
    except csv.Error:
        pass
    counts = {delim: sum(line.count(delim) for line in sample_lines) for delim in (",", ";", "\t", "|")}
    return max(counts, key=counts.get) if any(counts.values()) else ","


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT READERS
# ══════════════════════════════════════════════════════════════════════════════

def _trim_trailing_empty_cells(row: list[Any]) -> list[Any]:
    trimmed = list(row)
    while trimmed and (trimmed[-1] is None or str(trimmed[-1]).strip() == ""):
        trimmed.pop()
    return trimmed


def _coerce_text_cell(value: str) -> Any:
    """Plain numeric text becomes int/float, like a spreadsheet app opening the CSV."""
    text = value.strip()
    if not PLAIN_NUMBER_RE.fullmatch(text):
        return value
    return float(text) if "." in text else int(text)


def _read_text_sheets(raw: bytes) -> dict[str, list[list[Any]]]:
    text = _read_text_safely(raw, _detect_encoding(raw))
    delimiter = _detect_delimiter(text)
    try:
        rows = [
            _trim_trailing_empty_cells([_coerce_text_cell(cell) for cell in row])
            for row in csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        ]
    except csv.Error as exc:
        raise ImportFileError(f"Could not read text file: {exc}") from exc
    logger.debug("Text import: delimiter %r, %d rows", delimiter, len(rows))
    return {TEXT_SHEET_NAME: rows}


def _read_openpyxl_sheets(raw: bytes) -> dict[str, list[list[Any]]]:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
    except Exception as exc:
        raise ImportFileError(f"Could not read workbook: {exc}") from exc

    sheets: dict[str, list[list[Any]]] = {}
    try:
        for sheet in workbook.worksheets:
            sheets[sheet.title] = [
                _trim_trailing_empty_cells(["" if value is None else value for value in values])
                for values in sheet.iter_rows(values_only=True)
            ]
    finally:
        workbook.close()
    return sheets


def _read_pandas_sheets(raw: bytes, suffix: str) -> dict[str, list[list[Any]]]:
    engine = "odf" if suffix == ".ods" else "xlrd"
    try:
        frames = pd.read_excel(io.BytesIO(raw), sheet_name=None, header=None, engine=engine)
    except ImportError as exc:
        extra = "odfpy" if suffix == ".ods" else "xlrd"
        raise ImportFileError(f"{suffix} files require {extra} (run: pip install {extra})") from exc
    except Exception as exc:
        raise ImportFileError(f"Could not read workbook: {exc}") from exc

    sheets: dict[str, list[list[Any]]] = {}
    for name, df in frames.items():
        sheets[str(name)] = [
            _trim_trailing_empty_cells(["" if pd.isna(value) else value for value in row])
            for row in df.itertuples(index=False, name=None)
        ]
    return sheets


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class LoadedWorkbook:
    filename: str
    detected_format: str
    sheets: dict[str, list[list[Any]]] = field(default_factory=dict)

    @property
    def sheet_names(self) -> list[str]:
        return list(self.sheets)

    def rows(self, sheet_name: Optional[str] = None) -> list[list[Any]]:
        """Raw rows of ``sheet_name`` (first sheet when omitted; [] for a sheetless file)."""
        if sheet_name is None:
            if not self.sheets:
                return []
            sheet_name = self.sheet_names[0]
        if sheet_name not in self.sheets:
            raise ImportFileError(f"Sheet '{sheet_name}' not found. Available: {self.sheet_names}")
        return self.sheets[sheet_name]


def load_workbook_bytes(raw: bytes, filename: str) -> LoadedWorkbook:
    suffix = Path(filename).suffix.lower()
    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ImportFileError(f"Unsupported format '{suffix or '[missing extension]'}'. Supported: {supported}")

    if suffix in TEXT_FORMATS:
        sheets = _read_text_sheets(raw)
    elif suffix in OPENPYXL_FORMATS:
        sheets = _read_openpyxl_sheets(raw)
    else:
        sheets = _read_pandas_sheets(raw, suffix)

    logger.info("Loaded %s: %d sheet(s)", filename, len(sheets))
    return LoadedWorkbook(filename=filename, detected_format=suffix.lstrip("."), sheets=sheets)


def load_workbook_file(path: "str | Path") -> LoadedWorkbook:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ImportFileError(f"Could not read file: {exc}") from exc
    return load_workbook_bytes(raw, path.name)
