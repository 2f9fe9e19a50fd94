"""
Header-row location and column mapping for human-authored collection sheets.

Exports arrive with title banners, merged cells and blank rows above the real
table, and with column labels nobody agreed on ("CPF/CNPJ", "Nome do
Cliente", "Dt. Venc.", "Vlr Parcela"). Both passes here work on normalised
label text (see ``acordos.shared.normalize_label``):

    header_idx = detect_header_row(raw_rows)
    mapping    = map_columns(raw_rows[header_idx])

The column rules are plain data so each locale can extend ``FIELD_RULES``
without touching the matching code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from acordos.shared import (
    CANONICAL_FIELDS,
    HEADER_MIN_FILLED_CELLS,
    HEADER_SCAN_LIMIT,
    clean_text,
    is_blank,
    normalize_label,
)


@dataclass(frozen=True)
class LabelRule:
    exact: tuple[str, ...] = ()
    contains: tuple[str, ...] = ()

    def matches(self, label: str) -> bool:
        if label in self.exact:
            return True
        return any(needle in label for needle in self.contains)


NATIONAL_ID_RULE = LabelRule(exact=("cpf",), contains=("cpf", "cnpj", "documento"))
NAME_RULE = LabelRule(exact=("nome",), contains=("nome", "cliente"))

FIELD_RULES: tuple[tuple[str, LabelRule], ...] = (
    ("national_id", NATIONAL_ID_RULE),
    ("name", NAME_RULE),
    ("amount", LabelRule(exact=("valor",), contains=("valor", "vlr", "parcela", "acordo"))),
    ("due_date", LabelRule(exact=("data",), contains=("venc", "vencimento", "data venc", "dt venc", "vcto"))),
    ("phone", LabelRule(contains=("tel", "fone", "cel", "contato", "whats"))),
    ("negotiation_type", LabelRule(contains=("tipo", "negoci", "tipo de negoci", "modalidade"))),
    ("status", LabelRule(exact=("status",), contains=("status", "situacao", "sit", "pag"))),
    ("notes", LabelRule(contains=("obs", "observacao", "coment", "anot"))),
)


def looks_like_national_id_label(cell: Any) -> bool:
    return NATIONAL_ID_RULE.matches(normalize_label(cell))


def looks_like_name_label(cell: Any) -> bool:
    return NAME_RULE.matches(normalize_label(cell))


def detect_header_row(rows: Sequence[Sequence[Any]], scan_limit: int = HEADER_SCAN_LIMIT) -> int:
    """
    Return the index of the header row inside ``rows``.

    The first row (within ``scan_limit``) holding both a national-id label
    and a name label wins. Otherwise the first row with at least three
    filled cells, otherwise 0.
    """
    window = list(rows[:scan_limit])

    for idx, row in enumerate(window):
        has_id = False
        has_name = False
        for cell in row or ():
            if not has_id and looks_like_national_id_label(cell):
                has_id = True
            if not has_name and looks_like_name_label(cell):
                has_name = True
        if has_id and has_name:
            return idx

    for idx, row in enumerate(window):
        filled = sum(1 for cell in row or () if not is_blank(cell))
        if filled >= HEADER_MIN_FILLED_CELLS:
            return idx

    return 0


def header_keys(header_row: Sequence[Any]) -> list[str]:
    """Unique keys for the header-keyed pass, in sheet column order."""
    keys: list[str] = []
    used: set[str] = set()
    for cell in header_row:
        base = clean_text(cell) or "__EMPTY"
        key = base
        suffix = 0
        while key in used:
            suffix += 1
            key = f"{base}_{suffix}"
        used.add(key)
        keys.append(key)
    return keys


@dataclass(frozen=True)
class ColumnMapping:
    """Canonical field -> original header key (absent fields map to None)."""

    columns: dict[str, str | None]

    def column_for(self, field_name: str) -> str | None:
        return self.columns.get(field_name)

    def resolved(self) -> dict[str, str]:
        return {name: column for name, column in self.columns.items() if column is not None}

    def missing(self) -> list[str]:
        return [name for name in CANONICAL_FIELDS if self.columns.get(name) is None]


def map_columns(
    headers: Sequence[Any],
    rules: Sequence[tuple[str, LabelRule]] = FIELD_RULES,
) -> ColumnMapping:
    normalised = [(str(header), normalize_label(header)) for header in headers]
    columns: dict[str, str | None] = {name: None for name in CANONICAL_FIELDS}
    for field_name, rule in rules:
        if columns.get(field_name) is not None:
            continue
        for original, label in normalised:
            if rule.matches(label):
                columns[field_name] = original
                break
    return ColumnMapping(columns=columns)
