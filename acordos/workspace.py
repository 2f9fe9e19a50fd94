"""
Host-side state holder.

A Workspace owns the three inputs of the working set (manual clients, the
last imported sheet, the promise store), writes the persisted ones through
a single choke point, and recomposes the working set after every change.
Hosts (CLI, Streamlit page) only talk to this class.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

from acordos.bulk import SelectionMode, select_phones
from acordos.classifier import Summary, ViewFilter, filter_view, summarize, upcoming_due_counts
from acordos.errors import ValidationError
from acordos.export import export_rows
from acordos.loader import LoadedWorkbook, load_workbook_file
from acordos.normalizer import ImportResult, normalize_sheet, parse_brl_amount, parse_due_date
from acordos.promises import (
    PromiseDraft,
    PromiseEntry,
    PromiseStore,
    PromiseView,
    draft_for_client,
    filter_promises,
    listing,
    promise_counts,
    save_promise,
)
from acordos.reconcile import compose
from acordos.records import ClientRecord
from acordos.shared import SOURCE_MANUAL, clean_text
from acordos.storage import JsonStateRepository, manual_clients_repository, promises_repository

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class Workspace:
    def __init__(self, state_dir: "str | Path | None" = None) -> None:
        self.manual_repository: Optional[JsonStateRepository] = None
        self.promise_repository: Optional[JsonStateRepository] = None
        if state_dir is not None:
            self.manual_repository = manual_clients_repository(Path(state_dir))
            self.promise_repository = promises_repository(Path(state_dir))

        self.manual_clients: list[ClientRecord] = (
            self.manual_repository.load() if self.manual_repository else []
        )
        self.promises: PromiseStore = (
            self.promise_repository.load() if self.promise_repository else PromiseStore()
        )
        self.workbook: Optional[LoadedWorkbook] = None
        self.sheet_name: Optional[str] = None
        self.import_result: Optional[ImportResult] = None
        self.imported: list[ClientRecord] = []
        self.records: list[ClientRecord] = []
        self.last_persist_ok = True
        self._recompose()

    # ── persistence ──────────────────────────────────────────────────────
    def _persist(self, repository: Optional[JsonStateRepository], value: Any) -> bool:
        if repository is None:
            self.last_persist_ok = True
            return True
        try:
            repository.save(value)
        except OSError as exc:
            logger.error("Could not write %s: %s", repository.path, exc)
            self.last_persist_ok = False
            return False
        self.last_persist_ok = True
        return True

    def _recompose(self) -> None:
        self.records = compose(self.manual_clients, self.imported, self.promises)

    # ── import ───────────────────────────────────────────────────────────
    def load_workbook(self, workbook: LoadedWorkbook, sheet_name: Optional[str] = None) -> ImportResult:
        """Replace the imported rows with ``sheet_name`` of ``workbook`` (first sheet by default)."""
        rows = workbook.rows(sheet_name)
        result = normalize_sheet(rows)
        self.workbook = workbook
        self.sheet_name = sheet_name if sheet_name is not None else (workbook.sheet_names or [None])[0]
        self.import_result = result
        self.imported = result.records
        self._recompose()
        logger.info(
            "Imported %d row(s) from %s [%s], dropped %d",
            len(result.records),
            workbook.filename,
            self.sheet_name,
            result.dropped_rows,
        )
        return result

    def import_file(self, path: "str | Path", sheet_name: Optional[str] = None) -> ImportResult:
        return self.load_workbook(load_workbook_file(path), sheet_name)

    def select_sheet(self, sheet_name: str) -> ImportResult:
        if self.workbook is None:
            raise ValidationError("No workbook loaded.")
        return self.load_workbook(self.workbook, sheet_name)

    # ── manual clients ───────────────────────────────────────────────────
    def add_manual_client(
        self,
        *,
        name: str,
        phone: str,
        due_date: "date | str | None",
        national_id: str = "",
        amount: Any = "",
    ) -> ClientRecord:
        name = clean_text(name)
        phone = clean_text(phone)
        if not name or not phone:
            raise ValidationError("Fill in at least name and phone.")
        due = parse_due_date(due_date)
        if due is None:
            raise ValidationError("Choose the due date.")

        record = ClientRecord(
            id=uuid.uuid4().hex,
            national_id=clean_text(national_id),
            name=name,
            amount=parse_brl_amount(amount),
            due_date=due,
            phone=phone,
            source=SOURCE_MANUAL,
            created_at=_utc_timestamp(),
        )
        self.manual_clients = [record] + self.manual_clients
        self._persist(self.manual_repository, self.manual_clients)
        self._recompose()
        return record

    def clear_manual_clients(self) -> int:
        removed = len(self.manual_clients)
        self.manual_clients = []
        self._persist(self.manual_repository, self.manual_clients)
        self._recompose()
        return removed

    # ── promises ─────────────────────────────────────────────────────────
    def set_promise(self, **form: Any) -> str:
        key = save_promise(self.promises, **form)
        self._persist(self.promise_repository, self.promises)
        self._recompose()
        return key

    def remove_promise(self, key: str) -> bool:
        removed = self.promises.remove(key)
        if removed:
            self._persist(self.promise_repository, self.promises)
            self._recompose()
        return removed

    def promise_draft(self, record: ClientRecord) -> PromiseDraft:
        return draft_for_client(record, self.promises)

    def promise_entries(self, view: PromiseView = PromiseView.ALL, *, today: date) -> list[PromiseEntry]:
        return filter_promises(listing(self.promises), view, today)

    def promise_counts(self, today: date) -> dict[str, int]:
        return promise_counts(listing(self.promises), today)

    # ── views ────────────────────────────────────────────────────────────
    def view(self, view_filter: ViewFilter = ViewFilter.ALL, query: str = "", *, today: date) -> list[ClientRecord]:
        return filter_view(self.records, view_filter, query, today=today)

    def summary(self, today: date) -> Summary:
        return summarize(self.records, today)

    def upcoming(self, today: date, days: int = 7) -> list[tuple[date, int]]:
        return upcoming_due_counts(self.records, today, days)

    def bulk_phones(
        self,
        mode: SelectionMode,
        view_filter: ViewFilter = ViewFilter.ALL,
        query: str = "",
        *,
        today: date,
    ) -> list[str]:
        return select_phones(self.view(view_filter, query, today=today), mode, today)

    def export_rows(self) -> list[list[Any]]:
        return export_rows(self.records)
