from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from acordos.identity import identity_key_for
from acordos.promises import PromiseStore
from acordos.records import ClientRecord
from acordos.shared import SOURCE_IMPORTED, SOURCE_MANUAL


def _overlay(record: ClientRecord, source: str, promises: PromiseStore) -> ClientRecord:
    key = identity_key_for(record)
    return replace(record, source=source, promise_date=promises.date_for(key) if key else None)


def compose(
    manual: Iterable[ClientRecord],
    imported: Iterable[ClientRecord],
    promises: PromiseStore,
) -> list[ClientRecord]:
    """
    Build the working set: manual clients first, then imported rows.

    Each source keeps its own order and is stamped with its origin. The
    promise date comes from the payload at the record's identity key and is
    cleared when there is none, so composing again over an already composed
    list gives the same result. Inputs are left untouched.
    """
    working = [_overlay(record, SOURCE_MANUAL, promises) for record in manual]
    working.extend(_overlay(record, SOURCE_IMPORTED, promises) for record in imported)
    return working
