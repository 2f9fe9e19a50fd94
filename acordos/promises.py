"""
Payment-promise overlay store.

Promises are keyed by identity key (see ``acordos.identity``) and live
independently of any client row: a promise saved for a client keeps
existing after the sheet it came from is replaced, and shows up again as
soon as a record with the same national id or phone is loaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterator, Mapping

from acordos.errors import ValidationError
from acordos.identity import identity_key_for, promise_key, synthetic_key
from acordos.normalizer import parse_brl_amount
from acordos.records import (
    Amount,
    ClientRecord,
    PromisePayload,
    PromiseSnapshot,
    promise_from_json,
    promise_to_json,
)
from acordos.shared import clean_text

logger = logging.getLogger(__name__)

NEXT_DAYS_WINDOW = 7


class PromiseView(str, Enum):
    ALL = "TODAS"
    TODAY = "HOJE"
    EXPIRED = "VENCIDAS"
    NEXT_7 = "PROX7"


@dataclass(frozen=True)
class PromiseEntry:
    key: str
    payload: PromisePayload


@dataclass(frozen=True)
class PromiseDraft:
    key: str
    name: str
    phone: str
    national_id: str
    amount: Amount
    promise_date: date | None
    note: str


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class PromiseStore:
    def __init__(self, payloads: Mapping[str, PromisePayload] | None = None) -> None:
        self._payloads: dict[str, PromisePayload] = dict(payloads or {})

    def __len__(self) -> int:
        return len(self._payloads)

    def __contains__(self, key: object) -> bool:
        return key in self._payloads

    def __iter__(self) -> Iterator[str]:
        return iter(self._payloads)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PromiseStore):
            return NotImplemented
        return self._payloads == other._payloads

    def get(self, key: str) -> PromisePayload | None:
        if not key:
            return None
        return self._payloads.get(key)

    def items(self) -> list[tuple[str, PromisePayload]]:
        return list(self._payloads.items())

    def date_for(self, key: str) -> date | None:
        payload = self.get(key)
        return payload.promise_date if payload else None

    def upsert(self, key: str, payload: PromisePayload) -> None:
        if not key:
            raise ValueError("Promise key must not be empty")
        self._payloads[key] = payload

    def remove(self, key: str) -> bool:
        return self._payloads.pop(key, None) is not None

    def to_dict(self) -> dict[str, Any]:
        return {key: promise_to_json(payload) for key, payload in self._payloads.items()}

    @classmethod
    def from_dict(cls, document: Any) -> "PromiseStore":
        if not isinstance(document, dict):
            return cls()
        payloads: dict[str, PromisePayload] = {}
        for key, raw in document.items():
            if not isinstance(raw, dict):
                logger.warning("Skipping malformed promise entry %r", key)
                continue
            payloads[str(key)] = promise_from_json(raw)
        return cls(payloads)


def build_payload(
    *,
    promise_date: date | None,
    note: str = "",
    name: str = "",
    phone: str = "",
    national_id: str = "",
    amount: Any = "",
    updated_at: str | None = None,
) -> PromisePayload:
    if promise_date is None:
        raise ValidationError("Select the promise date.")
    return PromisePayload(
        promise_date=promise_date,
        updated_at=updated_at or utc_now_iso(),
        note=clean_text(note),
        snapshot=PromiseSnapshot(
            name=clean_text(name),
            phone=clean_text(phone),
            national_id=clean_text(national_id),
            amount=parse_brl_amount(amount),
        ),
    )


def save_promise(
    store: PromiseStore,
    *,
    promise_date: date | None,
    name: str = "",
    phone: str = "",
    national_id: str = "",
    amount: Any = "",
    note: str = "",
    key: str | None = None,
    updated_at: str | None = None,
) -> str:
    """
    Validate a promise form and write it into ``store``.

    Without an explicit ``key`` the identity key of the national id / phone is
    used, falling back to a synthetic key. Returns the key written.
    """
    if not key and not (clean_text(name) or clean_text(phone) or clean_text(national_id)):
        raise ValidationError("Fill in at least name and phone (or national id).")
    payload = build_payload(
        promise_date=promise_date,
        note=note,
        name=name,
        phone=phone,
        national_id=national_id,
        amount=amount,
        updated_at=updated_at,
    )
    target = key or promise_key(national_id, phone)
    store.upsert(target, payload)
    logger.debug("Saved promise %s for %s", target, payload.promise_date)
    return target


def draft_for_client(record: ClientRecord, store: PromiseStore) -> PromiseDraft:
    """Pre-fill a promise form from a live record, falling back to the stored snapshot."""
    key = identity_key_for(record) or synthetic_key()
    existing = store.get(key)
    snapshot = existing.snapshot if existing else PromiseSnapshot()
    amount = record.amount if record.amount != "" else snapshot.amount
    return PromiseDraft(
        key=key,
        name=record.name or snapshot.name,
        phone=record.phone or snapshot.phone,
        national_id=record.national_id or snapshot.national_id,
        amount=amount,
        promise_date=existing.promise_date if existing else None,
        note=existing.note if existing else "",
    )


def listing(store: PromiseStore) -> list[PromiseEntry]:
    entries = [PromiseEntry(key, payload) for key, payload in store.items() if payload.promise_date]
    entries.sort(key=lambda entry: entry.payload.promise_date)
    return entries


def _view_flags(promise_date: date, today: date) -> dict[PromiseView, bool]:
    diff = (promise_date - today).days
    return {
        PromiseView.ALL: True,
        PromiseView.TODAY: diff == 0,
        PromiseView.EXPIRED: diff < 0,
        PromiseView.NEXT_7: 0 <= diff <= NEXT_DAYS_WINDOW,
    }


def promise_counts(entries: list[PromiseEntry], today: date) -> dict[str, int]:
    counts = {"total": len(entries), "today": 0, "expired": 0, "next_7": 0}
    for entry in entries:
        flags = _view_flags(entry.payload.promise_date, today)
        counts["today"] += flags[PromiseView.TODAY]
        counts["expired"] += flags[PromiseView.EXPIRED]
        counts["next_7"] += flags[PromiseView.NEXT_7]
    return counts


def filter_promises(entries: list[PromiseEntry], view: PromiseView, today: date) -> list[PromiseEntry]:
    return [entry for entry in entries if _view_flags(entry.payload.promise_date, today)[view]]
