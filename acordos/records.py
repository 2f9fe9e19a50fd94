"""Record types shared by every stage, and their JSON document codecs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any

from acordos.shared import SOURCE_IMPORTED, SOURCE_MANUAL, VALID_SOURCES, clean_text

Amount = float | int | str


@dataclass(frozen=True)
class ClientRecord:
    id: str
    national_id: str = ""
    name: str = ""
    amount: Amount = ""
    due_date: date | None = None
    phone: str = ""
    negotiation_type: str = ""
    status: str = ""
    notes: str = ""
    promise_date: date | None = None
    source: str = SOURCE_IMPORTED
    created_at: str = ""

    def __post_init__(self) -> None:
        if self.source not in VALID_SOURCES:
            raise ValueError(f"Invalid record source '{self.source}'. Allowed: {', '.join(VALID_SOURCES)}.")


@dataclass(frozen=True)
class PromiseSnapshot:
    name: str = ""
    phone: str = ""
    national_id: str = ""
    amount: Amount = ""


@dataclass(frozen=True)
class PromisePayload:
    promise_date: date | None
    updated_at: str = ""
    note: str = ""
    snapshot: PromiseSnapshot = field(default_factory=PromiseSnapshot)


def date_to_json(value: date | None) -> str:
    return value.isoformat() if value else ""


def date_from_json(value: Any) -> date | None:
    """
    Read a stored calendar day.

    Accepts plain ISO days and full ISO timestamps; timestamps carrying an
    offset (or a trailing "Z") are converted to the local calendar day.
    """
    text = clean_text(value)
    if not text:
        return None
    if len(text) == 10:
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.date()


def _amount_from_json(value: Any) -> Amount:
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float, str)):
        return value
    return clean_text(value)


def manual_client_to_json(record: ClientRecord) -> dict[str, Any]:
    # promise_date is an overlay and never persisted with the client.
    return {
        "id": record.id,
        "national_id": record.national_id,
        "name": record.name,
        "amount": record.amount,
        "due_date": date_to_json(record.due_date),
        "phone": record.phone,
        "negotiation_type": record.negotiation_type,
        "status": record.status,
        "notes": record.notes,
        "created_at": record.created_at,
    }


def manual_client_from_json(payload: dict[str, Any]) -> ClientRecord:
    return ClientRecord(
        id=clean_text(payload.get("id")),
        national_id=clean_text(payload.get("national_id")),
        name=clean_text(payload.get("name")),
        amount=_amount_from_json(payload.get("amount")),
        due_date=date_from_json(payload.get("due_date")),
        phone=clean_text(payload.get("phone")),
        negotiation_type=clean_text(payload.get("negotiation_type")),
        status=clean_text(payload.get("status")),
        notes=clean_text(payload.get("notes")),
        source=SOURCE_MANUAL,
        created_at=clean_text(payload.get("created_at")),
    )


def promise_to_json(payload: PromisePayload) -> dict[str, Any]:
    return {
        "promise_date": date_to_json(payload.promise_date),
        "updated_at": payload.updated_at,
        "note": payload.note,
        "snapshot": asdict(payload.snapshot),
    }


def promise_from_json(payload: dict[str, Any]) -> PromisePayload:
    snapshot = payload.get("snapshot")
    if not isinstance(snapshot, dict):
        snapshot = {}
    return PromisePayload(
        promise_date=date_from_json(payload.get("promise_date")),
        updated_at=clean_text(payload.get("updated_at")),
        note=clean_text(payload.get("note")),
        snapshot=PromiseSnapshot(
            name=clean_text(snapshot.get("name")),
            phone=clean_text(snapshot.get("phone")),
            national_id=clean_text(snapshot.get("national_id")),
            amount=_amount_from_json(snapshot.get("amount")),
        ),
    )
