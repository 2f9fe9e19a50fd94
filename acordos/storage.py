"""
JSON state files in the state directory.

Each repository owns one document and is read once at start and rewritten
in full after every mutation. A missing or unreadable document loads as
its empty default; write failures propagate to the caller as ``OSError``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from acordos.promises import PromiseStore
from acordos.records import ClientRecord, manual_client_from_json, manual_client_to_json

logger = logging.getLogger(__name__)

MANUAL_CLIENTS_FILE = "manual_clients.json"
PROMISES_FILE = "promises.json"

T = TypeVar("T")


def write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class JsonStateRepository(Generic[T]):
    def __init__(
        self,
        path: Path,
        *,
        decode: Callable[[Any], T],
        encode: Callable[[T], Any],
        default: Callable[[], T],
    ) -> None:
        self.path = Path(path)
        self._decode = decode
        self._encode = encode
        self._default = default

    def load(self) -> T:
        if not self.path.exists():
            return self._default()
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            return self._decode(document)
        except (OSError, UnicodeDecodeError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, exc)
            return self._default()

    def save(self, value: T) -> None:
        write_json_atomic(self.path, self._encode(value))
        logger.debug("Saved %s", self.path)


def _decode_manual_clients(document: Any) -> list[ClientRecord]:
    if not isinstance(document, list):
        raise ValueError("expected a JSON list of clients")
    return [manual_client_from_json(item) for item in document if isinstance(item, dict)]


def _encode_manual_clients(records: list[ClientRecord]) -> list[dict[str, Any]]:
    return [manual_client_to_json(record) for record in records]


def _decode_promises(document: Any) -> PromiseStore:
    if not isinstance(document, dict):
        raise ValueError("expected a JSON object of promises")
    return PromiseStore.from_dict(document)


def manual_clients_repository(state_dir: Path) -> JsonStateRepository[list[ClientRecord]]:
    return JsonStateRepository(
        Path(state_dir) / MANUAL_CLIENTS_FILE,
        decode=_decode_manual_clients,
        encode=_encode_manual_clients,
        default=list,
    )


def promises_repository(state_dir: Path) -> JsonStateRepository[PromiseStore]:
    return JsonStateRepository(
        Path(state_dir) / PROMISES_FILE,
        decode=_decode_promises,
        encode=lambda store: store.to_dict(),
        default=PromiseStore,
    )
