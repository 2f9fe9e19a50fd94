from __future__ import annotations

import uuid
from typing import Any

from acordos.shared import NATIONAL_ID_MIN_DIGITS, PHONE_MIN_DIGITS, only_digits

ID_KEY_PREFIX = "id-digits:"
PHONE_KEY_PREFIX = "phone-digits:"
CUSTOM_KEY_PREFIX = "custom:"


def identity_key(national_id: Any, phone: Any) -> str:
    """
    Linkage key between a client-like record and a payment promise.

    National-id digits win when there are at least 8 of them, then phone
    digits when there are at least 10. Returns "" when neither qualifies.
    """
    id_digits = only_digits(national_id)
    if len(id_digits) >= NATIONAL_ID_MIN_DIGITS:
        return f"{ID_KEY_PREFIX}{id_digits}"
    phone_digits = only_digits(phone)
    if len(phone_digits) >= PHONE_MIN_DIGITS:
        return f"{PHONE_KEY_PREFIX}{phone_digits}"
    return ""


def identity_key_for(record: Any) -> str:
    return identity_key(getattr(record, "national_id", ""), getattr(record, "phone", ""))


def synthetic_key() -> str:
    return f"{CUSTOM_KEY_PREFIX}{uuid.uuid4().hex}"


def promise_key(national_id: Any, phone: Any) -> str:
    return identity_key(national_id, phone) or synthetic_key()
