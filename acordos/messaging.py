from __future__ import annotations

from typing import Any
from urllib.parse import quote

from acordos.errors import InvalidPhoneError
from acordos.normalizer import parse_brl_amount
from acordos.records import ClientRecord, PromisePayload
from acordos.shared import COUNTRY_PREFIX, WHATSAPP_MIN_DIGITS, format_br_date, only_digits

WHATSAPP_BASE_URL = "https://wa.me/"

DUE_REMINDER_TEMPLATE = (
    "Olá, {name}. Passando para confirmar o pagamento do acordo com vencimento {due}. "
    "Valor: {amount}. Assim que efetuar, me envie o comprovante para anexarmos."
)
PROMISE_REMINDER_TEMPLATE = (
    "Olá, {name}. Passando para confirmar a promessa de pagamento prevista para {promised}. "
    "Valor: {amount}. {note}Se já pagou, me envie o comprovante, por favor."
)


def whatsapp_number(phone: Any) -> str:
    digits = only_digits(phone)
    return digits if digits.startswith(COUNTRY_PREFIX) else f"{COUNTRY_PREFIX}{digits}"


def whatsapp_link(phone: Any, message: str) -> str:
    """
    Deep link opening a WhatsApp chat with ``message`` typed in.

    Raises InvalidPhoneError when the number has fewer than 12 digits once
    the country prefix is in place.
    """
    number = whatsapp_number(phone)
    if len(number) < WHATSAPP_MIN_DIGITS:
        raise InvalidPhoneError(f"Invalid phone for WhatsApp: '{phone}'")
    return f"{WHATSAPP_BASE_URL}{number}?text={quote(message, safe='')}"


def format_brl(value: Any) -> str:
    """1234.5 -> 'R$ 1.234,50'. Blank gives ''; text that is not a number is returned stripped."""
    amount = parse_brl_amount(value)
    if isinstance(amount, str):
        return amount
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {grouped}"


def due_reminder(record: ClientRecord) -> str:
    return DUE_REMINDER_TEMPLATE.format(
        name=record.name,
        due=format_br_date(record.due_date) or "hoje",
        amount=format_brl(record.amount),
    )


def promise_reminder(payload: PromisePayload) -> str:
    snapshot = payload.snapshot
    return PROMISE_REMINDER_TEMPLATE.format(
        name=snapshot.name or "-",
        promised=format_br_date(payload.promise_date),
        amount=format_brl(snapshot.amount),
        note=f"Obs: {payload.note}. " if payload.note else "",
    )


def due_reminder_link(record: ClientRecord) -> str:
    return whatsapp_link(record.phone, due_reminder(record))


def promise_reminder_link(payload: PromisePayload) -> str:
    return whatsapp_link(payload.snapshot.phone, promise_reminder(payload))
