"""Typed notes stored on an order.

Each note is serialized as a JSON object carrying a ``kind`` tag so new note
types can be added without a schema change while readers still get real
objects back.
"""
import base64
import json
from dataclasses import asdict, dataclass, fields
from datetime import datetime

from django.utils.dateparse import parse_datetime


@dataclass(frozen=True)
class PurchaseNote:
    kind = "purchase"

    product: str
    buyer: str
    seller: str


@dataclass(frozen=True)
class Cancellation:
    kind = "cancellation"

    actor: str
    reason: str
    at: datetime


NOTE_TYPES = {cls.kind: cls for cls in (PurchaseNote, Cancellation)}


def dump_note(note) -> dict:
    data = asdict(note)
    for key, value in data.items():
        if isinstance(value, datetime):
            data[key] = value.isoformat()
    return {"kind": note.kind, **data}


def load_note(data: dict):
    cls = NOTE_TYPES.get((data or {}).get("kind"))
    if cls is None:
        raise ValueError(f"Unknown note kind: {data!r}")
    kwargs = {}
    for f in fields(cls):
        value = data.get(f.name)
        if f.type is datetime and isinstance(value, str):
            value = parse_datetime(value)
        kwargs[f.name] = value
    return cls(**kwargs)


def load_notes(raw) -> list:
    return [load_note(item) for item in (raw or [])]


def find_note(raw, cls):
    """Return the most recent note of type ``cls`` or None."""
    for item in reversed(raw or []):
        if item.get("kind") == cls.kind:
            return load_note(item)
    return None


def encode_extra_data(note: PurchaseNote) -> str:
    """Wallet gateway ``extraData``: base64 of the note's JSON."""
    payload = {"productId": note.product, "buyerId": note.buyer, "sellerId": note.seller}
    return base64.b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8")).decode("ascii")


def decode_extra_data(extra_data: str) -> PurchaseNote | None:
    if not extra_data:
        return None
    try:
        payload = json.loads(base64.b64decode(extra_data).decode("utf-8"))
        return PurchaseNote(
            product=str(payload["productId"]),
            buyer=str(payload["buyerId"]),
            seller=str(payload["sellerId"]),
        )
    except (ValueError, KeyError, TypeError):
        return None
