"""Data access helpers for the clients collection."""

from __future__ import annotations

from typing import Optional

from ..models.schedule import normalize_phone, phone_digits
from .directus import get_directus

CLIENTS_COLLECTION = "clients"


def find_client_id_by_phone(phone: str) -> Optional[str]:
    """Look a client up by phone, matching either the raw or digits-only form."""

    raw = normalize_phone(phone)
    if not raw:
        return None
    digits = phone_digits(raw)
    params = {"fields": "id", "limit": 1}
    if digits and digits != raw:
        params["filter[_or][0][phone][_eq]"] = raw
        params["filter[_or][1][phone][_eq]"] = digits
    else:
        params["filter[phone][_eq]"] = raw
    data = get_directus().fetch("GET", f"/items/{CLIENTS_COLLECTION}", params=params)
    rows = (data or {}).get("data") or []
    if not rows or rows[0].get("id") is None:
        return None
    return str(rows[0]["id"])


def create_client(phone: str, name: Optional[str] = None) -> Optional[str]:
    """Create a client record and return its id."""

    payload = {"phone": phone}
    if name:
        payload["name"] = name
    created = get_directus().fetch("POST", f"/items/{CLIENTS_COLLECTION}", json=payload)
    if not isinstance(created, dict):
        return None
    record = created.get("data") if isinstance(created.get("data"), dict) else created
    client_id = record.get("id")
    return str(client_id) if client_id is not None else None
