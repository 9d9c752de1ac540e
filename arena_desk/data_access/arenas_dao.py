"""Data access helpers for arenas.

Arena calls are made with the signed-in user's token so that Directus
applies the user's own permissions.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..models.entities import Arena
from .directus import DirectusError, get_directus

logger = logging.getLogger(__name__)

ARENAS_COLLECTION = "arenas"
ARENA_ID_FIELD = "id"
ARENA_TITLE_FIELD = "name"
ARENA_ADDRESS_FIELD = "address"
ARENA_SORT_FIELD = ARENA_TITLE_FIELD


def _row_to_arena(row: dict) -> Arena:
    arena_id = row.get(ARENA_ID_FIELD)
    name = row.get(ARENA_TITLE_FIELD)
    return Arena(
        arena_id=str(arena_id),
        title=name or f"Arena {arena_id}",
        name=name,
        address=row.get(ARENA_ADDRESS_FIELD),
        capacity=row.get("capacity"),
    )


def list_arenas(token: str) -> list[Arena]:
    """Return arenas sorted by name, falling back to the minimal field set."""

    client = get_directus()
    path = f"/items/{ARENAS_COLLECTION}"
    try:
        data = client.fetch(
            "GET",
            path,
            token=token,
            params={
                "fields": ",".join([ARENA_ID_FIELD, ARENA_TITLE_FIELD, ARENA_ADDRESS_FIELD]),
                "sort": ARENA_SORT_FIELD,
            },
        )
    except DirectusError as exc:
        logger.warning("Arena listing fell back to id,name: %s", exc)
        data = client.fetch(
            "GET",
            path,
            token=token,
            params={"fields": ",".join([ARENA_ID_FIELD, ARENA_TITLE_FIELD]), "sort": ARENA_SORT_FIELD},
        )
    return [_row_to_arena(row) for row in (data or {}).get("data") or []]


def create_arena(token: str, name: str, address: Optional[str] = None) -> Any:
    payload = {ARENA_TITLE_FIELD: name}
    if address:
        payload[ARENA_ADDRESS_FIELD] = address
    return get_directus().fetch("POST", f"/items/{ARENAS_COLLECTION}", token=token, json=payload)


def update_arena(token: str, arena_id: Any, name: str, address: Optional[str] = None) -> Any:
    payload = {ARENA_TITLE_FIELD: name, ARENA_ADDRESS_FIELD: address or None}
    return get_directus().fetch("PATCH", f"/items/{ARENAS_COLLECTION}/{arena_id}", token=token, json=payload)


def delete_arena(token: str, arena_id: Any) -> Any:
    return get_directus().fetch("DELETE", f"/items/{ARENAS_COLLECTION}/{arena_id}", token=token)
