"""Data access helpers for games."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..models.entities import Game
from ..models.schedule import parse_number
from .directus import DirectusError, get_directus

logger = logging.getLogger(__name__)

GAMES_COLLECTION = "games"
FULL_FIELDS = "id,name,category,price_per_player"
MINIMAL_FIELDS = "id,name"

_UNSET = object()


def list_games() -> list[Game]:
    """Return games sorted by name.

    Older schemas lack ``category`` and ``price_per_player``; when the full
    query is rejected the minimal field set is requested instead.
    """

    client = get_directus()
    path = f"/items/{GAMES_COLLECTION}"
    try:
        data = client.fetch("GET", path, params={"fields": FULL_FIELDS, "sort": "name"})
    except DirectusError as exc:
        logger.warning("Game listing fell back to id,name: %s", exc)
        data = client.fetch("GET", path, params={"fields": MINIMAL_FIELDS, "sort": "name"})
    return [
        Game(
            game_id=str(row.get("id")),
            name=row.get("name"),
            category=row.get("category"),
            price_per_player=parse_number(row.get("price_per_player")),
        )
        for row in (data or {}).get("data") or []
    ]


def create_game(name: str, category: Optional[str] = None) -> Any:
    payload = {"name": name}
    if category:
        payload["category"] = category
    return get_directus().fetch("POST", f"/items/{GAMES_COLLECTION}", json=payload)


def update_game(game_id: Any, name: str, category: Any = _UNSET) -> Any:
    """Rename a game; ``category`` is only written when passed explicitly."""

    payload = {"name": name}
    if category is not _UNSET:
        payload["category"] = category
    return get_directus().fetch("PATCH", f"/items/{GAMES_COLLECTION}/{game_id}", json=payload)


def delete_game(game_id: Any) -> Any:
    return get_directus().fetch("DELETE", f"/items/{GAMES_COLLECTION}/{game_id}")
