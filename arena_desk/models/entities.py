"""Dataclass-style entity representations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from flask_login import UserMixin


@dataclass
class User(UserMixin):
    """Directus user compatible with Flask-Login."""

    user_id: str
    email: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    role_id: Optional[str]
    role_name: Optional[str]
    access_token: str = field(repr=False, default="")

    def get_id(self) -> str:
        return str(self.user_id)

    @property
    def display_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        if parts:
            return " ".join(parts)
        return self.email or str(self.user_id)

    def can_manage(self, keywords: Iterable[str]) -> bool:
        """True when the role name contains one of the manager keywords."""
        if not self.role_name:
            return False
        role = self.role_name.lower()
        return any(needle in role for needle in keywords)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.user_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": {"id": self.role_id, "name": self.role_name} if self.role_id or self.role_name else None,
        }

    @classmethod
    def from_directus(cls, data: Dict[str, Any], access_token: str) -> "User":
        role = data.get("role")
        role = role if isinstance(role, dict) else {"id": role, "name": None}
        return cls(
            user_id=str(data.get("id")),
            email=data.get("email"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            role_id=role.get("id"),
            role_name=role.get("name"),
            access_token=access_token,
        )


@dataclass
class TokenSet:
    """Access/refresh token pair issued by Directus."""

    access_token: str
    refresh_token: Optional[str]
    expires_ms: Optional[int]

    def access_max_age(self, default: int) -> int:
        """Cookie lifetime in seconds; Directus reports ``expires`` in ms."""
        if not self.expires_ms:
            return default
        return max(int(self.expires_ms) // 1000, 1)


@dataclass
class Arena:
    """Bookable arena (calendar resource)."""

    arena_id: str
    title: str
    name: Optional[str] = None
    address: Optional[str] = None
    capacity: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.arena_id,
            "title": self.title,
            "name": self.name,
            "address": self.address,
            "capacity": self.capacity,
        }


@dataclass
class Game:
    """Game that can be played during a session."""

    game_id: str
    name: Optional[str]
    category: Optional[str] = None
    price_per_player: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.game_id,
            "name": self.name,
            "category": self.category,
            "price_per_player": self.price_per_player,
        }


@dataclass
class CalendarEvent:
    """Booking projected onto the calendar."""

    event_id: str
    title: str
    start: str
    end: str
    resource_id: Optional[str]
    status: Optional[str] = None
    client_name: Optional[str] = None
    client_id: Optional[str] = None
    game_name: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    duration: Any = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.event_id,
            "title": self.title,
            "start": self.start,
            "end": self.end,
            "extendedProps": {
                "status": self.status,
                "clientName": self.client_name,
                "clientId": self.client_id,
                "gameName": self.game_name,
                "date": self.date,
                "startTime": self.start_time,
                "duration": self.duration,
            },
        }
        if self.resource_id is not None:
            payload["resourceId"] = self.resource_id
        return payload
