"""Directus authentication helpers: login, refresh and session resolution."""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from ..models.entities import TokenSet, User
from .directus import DirectusError, DirectusUnavailableError, get_directus

logger = logging.getLogger(__name__)

ME_FIELDS = "id,first_name,last_name,email,role.id,role.name"


def _token_set(payload: Any) -> Optional[TokenSet]:
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict) or not data.get("access_token"):
        return None
    expires = data.get("expires")
    return TokenSet(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token"),
        expires_ms=int(expires) if isinstance(expires, (int, float)) else None,
    )


def login(email: str, password: str) -> TokenSet:
    """Exchange credentials for a token pair.

    Raises ``DirectusError`` when Directus rejects the credentials and
    ``ValueError`` when the response carries no access token.
    """

    payload = get_directus().fetch(
        "POST",
        "/auth/login",
        anonymous=True,
        json={"email": email, "password": password, "mode": "json"},
    )
    tokens = _token_set(payload)
    if tokens is None:
        raise ValueError("Directus did not return an access token.")
    return tokens


def refresh(refresh_token: str) -> Optional[TokenSet]:
    """Request a new token pair, returning ``None`` when the refresh fails."""

    logger.info("Access token expired, requesting refresh")
    try:
        payload = get_directus().fetch(
            "POST",
            "/auth/refresh",
            anonymous=True,
            json={"refresh_token": refresh_token, "mode": "json"},
        )
    except DirectusError as exc:
        logger.warning("Token refresh rejected: %s", exc)
        return None
    tokens = _token_set(payload)
    if tokens is None:
        logger.warning("Token refresh returned no access token")
        return None
    logger.info("Token refresh succeeded")
    return tokens


def fetch_me(token: str) -> Optional[User]:
    """Load the user that owns ``token``; ``None`` when Directus says 401."""

    response = get_directus().request("GET", "/users/me", token=token, params={"fields": ME_FIELDS})
    if response.status_code == 401:
        return None
    if not response.ok:
        raise DirectusError(response.status_code, response.text)
    try:
        body = response.json()
    except ValueError as exc:
        raise DirectusError(response.status_code, response.text, "Directus returned a non-JSON user profile") from exc
    data = (body.get("data") if isinstance(body, dict) else None) or {}
    if not data.get("id"):
        return None
    return User.from_directus(data, access_token=token)


def resolve_session(
    access_token: Optional[str],
    refresh_token: Optional[str],
) -> Tuple[Optional[User], Optional[TokenSet]]:
    """Resolve cookie tokens into a user, refreshing an expired access token.

    Returns the user (or ``None``) and the freshly issued tokens when a
    refresh happened, so the caller can rewrite the cookies.
    """

    if not access_token and not refresh_token:
        return None, None
    try:
        if access_token:
            user = fetch_me(access_token)
            if user is not None:
                return user, None
        if not refresh_token:
            return None, None
        tokens = refresh(refresh_token)
        if tokens is None:
            return None, None
        return fetch_me(tokens.access_token), tokens
    except DirectusUnavailableError as exc:
        logger.error("Could not validate session: %s", exc)
    except DirectusError as exc:
        logger.error("Unexpected Directus answer while validating session: %s", exc)
    return None, None
