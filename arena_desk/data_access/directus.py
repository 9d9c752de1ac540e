"""Directus REST client management utilities."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import requests
from flask import Flask, current_app, g
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (500, 502, 503, 504)


class DirectusError(Exception):
    """Raised when Directus answers with a non-2xx status."""

    def __init__(self, status: Optional[int], body: str = "", message: Optional[str] = None) -> None:
        self.status = status
        self.body = body
        super().__init__(message or f"Directus error {status}: {body}")


class DirectusUnavailableError(DirectusError):
    """Connection failure or timeout talking to Directus."""

    def __init__(self, message: str) -> None:
        super().__init__(None, "", message)


class DirectusConfigError(DirectusError):
    """The Directus URL or a required token is not configured."""

    def __init__(self, message: str) -> None:
        super().__init__(None, "", message)


def _build_session(retries: int, backoff: float) -> requests.Session:
    """Create a session that retries idempotent reads on 5xx and network errors."""

    session = requests.Session()
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=backoff,
        status_forcelist=RETRYABLE_STATUSES,
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class DirectusClient:
    """Thin wrapper around a ``requests.Session`` bound to one Directus instance."""

    def __init__(
        self,
        base_url: str,
        service_token: str = "",
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.service_token = service_token or ""
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self, token: Optional[str], anonymous: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if anonymous:
            return headers
        bearer = token or self.service_token
        if not bearer:
            raise DirectusConfigError("Missing DIRECTUS_URL or DIRECTUS_SERVICE_TOKEN")
        headers["Authorization"] = f"Bearer {bearer}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        anonymous: bool = False,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> requests.Response:
        """Send a request; the service token is used unless ``token`` is given."""

        if not self.base_url:
            raise DirectusConfigError("Missing DIRECTUS_URL")
        headers = self._headers(token, anonymous)
        url = f"{self.base_url}{path}"
        try:
            return self.session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            logger.error("Directus %s %s timed out", method, path)
            raise DirectusUnavailableError(f"Directus request timed out: {method} {path}") from exc
        except requests.RequestException as exc:
            logger.error("Directus %s %s failed: %s", method, path, exc)
            raise DirectusUnavailableError(f"Directus request failed: {exc}") from exc

    def fetch(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        anonymous: bool = False,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Send a request and decode the body, raising on non-2xx answers."""

        response = self.request(method, path, token=token, anonymous=anonymous, params=params, json=json)
        text = response.text
        if not response.ok:
            raise DirectusError(response.status_code, text)
        if not text:
            return None
        try:
            return response.json()
        except ValueError:
            return text

    def close(self) -> None:
        self.session.close()


def has_service_credentials(app: Flask | None = None) -> bool:
    app = app or current_app
    return bool(app.config.get("DIRECTUS_URL")) and bool(app.config.get("DIRECTUS_SERVICE_TOKEN"))


def create_client(config: Mapping[str, Any], service_token: Optional[str] = None) -> DirectusClient:
    """Instantiate a client from application config."""

    session = _build_session(config["DIRECTUS_RETRIES"], config["DIRECTUS_RETRY_BACKOFF"])
    return DirectusClient(
        config["DIRECTUS_URL"],
        service_token if service_token is not None else config["DIRECTUS_SERVICE_TOKEN"],
        session=session,
        timeout=config["DIRECTUS_TIMEOUT"],
    )


def get_directus() -> DirectusClient:
    """Return a cached client for the request context."""

    if "directus" not in g:
        g.directus = create_client(current_app.config)
    return g.directus  # type: ignore[return-value]


def close_directus(exception: Exception | None = None) -> None:
    """Close the stored client at the end of the request."""

    client = g.pop("directus", None)
    if client is not None:
        client.close()


def init_app(app: Flask) -> None:
    """Wire Directus helpers and maintenance commands into the Flask app."""

    from .maintenance import register_commands  # pylint: disable=import-outside-toplevel

    app.teardown_appcontext(close_directus)
    register_commands(app)
