"""Shared pytest fixtures, including an in-memory stand-in for the Directus API."""

from __future__ import annotations

import copy
import json
import re
from pathlib import Path
import sys
from typing import Any, Dict, Generator, List, Optional
from urllib.parse import urlsplit

import pytest
import requests
from flask import Flask

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from arena_desk.app import create_app
from arena_desk.config import TestingConfig
from arena_desk.data_access import directus as directus_module

USERS = {
    "u-manager": {
        "id": "u-manager",
        "first_name": "Dana",
        "last_name": "Lee",
        "email": "manager@arena-club.com",
        "role": {"id": "r-admin", "name": "Administrator"},
    },
    "u-operator": {
        "id": "u-operator",
        "first_name": "Omar",
        "last_name": None,
        "email": "operator@arena-club.com",
        "role": {"id": "r-operator", "name": "Operator"},
    },
}

SEED = {
    "arenas": [
        {"id": 1, "name": "Alpha", "address": "Main st 1"},
        {"id": 2, "name": "Bravo", "address": None},
    ],
    "games": [
        {"id": 1, "name": "Kernel: Bunker", "category": "Kernel", "price_per_player": 3000},
        {"id": 2, "name": "Shmooter: Forts", "category": None, "price_per_player": None},
    ],
    "clients": [
        {"id": 1, "name": "Ivan", "phone": "77010000000"},
    ],
    "bookings": [
        {
            "id": 1,
            "arena": 1,
            "date": "2026-10-20",
            "start_time": "10:00:00",
            "duration": 60,
            "status": "new",
            "mode": "private",
            "client": {"id": 1, "name": "Ivan"},
            "game": {"id": 1, "name": "Kernel: Bunker"},
        },
        {
            "id": 2,
            "arena": 1,
            "date": "2026-10-20",
            "start_time": "12:00:00",
            "duration": 90,
            "status": "cancelled",
            "mode": "private",
            "client": None,
            "game": None,
        },
        {
            "id": 3,
            "arena": 2,
            "date": "2026-10-20",
            "start_time": "18:00",
            "duration": None,
            "status": "confirmed",
            "mode": "private",
            "client": None,
            "game": {"id": 2, "name": "Shmooter: Forts"},
        },
        {
            "id": 4,
            "arena": 1,
            "date": "2026-10-21",
            "start_time": "09:30",
            "duration": "1:30",
            "status": "planned",
            "mode": "private",
            "client": None,
            "game": None,
        },
    ],
}


def make_response(status: int, payload: Any = None, text: Optional[str] = None) -> requests.Response:
    """Build a real ``requests.Response`` carrying ``payload`` as JSON."""

    response = requests.Response()
    response.status_code = status
    if text is None:
        text = json.dumps(payload) if payload is not None else ""
    response._content = text.encode("utf-8")
    response.encoding = "utf-8"
    response.headers["Content-Type"] = "application/json"
    return response


def _relation_id(value: Any) -> Any:
    return value.get("id") if isinstance(value, dict) else value


def _matches(row: Dict[str, Any], field: str, op: str, expected: str) -> bool:
    actual = _relation_id(row.get(field))
    if op == "_eq":
        return actual is not None and str(actual) == str(expected)
    if op == "_in":
        return actual is not None and str(actual) in str(expected).split(",")
    if op == "_gte":
        return actual is not None and str(actual) >= str(expected)
    if op == "_lt":
        return actual is not None and str(actual) < str(expected)
    raise AssertionError(f"Unsupported operator {op}")


class FakeDirectus:
    """Implements the slice of the Directus REST API the app relies on."""

    def __init__(self) -> None:
        self.items: Dict[str, List[Dict[str, Any]]] = copy.deepcopy(SEED)
        self.users = copy.deepcopy(USERS)
        self.accounts = {
            "manager@arena-club.com": ("secret", "u-manager"),
            "operator@arena-club.com": ("secret", "u-operator"),
        }
        self.access_tokens = {"manager-access": "u-manager", "operator-access": "u-operator"}
        self.refresh_tokens = {"manager-refresh": "u-manager", "operator-refresh": "u-operator"}
        self.service_tokens = {TestingConfig.DIRECTUS_SERVICE_TOKEN, TestingConfig.DIRECTUS_ADMIN_TOKEN}
        self.roles = [
            {"id": "r-admin", "name": "Administrator"},
            {"id": "r-branch", "name": "branch-admin"},
            {"id": "r-operator", "name": "Operator"},
        ]
        self.permissions: List[Dict[str, Any]] = [
            {"id": 1, "role": "r-branch", "collection": "bookings", "action": "read"},
        ]
        self.fields: Dict[str, List[Dict[str, Any]]] = {
            "directus_users": [{"field": "id"}, {"field": "arena"}],
            "games": [{"field": "id"}, {"field": "name"}, {"field": "category"}],
        }
        self.failures: List[Dict[str, Any]] = []
        self.calls: List[Dict[str, Any]] = []
        self.issued = 0
        self.closed = False

    # test helpers -------------------------------------------------------

    def fail(self, method: str, path: str, status: int = 500, body: str = "boom", fields: Optional[str] = None) -> None:
        """Make matching requests answer ``status`` instead of succeeding."""

        self.failures.append({"method": method, "path": path, "status": status, "body": body, "fields": fields})

    def calls_to(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["method"] == method and call["path"] == path]

    # transport ----------------------------------------------------------

    def close(self) -> None:
        self.closed = True

    def request(self, method, url, headers=None, params=None, json=None, timeout=None):
        path = urlsplit(url).path
        params = {key: str(value) for key, value in (params or {}).items()}
        token = (headers or {}).get("Authorization", "")
        token = token[len("Bearer "):] if token.startswith("Bearer ") else None
        self.calls.append({"method": method, "path": path, "params": params, "json": json, "token": token})

        for failure in self.failures:
            if failure["method"] == method and failure["path"] == path:
                if failure["fields"] is None or failure["fields"] == params.get("fields"):
                    return make_response(failure["status"], text=failure["body"])

        if path == "/auth/login":
            return self._login(json or {})
        if path == "/auth/refresh":
            return self._refresh(json or {})
        if path == "/server/health":
            return make_response(200, {"status": "ok"})

        user_id = self.access_tokens.get(token) if token else None
        if token not in self.service_tokens and user_id is None:
            return make_response(401, {"errors": [{"message": "Invalid user credentials."}]})

        if path == "/users/me":
            if user_id is None:
                return make_response(403, {"errors": [{"message": "Forbidden"}]})
            return make_response(200, {"data": self.users[user_id]})
        if path == "/server/info":
            return make_response(200, {"data": {"project": {"project_name": "Arena"}}})
        if path == "/roles":
            return make_response(200, {"data": self._filter(self.roles, params)})
        if path == "/permissions":
            if method == "POST":
                record = dict(json, id=len(self.permissions) + 1)
                self.permissions.append(record)
                return make_response(200, {"data": record})
            return make_response(200, {"data": self._filter(self.permissions, params)})
        if path.startswith("/fields/"):
            return self._fields(method, path.split("/")[2], json)
        match = re.match(r"^/items/([^/]+)(?:/([^/]+))?$", path)
        if match:
            return self._items(method, match.group(1), match.group(2), params, json)
        return make_response(404, {"errors": [{"message": "Route not found"}]})

    # handlers -----------------------------------------------------------

    def _issue(self, user_id: str) -> Dict[str, Any]:
        self.issued += 1
        access = f"{user_id}-access-{self.issued}"
        refresh = f"{user_id}-refresh-{self.issued}"
        self.access_tokens[access] = user_id
        self.refresh_tokens[refresh] = user_id
        return {"access_token": access, "refresh_token": refresh, "expires": 900000}

    def _login(self, body: Dict[str, Any]):
        account = self.accounts.get(body.get("email"))
        if not account or account[0] != body.get("password"):
            return make_response(401, text='{"errors":[{"message":"Invalid user credentials."}]}')
        return make_response(200, {"data": self._issue(account[1])})

    def _refresh(self, body: Dict[str, Any]):
        user_id = self.refresh_tokens.pop(body.get("refresh_token"), None)
        if user_id is None:
            return make_response(401, text='{"errors":[{"message":"Invalid refresh token."}]}')
        return make_response(200, {"data": self._issue(user_id)})

    def _filter(self, rows: List[Dict[str, Any]], params: Dict[str, str]) -> List[Dict[str, Any]]:
        plain = []
        either: Dict[str, List] = {}
        for key, value in params.items():
            if not key.startswith("filter"):
                continue
            parts = re.findall(r"\[([^\]]*)\]", key)
            if parts[0] == "_or":
                either.setdefault(parts[1], []).append((parts[2], parts[3], value))
            else:
                plain.append((parts[0], parts[1], value))
        result = []
        for row in rows:
            if not all(_matches(row, field, op, value) for field, op, value in plain):
                continue
            if either and not any(
                all(_matches(row, field, op, value) for field, op, value in group) for group in either.values()
            ):
                continue
            result.append(copy.deepcopy(row))
        sort_key = params.get("sort")
        if sort_key:
            result.sort(key=lambda row: str(row.get(sort_key) or ""))
        limit = int(params.get("limit", "-1"))
        return result if limit < 0 else result[:limit]

    def _items(self, method: str, collection: str, item_id: Optional[str], params, body):
        rows = self.items.setdefault(collection, [])
        if item_id is None:
            if method == "GET":
                return make_response(200, {"data": self._filter(rows, params)})
            if method == "POST":
                record = dict(body or {})
                record["id"] = max((row["id"] for row in rows), default=0) + 1
                rows.append(record)
                return make_response(200, {"data": copy.deepcopy(record)})
            return make_response(405, {"errors": [{"message": "Method not allowed"}]})

        row = next((row for row in rows if str(row["id"]) == item_id), None)
        if row is None:
            return make_response(403, {"errors": [{"message": "You don't have permission to access this."}]})
        if method == "GET":
            return make_response(200, {"data": copy.deepcopy(row)})
        if method == "PATCH":
            row.update(body or {})
            return make_response(200, {"data": copy.deepcopy(row)})
        if method == "DELETE":
            rows.remove(row)
            return make_response(204)
        return make_response(405, {"errors": [{"message": "Method not allowed"}]})

    def _fields(self, method: str, collection: str, body):
        fields = self.fields.setdefault(collection, [])
        if method == "POST":
            if any(field["field"] == body["field"] for field in fields):
                return make_response(
                    400,
                    text=f'{{"errors":[{{"message":"Field \\"{body["field"]}\\" already exists in collection."}}]}}',
                )
            fields.append({"field": body["field"]})
            return make_response(200, {"data": body})
        return make_response(200, {"data": copy.deepcopy(fields)})


@pytest.fixture()
def directus(monkeypatch) -> FakeDirectus:
    """Replace the HTTP session with the in-memory backend."""

    fake = FakeDirectus()
    monkeypatch.setattr(directus_module, "_build_session", lambda retries, backoff: fake)
    return fake


@pytest.fixture()
def app(directus: FakeDirectus) -> Generator[Flask, None, None]:
    """Configure a Flask application for testing against the fake backend."""

    application = create_app(TestingConfig)
    yield application


@pytest.fixture()
def client(app: Flask):
    """Flask test client."""

    return app.test_client()


@pytest.fixture()
def runner(app: Flask):
    """Flask CLI runner."""

    return app.test_cli_runner()


@pytest.fixture()
def manager_client(app: Flask):
    """Client signed in with an Administrator role."""

    test_client = app.test_client()
    test_client.set_cookie("da_access_token", "manager-access")
    test_client.set_cookie("da_refresh_token", "manager-refresh")
    return test_client


@pytest.fixture()
def operator_client(app: Flask):
    """Client signed in with a role that cannot manage settings."""

    test_client = app.test_client()
    test_client.set_cookie("da_access_token", "operator-access")
    test_client.set_cookie("da_refresh_token", "operator-refresh")
    return test_client


@pytest.fixture()
def cookie_headers():
    """Return a helper mapping cookie name to its raw ``Set-Cookie`` header."""

    def _collect(response) -> Dict[str, str]:
        headers = {}
        for header in response.headers.getlist("Set-Cookie"):
            headers[header.split("=", 1)[0]] = header
        return headers

    return _collect
