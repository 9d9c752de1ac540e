"""Flask CLI commands that inspect and prepare the Directus schema.

All commands authenticate with ``DIRECTUS_ADMIN_TOKEN`` (or ``--token``).
"""

from __future__ import annotations

from typing import Any, Optional

import click
from flask import Flask, current_app

from .directus import DirectusClient, DirectusError, create_client

BRANCH_ADMIN_ROLE = "branch-admin"
BOOKING_ACTIONS = ("create", "read", "update")
ARENA_SCOPE = {"arena": {"_eq": "$CURRENT_USER.arena"}}

GAME_FIELDS = (
    {
        "field": "price_per_player",
        "type": "integer",
        "meta": {"interface": "input", "special": None, "required": False, "note": "Price per player"},
        "schema": {"name": "price_per_player", "table": "games", "data_type": "integer", "is_nullable": True},
    },
    {
        "field": "category",
        "type": "string",
        "meta": {"interface": "input", "special": None, "required": False, "note": "Game category"},
        "schema": {"name": "category", "table": "games", "data_type": "character varying", "is_nullable": True},
    },
)


def _admin_client(token: Optional[str]) -> DirectusClient:
    admin_token = token or current_app.config.get("DIRECTUS_ADMIN_TOKEN")
    if not admin_token:
        raise click.UsageError("Set DIRECTUS_ADMIN_TOKEN or pass --token.")
    return create_client(current_app.config, service_token=admin_token)


def find_role_id(client: DirectusClient, role_name: str) -> Optional[str]:
    data = client.fetch("GET", "/roles", params={"filter[name][_eq]": role_name, "fields": "id,name"})
    rows = (data or {}).get("data") or []
    return rows[0]["id"] if rows else None


def role_permissions(client: DirectusClient, role_id: str) -> dict[str, list[str]]:
    """Map collection name to the actions the role may perform."""

    data = client.fetch(
        "GET",
        "/permissions",
        params={"filter[role][_eq]": role_id, "fields": "collection,action", "limit": 100},
    )
    summary: dict[str, list[str]] = {}
    for row in (data or {}).get("data") or []:
        summary.setdefault(row.get("collection"), []).append(row.get("action"))
    return summary


def has_user_arena_field(client: DirectusClient) -> bool:
    data = client.fetch("GET", "/fields/directus_users")
    return any(field.get("field") == "arena" for field in (data or {}).get("data") or [])


def ensure_booking_permissions(client: DirectusClient, role_id: str) -> list[str]:
    """Create the missing arena-scoped booking permissions; return the created actions."""

    data = client.fetch(
        "GET",
        "/permissions",
        params={"filter[collection][_eq]": "bookings", "filter[role][_eq]": role_id, "fields": "id,action"},
    )
    existing = {row.get("action") for row in (data or {}).get("data") or []}
    created = []
    for action in BOOKING_ACTIONS:
        if action in existing:
            continue
        payload: dict[str, Any] = {
            "role": role_id,
            "collection": "bookings",
            "action": action,
            "fields": ["*"],
            "permissions": {"_and": [ARENA_SCOPE]} if action == "create" else ARENA_SCOPE,
            "validation": None,
            "presets": None,
        }
        client.fetch("POST", "/permissions", json=payload)
        created.append(action)
    return created


def add_game_field(client: DirectusClient, definition: dict) -> bool:
    """Create a field on ``games``; returns False when it already exists."""

    try:
        client.fetch("POST", "/fields/games", json=definition)
    except DirectusError as exc:
        if "already exists" in exc.body:
            return False
        raise
    return True


def register_commands(app: Flask) -> None:
    """Attach the maintenance commands to ``app.cli``."""

    @app.cli.command("check-directus")
    @click.option("--token", default=None, help="Admin token (defaults to DIRECTUS_ADMIN_TOKEN).")
    def check_directus_command(token: Optional[str]) -> None:
        """Report on server health, collections, roles and permissions."""

        client = _admin_client(token)
        click.echo(f"Directus: {client.base_url}")
        try:
            health = client.request("GET", "/server/health", anonymous=True)
            click.echo(f"server health: {'ok' if health.ok else health.status_code}")

            games = client.fetch("GET", "/items/games", params={"fields": "id,name,price_per_player,category", "limit": 3})
            rows = (games or {}).get("data") or []
            click.echo(f"games: {len(rows)} sampled")
            for row in rows:
                price = row.get("price_per_player")
                click.echo(f"  - {row.get('name')}: {price if price is not None else 'no price'}")

            bookings = client.request("GET", "/items/bookings", params={"limit": 1})
            click.echo(f"bookings: {'ok' if bookings.ok else bookings.status_code}")

            roles = (client.fetch("GET", "/roles", params={"fields": "id,name"}) or {}).get("data") or []
            click.echo("roles: " + ", ".join(str(role.get("name")) for role in roles))

            role_id = find_role_id(client, BRANCH_ADMIN_ROLE)
            if role_id is None:
                click.echo(f"role {BRANCH_ADMIN_ROLE} not found")
            else:
                for collection, actions in sorted(role_permissions(client, role_id).items()):
                    click.echo(f"  {collection}: {', '.join(actions)}")

            click.echo(f"users.arena field: {'present' if has_user_arena_field(client) else 'missing'}")
        except DirectusError as exc:
            raise click.ClickException(str(exc)) from exc
        finally:
            client.close()

    @app.cli.command("setup-booking-permissions")
    @click.option("--role", "role_name", default=BRANCH_ADMIN_ROLE, show_default=True)
    @click.option("--token", default=None, help="Admin token (defaults to DIRECTUS_ADMIN_TOKEN).")
    def setup_booking_permissions_command(role_name: str, token: Optional[str]) -> None:
        """Grant a role arena-scoped create/read/update on bookings."""

        client = _admin_client(token)
        try:
            role_id = find_role_id(client, role_name)
            if role_id is None:
                raise click.ClickException(f"Role {role_name!r} not found.")
            created = ensure_booking_permissions(client, role_id)
            if created:
                click.echo(f"Created permissions: {', '.join(created)}")
            else:
                click.echo("Permissions already configured.")
            if not has_user_arena_field(client):
                click.echo("Warning: directus_users has no 'arena' field; scoped permissions will not match.")
        except DirectusError as exc:
            raise click.ClickException(str(exc)) from exc
        finally:
            client.close()

    @app.cli.command("add-game-fields")
    @click.option("--token", default=None, help="Admin token (defaults to DIRECTUS_ADMIN_TOKEN).")
    def add_game_fields_command(token: Optional[str]) -> None:
        """Add price_per_player and category to the games collection."""

        client = _admin_client(token)
        try:
            for definition in GAME_FIELDS:
                if add_game_field(client, definition):
                    click.echo(f"Created field {definition['field']}")
                else:
                    click.echo(f"Field {definition['field']} already exists")
        except DirectusError as exc:
            raise click.ClickException(str(exc)) from exc
        finally:
            client.close()
