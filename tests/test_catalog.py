"""Arena and game catalogue API tests."""

from __future__ import annotations


def test_arenas_listed_with_user_token(operator_client, directus):
    response = operator_client.get("/api/arenas")
    assert response.status_code == 200
    arenas = response.get_json()
    assert [arena["title"] for arena in arenas] == ["Alpha", "Bravo"]
    assert arenas[0]["id"] == "1"
    assert arenas[0]["address"] == "Main st 1"
    assert directus.calls_to("GET", "/items/arenas")[-1]["token"] == "operator-access"


def test_arenas_fall_back_to_minimal_fields(operator_client, directus):
    directus.fail("GET", "/items/arenas", status=403, fields="id,name,address")
    response = operator_client.get("/api/arenas")
    assert response.status_code == 200
    assert len(response.get_json()) == 2
    assert directus.calls_to("GET", "/items/arenas")[-1]["params"]["fields"] == "id,name"


def test_arena_update_and_delete(manager_client, directus):
    missing = manager_client.patch("/api/arenas", json={"name": "Alpha Prime"})
    assert missing.status_code == 400

    response = manager_client.patch("/api/arenas", json={"id": 1, "name": " Alpha Prime ", "address": "  "})
    assert response.status_code == 200
    assert directus.items["arenas"][0] == {"id": 1, "name": "Alpha Prime", "address": None}

    assert manager_client.delete("/api/arenas").status_code == 400
    assert manager_client.delete("/api/arenas?id=2").status_code == 200
    assert [arena["id"] for arena in directus.items["arenas"]] == [1]


def test_arena_failure_is_reported(manager_client, directus):
    directus.fail("POST", "/items/arenas", status=400, body="invalid payload")
    response = manager_client.post("/api/arenas", json={"name": "Delta", "address": "Side st"})
    assert response.status_code == 500
    assert response.get_json()["error"] == "Failed to create arena"


def test_games_listed_with_service_token(operator_client, directus):
    response = operator_client.get("/api/games")
    assert response.status_code == 200
    games = response.get_json()
    assert games[0] == {"id": "1", "name": "Kernel: Bunker", "category": "Kernel", "price_per_player": 3000}
    assert directus.calls_to("GET", "/items/games")[-1]["token"] == "service-token"


def test_games_fall_back_when_schema_lacks_fields(operator_client, directus):
    directus.fail("GET", "/items/games", status=403, fields="id,name,category,price_per_player")
    response = operator_client.get("/api/games")
    assert response.status_code == 200
    assert [game["name"] for game in response.get_json()] == ["Kernel: Bunker", "Shmooter: Forts"]


def test_game_mutations(manager_client, operator_client, directus):
    assert operator_client.post("/api/games", json={"name": "Starbase: Swarm"}).status_code == 403
    assert manager_client.post("/api/games", json={}).status_code == 400

    created = manager_client.post("/api/games", json={"name": "Starbase: Swarm", "category": "Starbase"})
    assert created.status_code == 200
    assert directus.items["games"][-1]["category"] == "Starbase"

    renamed = manager_client.patch("/api/games", json={"id": 2, "name": "Shmooter: Forts II"})
    assert renamed.status_code == 200
    assert directus.calls_to("PATCH", "/items/games/2")[-1]["json"] == {"name": "Shmooter: Forts II"}

    cleared = manager_client.patch("/api/games", json={"id": 1, "name": "Kernel: Bunker", "category": None})
    assert cleared.status_code == 200
    assert directus.items["games"][0]["category"] is None

    assert manager_client.delete("/api/games?id=2").status_code == 200
    assert all(game["id"] != 2 for game in directus.items["games"])
