import pytest
from fastapi.testclient import TestClient

from bracket_league.core.config import Settings, get_settings
from bracket_league.main import app
from bracket_league.routes.dependencies import get_store
from tests.helpers import ADMIN_WALLET


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: Settings(ADMIN_WALLETS="")
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def guarded_client(store):
    """Client for an app with a single configured admin wallet."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: Settings(ADMIN_WALLETS=ADMIN_WALLET)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def api_players(client):
    """Factory registering ``count`` players over the API."""
    def _register(count):
        players = []
        for i in range(1, count + 1):
            response = client.post("/api/players", json={"username": f"Gamer{i}", "wallet_address": f"0xWALLET{i}"})
            assert response.status_code == 201
            players.append(response.json())
        return players
    return _register
