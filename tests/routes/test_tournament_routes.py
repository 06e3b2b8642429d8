from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from bracket_league.core.errors import PersistenceError
from bracket_league.main import app
from bracket_league.models.bracket_model import MatchModel
from bracket_league.models.participant_model import Participant
from bracket_league.routes.dependencies import get_match_service, get_tournament_service
from bracket_league.services.match_service import MatchService
from bracket_league.services.tournament_service import TournamentService
from tests.helpers import ADMIN_WALLET


@pytest.fixture
def open_tournament(client: TestClient, api_players):
    """Factory creating a tournament over the API with ``count`` joined players."""
    def _create(count, game_id="fifa"):
        response = client.post("/api/tournaments", json={"name": "Friday Cup", "game_id": game_id})
        assert response.status_code == 201
        tournament = response.json()
        for player in api_players(count):
            joined = client.post(
                f"/api/tournaments/{tournament['id']}/participants",
                json={"wallet_address": player["wallet_address"]},
            )
            assert joined.status_code == 200
        return tournament
    return _create


def start(client: TestClient, tournament_id):
    response = client.post(f"/api/tournaments/{tournament_id}/start")
    assert response.status_code == 200
    return response.json()


def report(client: TestClient, tournament_id, match, submitter, score1, score2):
    return client.post(
        f"/api/tournaments/{tournament_id}/matches/{match['id']}/result",
        json={"submitter": submitter, "score1": score1, "score2": score2},
    )


class TestTournamentRoutesSmoke:

    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "OK"

    def test_persistence_error_maps_to_500(self, client: TestClient):
        mock_service = MagicMock(spec=TournamentService)
        mock_service.get_all_tournaments.side_effect = PersistenceError("Timed out waiting for lock")
        app.dependency_overrides[get_tournament_service] = lambda: mock_service

        response = client.get("/api/tournaments")

        assert response.status_code == 500
        assert response.json() == {"detail": "Timed out waiting for lock", "error": "PersistenceError"}

    def test_list_passes_status_filter(self, client: TestClient):
        mock_service = MagicMock(spec=TournamentService)
        mock_service.get_all_tournaments.return_value = []
        app.dependency_overrides[get_tournament_service] = lambda: mock_service

        response = client.get("/api/tournaments", params={"status": "started"})

        assert response.status_code == 200
        assert response.json() == []
        args, kwargs = mock_service.get_all_tournaments.call_args
        assert kwargs["status"].value == "started"

    def test_submit_responds_with_written_match(self, client: TestClient):
        match = MatchModel(
            player1=Participant(id="p1", wallet_address="0xA", display_name="Alice"),
            player2=Participant(id="p2", wallet_address="0xB", display_name="Bob"),
        )
        mock_service = MagicMock(spec=MatchService)
        mock_service.submit_result.return_value = (3, match)
        app.dependency_overrides[get_match_service] = lambda: mock_service

        response = client.post(
            f"/api/tournaments/t1/matches/{match.id}/result",
            json={"submitter": "p1", "score1": 2, "score2": 0},
        )

        assert response.status_code == 200
        assert response.json()["round_number"] == 3
        assert response.json()["match"]["id"] == match.id
        mock_service.submit_result.assert_called_once_with("t1", match.id, "p1", 2, 0)
        mock_service.get_match.assert_not_called()


class TestTournamentRoutes:

    def test_create_and_get(self, client: TestClient):
        created = client.post("/api/tournaments", json={"name": "Cup", "description": "Weekly"}).json()
        assert created["status"] == "registration"
        assert created["game_id"] == "general"

        response = client.get(f"/api/tournaments/{created['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Cup"

    def test_create_validation(self, client: TestClient):
        assert client.post("/api/tournaments", json={"name": ""}).status_code == 422

    def test_list_skips_malformed_documents(self, client: TestClient, store):
        client.post("/api/tournaments", json={"name": "Cup"})
        store.write("tournaments/bad", {"id": "bad"})

        response = client.get("/api/tournaments")

        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["Cup"]
        broken = client.get("/api/tournaments/bad")
        assert broken.status_code == 500
        assert broken.json()["error"] == "DocumentCorruptError"

    def test_get_unknown(self, client: TestClient):
        response = client.get("/api/tournaments/missing")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_join_requires_registered_wallet(self, client: TestClient):
        tournament = client.post("/api/tournaments", json={"name": "Cup"}).json()
        response = client.post(
            f"/api/tournaments/{tournament['id']}/participants", json={"wallet_address": "0xNOBODY"},
        )
        assert response.status_code == 404

    def test_join_twice_conflicts(self, client: TestClient, open_tournament):
        tournament = open_tournament(1)
        response = client.post(
            f"/api/tournaments/{tournament['id']}/participants", json={"wallet_address": "0xwallet1"},
        )
        assert response.status_code == 409

    def test_leave(self, client: TestClient, open_tournament):
        tournament = open_tournament(2)
        response = client.delete(f"/api/tournaments/{tournament['id']}/participants/0xWALLET1")
        assert response.status_code == 200
        assert [p["wallet_address"] for p in response.json()["participants"]] == ["0xWALLET2"]

    def test_reset_participants(self, client: TestClient, open_tournament):
        tournament = open_tournament(3)
        response = client.post(f"/api/tournaments/{tournament['id']}/reset")
        assert response.status_code == 200
        assert response.json()["participants"] == []

    def test_start_with_one_player(self, client: TestClient, open_tournament):
        tournament = open_tournament(1)
        response = client.post(f"/api/tournaments/{tournament['id']}/start")
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_start_and_bracket(self, client: TestClient, open_tournament):
        tournament = open_tournament(5)
        started = start(client, tournament["id"])
        assert started["status"] == "started"

        bracket = client.get(f"/api/tournaments/{tournament['id']}/bracket").json()
        assert bracket["bracket_size"] == 8
        assert bracket["total_rounds"] == 3
        assert len(bracket["rounds"][0]) == 1
        assert len(bracket["players_with_byes"]) == 3

    def test_bracket_before_start_is_null(self, client: TestClient):
        tournament = client.post("/api/tournaments", json={"name": "Cup"}).json()
        response = client.get(f"/api/tournaments/{tournament['id']}/bracket")
        assert response.status_code == 200
        assert response.json() is None

    def test_cancel(self, client: TestClient, open_tournament):
        tournament = open_tournament(2)
        assert client.delete(f"/api/tournaments/{tournament['id']}").status_code == 204
        assert client.get(f"/api/tournaments/{tournament['id']}").status_code == 404

    def test_export(self, client: TestClient, open_tournament):
        tournament = open_tournament(2)
        start(client, tournament["id"])
        data = client.get(f"/api/tournaments/{tournament['id']}/export").json()
        assert data["id"] == tournament["id"]
        assert "exported_at" in data
        assert len(data["participants"]) == 2


class TestMatchRoutes:

    def test_full_flow_to_champion(self, client: TestClient, open_tournament):
        tournament = open_tournament(2, game_id="cod")
        (final,) = start(client, tournament["id"])["bracket"]["rounds"][0]

        first = report(client, tournament["id"], final, final["player1"]["wallet_address"], 2, 5)
        assert first.status_code == 200
        assert first.json()["state"] == "awaiting_second_submission"

        second = report(client, tournament["id"], final, final["player2"]["id"], 2, 5)
        assert second.status_code == 200
        body = second.json()
        assert body["state"] == "completed"
        assert body["round_number"] == 1
        assert body["match"]["winner"]["id"] == final["player2"]["id"]
        assert body["match"]["completed_by"] == "auto"

        finished = client.get(f"/api/tournaments/{tournament['id']}").json()
        assert finished["status"] == "finished"
        assert finished["winner"]["id"] == final["player2"]["id"]

        champion = client.get(f"/api/players/{final['player2']['wallet_address']}").json()
        assert champion["tournaments_won"] == 1
        assert champion["wins_by_game"] == {"cod": 1}

    def test_submission_errors(self, client: TestClient, open_tournament):
        tournament = open_tournament(4)
        first_round = start(client, tournament["id"])["bracket"]["rounds"][0]
        match, other = first_round

        assert report(client, tournament["id"], match, match["player1"]["id"], 1, 1).status_code == 400
        assert report(client, tournament["id"], match, other["player1"]["id"], 3, 1).status_code == 403
        assert report(client, tournament["id"], match, match["player1"]["id"], 3, 1).status_code == 200
        assert report(client, tournament["id"], match, match["player1"]["id"], 3, 1).status_code == 409
        assert report(client, tournament["id"], match, match["player1"]["id"], -1, 1).status_code == 422

    def test_conflict_then_admin_resolution(self, client: TestClient, open_tournament):
        tournament = open_tournament(4)
        match = start(client, tournament["id"])["bracket"]["rounds"][0][0]
        report(client, tournament["id"], match, match["player1"]["id"], 3, 1)
        conflicted = report(client, tournament["id"], match, match["player2"]["id"], 1, 3)
        assert conflicted.json()["state"] == "conflict"

        conflicts = client.get("/api/tournaments/conflicts").json()
        assert conflicts["total_conflicts"] == 1
        assert conflicts["conflicts"][0]["match"]["id"] == match["id"]
        assert client.get(f"/api/tournaments/{tournament['id']}/conflicts").json()["total_conflicts"] == 1

        resolved = client.post(
            f"/api/tournaments/{tournament['id']}/matches/{match['id']}/admin-result",
            json={"winner_id": match["player2"]["id"]},
        )
        assert resolved.status_code == 200
        assert resolved.json()["match"]["completed_by"] == "admin"
        assert resolved.json()["match"]["pending_results"] == []
        assert client.get("/api/tournaments/conflicts").json()["total_conflicts"] == 0

    def test_admin_result_requires_payload(self, client: TestClient, open_tournament):
        tournament = open_tournament(2)
        match = start(client, tournament["id"])["bracket"]["rounds"][0][0]
        response = client.post(f"/api/tournaments/{tournament['id']}/matches/{match['id']}/admin-result", json={})
        assert response.status_code == 400

    def test_reset_match(self, client: TestClient, open_tournament):
        tournament = open_tournament(2)
        match = start(client, tournament["id"])["bracket"]["rounds"][0][0]
        report(client, tournament["id"], match, match["player1"]["id"], 3, 1)
        report(client, tournament["id"], match, match["player2"]["id"], 3, 1)

        response = client.post(f"/api/tournaments/{tournament['id']}/matches/{match['id']}/reset")

        assert response.status_code == 200
        assert response.json()["state"] == "pending"
        assert client.get(f"/api/tournaments/{tournament['id']}").json()["status"] == "started"

    def test_get_match(self, client: TestClient, open_tournament):
        tournament = open_tournament(2)
        match = start(client, tournament["id"])["bracket"]["rounds"][0][0]
        response = client.get(f"/api/tournaments/{tournament['id']}/matches/{match['id']}")
        assert response.status_code == 200
        assert response.json()["match"]["id"] == match["id"]
        assert client.get(f"/api/tournaments/{tournament['id']}/matches/nope").status_code == 404

    def test_force_complete(self, client: TestClient, open_tournament):
        tournament = open_tournament(3)
        start(client, tournament["id"])
        response = client.post(
            f"/api/tournaments/{tournament['id']}/force-complete", json={"winner_id": "0xWALLET3"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "finished"
        assert response.json()["winner"]["wallet_address"] == "0xWALLET3"


class TestAdminGuard:

    def test_admin_route_rejects_missing_header(self, guarded_client: TestClient):
        tournament = guarded_client.post("/api/tournaments", json={"name": "Cup"}).json()
        response = guarded_client.post(f"/api/tournaments/{tournament['id']}/reset")
        assert response.status_code == 403
        assert response.json()["error"] == "AuthorizationError"

    def test_admin_route_rejects_other_wallet(self, guarded_client: TestClient):
        response = guarded_client.get("/api/tournaments/conflicts", headers={"X-Wallet-Address": "0xSOMEONE"})
        assert response.status_code == 403

    def test_admin_wallet_is_case_insensitive(self, guarded_client: TestClient):
        response = guarded_client.get("/api/tournaments/conflicts", headers={"X-Wallet-Address": ADMIN_WALLET.lower()})
        assert response.status_code == 200
        assert response.json() == {"total_conflicts": 0, "conflicts": []}
