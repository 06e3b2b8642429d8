import random

import pytest

from bracket_league.services.match_service import MatchService
from bracket_league.services.player_service import PlayerService
from bracket_league.services.tournament_service import TournamentService
from bracket_league.store.document_store import JsonDocumentStore


@pytest.fixture
def store(tmp_path):
    return JsonDocumentStore(str(tmp_path / "data"), lock_timeout=5)


@pytest.fixture
def player_service(store):
    return PlayerService(store)


@pytest.fixture
def tournament_service(store, player_service):
    return TournamentService(store, player_service, rng=random.Random(1234))


@pytest.fixture
def match_service(tournament_service):
    return MatchService(tournament_service)


@pytest.fixture
def registered_players(player_service):
    """Factory registering ``count`` players and returning their participants."""
    def _register(count):
        return [
            player_service.register_player(f"Gamer{i}", f"0xWALLET{i}").as_participant()
            for i in range(1, count + 1)
        ]
    return _register


@pytest.fixture
def started_tournament(tournament_service, registered_players):
    """Factory creating a started tournament with ``count`` registered players."""
    def _start(count, game_id="fifa"):
        tournament = tournament_service.create_tournament("Friday Cup", game_id=game_id)
        for participant in registered_players(count):
            tournament_service.register_participant(tournament.id, participant)
        return tournament_service.start_tournament(tournament.id)
    return _start
