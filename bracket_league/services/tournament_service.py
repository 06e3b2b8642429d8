import logging
import random
from contextlib import contextmanager
from functools import partial
from typing import Callable, Iterator, List, Optional

import pydantic

from bracket_league.core.errors import (
    ConflictError,
    DocumentCorruptError,
    NotFoundError,
    StateError,
    ValidationError,
)
from bracket_league.models.participant_model import Participant, utcnow
from bracket_league.models.tournament_model import TournamentExport, TournamentModel, TournamentStatus
from bracket_league.services.bracket_service import MIN_PARTICIPANTS, build_bracket
from bracket_league.services.player_service import PlayerService
from bracket_league.store.document_store import JsonDocumentStore

logger = logging.getLogger(__name__)

TOURNAMENTS_PREFIX = "tournaments"

StatsUpdate = Callable[[], None]


class TournamentService:
    """
    Tournament lifecycle: registration -> started -> finished.

    Every mutating operation runs as one read-modify-write of the tournament
    document inside the store's per-document transaction.
    """

    def __init__(self, store: JsonDocumentStore, player_service: PlayerService, rng: Optional[random.Random] = None):
        self.store = store
        self.player_service = player_service
        self.rng = rng

    def _key(self, tournament_id: str) -> str:
        return f"{TOURNAMENTS_PREFIX}/{tournament_id}"

    def _parse(self, key: str) -> TournamentModel:
        data = self.store.read(key)
        try:
            return TournamentModel(**data)
        except (pydantic.ValidationError, TypeError) as e:
            raise DocumentCorruptError(f"Document '{key}' is not a valid tournament: {e}") from e

    def _load(self, tournament_id: str) -> TournamentModel:
        key = self._key(tournament_id)
        if not self.store.exists(key):
            raise NotFoundError(f"Tournament with ID {tournament_id} not found.")
        return self._parse(key)

    def _save(self, tournament: TournamentModel):
        self.store.write(self._key(tournament.id), tournament.model_dump(mode="json"))

    @contextmanager
    def mutate(self, tournament_id: str) -> Iterator[TournamentModel]:
        """Loads a tournament under its lock and persists it when the block exits cleanly."""
        with self.store.transaction(self._key(tournament_id)):
            tournament = self._load(tournament_id)
            yield tournament
            self._save(tournament)

    # --- queries ---

    def get_tournament_by_id(self, tournament_id: str) -> TournamentModel:
        return self._load(tournament_id)

    def get_all_tournaments(self, status: Optional[TournamentStatus] = None) -> List[TournamentModel]:
        tournaments = []
        for key in self.store.keys(TOURNAMENTS_PREFIX):
            try:
                tournament = self._parse(key)
            except NotFoundError:
                # cancelled since the key listing
                continue
            except DocumentCorruptError as e:
                logger.warning("Skipping unreadable tournament document: %s", e.message)
                continue
            if status is None or tournament.status == status:
                tournaments.append(tournament)
        return sorted(tournaments, key=lambda t: t.created_at)

    def export_tournament(self, tournament_id: str) -> TournamentExport:
        tournament = self._load(tournament_id)
        return TournamentExport(**tournament.model_dump(exclude={"bracket"}), bracket=tournament.bracket)

    # --- lifecycle ---

    def create_tournament(self, name: str, description: str = "", game_id: str = "general") -> TournamentModel:
        if not name or not name.strip():
            raise ValidationError("Tournament name is required.")
        tournament = TournamentModel(name=name, description=description or "", game_id=game_id or "general")
        with self.store.transaction(self._key(tournament.id)):
            self._save(tournament)
        logger.info("Created tournament %s (%s)", tournament.name, tournament.id)
        return tournament

    def register_participant(self, tournament_id: str, participant: Participant) -> TournamentModel:
        with self.mutate(tournament_id) as tournament:
            if tournament.status != TournamentStatus.REGISTRATION:
                raise StateError("Registration is closed for this tournament.")
            if tournament.participant_by_wallet(participant.wallet_address):
                raise ConflictError(f"Wallet {participant.wallet_address} is already registered for this tournament.")
            tournament.participants.append(participant)
        logger.info("%s joined tournament %s", participant.display_name, tournament.id)
        return tournament

    def unregister_participant(self, tournament_id: str, wallet_address: str) -> TournamentModel:
        with self.mutate(tournament_id) as tournament:
            if tournament.status != TournamentStatus.REGISTRATION:
                raise StateError("Participants can only leave during registration.")
            participant = tournament.participant_by_wallet(wallet_address)
            if not participant:
                raise NotFoundError(f"Wallet {wallet_address} is not registered for this tournament.")
            tournament.participants = [p for p in tournament.participants if p.id != participant.id]
        logger.info("%s left tournament %s", participant.display_name, tournament.id)
        return tournament

    def start_tournament(self, tournament_id: str) -> TournamentModel:
        with self.mutate(tournament_id) as tournament:
            if tournament.status != TournamentStatus.REGISTRATION:
                raise StateError(f"Tournament is already {tournament.status.value}.")
            if len(tournament.participants) < MIN_PARTICIPANTS:
                raise ValidationError(f"At least {MIN_PARTICIPANTS} participants are required to start.")
            tournament.bracket = build_bracket(tournament.participants, rng=self.rng)
            tournament.status = TournamentStatus.STARTED
            tournament.started_at = utcnow()
        logger.info("Started tournament %s with %d participants", tournament.id, len(tournament.participants))
        return tournament

    def reset_tournament(self, tournament_id: str) -> TournamentModel:
        with self.mutate(tournament_id) as tournament:
            if tournament.status != TournamentStatus.REGISTRATION:
                raise StateError("Only tournaments in registration can be reset.")
            tournament.participants = []
        logger.info("Reset participants of tournament %s", tournament.id)
        return tournament

    def cancel_tournament(self, tournament_id: str) -> None:
        key = self._key(tournament_id)
        with self.store.transaction(key):
            tournament = self._load(tournament_id)
            if tournament.status == TournamentStatus.FINISHED:
                raise StateError("Finished tournaments cannot be cancelled.")
            self.store.delete(key)
        logger.info("Cancelled tournament %s", tournament_id)

    def force_complete(self, tournament_id: str, winner_ref: str) -> TournamentModel:
        """Declares a winner without requiring the bracket to finish (abandoned tournaments)."""
        with self.mutate(tournament_id) as tournament:
            if tournament.status == TournamentStatus.FINISHED:
                raise StateError("Tournament is already finished.")
            winner = next((p for p in tournament.participants if p.matches_ref(winner_ref)), None)
            if not winner:
                raise ValidationError(f"{winner_ref} is not a participant of this tournament.")
            updates = self.finish(tournament, winner)
        logger.info("Force-completed tournament %s, winner %s", tournament.id, winner.display_name)
        self.apply_stats_updates(updates)
        return tournament

    # --- completion bookkeeping, shared with the match service ---

    def finish(self, tournament: TournamentModel, champion: Participant) -> List[StatsUpdate]:
        """
        Marks the tournament finished with ``champion``.
        Returns the registry updates to run once the tournament document is saved.
        """
        previous = tournament.winner if tournament.status == TournamentStatus.FINISHED else None
        tournament.status = TournamentStatus.FINISHED
        tournament.winner = champion
        if previous is None or previous.id != champion.id:
            tournament.finished_at = utcnow()
        if tournament.bracket is not None:
            tournament.bracket.is_complete = True
            tournament.bracket.winner = champion

        game_id = tournament.game_id
        if previous is None:
            wallets = [p.wallet_address for p in tournament.participants]
            return [
                partial(self.player_service.record_win, champion.wallet_address, game_id),
                partial(self.player_service.record_played, wallets, game_id),
            ]
        if previous.id != champion.id:
            logger.warning(
                "Champion of tournament %s changed from %s to %s",
                tournament.id, previous.display_name, champion.display_name,
            )
            return [
                partial(self.player_service.revoke_win, previous.wallet_address, game_id),
                partial(self.player_service.record_win, champion.wallet_address, game_id),
            ]
        return []

    def reopen(self, tournament: TournamentModel) -> List[StatsUpdate]:
        """Reverts a finished tournament to started, undoing its recorded statistics."""
        if tournament.status != TournamentStatus.FINISHED:
            return []
        previous = tournament.winner
        tournament.status = TournamentStatus.STARTED
        tournament.winner = None
        tournament.finished_at = None
        if tournament.bracket is not None:
            tournament.bracket.is_complete = False
            tournament.bracket.winner = None
        logger.warning("Tournament %s reopened by match reset", tournament.id)
        if previous is None:
            return []
        wallets = [p.wallet_address for p in tournament.participants]
        return [
            partial(self.player_service.revoke_win, previous.wallet_address, tournament.game_id),
            partial(self.player_service.revoke_played, wallets, tournament.game_id),
        ]

    def apply_stats_updates(self, updates: List[StatsUpdate]):
        for update in updates:
            update()
