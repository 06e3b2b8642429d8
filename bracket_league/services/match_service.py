import logging
from typing import List, NamedTuple, Optional, Tuple

from bracket_league.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from bracket_league.models.bracket_model import (
    AdminResolution,
    ByScore,
    ByWinnerId,
    CompletedBy,
    MatchModel,
    MatchState,
    MatchStatus,
    SubmittedResult,
    MAX_SUBMISSIONS,
)
from bracket_league.models.participant_model import Participant, utcnow
from bracket_league.models.tournament_model import TournamentModel, TournamentStatus
from bracket_league.services.bracket_service import Advancement, AdvancementKind, advance_round
from bracket_league.services.tournament_service import TournamentService

logger = logging.getLogger(__name__)


class ConflictEntry(NamedTuple):
    tournament_id: str
    tournament_name: str
    round_number: int
    match: MatchModel


def _validate_scores(score1: int, score2: int):
    if score1 is None or score2 is None:
        raise ValidationError("Both scores are required.")
    if score1 < 0 or score2 < 0:
        raise ValidationError("Scores cannot be negative.")
    if score1 == score2:
        raise ValidationError("Scores cannot be equal in a single elimination match. A winner must be determined.")


class MatchService:
    """
    Two-party result reconciliation for bracket matches.

    Each player submits the score once. Matching submissions complete the match,
    differing ones are flagged as a conflict for an admin to resolve.
    """

    def __init__(self, tournament_service: TournamentService):
        self.tournament_service = tournament_service

    @staticmethod
    def _find_match(tournament: TournamentModel, match_id: str) -> Tuple[int, MatchModel]:
        if tournament.bracket is None:
            raise StateError("Tournament has not started; there are no matches yet.")
        round_index, match = tournament.bracket.locate_match(match_id)
        if match is None:
            raise NotFoundError(f"Match with ID {match_id} not found in tournament {tournament.id}.")
        return round_index, match

    def _complete(self, tournament: TournamentModel, round_index: int, match: MatchModel,
                  winner: Participant, score1: Optional[int], score2: Optional[int],
                  completed_by: CompletedBy):
        bracket = tournament.bracket
        match.score1 = score1
        match.score2 = score2
        match.winner = winner
        match.status = MatchStatus.COMPLETED
        match.completed_at = utcnow()
        match.completed_by = completed_by
        logger.info(
            "Match %s completed by %s, winner %s", match.id, completed_by.value, winner.display_name,
        )
        if tournament.status == TournamentStatus.FINISHED and round_index + 1 != bracket.total_rounds:
            # Only the final can change the outcome of a finished tournament
            logger.warning(
                "Match %s in round %d updated after tournament %s finished; bracket is not advanced",
                match.id, round_index + 1, tournament.id,
            )
            return Advancement(AdvancementKind.STALE, round_index + 1), []
        advancement = advance_round(bracket, round_index)
        if advancement.kind == AdvancementKind.CHAMPION:
            return advancement, self.tournament_service.finish(tournament, advancement.champion)
        if advancement.kind == AdvancementKind.STALE and round_index + 1 < len(bracket.rounds):
            logger.warning(
                "Match %s in round %d changed after round %d was opened; later rounds are not updated",
                match.id, round_index + 1, round_index + 2,
            )
        return advancement, []

    def submit_result(self, tournament_id: str, match_id: str, submitter: str,
                      score1: int, score2: int) -> Tuple[int, MatchModel]:
        """
        Records one player's view of the score. ``submitter`` is the participant
        id or wallet address of one of the two players. Returns the match and its
        1-based round number as written.
        """
        _validate_scores(score1, score2)
        updates = []
        with self.tournament_service.mutate(tournament_id) as tournament:
            if tournament.status == TournamentStatus.FINISHED:
                raise StateError("Tournament is already finished.")
            if tournament.status != TournamentStatus.STARTED:
                raise StateError("Tournament has not started.")
            round_index, match = self._find_match(tournament, match_id)

            player = match.player_for(submitter)
            if player is None:
                raise AuthorizationError("Only the two players of a match can submit its result.")
            if match.status == MatchStatus.COMPLETED:
                raise StateError("Match is already completed.")
            if any(r.submitted_by == player.id for r in match.pending_results):
                raise ConflictError("You have already submitted a result for this match.")
            if len(match.pending_results) >= MAX_SUBMISSIONS:
                raise ConflictError("Match results are in conflict and await admin resolution.")

            result = SubmittedResult(submitted_by=player.id, score1=score1, score2=score2, submitted_at=utcnow())
            match.pending_results.append(result)

            if len(match.pending_results) == MAX_SUBMISSIONS:
                first, second = match.pending_results
                if first.same_scores(second):
                    winner = match.winner_for_scores(score1, score2)
                    _, updates = self._complete(tournament, round_index, match, winner, score1, score2, CompletedBy.AUTO)
                else:
                    first.conflict = True
                    second.conflict = True
                    logger.warning(
                        "Conflicting results for match %s in tournament %s: %d-%d vs %d-%d",
                        match.id, tournament.id, first.score1, first.score2, second.score1, second.score2,
                    )
            else:
                logger.info("First result for match %s submitted by %s", match.id, player.display_name)
        self.tournament_service.apply_stats_updates(updates)
        return round_index + 1, match

    def admin_set_result(self, tournament_id: str, match_id: str, resolution: AdminResolution) -> Tuple[int, MatchModel]:
        """Authoritative result, usable in any match state including corrections of completed matches."""
        if resolution is None:
            raise ValidationError("Either a winner id or a score pair is required.")
        if isinstance(resolution, ByScore):
            _validate_scores(resolution.score1, resolution.score2)

        with self.tournament_service.mutate(tournament_id) as tournament:
            if tournament.status == TournamentStatus.REGISTRATION:
                raise StateError("Tournament has not started.")
            round_index, match = self._find_match(tournament, match_id)

            if isinstance(resolution, ByWinnerId):
                winner = match.player_for(resolution.winner_id)
                if winner is None:
                    raise ValidationError("Winner must be one of the match's players.")
                score1 = score2 = None
            else:
                score1, score2 = resolution.score1, resolution.score2
                winner = match.winner_for_scores(score1, score2)

            match.pending_results = []
            _, updates = self._complete(tournament, round_index, match, winner, score1, score2, CompletedBy.ADMIN)
        self.tournament_service.apply_stats_updates(updates)
        return round_index + 1, match

    def reset_match(self, tournament_id: str, match_id: str) -> Tuple[int, MatchModel]:
        """
        Admin escape hatch: returns a match to pending and clears everything
        recorded on it. Only matches of the latest round can be reset, since an
        earlier match's winner has already been paired into the next round.
        """
        with self.tournament_service.mutate(tournament_id) as tournament:
            round_index, match = self._find_match(tournament, match_id)
            if round_index != len(tournament.bracket.rounds) - 1:
                raise StateError(
                    "Match cannot be reset: its winner already plays in a later round."
                )
            match.status = MatchStatus.PENDING
            match.winner = None
            match.score1 = None
            match.score2 = None
            match.pending_results = []
            match.completed_at = None
            match.completed_by = None
            updates = self.tournament_service.reopen(tournament)
        logger.info("Match %s in tournament %s reset", match_id, tournament_id)
        self.tournament_service.apply_stats_updates(updates)
        return round_index + 1, match

    def list_conflicts(self, tournament_id: Optional[str] = None) -> List[ConflictEntry]:
        if tournament_id is not None:
            tournaments = [self.tournament_service.get_tournament_by_id(tournament_id)]
        else:
            tournaments = self.tournament_service.get_all_tournaments()
        conflicts = []
        for tournament in tournaments:
            if tournament.bracket is None:
                continue
            for round_index, round_matches in enumerate(tournament.bracket.rounds):
                for match in round_matches:
                    if match.state == MatchState.CONFLICT:
                        conflicts.append(ConflictEntry(tournament.id, tournament.name, round_index + 1, match))
        return conflicts

    def get_match(self, tournament_id: str, match_id: str) -> Tuple[int, MatchModel]:
        tournament = self.tournament_service.get_tournament_by_id(tournament_id)
        round_index, match = self._find_match(tournament, match_id)
        return round_index + 1, match
