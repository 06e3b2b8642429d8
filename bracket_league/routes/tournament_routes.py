from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from bracket_league.models.bracket_model import BracketModel
from bracket_league.models.tournament_model import TournamentExport, TournamentModel, TournamentStatus
from bracket_league.routes.dependencies import (
    get_match_service,
    get_player_service,
    get_tournament_service,
    require_admin,
)
from bracket_league.schemas.tournament_schemas import (
    AdminResultRequest,
    ConflictList,
    ConflictRead,
    ForceCompleteRequest,
    MatchRead,
    ParticipantJoin,
    ResultSubmission,
    TournamentCreate,
)
from bracket_league.services.match_service import MatchService
from bracket_league.services.player_service import PlayerService
from bracket_league.services.tournament_service import TournamentService

router = APIRouter()


def _conflict_list(entries) -> ConflictList:
    conflicts = [ConflictRead(**entry._asdict()) for entry in entries]
    return ConflictList(total_conflicts=len(conflicts), conflicts=conflicts)


# --- Tournament Endpoints ---

@router.post("", response_model=TournamentModel, status_code=201, summary="Create New Tournament")
def create_tournament(
    tournament_data: TournamentCreate,
    service: TournamentService = Depends(get_tournament_service),
):
    """
    Creates a tournament open for registration.

    - **name**: Name of the tournament (1-100 characters).
    - **game_id**: Game being played; used for per-game player statistics.
    """
    return service.create_tournament(**tournament_data.model_dump())


@router.get("", response_model=List[TournamentModel], summary="List Tournaments")
def list_tournaments(
    status: Optional[TournamentStatus] = Query(None, description="Only tournaments in this lifecycle status"),
    service: TournamentService = Depends(get_tournament_service),
):
    return service.get_all_tournaments(status=status)


@router.get("/conflicts", response_model=ConflictList, summary="List All Conflicting Results (Admin Only)")
def list_all_conflicts(
    _admin: Optional[str] = Depends(require_admin),
    service: MatchService = Depends(get_match_service),
):
    """Every match, across all tournaments, whose two submitted results disagree."""
    return _conflict_list(service.list_conflicts())


@router.get("/{tournament_id}", response_model=TournamentModel, summary="Get Specific Tournament Details")
def get_tournament(
    tournament_id: str = Path(..., description="The ID of the tournament to retrieve."),
    service: TournamentService = Depends(get_tournament_service),
):
    return service.get_tournament_by_id(tournament_id)


@router.delete("/{tournament_id}", status_code=204, summary="Cancel Tournament (Admin Only)")
def cancel_tournament(
    tournament_id: str = Path(..., description="The ID of the tournament to cancel."),
    _admin: Optional[str] = Depends(require_admin),
    service: TournamentService = Depends(get_tournament_service),
):
    """Deletes a tournament that has not finished yet."""
    service.cancel_tournament(tournament_id)
    return None


@router.post("/{tournament_id}/participants", response_model=TournamentModel, summary="Join Tournament")
def join_tournament(
    payload: ParticipantJoin,
    tournament_id: str = Path(..., description="The ID of the tournament to join."),
    service: TournamentService = Depends(get_tournament_service),
    player_service: PlayerService = Depends(get_player_service),
):
    """Adds a registered player, identified by wallet, while registration is open."""
    participant = player_service.lookup(payload.wallet_address)
    return service.register_participant(tournament_id, participant)


@router.delete("/{tournament_id}/participants/{wallet_address}", response_model=TournamentModel,
               summary="Leave Tournament")
def leave_tournament(
    tournament_id: str = Path(..., description="The ID of the tournament."),
    wallet_address: str = Path(..., description="Wallet of the participant to remove."),
    service: TournamentService = Depends(get_tournament_service),
):
    return service.unregister_participant(tournament_id, wallet_address)


@router.post("/{tournament_id}/reset", response_model=TournamentModel, summary="Clear Participants (Admin Only)")
def reset_tournament(
    tournament_id: str = Path(..., description="The ID of the tournament."),
    _admin: Optional[str] = Depends(require_admin),
    service: TournamentService = Depends(get_tournament_service),
):
    return service.reset_tournament(tournament_id)


@router.post("/{tournament_id}/start", response_model=TournamentModel, summary="Start Tournament (Admin Only)")
def start_tournament(
    tournament_id: str = Path(..., description="The ID of the tournament."),
    _admin: Optional[str] = Depends(require_admin),
    service: TournamentService = Depends(get_tournament_service),
):
    """Closes registration and draws the bracket."""
    return service.start_tournament(tournament_id)


@router.post("/{tournament_id}/force-complete", response_model=TournamentModel,
             summary="Declare Winner Of Abandoned Tournament (Admin Only)")
def force_complete_tournament(
    payload: ForceCompleteRequest,
    tournament_id: str = Path(..., description="The ID of the tournament."),
    _admin: Optional[str] = Depends(require_admin),
    service: TournamentService = Depends(get_tournament_service),
):
    return service.force_complete(tournament_id, payload.winner_id)


@router.get("/{tournament_id}/bracket", response_model=Optional[BracketModel], summary="Get Tournament Bracket")
def get_bracket(
    tournament_id: str = Path(..., description="The ID of the tournament."),
    service: TournamentService = Depends(get_tournament_service),
):
    return service.get_tournament_by_id(tournament_id).bracket


@router.get("/{tournament_id}/export", response_model=TournamentExport, summary="Export Tournament Snapshot")
def export_tournament(
    tournament_id: str = Path(..., description="The ID of the tournament."),
    service: TournamentService = Depends(get_tournament_service),
):
    return service.export_tournament(tournament_id)


@router.get("/{tournament_id}/conflicts", response_model=ConflictList,
            summary="List Conflicting Results Of One Tournament (Admin Only)")
def list_tournament_conflicts(
    tournament_id: str = Path(..., description="The ID of the tournament."),
    _admin: Optional[str] = Depends(require_admin),
    service: MatchService = Depends(get_match_service),
):
    return _conflict_list(service.list_conflicts(tournament_id))


# --- Match Endpoints ---

@router.get("/{tournament_id}/matches/{match_id}", response_model=MatchRead, summary="Get Match")
def get_match(
    tournament_id: str = Path(..., description="The ID of the tournament."),
    match_id: str = Path(..., description="The ID of the match."),
    service: MatchService = Depends(get_match_service),
):
    round_number, match = service.get_match(tournament_id, match_id)
    return MatchRead.from_match(round_number, match)


@router.post("/{tournament_id}/matches/{match_id}/result", response_model=MatchRead,
             summary="Submit Match Result")
def submit_match_result(
    payload: ResultSubmission,
    tournament_id: str = Path(..., description="The ID of the tournament."),
    match_id: str = Path(..., description="The ID of the match."),
    service: MatchService = Depends(get_match_service),
):
    """
    Records one player's reported score.
    Once both players have reported, identical scores complete the match and
    differing scores flag it as a conflict for an admin.
    """
    round_number, match = service.submit_result(
        tournament_id, match_id, payload.submitter, payload.score1, payload.score2,
    )
    return MatchRead.from_match(round_number, match)


@router.post("/{tournament_id}/matches/{match_id}/admin-result", response_model=MatchRead,
             summary="Set Match Result (Admin Only)")
def admin_set_match_result(
    payload: AdminResultRequest,
    tournament_id: str = Path(..., description="The ID of the tournament."),
    match_id: str = Path(..., description="The ID of the match."),
    _admin: Optional[str] = Depends(require_admin),
    service: MatchService = Depends(get_match_service),
):
    round_number, match = service.admin_set_result(tournament_id, match_id, payload.to_resolution())
    return MatchRead.from_match(round_number, match)


@router.post("/{tournament_id}/matches/{match_id}/reset", response_model=MatchRead,
             summary="Reset Match (Admin Only)")
def reset_match(
    tournament_id: str = Path(..., description="The ID of the tournament."),
    match_id: str = Path(..., description="The ID of the match."),
    _admin: Optional[str] = Depends(require_admin),
    service: MatchService = Depends(get_match_service),
):
    round_number, match = service.reset_match(tournament_id, match_id)
    return MatchRead.from_match(round_number, match)
