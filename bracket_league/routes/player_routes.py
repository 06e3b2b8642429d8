from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from bracket_league.routes.dependencies import get_player_service
from bracket_league.schemas.player_schemas import PlayerCreate, PlayerList, PlayerRead, PlayerStats
from bracket_league.services.player_service import PlayerService

router = APIRouter()


@router.post("", response_model=PlayerRead, status_code=201, summary="Register Player")
def register_player(
    player_data: PlayerCreate,
    service: PlayerService = Depends(get_player_service),
):
    """Registers a gamertag for a wallet. Each wallet can register once."""
    profile = service.register_player(player_data.username, player_data.wallet_address)
    return PlayerRead.from_profile(profile)


@router.get("", response_model=PlayerList, summary="List Registered Players")
def list_players(service: PlayerService = Depends(get_player_service)):
    players = [PlayerRead.from_profile(p) for p in service.get_all_players()]
    return PlayerList(total_players=len(players), players=players)


@router.get("/stats", response_model=PlayerStats, summary="Registration Statistics")
def player_stats(service: PlayerService = Depends(get_player_service)):
    stats = service.get_stats()
    stats["latest_registrations"] = [PlayerRead.from_profile(p) for p in stats["latest_registrations"]]
    return PlayerStats(**stats)


@router.get("/leaderboard", response_model=List[PlayerRead], summary="Leaderboard By Tournaments Won")
def leaderboard(
    game_id: Optional[str] = Query(None, description="Rank by wins in this game only"),
    limit: int = Query(10, ge=1, le=100),
    service: PlayerService = Depends(get_player_service),
):
    return [PlayerRead.from_profile(p) for p in service.get_leaderboard(game_id=game_id, limit=limit)]


@router.get("/{wallet_address}", response_model=PlayerRead, summary="Find Player By Wallet")
def get_player(
    wallet_address: str = Path(..., description="Wallet address, case-insensitive"),
    service: PlayerService = Depends(get_player_service),
):
    return PlayerRead.from_profile(service.get_player_by_wallet(wallet_address))
