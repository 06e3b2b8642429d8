from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from bracket_league.core.config import Settings, get_settings
from bracket_league.core.errors import AuthorizationError
from bracket_league.services.match_service import MatchService
from bracket_league.services.player_service import PlayerService
from bracket_league.services.tournament_service import TournamentService
from bracket_league.store.document_store import JsonDocumentStore


@lru_cache
def get_store() -> JsonDocumentStore:
    settings = get_settings()
    return JsonDocumentStore(settings.DATA_DIR, lock_timeout=settings.LOCK_TIMEOUT_SECONDS)


def get_player_service(store: JsonDocumentStore = Depends(get_store)) -> PlayerService:
    return PlayerService(store)


def get_tournament_service(
    store: JsonDocumentStore = Depends(get_store),
    player_service: PlayerService = Depends(get_player_service),
) -> TournamentService:
    return TournamentService(store, player_service)


def get_match_service(tournament_service: TournamentService = Depends(get_tournament_service)) -> MatchService:
    return MatchService(tournament_service)


async def require_admin(
    x_wallet_address: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """
    Admin routes are gated on the caller's wallet being listed in ADMIN_WALLETS.
    With no admin wallets configured every caller is treated as admin.
    """
    admins = settings.admin_wallets
    if not admins:
        return x_wallet_address
    if not x_wallet_address or x_wallet_address.strip().lower() not in admins:
        raise AuthorizationError("Admin wallet required for this action.")
    return x_wallet_address
