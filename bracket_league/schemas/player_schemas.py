from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, Field

from bracket_league.models.participant_model import PlayerProfile


class PlayerCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50, description="Gamertag shown in brackets")
    wallet_address: str = Field(..., min_length=1, description="Wallet address identifying the player")


class PlayerRead(BaseModel):
    id: str
    username: str
    wallet_address: str
    registered_at: datetime
    tournaments_won: int
    tournaments_played: int
    wins_by_game: Dict[str, int]
    tournaments_played_by_game: Dict[str, int]

    @classmethod
    def from_profile(cls, profile: PlayerProfile) -> "PlayerRead":
        return cls(tournaments_played=profile.tournaments_played, **profile.model_dump())


class PlayerList(BaseModel):
    total_players: int
    players: List[PlayerRead]


class PlayerStats(BaseModel):
    total_registrations: int
    latest_registrations: List[PlayerRead]
    registrations_by_date: Dict[str, int]
