from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_wallet(wallet_address: str) -> str:
    return wallet_address.strip().lower()


class Participant(BaseModel):
    """A player as placed into a tournament; copied by value into bracket slots."""

    model_config = ConfigDict(frozen=True)

    id: str
    wallet_address: str
    display_name: str

    def matches_ref(self, ref: str) -> bool:
        """True if ``ref`` is this participant's id or (case-insensitively) wallet."""
        if not ref:
            return False
        return ref == self.id or normalize_wallet(ref) == normalize_wallet(self.wallet_address)


class PlayerProfile(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    username: str = Field(min_length=1, max_length=50)
    wallet_address: str = Field(min_length=1)
    registered_at: datetime = Field(default_factory=utcnow)
    tournaments_won: int = 0
    wins_by_game: Dict[str, int] = Field(default_factory=dict)
    tournaments_played_by_game: Dict[str, int] = Field(default_factory=dict)

    @property
    def tournaments_played(self) -> int:
        return sum(self.tournaments_played_by_game.values())

    def as_participant(self, display_name: Optional[str] = None) -> Participant:
        return Participant(
            id=self.id,
            wallet_address=self.wallet_address,
            display_name=display_name or self.username,
        )
