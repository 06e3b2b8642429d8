from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from bracket_league.models.bracket_model import BracketModel
from bracket_league.models.participant_model import Participant, normalize_wallet, utcnow


class TournamentStatus(str, Enum):
    REGISTRATION = "registration"
    STARTED = "started"
    FINISHED = "finished"


class TournamentModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(min_length=1, max_length=100)
    description: str = ""
    game_id: str = "general"
    status: TournamentStatus = TournamentStatus.REGISTRATION
    participants: List[Participant] = Field(default_factory=list)
    bracket: Optional[BracketModel] = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    winner: Optional[Participant] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Tournament name is required")
        return v.strip()

    def participant_by_wallet(self, wallet_address: str) -> Optional[Participant]:
        wanted = normalize_wallet(wallet_address)
        return next((p for p in self.participants if normalize_wallet(p.wallet_address) == wanted), None)


class TournamentExport(BaseModel):
    """Read-only snapshot of a tournament."""

    id: str
    name: str
    description: str
    game_id: str
    status: TournamentStatus
    participants: List[Participant]
    bracket: Optional[BracketModel]
    winner: Optional[Participant]
    created_at: datetime
    started_at: Optional[datetime]
    finished_at: Optional[datetime]
    exported_at: datetime = Field(default_factory=utcnow)
