from typing import List, Optional

from pydantic import BaseModel, Field

from bracket_league.core.errors import ValidationError
from bracket_league.models.bracket_model import AdminResolution, ByScore, ByWinnerId, MatchModel, MatchState


class TournamentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Name of the tournament")
    description: str = Field("", max_length=1000, description="Free text shown to players")
    game_id: str = Field("general", min_length=1, max_length=50, description="Game played, e.g. fifa or cod")


class ParticipantJoin(BaseModel):
    """Payload for joining a tournament with a registered wallet."""
    wallet_address: str = Field(..., min_length=1, description="Wallet of a registered player")


class ResultSubmission(BaseModel):
    submitter: str = Field(..., min_length=1, description="Participant id or wallet of the submitting player")
    score1: int = Field(..., ge=0, description="Score for player 1")
    score2: int = Field(..., ge=0, description="Score for player 2")


class AdminResultRequest(BaseModel):
    """Either ``winner_id`` or both scores; scores are preferred."""
    winner_id: Optional[str] = Field(None, description="Participant id or wallet of the winner")
    score1: Optional[int] = Field(None, ge=0)
    score2: Optional[int] = Field(None, ge=0)

    def to_resolution(self) -> AdminResolution:
        if self.score1 is not None and self.score2 is not None:
            return ByScore(score1=self.score1, score2=self.score2)
        if self.winner_id:
            return ByWinnerId(winner_id=self.winner_id)
        raise ValidationError("Either winner_id or both score1 and score2 are required.")


class ForceCompleteRequest(BaseModel):
    winner_id: str = Field(..., min_length=1, description="Participant id or wallet of the declared winner")


class MatchRead(BaseModel):
    round_number: int
    state: MatchState
    match: MatchModel

    @classmethod
    def from_match(cls, round_number: int, match: MatchModel) -> "MatchRead":
        return cls(round_number=round_number, state=match.state, match=match)


class ConflictRead(BaseModel):
    tournament_id: str
    tournament_name: str
    round_number: int
    match: MatchModel


class ConflictList(BaseModel):
    total_conflicts: int
    conflicts: List[ConflictRead]
