from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from bracket_league.models.participant_model import Participant


class MatchStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class CompletedBy(str, Enum):
    AUTO = "auto"
    ADMIN = "admin"


class MatchState(str, Enum):
    """Reconciliation state, derived from status and pending submissions."""

    PENDING = "pending"
    AWAITING_SECOND_SUBMISSION = "awaiting_second_submission"
    CONFLICT = "conflict"
    COMPLETED = "completed"


MAX_SUBMISSIONS = 2


class SubmittedResult(BaseModel):
    submitted_by: str  # participant id
    score1: int = Field(ge=0)
    score2: int = Field(ge=0)
    submitted_at: datetime
    conflict: bool = False

    def same_scores(self, other: "SubmittedResult") -> bool:
        return (self.score1, self.score2) == (other.score1, other.score2)


class MatchModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    player1: Participant
    player2: Participant
    status: MatchStatus = MatchStatus.PENDING
    winner: Optional[Participant] = None
    score1: Optional[int] = None
    score2: Optional[int] = None
    pending_results: List[SubmittedResult] = Field(default_factory=list, max_length=MAX_SUBMISSIONS)
    completed_at: Optional[datetime] = None
    completed_by: Optional[CompletedBy] = None

    @model_validator(mode="after")
    def check_invariants(self) -> "MatchModel":
        if self.player1.id == self.player2.id:
            raise ValueError("A match needs two distinct players")
        if self.status == MatchStatus.COMPLETED:
            if self.winner is None or self.winner.id not in (self.player1.id, self.player2.id):
                raise ValueError("A completed match must have one of its players as winner")
            if self.score1 is not None and self.score2 is not None:
                if self.score1 == self.score2:
                    raise ValueError("A completed match cannot be a draw")
                higher = self.player1 if self.score1 > self.score2 else self.player2
                if higher.id != self.winner.id:
                    raise ValueError("Winner must be the higher-scoring player")
        elif self.winner is not None:
            raise ValueError("Only completed matches have a winner")
        submitters = [r.submitted_by for r in self.pending_results]
        if len(submitters) != len(set(submitters)):
            raise ValueError("At most one submission per player")
        return self

    @property
    def players(self) -> List[Participant]:
        return [self.player1, self.player2]

    @property
    def state(self) -> MatchState:
        if self.status == MatchStatus.COMPLETED:
            return MatchState.COMPLETED
        if not self.pending_results:
            return MatchState.PENDING
        if any(r.conflict for r in self.pending_results):
            return MatchState.CONFLICT
        return MatchState.AWAITING_SECOND_SUBMISSION

    def player_for(self, ref: str) -> Optional[Participant]:
        """Resolves a participant id or wallet to one of this match's players."""
        return next((p for p in self.players if p.matches_ref(ref)), None)

    def winner_for_scores(self, score1: int, score2: int) -> Participant:
        return self.player1 if score1 > score2 else self.player2


class BracketModel(BaseModel):
    bracket_size: int
    total_rounds: int
    current_round: int = 1
    rounds: List[List[MatchModel]] = Field(default_factory=list)
    players_with_byes: List[Participant] = Field(default_factory=list)
    is_complete: bool = False
    winner: Optional[Participant] = None

    @model_validator(mode="after")
    def check_rounds(self) -> "BracketModel":
        if len(self.rounds) > self.total_rounds:
            raise ValueError("A bracket cannot hold more rounds than total_rounds")
        if self.is_complete and self.winner is None:
            raise ValueError("A complete bracket must have a winner")
        return self

    def locate_match(self, match_id: str):
        """Returns (round_index, match) or (None, None)."""
        for round_index, round_matches in enumerate(self.rounds):
            for match in round_matches:
                if match.id == match_id:
                    return round_index, match
        return None, None


class ByWinnerId(BaseModel):
    kind: Literal["winner"] = "winner"
    winner_id: str


class ByScore(BaseModel):
    kind: Literal["score"] = "score"
    score1: int = Field(ge=0)
    score2: int = Field(ge=0)


AdminResolution = Union[ByWinnerId, ByScore]
