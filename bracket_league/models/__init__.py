from .participant_model import Participant, PlayerProfile
from .bracket_model import (
    AdminResolution,
    BracketModel,
    ByScore,
    ByWinnerId,
    CompletedBy,
    MatchModel,
    MatchState,
    MatchStatus,
    SubmittedResult,
)
from .tournament_model import TournamentExport, TournamentModel, TournamentStatus
