import logging
import math
import random
from enum import Enum
from typing import List, NamedTuple, Optional

from bracket_league.core.errors import ValidationError
from bracket_league.models.bracket_model import BracketModel, MatchModel, MatchStatus
from bracket_league.models.participant_model import Participant

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2


def bracket_size_for(num_players: int) -> int:
    """Smallest power of two that seats ``num_players``."""
    if num_players < 1:
        raise ValueError("num_players must be positive")
    return 1 << (num_players - 1).bit_length()


def pair_into_round(players: List[Participant]) -> List[MatchModel]:
    """Pairs players consecutively: players[0] vs players[1], players[2] vs players[3], ..."""
    if len(players) % 2 != 0:
        raise ValueError(f"Cannot pair an odd number of players ({len(players)})")
    return [MatchModel(player1=players[i], player2=players[i + 1]) for i in range(0, len(players), 2)]


def build_bracket(participants: List[Participant], rng: Optional[random.Random] = None) -> BracketModel:
    """
    Builds a randomized single-elimination bracket.

    Players are shuffled, then ``bracket_size - N`` of them are drawn at random to
    receive a bye into round 2. Everyone else is paired consecutively into round 1.
    """
    rng = rng or random
    num_players = len(participants)
    if num_players < MIN_PARTICIPANTS:
        raise ValidationError(f"Single elimination bracket requires at least {MIN_PARTICIPANTS} players.")
    if len({p.id for p in participants}) != num_players:
        raise ValidationError("Participants must be distinct.")

    shuffled_players = list(participants)
    rng.shuffle(shuffled_players)

    bracket_size = bracket_size_for(num_players)
    num_byes = bracket_size - num_players

    byes_players = rng.sample(shuffled_players, num_byes) if num_byes else []
    bye_ids = {p.id for p in byes_players}
    players_for_round1 = [p for p in shuffled_players if p.id not in bye_ids]

    bracket = BracketModel(
        bracket_size=bracket_size,
        total_rounds=int(math.log2(bracket_size)),
        current_round=1,
        rounds=[pair_into_round(players_for_round1)],
        players_with_byes=byes_players,
    )
    logger.info(
        "Built bracket: %d players, size %d, %d byes, %d first-round matches",
        num_players, bracket_size, num_byes, len(bracket.rounds[0]),
    )
    return bracket


class AdvancementKind(str, Enum):
    STALE = "stale"  # round is not the active one, or already advanced
    WAITING = "waiting"  # round still has unfinished matches
    ROUND_OPENED = "round_opened"
    CHAMPION = "champion"


class Advancement(NamedTuple):
    kind: AdvancementKind
    round_number: int  # 1-based round the outcome refers to
    champion: Optional[Participant] = None


def advance_round(bracket: BracketModel, round_index: int) -> Advancement:
    """
    Advances the bracket after a match in ``rounds[round_index]`` completed.

    Only the currently active round can advance, and only once: calling this
    again for the same round, or for an earlier round (e.g. after an admin
    correction), leaves the bracket untouched.
    """
    if round_index + 1 != bracket.current_round or round_index + 1 < len(bracket.rounds):
        return Advancement(AdvancementKind.STALE, round_index + 1)

    round_matches = bracket.rounds[round_index]
    if any(m.status != MatchStatus.COMPLETED for m in round_matches):
        return Advancement(AdvancementKind.WAITING, round_index + 1)

    advancing: List[Participant] = [m.winner for m in round_matches]
    if round_index == 0 and bracket.players_with_byes:
        advancing.extend(bracket.players_with_byes)
        bracket.players_with_byes = []

    if len(advancing) == 1:
        bracket.is_complete = True
        bracket.winner = advancing[0]
        logger.info("Bracket complete after round %d, champion %s", round_index + 1, advancing[0].display_name)
        return Advancement(AdvancementKind.CHAMPION, round_index + 1, advancing[0])

    bracket.current_round += 1
    bracket.rounds.append(pair_into_round(advancing))
    logger.info("Opened round %d with %d matches", bracket.current_round, len(bracket.rounds[-1]))
    return Advancement(AdvancementKind.ROUND_OPENED, bracket.current_round)
