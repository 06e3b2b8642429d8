import logging
from collections import Counter
from typing import Any, Dict, Iterable, List

from bracket_league.core.errors import ConflictError, NotFoundError, ValidationError
from bracket_league.models.participant_model import Participant, PlayerProfile, normalize_wallet
from bracket_league.store.document_store import JsonDocumentStore

logger = logging.getLogger(__name__)

PLAYERS_KEY = "players"
MAX_USERNAME_LENGTH = 50
LATEST_REGISTRATIONS = 10


class PlayerService:
    """Participant registry keyed by wallet address (case-insensitive)."""

    def __init__(self, store: JsonDocumentStore):
        self.store = store

    def _load_players(self) -> List[Dict[str, Any]]:
        # A registry that was never written is simply empty; a corrupt one raises.
        if not self.store.exists(PLAYERS_KEY):
            return []
        return self.store.read(PLAYERS_KEY)

    def _save_players(self, players: List[Dict[str, Any]]):
        self.store.write(PLAYERS_KEY, players)

    def register_player(self, username: str, wallet_address: str) -> PlayerProfile:
        username = (username or "").strip()
        wallet_address = (wallet_address or "").strip()
        if not username or not wallet_address:
            raise ValidationError("Username and wallet address are required.")
        if len(username) > MAX_USERNAME_LENGTH:
            raise ValidationError(f"Username must be at most {MAX_USERNAME_LENGTH} characters.")

        with self.store.transaction(PLAYERS_KEY):
            players = self._load_players()
            wanted = normalize_wallet(wallet_address)
            for p_dict in players:
                if normalize_wallet(p_dict.get("wallet_address", "")) == wanted:
                    raise ConflictError(f"Wallet {wallet_address} is already registered.")

            profile = PlayerProfile(username=username, wallet_address=wallet_address)
            players.append(profile.model_dump(mode="json"))
            self._save_players(players)

        logger.info("Registered player %s (%s)", profile.username, profile.wallet_address)
        return profile

    def get_player_by_wallet(self, wallet_address: str) -> PlayerProfile:
        wanted = normalize_wallet(wallet_address)
        for p_dict in self._load_players():
            if normalize_wallet(p_dict.get("wallet_address", "")) == wanted:
                return PlayerProfile(**p_dict)
        raise NotFoundError(f"No player registered with wallet {wallet_address}.")

    def lookup(self, wallet_address: str) -> Participant:
        return self.get_player_by_wallet(wallet_address).as_participant()

    def get_all_players(self) -> List[PlayerProfile]:
        return [PlayerProfile(**p) for p in self._load_players()]

    def get_stats(self) -> Dict[str, Any]:
        players = self.get_all_players()
        latest = sorted(players, key=lambda p: p.registered_at, reverse=True)[:LATEST_REGISTRATIONS]
        by_date = Counter(p.registered_at.date().isoformat() for p in players)
        return {
            "total_registrations": len(players),
            "latest_registrations": latest,
            "registrations_by_date": dict(sorted(by_date.items())),
        }

    def get_leaderboard(self, game_id: str = None, limit: int = 10) -> List[PlayerProfile]:
        players = self.get_all_players()
        if game_id:
            key = lambda p: (-p.wins_by_game.get(game_id, 0), -p.tournaments_played_by_game.get(game_id, 0), p.username)
        else:
            key = lambda p: (-p.tournaments_won, -p.tournaments_played, p.username)
        return sorted(players, key=key)[:limit]

    # --- statistics updates, called by the tournament lifecycle ---

    def _update_counters(self, wallets: Iterable[str], game_id: str, won: int = 0, played: int = 0):
        wanted = {normalize_wallet(w) for w in wallets}
        with self.store.transaction(PLAYERS_KEY):
            players = self._load_players()
            touched = set()
            for i, p_dict in enumerate(players):
                wallet = normalize_wallet(p_dict.get("wallet_address", ""))
                if wallet not in wanted:
                    continue
                profile = PlayerProfile(**p_dict)
                if won:
                    profile.tournaments_won = max(0, profile.tournaments_won + won)
                    profile.wins_by_game[game_id] = max(0, profile.wins_by_game.get(game_id, 0) + won)
                if played:
                    profile.tournaments_played_by_game[game_id] = max(
                        0, profile.tournaments_played_by_game.get(game_id, 0) + played
                    )
                players[i] = profile.model_dump(mode="json")
                touched.add(wallet)
            self._save_players(players)
        for missing in wanted - touched:
            logger.warning("Statistics update skipped for unregistered wallet %s", missing)

    def record_win(self, wallet_address: str, game_id: str):
        self._update_counters([wallet_address], game_id, won=1)

    def revoke_win(self, wallet_address: str, game_id: str):
        self._update_counters([wallet_address], game_id, won=-1)

    def record_played(self, wallet_addresses: Iterable[str], game_id: str):
        self._update_counters(wallet_addresses, game_id, played=1)

    def revoke_played(self, wallet_addresses: Iterable[str], game_id: str):
        self._update_counters(wallet_addresses, game_id, played=-1)
