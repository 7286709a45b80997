"""
Per-item statistics rebuilt from finished match logs.

A match log is a list of entries as produced by Match.to_log_entry(). Each
non-bye match counts one appearance for both items, a win for the winner and
a loss for the loser; the champion also gets a championship. Bye matches
count for nothing.
"""
from typing import List, Dict, Optional, Iterable

from worldcup.elimination import Tournament, get_round_name
from worldcup.errors import IncompleteTournamentError
from worldcup.models import Item


def win_rate(wins: int, losses: int) -> float:
    """Win percentage rounded to 2 decimals, 0 when no games were played."""
    total = wins + losses
    if total == 0:
        return 0.0
    return round(wins / total * 100, 2)


class ItemStats:
    def __init__(self, item_id: str):
        self.item_id = item_id
        self.wins = 0
        self.losses = 0
        self.appearances = 0
        self.championship_wins = 0
        self.final_appearances = 0
        self.round_stats = {}
        self.vs_record = {}
        self.rank = 0

    @property
    def win_rate(self) -> float:
        return win_rate(self.wins, self.losses)

    def record(self, opponent_id: str, won: bool, round_name: str, is_final: bool):
        self.appearances += 1
        if won:
            self.wins += 1
        else:
            self.losses += 1
        if is_final:
            self.final_appearances += 1

        per_round = self.round_stats.setdefault(round_name, {'appearances': 0, 'wins': 0})
        per_round['appearances'] += 1
        if won:
            per_round['wins'] += 1

        vs = self.vs_record.setdefault(opponent_id, {'wins': 0, 'losses': 0})
        vs['wins' if won else 'losses'] += 1

    def merge(self, other: 'ItemStats'):
        self.wins += other.wins
        self.losses += other.losses
        self.appearances += other.appearances
        self.championship_wins += other.championship_wins
        self.final_appearances += other.final_appearances
        for round_name, counts in other.round_stats.items():
            mine = self.round_stats.setdefault(round_name, {'appearances': 0, 'wins': 0})
            mine['appearances'] += counts['appearances']
            mine['wins'] += counts['wins']
        for opponent_id, counts in other.vs_record.items():
            mine = self.vs_record.setdefault(opponent_id, {'wins': 0, 'losses': 0})
            mine['wins'] += counts['wins']
            mine['losses'] += counts['losses']

    def to_dict(self) -> Dict:
        return {
            'wins': self.wins,
            'losses': self.losses,
            'appearances': self.appearances,
            'championship_wins': self.championship_wins,
            'final_appearances': self.final_appearances,
            'round_stats': {k: dict(v) for k, v in self.round_stats.items()},
            'vs_record': {k: dict(v) for k, v in self.vs_record.items()},
        }

    @classmethod
    def from_dict(cls, item_id: str, data: Dict) -> 'ItemStats':
        stats = cls(item_id)
        stats.wins = data.get('wins', 0)
        stats.losses = data.get('losses', 0)
        stats.appearances = data.get('appearances', 0)
        stats.championship_wins = data.get('championship_wins', 0)
        stats.final_appearances = data.get('final_appearances', 0)
        stats.round_stats = {k: dict(v) for k, v in (data.get('round_stats') or {}).items()}
        stats.vs_record = {k: dict(v) for k, v in (data.get('vs_record') or {}).items()}
        return stats

    def __repr__(self):
        return (f"ItemStats(item_id={self.item_id}, wins={self.wins}, losses={self.losses}, "
                f"championships={self.championship_wins})")


def build_result(tournament: Tournament) -> Dict:
    """Build the result payload handed to the stats store once a game is over."""
    if not tournament.is_completed:
        raise IncompleteTournamentError("The tournament has no champion yet")
    return {
        'bracket_size': tournament.bracket_size,
        'total_rounds': tournament.total_rounds,
        'winner_id': tournament.get_winner().id,
        'matches': [match.to_log_entry() for match in tournament.get_match_log()],
    }


def fold_match_log(matches: List[Dict], winner_id: Optional[str] = None,
                   locale: str = 'en') -> Dict[str, ItemStats]:
    """
    Fold a match log into per-item statistics.

    The number of rounds is taken from the log itself (the highest round
    number), so round names need no other state.
    """
    stats = {}
    if not matches:
        return stats

    total_rounds = max(entry['round'] for entry in matches)

    for entry in matches:
        if entry.get('is_bye'):
            continue
        remaining = 2 ** (total_rounds - entry['round'] + 1)
        round_name = get_round_name(remaining, locale)
        is_final = remaining == 2

        winner = entry['winner_id']
        loser = entry['item_b_id'] if winner == entry['item_a_id'] else entry['item_a_id']

        stats.setdefault(winner, ItemStats(winner)).record(loser, True, round_name, is_final)
        stats.setdefault(loser, ItemStats(loser)).record(winner, False, round_name, is_final)

    if winner_id is not None:
        stats.setdefault(winner_id, ItemStats(winner_id)).championship_wins += 1

    return stats


def merge_stats(total: Dict[str, ItemStats], delta: Dict[str, ItemStats]) -> Dict[str, ItemStats]:
    for item_id, item_stats in delta.items():
        total.setdefault(item_id, ItemStats(item_id)).merge(item_stats)
    return total


def rank_items(stats: Dict[str, ItemStats]) -> List[ItemStats]:
    """
    Order items for the ranking board and assign ranks from 1.

    Sort keys: win rate, wins, championships, appearances (all descending),
    then item id so ties are stable.
    """
    ranked = sorted(
        stats.values(),
        key=lambda s: (-s.win_rate, -s.wins, -s.championship_wins, -s.appearances, s.item_id)
    )
    for index, item_stats in enumerate(ranked):
        item_stats.rank = index + 1
    return ranked


def ranking_payload(stats: Dict[str, ItemStats], items: Iterable[Item]) -> Dict:
    """
    Ranking board for a world cup.

    Items that never played are listed after the ranked ones with zeroed
    counters.
    """
    items_by_id = {item.id: item for item in items}
    all_stats = dict(stats)
    for item_id in items_by_id:
        all_stats.setdefault(item_id, ItemStats(item_id))

    rows = []
    for item_stats in rank_items(all_stats):
        item = items_by_id.get(item_stats.item_id)
        rows.append({
            'id': item_stats.item_id,
            'title': item.title if item else item_stats.item_id,
            'image_url': item.image_url if item else None,
            'win_count': item_stats.wins,
            'loss_count': item_stats.losses,
            'total_appearances': item_stats.appearances,
            'win_rate': item_stats.win_rate,
            'championship_wins': item_stats.championship_wins,
            'rank': item_stats.rank,
        })
    return {'items': rows}
