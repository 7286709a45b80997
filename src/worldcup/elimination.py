"""
Single elimination bracket generation and progression.
"""
import math
from typing import List, Dict, Optional, Union

from worldcup.errors import (
    InsufficientItemsError,
    DuplicateItemError,
    InvalidWinnerError,
    MatchNotCurrentError,
    TerminalStateError,
)
from worldcup.models import Item, Match, Round, BYE_ID_PREFIX


ROUND_NAMES = {
    'en': {2: 'Final', 4: 'Semifinal'},
    'ko': {2: '결승', 4: '준결승'},
}
ROUND_NAME_FORMATS = {
    'en': '{}-way round',
    'ko': '{}강',
}


def _is_power_of_two(num: int) -> bool:
    return num >= 2 and num & (num - 1) == 0


def get_round_name(remaining: int, locale: str = 'en') -> str:
    """Get the display name of a round from the number of items still in it."""
    if locale not in ROUND_NAMES:
        raise ValueError(f"Unsupported locale: {locale}")
    if not _is_power_of_two(remaining):
        raise ValueError(f"Round size must be a power of two >= 2, got {remaining}")
    special = ROUND_NAMES[locale].get(remaining)
    if special:
        return special
    return ROUND_NAME_FORMATS[locale].format(remaining)


def calculate_bracket_size(num_items: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_items <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_items))


def calculate_byes(num_items: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_items) - num_items


def calculate_total_rounds(bracket_size: int) -> int:
    if bracket_size < 2:
        return 0
    return int(math.log2(bracket_size))


def get_available_sizes(num_items: int, locale: str = 'en') -> List[Dict]:
    """
    List the bracket sizes a world cup with num_items items can be played at.

    Smaller sizes play a prefix of the item list; the largest size fills the
    missing slots with byes. Largest first.
    """
    max_size = calculate_bracket_size(num_items)
    sizes = []
    size = 2
    while size <= max_size:
        sizes.append({
            'size': size,
            'name': get_round_name(size, locale),
            'byes': max(size - num_items, 0),
        })
        size *= 2
    sizes.reverse()
    return sizes


def _validate_items(items: List[Item]):
    if len(items) < 2:
        raise InsufficientItemsError(f"A bracket needs at least 2 items, got {len(items)}")
    seen = set()
    for item in items:
        if item.is_bye or item.id.startswith(BYE_ID_PREFIX):
            raise DuplicateItemError(f"Item id {item.id!r} is reserved for byes")
        if item.id in seen:
            raise DuplicateItemError(f"Duplicate item id: {item.id}")
        seen.add(item.id)


def create_first_round(items: List[Item], locale: str = 'en') -> Round:
    """
    Create the first round of a bracket from an ordered item list.

    When the item count is not a power of two, the first ``byes`` items each
    get a bye (listed first, in input order) and the remaining items pair two
    at a time. For 5 items: (A, BYE), (B, BYE), (C, BYE), (D, E).
    """
    _validate_items(items)

    bracket_size = calculate_bracket_size(len(items))
    num_byes = bracket_size - len(items)

    matches = []
    for slot in range(num_byes):
        matches.append(Match(1, slot, items[slot], Item.bye(slot)))

    paired = items[num_byes:]
    for i in range(0, len(paired), 2):
        matches.append(Match(1, len(matches), paired[i], paired[i + 1]))

    return Round(1, bracket_size, get_round_name(bracket_size, locale), matches)


def pair_winners(winners: List[Item], round_number: int, locale: str = 'en') -> Round:
    """Pair the previous round's winners in slot order: (0, 1), (2, 3), ..."""
    remaining = len(winners)
    matches = []
    for i in range(0, remaining, 2):
        matches.append(Match(round_number, i // 2, winners[i], winners[i + 1]))
    return Round(round_number, remaining, get_round_name(remaining, locale), matches)


class Tournament:
    """
    A single elimination world cup from first round to champion.

    The only mutating operation is choose_winner(). Bye matches are resolved
    automatically in favour of the real item and logged like any other match.
    """

    def __init__(self, items: List[Item], locale: str = 'en'):
        self.items = list(items)
        self.locale = locale

        first_round = create_first_round(self.items, locale)
        self.bracket_size = first_round.remaining
        self.total_rounds = calculate_total_rounds(self.bracket_size)
        self.byes = self.bracket_size - len(self.items)

        self.rounds = [first_round]
        self.current_round_index = 0
        self.current_match_index = 0
        self.match_log = []
        self.winner = None
        self.is_completed = False

        self._advance_byes()

    @property
    def current_round(self) -> Round:
        return self.rounds[self.current_round_index]

    @property
    def current_match(self) -> Optional[Match]:
        if self.is_completed:
            return None
        return self.current_round.matches[self.current_match_index]

    def choose_winner(self, winner: Union[Item, str], match_id: Optional[str] = None) -> Match:
        """
        Resolve the current match and advance the bracket.

        ``winner`` is an Item or an item id. When ``match_id`` is given it must
        name the current match or one already resolved; replaying a resolved
        match with the same winner is a no-op, with another winner it raises
        AlreadyResolvedError. Returns the match that was addressed.
        """
        if self.is_completed:
            raise TerminalStateError("The tournament is already completed")

        current = self.current_match
        if match_id is not None and match_id != current.match_id:
            resolved = self._find_resolved(match_id)
            if resolved is None:
                raise MatchNotCurrentError(
                    f"Match {match_id} is not the current match ({current.match_id})"
                )
            resolved.resolve(self._participant(resolved, winner))
            return resolved

        current.resolve(self._participant(current, winner))
        self.match_log.append(current)
        self._advance()
        self._advance_byes()
        return current

    def get_match_log(self) -> List[Match]:
        return list(self.match_log)

    def get_winner(self) -> Optional[Item]:
        return self.winner

    def get_progress(self) -> Dict:
        completed = len(self.match_log)
        total = self.bracket_size - 1
        round_ = self.current_round
        if self.is_completed:
            percentage = 100
        else:
            percentage = completed * 100 // total
        return {
            'round': round_.round_number,
            'total_rounds': self.total_rounds,
            'round_name': round_.name,
            'match': self.current_match_index + 1,
            'matches_in_round': len(round_.matches),
            'completed_matches': completed,
            'total_matches': total,
            'percentage': percentage,
        }

    def to_dict(self) -> Dict:
        current = self.current_match
        return {
            'bracket_size': self.bracket_size,
            'total_rounds': self.total_rounds,
            'byes': self.byes,
            'is_completed': self.is_completed,
            'round_name': self.current_round.name,
            'current_match': current.to_dict() if current else None,
            'progress': self.get_progress(),
            'winner': self.winner.to_dict() if self.winner else None,
        }

    def _participant(self, match: Match, winner: Union[Item, str]) -> Item:
        item_id = winner if isinstance(winner, str) else winner.id
        chosen = match.participant(item_id)
        if chosen is None:
            raise InvalidWinnerError(f"{item_id!r} is not a participant of match {match.match_id}")
        return chosen

    def _find_resolved(self, match_id: str) -> Optional[Match]:
        for match in self.match_log:
            if match.match_id == match_id:
                return match
        return None

    def _advance(self):
        round_ = self.current_round
        if self.current_match_index + 1 < len(round_.matches):
            self.current_match_index += 1
        elif round_.is_final:
            self.winner = round_.matches[0].winner
            self.is_completed = True
        else:
            next_round = pair_winners(round_.winners(), round_.round_number + 1, self.locale)
            self.rounds.append(next_round)
            self.current_round_index += 1
            self.current_match_index = 0

    def _advance_byes(self):
        # Byes only occur in the first round, each against exactly one real item.
        match = self.current_match
        while match is not None and match.is_bye:
            real_item = match.item_b if match.item_a.is_bye else match.item_a
            match.resolve(real_item)
            self.match_log.append(match)
            self._advance()
            match = self.current_match

    def __repr__(self):
        return (f"Tournament(items={len(self.items)}, bracket_size={self.bracket_size}, "
                f"round={self.current_round.round_number}, completed={self.is_completed})")
