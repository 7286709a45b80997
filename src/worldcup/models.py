"""
Data model for world cup brackets: items, matches and rounds.
"""
from dataclasses import dataclass
from typing import Optional, Dict, List

from worldcup.errors import InvalidWinnerError, AlreadyResolvedError


BYE_TITLE = 'BYE'
BYE_ID_PREFIX = '__bye__-'


@dataclass(frozen=True)
class MediaRef:
    """Image URL or video clip reference attached to an item."""
    kind: str = 'image'
    url: Optional[str] = None
    video_id: Optional[str] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    def __post_init__(self):
        if self.kind not in ('image', 'video'):
            raise ValueError(f"Unknown media kind: {self.kind}")
        for value in (self.start_time, self.end_time):
            if value is not None and value < 0:
                raise ValueError("Playback offsets must be non-negative")
        if (self.start_time is not None and self.end_time is not None
                and self.start_time > self.end_time):
            raise ValueError("start_time must not be after end_time")


@dataclass(frozen=True)
class Item:
    """A competitor. Never mutated by the engine."""
    id: str
    title: str
    media: Optional[MediaRef] = None
    description: Optional[str] = None
    is_bye: bool = False

    def __post_init__(self):
        if not self.id:
            raise ValueError("Item id must be a non-empty string")

    @classmethod
    def bye(cls, slot: int) -> 'Item':
        return cls(id=f'{BYE_ID_PREFIX}{slot}', title=BYE_TITLE, description='Auto Advance', is_bye=True)

    @classmethod
    def from_dict(cls, data: Dict) -> 'Item':
        """
        Build an item from the item source format.

        Accepts either an ``image_url`` or a ``video_id``/``video_url`` with
        optional ``start_time``/``end_time`` clip bounds.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Item entry must be a mapping, got {type(data).__name__}")
        media = None
        if data.get('video_id') or data.get('video_url'):
            media = MediaRef(
                kind='video',
                url=data.get('video_url'),
                video_id=data.get('video_id'),
                start_time=data.get('start_time'),
                end_time=data.get('end_time'),
            )
        elif data.get('image_url') or data.get('image'):
            media = MediaRef(kind='image', url=data.get('image_url') or data.get('image'))
        return cls(
            id=str(data['id']),
            title=str(data.get('title', data['id'])),
            media=media,
            description=data.get('description'),
        )

    def to_dict(self) -> Dict:
        data = {'id': self.id, 'title': self.title}
        if self.description:
            data['description'] = self.description
        if self.media is not None:
            if self.media.kind == 'video':
                data['video_id'] = self.media.video_id
                data['video_url'] = self.media.url
                data['start_time'] = self.media.start_time
                data['end_time'] = self.media.end_time
            else:
                data['image_url'] = self.media.url
        if self.is_bye:
            data['is_bye'] = True
        return data

    @property
    def image_url(self) -> Optional[str]:
        if self.media is not None and self.media.kind == 'image':
            return self.media.url
        return None


class Match:
    """A head-to-head pairing; resolved at most once."""

    def __init__(self, round_number: int, slot: int, item_a: Item, item_b: Item):
        self.round_number = round_number
        self.slot = slot
        self.item_a = item_a
        self.item_b = item_b
        self.winner = None

    @property
    def match_id(self) -> str:
        return f"R{self.round_number}-M{self.slot + 1}"

    @property
    def is_bye(self) -> bool:
        return self.item_a.is_bye or self.item_b.is_bye

    @property
    def is_resolved(self) -> bool:
        return self.winner is not None

    @property
    def loser(self) -> Optional[Item]:
        if self.winner is None:
            return None
        return self.item_b if self.winner.id == self.item_a.id else self.item_a

    def participant(self, item_id: str) -> Optional[Item]:
        """Return the participant with the given id, or None."""
        if self.item_a.id == item_id:
            return self.item_a
        if self.item_b.id == item_id:
            return self.item_b
        return None

    def resolve(self, winner: Item) -> bool:
        """
        Record the winner.

        Returns True when the match moved from pending to resolved, False when
        it was already resolved with the same winner.
        """
        chosen = self.participant(winner.id)
        if chosen is None:
            raise InvalidWinnerError(
                f"{winner.title!r} is not a participant of match {self.match_id}"
            )
        if self.winner is not None:
            if self.winner.id == chosen.id:
                return False
            raise AlreadyResolvedError(
                f"Match {self.match_id} already won by {self.winner.title!r}"
            )
        self.winner = chosen
        return True

    def to_log_entry(self) -> Dict:
        loser = self.loser
        return {
            'round': self.round_number,
            'match_id': self.match_id,
            'item_a_id': self.item_a.id,
            'item_b_id': self.item_b.id,
            'winner_id': self.winner.id if self.winner else None,
            'loser_id': loser.id if loser else None,
            'is_bye': self.is_bye,
        }

    def to_dict(self) -> Dict:
        data = self.to_log_entry()
        data['item_a'] = self.item_a.to_dict()
        data['item_b'] = self.item_b.to_dict()
        return data

    def __repr__(self):
        return (f"Match(id={self.match_id}, item_a={self.item_a.id}, "
                f"item_b={self.item_b.id}, winner={self.winner.id if self.winner else None})")


class Round:
    def __init__(self, round_number: int, remaining: int, name: str, matches: List[Match]):
        self.round_number = round_number
        self.remaining = remaining
        self.name = name
        self.matches = matches

    @property
    def is_final(self) -> bool:
        return self.remaining == 2

    @property
    def is_complete(self) -> bool:
        return all(match.is_resolved for match in self.matches)

    def winners(self) -> List[Item]:
        """Winners in slot order."""
        return [match.winner for match in self.matches]

    def __repr__(self):
        return f"Round(number={self.round_number}, name={self.name}, matches={len(self.matches)})"
