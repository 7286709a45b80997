"""
Unit tests for the data models (Item, MediaRef, Match, Round).
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from worldcup.models import Item, MediaRef, Match, Round
from worldcup.errors import InvalidWinnerError, AlreadyResolvedError


class TestItem:
    """Tests for the Item model."""

    def test_item_is_immutable(self):
        """Test that items cannot be modified after creation."""
        item = Item(id='a', title='Apple')
        with pytest.raises(AttributeError):
            item.title = 'Avocado'

    def test_item_requires_id(self):
        """Test that an empty id is rejected."""
        with pytest.raises(ValueError):
            Item(id='', title='Nothing')

    def test_items_equal_by_value(self):
        """Test value equality and hashing."""
        assert Item(id='a', title='Apple') == Item(id='a', title='Apple')
        assert len({Item(id='a', title='Apple'), Item(id='a', title='Apple')}) == 1

    def test_from_dict_image(self):
        """Test building an image item from the item source format."""
        item = Item.from_dict({'id': 'a', 'title': 'Apple', 'image_url': 'https://x/a.png',
                               'description': 'Red'})
        assert item.media.kind == 'image'
        assert item.image_url == 'https://x/a.png'
        assert item.description == 'Red'

    def test_from_dict_video(self):
        """Test building a video clip item."""
        item = Item.from_dict({'id': 'v', 'title': 'Video', 'video_id': 'abc',
                               'start_time': 3, 'end_time': 10})
        assert item.media.kind == 'video'
        assert item.media.video_id == 'abc'
        assert item.media.start_time == 3
        assert item.media.end_time == 10
        assert item.image_url is None

    def test_from_dict_title_defaults_to_id(self):
        """Test that a missing title falls back to the id."""
        item = Item.from_dict({'id': 7})
        assert item.id == '7'
        assert item.title == '7'
        assert item.media is None

    def test_to_dict_round_trip(self, video_item):
        """Test that to_dict output rebuilds the same item."""
        assert Item.from_dict(video_item.to_dict()) == video_item

    def test_bye_item(self):
        """Test the bye placeholder."""
        bye = Item.bye(3)
        assert bye.is_bye
        assert bye.title == 'BYE'
        assert bye.to_dict()['is_bye'] is True


class TestMediaRef:
    """Tests for media references."""

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            MediaRef(kind='audio')

    def test_negative_offset(self):
        with pytest.raises(ValueError):
            MediaRef(kind='video', video_id='x', start_time=-1)

    def test_start_after_end(self):
        with pytest.raises(ValueError):
            MediaRef(kind='video', video_id='x', start_time=30, end_time=10)


class TestMatch:
    """Tests for match resolution."""

    def setup_method(self):
        self.a = Item(id='A', title='A')
        self.b = Item(id='B', title='B')
        self.match = Match(1, 0, self.a, self.b)

    def test_match_id(self):
        """Test match id format."""
        assert self.match.match_id == 'R1-M1'
        assert Match(3, 1, self.a, self.b).match_id == 'R3-M2'

    def test_pending_match(self):
        assert not self.match.is_resolved
        assert self.match.winner is None
        assert self.match.loser is None

    def test_resolve(self):
        """Test resolving with a participant."""
        assert self.match.resolve(self.b) is True
        assert self.match.winner == self.b
        assert self.match.loser == self.a

    def test_resolve_non_participant(self):
        """Test that an outsider cannot win."""
        with pytest.raises(InvalidWinnerError):
            self.match.resolve(Item(id='C', title='C'))
        assert not self.match.is_resolved

    def test_resolve_same_winner_twice(self):
        """Test that repeating the same winner is a no-op."""
        self.match.resolve(self.a)
        assert self.match.resolve(self.a) is False
        assert self.match.winner == self.a

    def test_resolve_different_winner(self):
        """Test that a resolved match cannot change winner."""
        self.match.resolve(self.a)
        with pytest.raises(AlreadyResolvedError):
            self.match.resolve(self.b)
        assert self.match.winner == self.a

    def test_is_bye(self):
        assert not self.match.is_bye
        assert Match(1, 0, self.a, Item.bye(0)).is_bye

    def test_log_entry(self):
        """Test the log entry carries ids only."""
        self.match.resolve(self.a)
        assert self.match.to_log_entry() == {
            'round': 1,
            'match_id': 'R1-M1',
            'item_a_id': 'A',
            'item_b_id': 'B',
            'winner_id': 'A',
            'loser_id': 'B',
            'is_bye': False,
        }


class TestRound:
    """Tests for the Round model."""

    def test_round_helpers(self):
        a, b, c, d = (Item(id=x, title=x) for x in 'ABCD')
        matches = [Match(1, 0, a, b), Match(1, 1, c, d)]
        round_ = Round(1, 4, 'Semifinal', matches)
        assert not round_.is_final
        assert not round_.is_complete
        matches[0].resolve(b)
        matches[1].resolve(c)
        assert round_.is_complete
        assert round_.winners() == [b, c]
        assert 'Semifinal' in repr(round_)

    def test_final_round(self):
        a, b = Item(id='A', title='A'), Item(id='B', title='B')
        assert Round(2, 2, 'Final', [Match(2, 0, a, b)]).is_final
