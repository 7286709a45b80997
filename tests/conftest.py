"""
Shared pytest fixtures for world cup bracket tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os
import yaml

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from worldcup.models import Item, MediaRef


def make_items(*ids):
    """Build plain items whose titles equal their ids."""
    return [Item(id=item_id, title=item_id) for item_id in ids]


@pytest.fixture
def two_items():
    return make_items('A', 'B')


@pytest.fixture
def four_items():
    return make_items('A', 'B', 'C', 'D')


@pytest.fixture
def eight_items():
    return make_items('A', 'B', 'C', 'D', 'E', 'F', 'G', 'H')


@pytest.fixture
def video_item():
    return Item(
        id='clip',
        title='Clip',
        media=MediaRef(kind='video', video_id='abc123', start_time=5, end_time=20),
    )


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the app at a temporary data directory holding one world cup."""
    import app as app_module

    worldcups_dir = tmp_path / "worldcups"
    stats_dir = tmp_path / "stats"
    worldcups_dir.mkdir()

    worldcup_file = worldcups_dir / "snacks.yaml"
    worldcup_file.write_text(yaml.dump({
        'title': 'Snacks',
        'items': [
            {'id': 'A', 'title': 'Apple', 'image_url': 'https://img.example.com/a.png'},
            {'id': 'B', 'title': 'Banana', 'image_url': 'https://img.example.com/b.png'},
            {'id': 'C', 'title': 'Cherry'},
            {'id': 'D', 'title': 'Date', 'video_id': 'vid-d', 'start_time': 3, 'end_time': 9},
        ]
    }, default_flow_style=False))

    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    monkeypatch.setattr(app_module, 'WORLDCUPS_DIR', str(worldcups_dir))
    monkeypatch.setattr(app_module, 'STATS_DIR', str(stats_dir))
    monkeypatch.setattr(app_module, 'ROUND_NAME_LOCALE', 'en')
    monkeypatch.setattr(app_module, '_games', {})

    return tmp_path


@pytest.fixture
def client(temp_data_dir):
    """Create a test client bound to the temporary data directory."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
