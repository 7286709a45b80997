"""
Flask web application for WorldCup brackets.

Serves world cups from YAML files, runs games on the bracket engine and keeps
per-item statistics for the ranking board.
"""
import os
import glob
import re
import random
import uuid
import logging
import yaml
from filelock import FileLock
from flask import Flask, request, jsonify, session
from worldcup.elimination import Tournament, get_available_sizes
from worldcup.errors import BracketError
from worldcup.models import Item
from worldcup.stats import ItemStats, build_result, fold_match_log, merge_stats, ranking_payload

app = Flask(__name__)
app.logger.setLevel(logging.INFO)


def _get_or_create_secret_key() -> bytes:
    """Get SECRET_KEY from env, or generate and persist to file."""
    env_key = os.environ.get('SECRET_KEY')
    if env_key:
        return env_key.encode() if isinstance(env_key, str) else env_key
    key_file = os.path.join(DATA_DIR, '.secret_key')
    if os.path.exists(key_file):
        with open(key_file, 'rb') as f:
            return f.read()
    key = os.urandom(24)
    os.makedirs(os.path.dirname(key_file), exist_ok=True)
    with open(key_file, 'wb') as f:
        f.write(key)
    return key


BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('WORLDCUP_DATA_DIR', os.path.join(BASE_DIR, 'data'))
ROUND_NAME_LOCALE = os.environ.get('ROUND_NAME_LOCALE', 'en')

app.secret_key = _get_or_create_secret_key()

WORLDCUPS_DIR = os.path.join(DATA_DIR, 'worldcups')
STATS_DIR = os.path.join(DATA_DIR, 'stats')
LOCK_TIMEOUT = 10
MAX_GAMES = int(os.environ.get('WORLDCUP_MAX_GAMES', '500'))

# Games held in memory, keyed by game id, oldest first.
# Structure: {game_id: {'worldcup_id': str, 'tournament': Tournament, 'recorded': bool}}
_games = {}

_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


def _empty_stats() -> dict:
    return {'games_played': 0, 'sessions': [], 'items': {}}


def load_worldcup(worldcup_id: str):
    """Load a world cup definition. Returns None if missing or unreadable."""
    if not _ID_PATTERN.match(worldcup_id):
        return None
    path = os.path.join(WORLDCUPS_DIR, f'{worldcup_id}.yaml')
    if not os.path.exists(path):
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise TypeError(f'expected a mapping, got {type(data).__name__}')
        items = [Item.from_dict(entry) for entry in data.get('items') or []]
    except Exception as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return None
    return {
        'id': worldcup_id,
        'title': data.get('title', worldcup_id),
        'description': data.get('description'),
        'items': items,
    }


def list_worldcups() -> list:
    worldcups = []
    for path in sorted(glob.glob(os.path.join(WORLDCUPS_DIR, '*.yaml'))):
        worldcup_id = os.path.splitext(os.path.basename(path))[0]
        worldcup = load_worldcup(worldcup_id)
        if worldcup is None:
            continue
        worldcups.append({
            'id': worldcup_id,
            'title': worldcup['title'],
            'item_count': len(worldcup['items']),
        })
    return worldcups


def _stats_file(worldcup_id: str) -> str:
    return os.path.join(STATS_DIR, f'{worldcup_id}.yaml')


def load_stats(worldcup_id: str) -> dict:
    """Load accumulated statistics for a world cup."""
    path = _stats_file(worldcup_id)
    if not os.path.exists(path):
        return _empty_stats()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return _empty_stats()
    if not isinstance(data, dict):
        return _empty_stats()
    stats = _empty_stats()
    stats.update(data)
    return stats


def save_stats(worldcup_id: str, data: dict):
    os.makedirs(STATS_DIR, exist_ok=True)
    with open(_stats_file(worldcup_id), 'w', encoding='utf-8') as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True)


def record_game_result(worldcup_id: str, game_id: str, result: dict) -> bool:
    """
    Fold a finished game into the world cup statistics.

    Returns False if this game was already recorded.
    """
    os.makedirs(STATS_DIR, exist_ok=True)
    lock = FileLock(_stats_file(worldcup_id) + '.lock', timeout=LOCK_TIMEOUT)
    with lock:
        data = load_stats(worldcup_id)
        if game_id in data['sessions']:
            app.logger.info(f'Game {game_id} already recorded for {worldcup_id}')
            return False

        totals = {item_id: ItemStats.from_dict(item_id, item_data)
                  for item_id, item_data in (data.get('items') or {}).items()}
        delta = fold_match_log(result['matches'], result['winner_id'], ROUND_NAME_LOCALE)
        merge_stats(totals, delta)

        data['items'] = {item_id: item_stats.to_dict() for item_id, item_stats in totals.items()}
        data['games_played'] += 1
        data['sessions'].append(game_id)
        save_stats(worldcup_id, data)
    app.logger.info(f'Recorded game {game_id} for {worldcup_id}: champion {result["winner_id"]}')
    return True


def _record_if_finished(game_id: str, game: dict):
    """Record a finished game that has not reached the stats store yet."""
    tournament = game['tournament']
    if not tournament.is_completed or game['recorded']:
        return
    record_game_result(game['worldcup_id'], game_id, build_result(tournament))
    game['recorded'] = True
    app.logger.info(f'Game {game_id} finished: champion {tournament.get_winner().id}')


def _store_game(game_id: str, game: dict):
    """Hold a new game, evicting the oldest ones beyond MAX_GAMES."""
    _games[game_id] = game
    while len(_games) > MAX_GAMES:
        old_id = next(iter(_games))
        old_game = _games.pop(old_id)
        try:
            _record_if_finished(old_id, old_game)
        except Exception as e:
            app.logger.warning(f'Failed to record evicted game {old_id}: {e}')
        app.logger.info(f'Evicted game {old_id}')


def _game_response(game_id: str, game: dict, **extra) -> dict:
    payload = {'game_id': game_id, 'worldcup_id': game['worldcup_id']}
    payload.update(game['tournament'].to_dict())
    payload.update(extra)
    return payload


@app.errorhandler(BracketError)
def handle_bracket_error(error):
    return jsonify({'error': error.message, 'type': type(error).__name__}), error.status_code


@app.route('/api/worldcups', methods=['GET'])
def api_list_worldcups():
    return jsonify({'worldcups': list_worldcups()})


@app.route('/api/worldcups/<worldcup_id>', methods=['GET'])
def api_get_worldcup(worldcup_id):
    worldcup = load_worldcup(worldcup_id)
    if worldcup is None:
        return jsonify({'error': 'World cup not found'}), 404
    return jsonify({
        'id': worldcup['id'],
        'title': worldcup['title'],
        'description': worldcup['description'],
        'items': [item.to_dict() for item in worldcup['items']],
        'available_sizes': get_available_sizes(len(worldcup['items']), ROUND_NAME_LOCALE),
    })


@app.route('/api/worldcups/<worldcup_id>/play', methods=['POST'])
def api_start_game(worldcup_id):
    """Start a game. Optional JSON body: size, shuffle, seed."""
    worldcup = load_worldcup(worldcup_id)
    if worldcup is None:
        return jsonify({'error': 'World cup not found'}), 404

    data = request.get_json(silent=True) or {}
    items = list(worldcup['items'])

    if data.get('shuffle'):
        seed = data.get('seed')
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, (int, str))):
            return jsonify({'error': 'seed must be an integer or a string'}), 400
        random.Random(seed).shuffle(items)

    size = data.get('size')
    if size is not None:
        try:
            size = int(size)
        except (TypeError, ValueError):
            return jsonify({'error': 'size must be an integer'}), 400
        allowed = [option['size'] for option in get_available_sizes(len(items))]
        if size not in allowed:
            return jsonify({'error': f'size must be one of {allowed}'}), 400
        items = items[:size]

    tournament = Tournament(items, locale=ROUND_NAME_LOCALE)
    game_id = uuid.uuid4().hex
    game = {'worldcup_id': worldcup_id, 'tournament': tournament, 'recorded': False}
    _store_game(game_id, game)
    session['last_game'] = game_id
    app.logger.info(f'Started game {game_id} on {worldcup_id} with {len(items)} items '
                    f'(bracket {tournament.bracket_size}, {tournament.byes} byes)')
    return jsonify(_game_response(game_id, game)), 201


@app.route('/api/games/current', methods=['GET'])
def api_current_game():
    """Resume the last game started from this browser session."""
    game_id = session.get('last_game')
    game = _games.get(game_id) if game_id else None
    if game is None:
        return jsonify({'error': 'No game in progress'}), 404
    return jsonify(_game_response(game_id, game))


@app.route('/api/games/<game_id>', methods=['GET'])
def api_get_game(game_id):
    game = _games.get(game_id)
    if game is None:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(_game_response(game_id, game))


@app.route('/api/games/<game_id>/choose', methods=['POST'])
def api_choose_winner(game_id):
    """Pick the winner of the current match. JSON body: winner_id, match_id (optional)."""
    game = _games.get(game_id)
    if game is None:
        return jsonify({'error': 'Game not found'}), 404

    data = request.get_json(silent=True) or {}
    winner_id = str(data.get('winner_id') or '').strip()
    if not winner_id:
        return jsonify({'error': 'winner_id required'}), 400

    # A previous request may have finished the game but failed to record it.
    _record_if_finished(game_id, game)

    match = game['tournament'].choose_winner(winner_id, match_id=data.get('match_id'))
    _record_if_finished(game_id, game)

    return jsonify(_game_response(game_id, game, resolved_match=match.to_log_entry()))


@app.route('/api/games/<game_id>/result', methods=['GET'])
def api_game_result(game_id):
    game = _games.get(game_id)
    if game is None:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(build_result(game['tournament']))


@app.route('/api/worldcups/<worldcup_id>/stats', methods=['GET'])
def api_worldcup_stats(worldcup_id):
    """Ranking board built from every recorded game."""
    worldcup = load_worldcup(worldcup_id)
    if worldcup is None:
        return jsonify({'error': 'World cup not found'}), 404
    data = load_stats(worldcup_id)
    totals = {item_id: ItemStats.from_dict(item_id, item_data)
              for item_id, item_data in (data.get('items') or {}).items()}
    payload = ranking_payload(totals, worldcup['items'])
    payload['games_played'] = data['games_played']
    return jsonify(payload)


if __name__ == '__main__':
    app.run(debug=True, port=5000)
