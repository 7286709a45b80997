# Command line player for a world cup bracket

import argparse
import random
import sys
import yaml
from worldcup.elimination import Tournament
from worldcup.errors import BracketError
from worldcup.models import Item
from worldcup.stats import build_result, fold_match_log, rank_items


def load_items(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} must contain a mapping with an 'items' list")
    entries = data.get('items') or []
    if not isinstance(entries, list):
        raise ValueError(f"'items' in {file_path} must be a list")
    return data.get('title', file_path), [Item.from_dict(entry) for entry in entries]


def prompt_pick(match):
    while True:
        answer = input(f"  1) {match.item_a.title}  vs  2) {match.item_b.title} > ").strip()
        if answer == '1':
            return match.item_a
        if answer == '2':
            return match.item_b
        print("  Please answer 1 or 2.")


def play(tournament, pick, rng=None):
    """Drive the tournament to completion, printing each round and pick."""
    round_number = None
    while not tournament.is_completed:
        match = tournament.current_match
        if match.round_number != round_number:
            round_number = match.round_number
            print(f"\n# {tournament.current_round.name}")
        if pick == 'first':
            winner = match.item_a
        elif pick == 'random':
            winner = rng.choice([match.item_a, match.item_b])
        else:
            winner = prompt_pick(match)
        tournament.choose_winner(winner, match_id=match.match_id)
        print(f"{match.item_a.title} vs {match.item_b.title} -> {winner.title}")
    return tournament.get_winner()


def print_summary(tournament, locale):
    result = build_result(tournament)
    stats = fold_match_log(result['matches'], result['winner_id'], locale)
    titles = {item.id: item.title for item in tournament.items}
    print("\n--- Summary ---")
    for item_stats in rank_items(stats):
        print(f"{item_stats.rank:>3}. {titles.get(item_stats.item_id, item_stats.item_id)}: "
              f"{item_stats.wins}W {item_stats.losses}L ({item_stats.win_rate}%)")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Play a world cup bracket in the terminal.')
    parser.add_argument('worldcup', help='Path to a world cup YAML file')
    parser.add_argument('--pick', choices=['ask', 'first', 'random'], default='ask',
                        help='How winners are chosen (default: ask)')
    parser.add_argument('--seed', type=int, default=None, help='Seed for --shuffle and --pick random')
    parser.add_argument('--shuffle', action='store_true', help='Shuffle items before building the bracket')
    parser.add_argument('--locale', choices=['en', 'ko'], default='en', help='Round name language')
    args = parser.parse_args(argv)

    try:
        title, items = load_items(args.worldcup)
    except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError) as e:
        print(f"Error: could not load {args.worldcup}: {e}", file=sys.stderr)
        return 1
    rng = random.Random(args.seed)
    if args.shuffle:
        rng.shuffle(items)

    try:
        tournament = Tournament(items, locale=args.locale)
    except BracketError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print(f"{title}: {len(items)} items, bracket of {tournament.bracket_size} ({tournament.byes} byes)")
    champion = play(tournament, args.pick, rng)
    print(f"\nChampion: {champion.title}")
    print_summary(tournament, args.locale)
    return 0


if __name__ == '__main__':
    sys.exit(main())
