# Command line entry point: build a bracket from a participants file

import argparse
import logging
import random
import sys
import yaml
from engine.builder import build_bracket, random_shuffle
from engine.errors import ValidationError
from engine.models import Player


def load_players(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or []
    if not isinstance(data, list):
        raise ValidationError("Participants file must contain a list of players", field='players')
    return [Player.from_dict(p) for p in data]


def print_bracket(bracket):
    for rnd in bracket.rounds:
        print(f"{rnd.name}:")
        if not rnd.matches:
            print("  (no matches)")
        for match in rnd.matches:
            print(f"  {match.id}: {match.display_name} [{match.status.value}]")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Build a single elimination bracket')
    parser.add_argument('participants', help='YAML file with a list of players (id, name, avatarRef)')
    parser.add_argument('--seed', type=int, help='Seed for a reproducible shuffle')
    parser.add_argument('--output', help='Write the serialized bracket to this YAML file')
    parser.add_argument('--verbose', action='store_true', help='Log bracket construction')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    try:
        players = load_players(args.participants)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        print(f"Error: could not load participants: {e}", file=sys.stderr)
        return 1

    shuffle = random_shuffle(random.Random(args.seed)) if args.seed is not None else None
    try:
        bracket = build_bracket(players, shuffle=shuffle)
    except ValidationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print_bracket(bracket)

    if bracket.is_empty():
        return 2

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            yaml.dump(bracket.to_list(), f, default_flow_style=False, sort_keys=False)
        print(f"Bracket written to {args.output}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
