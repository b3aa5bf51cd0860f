"""Command-line front end for playing Battleship against the computer."""

from __future__ import annotations

import argparse
import logging
import random
import string
from typing import Sequence

from opentelemetry.instrumentation.logging import LoggingInstrumentor

from battleship_core.engine.direction import Coordinate, Direction
from battleship_core.engine.game import Game, PlayerSnapshot
from battleship_core.engine.instrumented_game import InstrumentedGame
from battleship_core.engine.player import MAX_CPU_PLACEMENT_ATTEMPTS
from battleship_core.engine.settings import GameSettings, parse_grid_size, parse_ship_lengths
from battleship_core.engine.ship import Ship
from battleship_core.engine.space import SpaceState
from battleship_core.errors import GameRuleError, OverlapError
from battleship_core.telemetry import configure_console_logging, init_telemetry

ROW_LABELS = string.ascii_uppercase

MOVE_KEYS = {
    "w": Direction.NORTH,
    "d": Direction.EAST,
    "s": Direction.SOUTH,
    "a": Direction.WEST,
}


def _coordinate_from_input(text: str, grid_size: tuple[int, int]) -> Coordinate:
    """Parse ``B7`` (row letter, 1-based column) or ``"6 1"`` (0-based x and y)."""
    width, height = grid_size
    cleaned = text.strip().upper()
    if not cleaned:
        raise ValueError("Empty coordinate.")
    if cleaned[0].isalpha():
        if height > len(ROW_LABELS):
            raise ValueError("Grid is too tall for lettered rows; use 'x y'.")
        if cleaned[0] not in ROW_LABELS[:height]:
            raise ValueError(f"Row must be between A and {ROW_LABELS[height - 1]}.")
        y = ROW_LABELS.index(cleaned[0])
        try:
            x = int(cleaned[1:]) - 1
        except ValueError as exc:
            raise ValueError(f"Column must be a number between 1 and {width}.") from exc
    else:
        parts = cleaned.replace(",", " ").split()
        if len(parts) != 2:
            raise ValueError("Use formats like A5 or '3 7'.")
        try:
            x, y = map(int, parts)
        except ValueError as exc:
            raise ValueError("Coordinates must be whole numbers.") from exc
    if x not in range(width) or y not in range(height):
        raise ValueError(f"Coordinates must be within the {width}x{height} grid.")
    return Coordinate(x, y)


def _label(coord: Coordinate, grid_size: tuple[int, int]) -> str:
    if grid_size[1] <= len(ROW_LABELS):
        return f"{ROW_LABELS[coord.y]}{coord.x + 1}"
    return f"({coord.x}, {coord.y})"


def _format_grid(snapshot: PlayerSnapshot, show_ships: bool) -> str:
    width, height = snapshot.grid_size
    ship_cells: set[Coordinate] = set()
    if show_ships:
        for ship in snapshot.ships:
            ship_cells.update(ship.position)
    staged = set(snapshot.placement_ship.position) if snapshot.placement_ship else set()

    header = "    " + " ".join(f"{x + 1:>2}" for x in range(width))
    rows = [header]
    for y in range(height):
        symbols = []
        for x in range(width):
            coord = Coordinate(x, y)
            state = snapshot.spaces[coord]
            if state is SpaceState.HIT:
                symbol = "X"
            elif state is SpaceState.EMPTY:
                symbol = "o"
            elif coord in staged:
                symbol = "#"
            else:
                symbol = "S" if coord in ship_cells else "."
            symbols.append(f"{symbol:>2}")
        label = ROW_LABELS[y] if height <= len(ROW_LABELS) else str(y)
        rows.append(f"{label:>2} |" + " ".join(symbols))
    return "\n".join(rows)


def _describe_shot(
    name: str,
    coord: Coordinate,
    state: SpaceState,
    ship: Ship | None,
    grid_size: tuple[int, int],
) -> str:
    outcome = "hit" if state is SpaceState.HIT else "miss"
    if ship is not None and ship.is_sunk():
        outcome = f"sank a ship of length {len(ship)}!"
    return f"{name} fired at {_label(coord, grid_size)}: {outcome}"


def _manual_ship_placement(game: Game) -> None:
    print("Place your fleet: w/a/s/d move, r rotate, p place, or type a cell to move the bow.")
    while game.is_player_placing_ship():
        player = game.active_player
        ship = player.placement_ship
        if ship is None:
            break
        print(f"\nPlacing a ship of length {len(ship)} facing {ship.direction.name.lower()}:")
        print(_format_grid(game.get_state().players[game.turn], show_ships=True))
        raw = input("> ").strip().lower()
        try:
            if raw in MOVE_KEYS:
                game.move_ship(MOVE_KEYS[raw])
            elif raw == "r":
                game.rotate_ship()
            elif raw == "p":
                game.place_ship()
            else:
                head = _coordinate_from_input(raw, player.grid_size)
                cells = player.ship_position(head, ship.direction, len(ship))
                if cells is None:
                    print("The ship would not fit there.")
                    continue
                game.set_placement_ship(cells)
        except GameRuleError as exc:
            print(f"Not allowed: {exc}")
        except ValueError as exc:
            print(f"Invalid input: {exc}")


def _auto_place(
    game: Game, rng: random.Random, max_attempts: int = MAX_CPU_PLACEMENT_ATTEMPTS
) -> None:
    """Drop each staged ship on random cells until the fleet is committed.

    Raises ``OverlapError`` when a ship finds no free cells within ``max_attempts`` tries.
    """
    while game.is_player_placing_ship():
        player = game.active_player
        ship = player.placement_ship
        if ship is None:
            break
        for _ in range(max_attempts):
            head = Coordinate(rng.randrange(player.width), rng.randrange(player.height))
            cells = player.ship_position(head, Direction.random(rng), len(ship))
            if cells is not None and player.valid_ship_position(cells):
                break
        else:
            raise OverlapError(
                f"Could not fit a ship of length {len(ship)} after {max_attempts} attempts."
            )
        game.set_placement_ship(cells)
        game.place_ship()


def _prompt_manual_setup() -> bool:
    while True:
        raw = input("Would you like to place your ships manually? [Y/n]: ").strip().lower()
        if raw in {"", "y", "yes"}:
            return True
        if raw in {"n", "no"}:
            return False
        print("Please answer with 'y' or 'n'.")


def _prompt_for_coordinate(game: Game) -> Coordinate:
    grid_size = game.settings.grid_size
    while True:
        raw = input("Enter target coordinate (e.g., A5) or 'q' to quit: ").strip()
        if raw.lower() == "q":
            raise SystemExit("Goodbye!")
        try:
            coord = _coordinate_from_input(raw, grid_size)
        except ValueError as exc:
            print(f"Invalid input: {exc}")
            continue
        if not game.inactive_player.space(coord).is_unchecked():
            print("That cell has already been targeted. Choose another.")
            continue
        return coord


def _run_match(game: Game, rng: random.Random, auto_place: bool | None) -> None:
    if game.is_player_placing_ship():
        manual = _prompt_manual_setup() if auto_place is None else not auto_place
        if manual:
            _manual_ship_placement(game)
        else:
            _auto_place(game, rng)
            print("\nYour ships have been positioned automatically.")

    while not game.is_state_complete():
        player = game.active_player
        if game.is_player_selecting_space():
            state = game.get_state()
            print(f"\n{player.name} - your board:")
            print(_format_grid(state.players[game.turn], show_ships=True))
            print("\nEnemy waters:")
            print(_format_grid(state.players[game.not_turn], show_ships=False))
            coord = _prompt_for_coordinate(game)
        else:
            coord = game.suggested_check()
        outcome, ship = game.select_space(coord)
        print(_describe_shot(player.name, coord, outcome, ship, game.settings.grid_size))
        if not game.is_state_complete():
            game.switch_active_player()


def play_game(
    settings: GameSettings | None = None,
    seed: int | None = None,
    auto_place: bool | None = None,
) -> int:
    """Run one match on stdin/stdout and return the winner's index."""
    print("Welcome to Battleship!\n")
    rng = random.Random(seed)
    game = InstrumentedGame(settings=settings, rng=rng)
    try:
        _run_match(game, rng, auto_place)
    finally:
        game.close()

    winner = game.players[game.winner]
    if winner.is_cpu:
        print(f"\n{winner.name} (computer) won this time. Better luck next battle!")
    else:
        print(f"\nCongratulations {winner.name}, you won!")
    return game.winner


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Play Battleship via the CLI.")
    parser.add_argument(
        "--seed", type=int, default=None, help="Optional RNG seed for reproducibility."
    )
    parser.add_argument("--grid", type=parse_grid_size, default=None, help="Grid size, e.g. 10x10.")
    parser.add_argument(
        "--ships", type=parse_ship_lengths, default=None, help="Ship lengths, e.g. 2,3,4,5."
    )
    parser.add_argument(
        "--auto-place", action="store_true", help="Place your fleet randomly."
    )
    parser.add_argument("--verbose", action="store_true", help="Log engine events to stderr.")
    args = parser.parse_args(argv)

    config = init_telemetry()
    if args.verbose or config.enable_logging:
        LoggingInstrumentor().instrument()
        configure_console_logging(logging.INFO)

    overrides = {}
    if args.grid is not None:
        overrides["grid_size"] = args.grid
    if args.ships is not None:
        overrides["ship_lengths"] = args.ships
    settings = GameSettings.from_env(**overrides)
    try:
        play_game(settings=settings, seed=args.seed, auto_place=True if args.auto_place else None)
    except OverlapError as exc:
        raise SystemExit(f"Cannot set up the fleets: {exc}") from exc


if __name__ == "__main__":
    main()
