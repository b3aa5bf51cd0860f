"""Tests for the hunt-and-target candidate search."""

from __future__ import annotations

import random

import pytest

from battleship_core.ai.targeting import find_unchecked_space, live_hits, suggest_checks
from battleship_core.engine.direction import Coordinate, Direction
from battleship_core.engine.player import Player


def make_player(*fleet: list[Coordinate], seed: int = 0) -> Player:
    player = Player(ship_count=len(fleet), rng=random.Random(seed))
    for cells in fleet:
        player.add_placement_ship(len(cells))
        player.set_placement_ship_position(cells)
        player.place_placement_ship()
    return player


def column(x: int, ys: range) -> list[Coordinate]:
    return [Coordinate(x, y) for y in ys]


def test_hunt_returns_every_unchecked_space() -> None:
    player = make_player(column(5, range(5, 7)))
    player.select_space(Coordinate(0, 0))

    candidates = player.suggested_checks()
    assert len(candidates) == 99
    assert Coordinate(0, 0) not in candidates
    assert set(candidates) == {
        space.position for space in player.spaces if space.is_unchecked()
    }


def test_single_live_hit_widens_to_its_neighbours() -> None:
    player = make_player([Coordinate(5, 5), Coordinate(6, 5)])
    player.select_space(Coordinate(5, 5))

    candidates = player.suggested_checks()
    assert set(candidates) == {
        Coordinate(5, 4),
        Coordinate(6, 5),
        Coordinate(5, 6),
        Coordinate(4, 5),
    }
    assert len(candidates) == 4


def test_line_of_hits_extends_at_both_ends() -> None:
    player = make_player(column(5, range(4, 8)))
    player.select_space(Coordinate(5, 5))
    player.select_space(Coordinate(5, 6))

    candidates = player.suggested_checks()
    assert Coordinate(5, 4) in candidates
    assert Coordinate(5, 7) in candidates
    assert set(candidates) == {Coordinate(5, 4), Coordinate(5, 7)}


def test_line_blocked_by_a_miss_extends_the_other_way() -> None:
    player = make_player(column(5, range(4, 7)))
    player.select_space(Coordinate(5, 5))
    player.select_space(Coordinate(5, 6))
    player.select_space(Coordinate(5, 7))

    assert player.suggested_checks() == [Coordinate(5, 4)]


def test_hits_on_sunk_ships_fall_back_to_hunting() -> None:
    player = make_player([Coordinate(0, 0), Coordinate(1, 0)], column(8, range(3, 6)))
    player.select_space(Coordinate(0, 0))
    player.select_space(Coordinate(1, 0))
    assert player.is_ship_sunk_by_pos(Coordinate(1, 0))

    assert live_hits(player) == []
    candidates = player.suggested_checks()
    assert len(candidates) == 98
    assert Coordinate(0, 0) not in candidates
    assert Coordinate(1, 0) not in candidates


def test_live_hits_ignore_sunk_ships() -> None:
    player = make_player([Coordinate(0, 0), Coordinate(1, 0)], column(8, range(3, 6)))
    for cell in (Coordinate(0, 0), Coordinate(1, 0), Coordinate(8, 4)):
        player.select_space(cell)
        player.is_ship_sunk_by_pos(cell)

    assert [space.position for space in live_hits(player)] == [Coordinate(8, 4)]
    assert set(player.suggested_checks()) == {
        Coordinate(8, 3),
        Coordinate(9, 4),
        Coordinate(8, 5),
        Coordinate(7, 4),
    }


def test_find_unchecked_space_walks_through_hits() -> None:
    player = make_player([Coordinate(0, 0), Coordinate(1, 0), Coordinate(2, 0)])
    player.select_space(Coordinate(0, 0))
    player.select_space(Coordinate(1, 0))

    origin = Coordinate(0, 0)
    assert find_unchecked_space(player, origin, Direction.EAST, check_for_line=True) == Coordinate(2, 0)
    assert find_unchecked_space(player, origin, Direction.WEST, check_for_line=False) is None
    assert find_unchecked_space(player, origin, Direction.SOUTH, check_for_line=True) is None
    assert find_unchecked_space(player, origin, Direction.SOUTH, check_for_line=False) == Coordinate(0, 1)


@pytest.mark.parametrize("seed", [2, 11, 99])
def test_suggestions_are_always_unchecked(seed: int) -> None:
    rng = random.Random(seed)
    player = Player(is_cpu=True, rng=random.Random(seed))
    player.cpu_place_ships([2, 3, 4, 5])

    for _ in range(60):
        candidates = player.suggested_checks()
        assert candidates
        assert len(candidates) == len(set(candidates))
        assert all(player.space(pos).is_unchecked() for pos in candidates)
        target = rng.choice(candidates)
        player.select_space(target)
        player.is_ship_sunk_by_pos(target)


def test_same_seed_gives_same_suggestions() -> None:
    first = make_player(column(5, range(4, 8)), seed=5)
    second = make_player(column(5, range(4, 8)), seed=5)
    for player in (first, second):
        player.select_space(Coordinate(5, 5))

    assert first.suggested_checks() == second.suggested_checks()
    assert suggest_checks(first, random.Random(1)) == suggest_checks(second, random.Random(1))
