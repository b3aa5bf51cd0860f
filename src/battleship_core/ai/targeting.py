"""Hunt-and-target search used by computer-controlled players.

The computer picks its next shot from a list of candidate cells on the
opponent's grid:

* **target** - extend every line of live hits to its unchecked continuation;
* **widen** - with live hits but no line to extend, try the unchecked
  neighbours of one hit;
* **hunt** - with no live hits at all, any unchecked cell will do.

Direction and hit orders are shuffled on every call, otherwise the candidate
order would always favour the same corner of the grid.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from battleship_core.engine.direction import Coordinate, Direction
from battleship_core.engine.space import Space

if TYPE_CHECKING:  # pragma: no cover - typing only
    from battleship_core.engine.player import Player


def live_hits(player: Player) -> list[Space]:
    """Hit spaces whose ship is still afloat."""
    hits = []
    for space in player.spaces:
        if not space.is_hit():
            continue
        ship = player.ship_at(space.position)
        if ship is not None and ship.is_active():
            hits.append(space)
    return hits


def find_unchecked_space(
    player: Player, pos: Coordinate, direction: Direction, check_for_line: bool
) -> Coordinate | None:
    """Walk from ``pos`` through hit spaces and return the first unchecked one.

    Returns ``None`` when the walk ends on a checked miss or at the grid edge.
    With ``check_for_line`` the walk must have passed at least one hit, so
    the result continues a line rather than merely touching ``pos``.
    """
    current = player.movement(pos, direction)
    while current is not None and player.space(current).is_hit():
        current = player.movement(current, direction)

    if current is None or not player.space(current).is_unchecked():
        return None

    if check_for_line and player.movement(current, direction.opposite()) == pos:
        return None
    return current


def suggest_checks(player: Player, rng: random.Random) -> list[Coordinate]:
    """Return the prioritized, de-duplicated candidate cells on ``player``'s grid."""
    directions = Direction.all()
    rng.shuffle(directions)
    hits = live_hits(player)
    rng.shuffle(hits)

    candidates: list[Coordinate] = []
    for space in hits:
        for direction in directions:
            found = find_unchecked_space(player, space.position, direction, check_for_line=True)
            if found is not None:
                candidates.append(found)

    if hits and not candidates:
        for direction in directions:
            found = find_unchecked_space(player, hits[0].position, direction, check_for_line=False)
            if found is not None:
                candidates.append(found)

    if not candidates:
        candidates = [space.position for space in player.spaces if space.is_unchecked()]

    return list(dict.fromkeys(candidates))
