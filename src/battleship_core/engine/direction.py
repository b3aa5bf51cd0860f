"""Grid coordinates and compass directions."""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum

from battleship_core.errors import InvalidLineError, OutOfBoundsError

MAX_GRID_INDEX = 255


@dataclass(frozen=True)
class Coordinate:
    """Immutable grid coordinate; ``x`` grows East and ``y`` grows South."""

    x: int
    y: int

    def __post_init__(self) -> None:
        if not (0 <= self.x <= MAX_GRID_INDEX and 0 <= self.y <= MAX_GRID_INDEX):
            raise OutOfBoundsError(f"Coordinate ({self.x}, {self.y}) is outside 0..{MAX_GRID_INDEX}.")

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


class Direction(Enum):
    """The four compass directions a ship can face or a cursor can move."""

    NORTH = "north"
    EAST = "east"
    SOUTH = "south"
    WEST = "west"

    @property
    def delta(self) -> tuple[int, int]:
        """Return the ``(dx, dy)`` step for one cell of movement."""
        return _DELTAS[self]

    def opposite(self) -> Direction:
        return _OPPOSITES[self]

    def rotated(self) -> Direction:
        """Return the direction 90 degrees clockwise."""
        members = Direction.all()
        return members[(members.index(self) + 1) % len(members)]

    @classmethod
    def all(cls) -> list[Direction]:
        return [cls.NORTH, cls.EAST, cls.SOUTH, cls.WEST]

    @classmethod
    def random(cls, rng: random.Random) -> Direction:
        """Pick a direction uniformly at random."""
        return rng.choice(cls.all())

    @classmethod
    def from_positions(cls, a: Coordinate, b: Coordinate) -> Direction:
        """Return the direction of travel from ``b`` to ``a``.

        The two coordinates must differ by exactly one unit along a single
        axis, otherwise ``InvalidLineError`` is raised.
        """
        step = (a.x - b.x, a.y - b.y)
        for direction, delta in _DELTAS.items():
            if delta == step:
                return direction
        raise InvalidLineError(f"{b} -> {a} is not a single orthogonal step.")


_DELTAS: dict[Direction, tuple[int, int]] = {
    Direction.NORTH: (0, -1),
    Direction.EAST: (1, 0),
    Direction.SOUTH: (0, 1),
    Direction.WEST: (-1, 0),
}

_OPPOSITES: dict[Direction, Direction] = {
    Direction.NORTH: Direction.SOUTH,
    Direction.EAST: Direction.WEST,
    Direction.SOUTH: Direction.NORTH,
    Direction.WEST: Direction.EAST,
}
