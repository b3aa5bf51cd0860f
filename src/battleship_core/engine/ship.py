"""Ship domain model for the Battleship engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from battleship_core.errors import InvalidLifecycleError, InvalidLineError

from .direction import Coordinate, Direction

DEFAULT_DIRECTION = Direction.WEST


class ShipState(Enum):
    """Lifecycle of a ship; transitions only ever move forward."""

    PLACEMENT = "placement"
    ACTIVE = "active"
    SUNK = "sunk"


def line_direction(position: Sequence[Coordinate]) -> Direction:
    """Validate that ``position`` is a straight contiguous run and return its facing.

    The head is ``position[0]``; the rest of the ship trails behind it, so the
    facing is the direction of travel from the second cell to the first.
    """
    if not position:
        raise InvalidLineError("A ship must occupy at least one space.")
    if len(position) == 1:
        return DEFAULT_DIRECTION

    direction = Direction.from_positions(position[0], position[1])
    for ahead, behind in zip(position, position[1:]):
        if Direction.from_positions(ahead, behind) is not direction:
            raise InvalidLineError(
                f"Ship cells {behind} -> {ahead} break the line facing {direction.name}."
            )
    return direction


@dataclass
class Ship:
    """Represents a single ship instance on a player's grid."""

    position: tuple[Coordinate, ...]
    direction: Direction = field(init=False)
    state: ShipState = field(init=False, default=ShipState.PLACEMENT)

    def __post_init__(self) -> None:
        self.position = tuple(self.position)
        self.direction = line_direction(self.position)

    def __len__(self) -> int:
        return len(self.position)

    def coordinates(self) -> list[Coordinate]:
        """Return the ordered list of coordinates occupied by this ship, head first."""
        return list(self.position)

    def occupies(self, coord: Coordinate) -> bool:
        return coord in self.position

    def set_position(self, position: Sequence[Coordinate]) -> None:
        """Move a ship that has not been committed yet."""
        if self.state is not ShipState.PLACEMENT:
            raise InvalidLifecycleError("Only a ship in placement can be moved.")
        new_position = tuple(position)
        self.direction = line_direction(new_position)
        self.position = new_position

    def set_active(self) -> None:
        if self.state is not ShipState.PLACEMENT:
            raise InvalidLifecycleError(f"Cannot activate a ship in state {self.state.name}.")
        self.state = ShipState.ACTIVE

    def set_sunk(self) -> None:
        if self.state is not ShipState.ACTIVE:
            raise InvalidLifecycleError(f"Cannot sink a ship in state {self.state.name}.")
        self.state = ShipState.SUNK

    def is_placement(self) -> bool:
        return self.state is ShipState.PLACEMENT

    def is_active(self) -> bool:
        return self.state is ShipState.ACTIVE

    def is_sunk(self) -> bool:
        return self.state is ShipState.SUNK
