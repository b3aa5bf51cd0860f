"""Single grid cell state for the Battleship engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from battleship_core.errors import AlreadyCheckedError

from .direction import Coordinate


class SpaceState(Enum):
    """State of a grid cell from the perspective of selections made on it."""

    UNCHECKED = "unchecked"
    EMPTY = "empty"
    HIT = "hit"


@dataclass
class Space:
    """One cell of a player's grid."""

    position: Coordinate
    state: SpaceState = SpaceState.UNCHECKED

    def set_checked(self, hit: bool) -> None:
        """Mark the space as checked; a space can only be checked once."""
        if self.state is not SpaceState.UNCHECKED:
            raise AlreadyCheckedError(f"Space {self.position} has already been checked.")
        self.state = SpaceState.HIT if hit else SpaceState.EMPTY

    def is_unchecked(self) -> bool:
        return self.state is SpaceState.UNCHECKED

    def is_checked(self) -> bool:
        return self.state is not SpaceState.UNCHECKED

    def is_empty(self) -> bool:
        """Checked, and no ship was there."""
        return self.state is SpaceState.EMPTY

    def is_hit(self) -> bool:
        """Checked, and a ship was there."""
        return self.state is SpaceState.HIT
