"""Single-player grid, fleet and ship placement for the Battleship engine."""

from __future__ import annotations

import logging
import random
from typing import Sequence

from battleship_core.ai.targeting import suggest_checks
from battleship_core.errors import (
    InvalidLifecycleError,
    InvalidLineError,
    OutOfBoundsError,
    OverlapError,
)
from battleship_core.telemetry import get_meter, get_tracer

from .direction import Coordinate, Direction
from .ship import Ship
from .space import Space, SpaceState

logger = logging.getLogger(__name__)
tracer = get_tracer("battleship_core.engine.player")
meter = get_meter("battleship_core.engine.player")

PLACEMENT_COUNTER = meter.create_counter(
    "battleship_core_ship_placements",
    unit="1",
    description="Number of attempted ship placements",
)

SELECTION_COUNTER = meter.create_counter(
    "battleship_core_selections",
    unit="1",
    description="Spaces selected on a player's grid",
)

DEFAULT_PLACEMENT_HEAD = (0, 0)
DEFAULT_PLACEMENT_DIRECTION = Direction.WEST
MAX_CPU_PLACEMENT_ATTEMPTS = 10_000


class Player:
    """Owns one grid of spaces, the ships placed on it and the placement cursor."""

    def __init__(
        self,
        grid_size: tuple[int, int] = (10, 10),
        ship_count: int = 4,
        is_cpu: bool = False,
        rng: random.Random | None = None,
        name: str = "player",
    ) -> None:
        width, height = grid_size
        self.grid_size: tuple[int, int] = (width, height)
        self.ship_count = ship_count
        self.is_cpu = is_cpu
        self.name = name
        self.ships: list[Ship] = []
        self.spaces: list[Space] = [
            Space(Coordinate(x, y)) for x in range(width) for y in range(height)
        ]
        self._placement_ship: Ship | None = None
        self._grid_cursor = Coordinate(0, 0)
        self._rng = rng or random.Random()

    # -- grid geometry -------------------------------------------------

    @property
    def width(self) -> int:
        return self.grid_size[0]

    @property
    def height(self) -> int:
        return self.grid_size[1]

    def is_valid_coordinate(self, pos: Coordinate) -> bool:
        """Check whether a coordinate lies inside the grid."""
        return pos.x < self.width and pos.y < self.height

    def movement(self, pos: Coordinate, direction: Direction) -> Coordinate | None:
        """Return the neighbour of ``pos`` in ``direction``, or ``None`` past the edge."""
        dx, dy = direction.delta
        x, y = pos.x + dx, pos.y + dy
        if not (0 <= x < self.width and 0 <= y < self.height):
            return None
        return Coordinate(x, y)

    def ship_position(
        self, head: Coordinate, direction: Direction, length: int
    ) -> list[Coordinate] | None:
        """Return the cells of a ship facing ``direction`` with its head at ``head``.

        The body trails away from the head, opposite to the facing. Returns
        ``None`` if any cell would fall outside the grid.
        """
        if length < 1 or not self.is_valid_coordinate(head):
            return None
        cells = [head]
        trailing = direction.opposite()
        for _ in range(length - 1):
            nxt = self.movement(cells[-1], trailing)
            if nxt is None:
                return None
            cells.append(nxt)
        return cells

    def space(self, pos: Coordinate) -> Space:
        if not self.is_valid_coordinate(pos):
            raise OutOfBoundsError(f"Space {pos} is outside the {self.width}x{self.height} grid.")
        return self.spaces[pos.x * self.height + pos.y]

    def ship_at(self, pos: Coordinate) -> Ship | None:
        """Return the committed ship covering ``pos``, if any."""
        for ship in self.ships:
            if ship.occupies(pos):
                return ship
        return None

    def ship_is_in_space(self, pos: Coordinate) -> bool:
        return self.ship_at(pos) is not None

    def ship_is_next_to(self, pos: Coordinate) -> bool:
        """Return True if a committed ship occupies an orthogonal neighbour of ``pos``."""
        for direction in Direction.all():
            neighbour = self.movement(pos, direction)
            if neighbour is not None and self.ship_is_in_space(neighbour):
                return True
        return False

    def valid_ship_position(self, cells: Sequence[Coordinate]) -> bool:
        """Determine whether a ship could be committed on ``cells``.

        Computer players additionally keep a one-space gap between ships;
        human players may place ships touching.
        """
        return all(
            self.is_valid_coordinate(cell)
            and not self.ship_is_in_space(cell)
            and not (self.is_cpu and self.ship_is_next_to(cell))
            for cell in cells
        )

    # -- placement -----------------------------------------------------

    @property
    def placement_ship(self) -> Ship | None:
        """The staged ship a human player is positioning, if any."""
        return self._placement_ship

    def _require_placement_ship(self) -> Ship:
        if self._placement_ship is None:
            raise InvalidLifecycleError(f"{self.name} has no placement ship.")
        return self._placement_ship

    def placed_all_ships(self) -> bool:
        return len(self.ships) >= self.ship_count and self._placement_ship is None

    def add_placement_ship(self, length: int) -> Ship:
        """Stage a new ship at the top-left corner, facing West."""
        if self._placement_ship is not None:
            raise InvalidLifecycleError(f"{self.name} is already placing a ship.")
        if len(self.ships) >= self.ship_count:
            raise InvalidLifecycleError(
                f"{self.name} has already placed all {self.ship_count} ships."
            )
        cells = self.ship_position(
            Coordinate(*DEFAULT_PLACEMENT_HEAD), DEFAULT_PLACEMENT_DIRECTION, length
        )
        if cells is None:
            raise OutOfBoundsError(f"A ship of length {length} does not fit on the grid.")
        self._placement_ship = Ship(cells)
        logger.debug("placement_ship_added", extra={"owner": self.name, "length": length})
        return self._placement_ship

    def move_placement_ship(self, direction: Direction) -> None:
        """Translate the staged ship by one space."""
        ship = self._require_placement_ship()
        new_head = self.movement(ship.position[0], direction)
        cells = (
            self.ship_position(new_head, ship.direction, len(ship)) if new_head is not None else None
        )
        if cells is None:
            raise OutOfBoundsError(f"Cannot move the placement ship {direction.name}.")
        ship.set_position(cells)

    def rotate_placement_ship(self) -> None:
        """Rotate the staged ship clockwise, nudging its head to keep it on the grid."""
        ship = self._require_placement_ship()
        length = len(ship)
        direction = ship.direction.rotated()
        head = ship.position[0]

        # The body trails opposite the facing, so only one axis can overflow.
        x, y = head.x, head.y
        if direction is Direction.NORTH:
            y = min(y, self.height - length)
        elif direction is Direction.EAST:
            x = max(x, length - 1)
        elif direction is Direction.SOUTH:
            y = max(y, length - 1)
        else:
            x = min(x, self.width - length)

        cells = None
        if x >= 0 and y >= 0:
            cells = self.ship_position(Coordinate(x, y), direction, length)
        if cells is None:
            raise OutOfBoundsError(f"A ship of length {length} cannot face {direction.name}.")
        ship.set_position(cells)

    def set_placement_ship_position(self, cells: Sequence[Coordinate]) -> None:
        """Drop the staged ship onto an explicit set of cells."""
        ship = self._require_placement_ship()
        cells = list(cells)
        if len(cells) != len(ship):
            raise InvalidLineError(
                f"Placement ship has length {len(ship)}, got {len(cells)} cells."
            )
        if not all(self.is_valid_coordinate(cell) for cell in cells):
            raise OutOfBoundsError("Placement ship would leave the grid.")
        ship.set_position(cells)

    def place_placement_ship(self) -> Ship:
        """Commit the staged ship if it does not collide with the fleet."""
        ship = self._require_placement_ship()
        with tracer.start_as_current_span("player.place_placement_ship") as span:
            span.set_attribute("player.name", self.name)
            span.set_attribute("ship.length", len(ship))
            span.set_attribute("ship.head.x", ship.position[0].x)
            span.set_attribute("ship.head.y", ship.position[0].y)
            if not self.valid_ship_position(ship.position):
                PLACEMENT_COUNTER.add(1, attributes={"result": "failed", "owner": self.name})
                logger.warning(
                    "ship_placement_failed",
                    extra={
                        "owner": self.name,
                        "length": len(ship),
                        "direction": ship.direction.name,
                        "x": ship.position[0].x,
                        "y": ship.position[0].y,
                    },
                )
                raise OverlapError("Placement ship overlaps with another ship.")

            ship.set_active()
            self.ships.append(ship)
            self._placement_ship = None
            PLACEMENT_COUNTER.add(1, attributes={"result": "success", "owner": self.name})
            logger.info(
                "ship_placed",
                extra={
                    "owner": self.name,
                    "length": len(ship),
                    "direction": ship.direction.name,
                    "x": ship.position[0].x,
                    "y": ship.position[0].y,
                },
            )
            return ship

    def cpu_place_ships(
        self, lengths: Sequence[int], max_attempts: int = MAX_CPU_PLACEMENT_ATTEMPTS
    ) -> None:
        """Randomly place one ship per length, keeping ships apart from each other."""
        if self.ships:
            raise InvalidLifecycleError(f"{self.name} has already placed ships.")
        with tracer.start_as_current_span("player.cpu_place_ships") as span:
            span.set_attribute("player.name", self.name)
            span.set_attribute("ship.count", len(lengths))
            attempts_by_length: list[tuple[int, int]] = []
            try:
                for length in lengths:
                    cells, attempts = self._random_ship_position(length, max_attempts)
                    ship = Ship(cells)
                    ship.set_active()
                    self.ships.append(ship)
                    attempts_by_length.append((length, attempts))
            except OverlapError:
                # The fleet is committed all at once or not at all.
                self.ships.clear()
                PLACEMENT_COUNTER.add(1, attributes={"result": "failed", "owner": self.name})
                logger.warning(
                    "random_fleet_placement_failed",
                    extra={"owner": self.name, "placed": len(attempts_by_length)},
                )
                raise
            for length, attempts in attempts_by_length:
                PLACEMENT_COUNTER.add(1, attributes={"result": "success", "owner": self.name})
                logger.debug(
                    "random_ship_placed",
                    extra={"owner": self.name, "length": length, "attempts": attempts},
                )

    def _random_ship_position(self, length: int, max_attempts: int) -> tuple[list[Coordinate], int]:
        for attempt in range(1, max_attempts + 1):
            head = Coordinate(self._rng.randrange(self.width), self._rng.randrange(self.height))
            cells = self.ship_position(head, Direction.random(self._rng), length)
            if cells is not None and self.valid_ship_position(cells):
                return cells, attempt
        raise OverlapError(
            f"Could not fit a ship of length {length} after {max_attempts} attempts."
        )

    # -- selection -----------------------------------------------------

    def select_space(self, pos: Coordinate) -> SpaceState:
        """Check a space on this player's grid and report whether a ship was hit."""
        space = self.space(pos)
        hit = self.ship_is_in_space(pos)
        space.set_checked(hit)
        SELECTION_COUNTER.add(1, attributes={"outcome": space.state.value, "owner": self.name})
        logger.info(
            "space_selected",
            extra={"owner": self.name, "x": pos.x, "y": pos.y, "outcome": space.state.value},
        )
        return space.state

    def is_ship_sunk_by_pos(self, pos: Coordinate) -> bool:
        """Return whether the ship at ``pos`` has been hit everywhere, sinking it if so."""
        ship = self.ship_at(pos)
        if ship is None:
            return False
        sunk = all(self.space(cell).is_hit() for cell in ship.position)
        if sunk and ship.is_active():
            ship.set_sunk()
            logger.info(
                "ship_sunk", extra={"owner": self.name, "length": len(ship), "x": pos.x, "y": pos.y}
            )
        return sunk

    def all_ships_sunk(self) -> bool:
        return all(ship.is_sunk() for ship in self.ships)

    def suggested_checks(self) -> list[Coordinate]:
        """Candidate spaces an opponent should check next on this grid."""
        return suggest_checks(self, self._rng)

    # -- grid cursor ---------------------------------------------------

    @property
    def grid_cursor(self) -> Coordinate:
        return self._grid_cursor

    def set_grid_cursor(self, pos: Coordinate) -> None:
        if not self.is_valid_coordinate(pos):
            raise OutOfBoundsError(f"Cursor position {pos} is outside the grid.")
        self._grid_cursor = pos

    def move_grid_cursor(self, direction: Direction) -> None:
        new_cursor = self.movement(self._grid_cursor, direction)
        if new_cursor is None:
            raise OutOfBoundsError(f"Cannot move the cursor {direction.name}.")
        self._grid_cursor = new_cursor
