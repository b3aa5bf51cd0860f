"""Two-player Battleship match controller."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from battleship_core.errors import InvalidLifecycleError
from battleship_core.telemetry import get_meter, get_tracer

from .direction import Coordinate, Direction
from .player import Player
from .settings import GameSettings
from .ship import Ship, ShipState
from .space import SpaceState

logger = logging.getLogger(__name__)
tracer = get_tracer("battleship_core.engine.game")
meter = get_meter("battleship_core.engine.game")

MOVE_COUNTER = meter.create_counter(
    "battleship_core_moves",
    unit="1",
    description="Number of spaces selected during a match",
)

PLAYER_NAMES = ("player1", "player2")


class GamePhase(Enum):
    """High-level lifecycle of a Battleship match."""

    PLACEMENT = "placement"
    ACTIVE = "active"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ShipSnapshot:
    position: tuple[Coordinate, ...]
    direction: Direction
    state: ShipState

    @classmethod
    def of(cls, ship: Ship) -> ShipSnapshot:
        return cls(position=tuple(ship.position), direction=ship.direction, state=ship.state)


@dataclass(frozen=True)
class PlayerSnapshot:
    """Read-only view of one player's grid for the presentation layer."""

    name: str
    is_cpu: bool
    grid_size: tuple[int, int]
    ships: tuple[ShipSnapshot, ...]
    spaces: dict[Coordinate, SpaceState]
    placement_ship: ShipSnapshot | None
    grid_cursor: Coordinate


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of the current match."""

    phase: GamePhase
    turn: int
    winner: int | None
    players: tuple[PlayerSnapshot, PlayerSnapshot]


class Game:
    """Coordinates placement and play between two players."""

    def __init__(
        self,
        settings: GameSettings | None = None,
        rng: random.Random | None = None,
        rng_seed: int | None = None,
    ) -> None:
        self.settings = settings or GameSettings()
        self._rng = rng or random.Random(rng_seed)
        self.players: tuple[Player, Player] = tuple(  # type: ignore[assignment]
            Player(
                grid_size=self.settings.grid_size,
                ship_count=self.settings.ship_count,
                is_cpu=is_cpu,
                rng=self._rng,
                name=name,
            )
            for name, is_cpu in zip(PLAYER_NAMES, self.settings.cpu_players)
        )
        self.phase: GamePhase = GamePhase.PLACEMENT
        self.turn: int = 0

        for player in self.players:
            if player.is_cpu:
                player.cpu_place_ships(self.settings.ship_lengths)
            else:
                player.add_placement_ship(self.settings.ship_lengths[0])
        logger.info(
            "game_created",
            extra={
                "grid_size": "x".join(map(str, self.settings.grid_size)),
                "ship_lengths": ",".join(map(str, self.settings.ship_lengths)),
            },
        )
        self._advance_placement()

    # -- turn and phase queries ----------------------------------------

    @property
    def not_turn(self) -> int:
        """Index of the currently inactive player."""
        return (self.turn + 1) % 2

    @property
    def active_player(self) -> Player:
        return self.players[self.turn]

    @property
    def inactive_player(self) -> Player:
        return self.players[self.not_turn]

    @property
    def winner(self) -> int | None:
        """Index of the winning player once the match is complete."""
        return self.turn if self.phase is GamePhase.COMPLETE else None

    def is_state_placement(self) -> bool:
        return self.phase is GamePhase.PLACEMENT

    def is_state_active(self) -> bool:
        return self.phase is GamePhase.ACTIVE

    def is_state_complete(self) -> bool:
        return self.phase is GamePhase.COMPLETE

    def active_player_placed_all_ships(self) -> bool:
        return self.active_player.placed_all_ships()

    def is_player_placing_ship(self) -> bool:
        """Whether a human player is currently positioning a ship."""
        return self.phase is GamePhase.PLACEMENT and not self.active_player.is_cpu

    def is_player_selecting_space(self) -> bool:
        """Whether a human player is currently choosing a space to check."""
        return self.phase is GamePhase.ACTIVE and not self.active_player.is_cpu

    def switch_active_player(self) -> None:
        """Hand the turn to the other player."""
        if self.phase is GamePhase.COMPLETE:
            raise InvalidLifecycleError("The match is over; the turn can no longer change.")
        self.turn = self.not_turn
        logger.debug("turn_switched", extra={"turn": self.turn, "phase": self.phase.value})

    # -- placement -----------------------------------------------------

    def _require_phase(self, phase: GamePhase, action: str) -> None:
        if self.phase is not phase:
            logger.error(
                "action_rejected_wrong_phase",
                extra={"action": action, "phase": self.phase.value},
            )
            raise InvalidLifecycleError(f"Cannot {action} during the {self.phase.value} phase.")

    def move_ship(self, direction: Direction) -> None:
        self._require_phase(GamePhase.PLACEMENT, "move a ship")
        self.active_player.move_placement_ship(direction)

    def rotate_ship(self) -> None:
        self._require_phase(GamePhase.PLACEMENT, "rotate a ship")
        self.active_player.rotate_placement_ship()

    def set_placement_ship(self, cells: Sequence[Coordinate]) -> None:
        self._require_phase(GamePhase.PLACEMENT, "position a ship")
        self.active_player.set_placement_ship_position(cells)

    def place_ship(self) -> Ship:
        """Commit the active player's staged ship and stage the next one."""
        self._require_phase(GamePhase.PLACEMENT, "place a ship")
        player = self.active_player
        ship = player.place_placement_ship()
        placed = len(player.ships)
        if placed < self.settings.ship_count:
            player.add_placement_ship(self.settings.ship_lengths[placed])
        self._advance_placement()
        return ship

    def _advance_placement(self) -> None:
        """Pass the turn once a fleet is complete and start play once both are."""
        if self.phase is not GamePhase.PLACEMENT or not self.active_player_placed_all_ships():
            return
        if self.inactive_player.placed_all_ships():
            with tracer.start_as_current_span("game.start"):
                self.phase = GamePhase.ACTIVE
                self.turn = 0
                logger.info("game_started", extra={"phase": self.phase.value, "turn": self.turn})
            return
        self.turn = self.not_turn

    # -- play ----------------------------------------------------------

    def select_space(self, pos: Coordinate) -> tuple[SpaceState, Ship | None]:
        """Check a space on the inactive player's grid and apply the win condition."""
        with tracer.start_as_current_span("game.select_space") as span:
            span.set_attribute("turn", self.turn)
            span.set_attribute("x", pos.x)
            span.set_attribute("y", pos.y)
            self._require_phase(GamePhase.ACTIVE, "select a space")

            opponent = self.inactive_player
            state = opponent.select_space(pos)
            ship = opponent.ship_at(pos)
            span.set_attribute("outcome", state.value)

            if ship is not None and opponent.is_ship_sunk_by_pos(pos):
                span.set_attribute("sunk", True)
                if opponent.all_ships_sunk():
                    self.phase = GamePhase.COMPLETE
                    span.set_attribute("game.winner", self.turn)
                    logger.info("game_finished", extra={"winner": self.turn})

            MOVE_COUNTER.add(1, attributes={"result": state.value, "turn": self.turn})
            return state, ship

    def suggested_check(self) -> Coordinate:
        """Pick a space on the inactive player's grid for a computer player to check."""
        candidates = self.inactive_player.suggested_checks()
        if not candidates:
            raise InvalidLifecycleError("No unchecked spaces remain.")
        return self._rng.choice(candidates)

    def valid_moves(self) -> list[Coordinate]:
        """Return all spaces the active player can legally select."""
        if self.phase is not GamePhase.ACTIVE:
            return []
        return [space.position for space in self.inactive_player.spaces if space.is_unchecked()]

    def get_state(self) -> GameState:
        """Return an immutable view of the current match."""
        snapshots = tuple(
            PlayerSnapshot(
                name=player.name,
                is_cpu=player.is_cpu,
                grid_size=player.grid_size,
                ships=tuple(ShipSnapshot.of(ship) for ship in player.ships),
                spaces={space.position: space.state for space in player.spaces},
                placement_ship=(
                    ShipSnapshot.of(player.placement_ship)
                    if player.placement_ship is not None
                    else None
                ),
                grid_cursor=player.grid_cursor,
            )
            for player in self.players
        )
        return GameState(
            phase=self.phase,
            turn=self.turn,
            winner=self.winner,
            players=snapshots,  # type: ignore[arg-type]
        )
