"""Battleship match with per-match telemetry hooks."""

from __future__ import annotations

import time

from battleship_core.errors import GameRuleError
from battleship_core.telemetry import get_logger, get_tracer, record_game_metric

from .direction import Coordinate
from .game import Game
from .ship import Ship
from .space import SpaceState


class InstrumentedGame(Game):
    """Wraps Game with a match-long span, shot metrics and log lines."""

    _match_counter = 0

    def __init__(self, *args, **kwargs) -> None:
        self._logger = get_logger("battleship_core.engine")
        self._tracer = get_tracer("battleship_core.engine")
        self._match_span_cm = None
        self._match_span = None
        InstrumentedGame._match_counter += 1
        self.match_id = InstrumentedGame._match_counter
        self._start_time = time.perf_counter()
        self._open_match_span()
        try:
            super().__init__(*args, **kwargs)
        except Exception as exc:
            self._close_match_span(exc)
            raise
        self._logger.info(
            "Match %d created: grid=%s ships=%s",
            self.match_id,
            self.settings.grid_size,
            self.settings.ship_lengths,
        )

    def place_ship(self) -> Ship:
        with self._tracer.start_as_current_span("battleship_core.engine.place_ship") as span:
            span.set_attribute("match.id", self.match_id)
            span.set_attribute("player", self.active_player.name)
            try:
                ship = super().place_ship()
            except GameRuleError as exc:
                span.record_exception(exc)
                span.set_attribute("error", True)
                span.set_attribute("error.kind", exc.kind.value)
                record_game_metric(
                    "battleship_core_invalid_placements_total",
                    1,
                    {"player": self.active_player.name, "reason": exc.kind.value},
                )
                raise
            span.set_attribute("ship.length", len(ship))
            if self.is_state_active():
                self._logger.info("Match %d: both fleets placed, play begins", self.match_id)
            return ship

    def select_space(self, pos: Coordinate) -> tuple[SpaceState, Ship | None]:
        attacker = self.active_player.name
        with self._tracer.start_as_current_span("battleship_core.engine.select_space") as span:
            span.set_attribute("match.id", self.match_id)
            span.set_attribute("player", attacker)
            span.set_attribute("coord.x", pos.x)
            span.set_attribute("coord.y", pos.y)

            try:
                state, ship = super().select_space(pos)
            except GameRuleError as exc:
                record_game_metric(
                    "battleship_core_invalid_selections_total",
                    1,
                    {"player": attacker, "reason": exc.kind.value},
                )
                span.record_exception(exc)
                span.set_attribute("error", True)
                self._logger.error(
                    "Invalid selection from %s at (%d,%d): %s", attacker, pos.x, pos.y, exc
                )
                raise

            hit = state is SpaceState.HIT
            sunk = bool(ship and ship.is_sunk())
            span.set_attribute("shot_outcome", state.name)
            span.set_attribute("hit", hit)
            span.set_attribute("sunk", sunk)

            record_game_metric("battleship_core_shots_total", 1, {"player": attacker})
            record_game_metric(
                "battleship_core_shots_by_result_total",
                1,
                {"player": attacker, "result": "hit" if hit else "miss"},
            )
            self._logger.info(
                "select_space player=%s coord=(%d,%d) outcome=%s sunk=%s",
                attacker,
                pos.x,
                pos.y,
                state.name,
                sunk,
            )

            if self.is_state_complete():
                span.set_attribute("winner", attacker)
                self._finish_match()

            return state, ship

    def _open_match_span(self) -> None:
        self._match_span_cm = self._tracer.start_as_current_span("battleship_core.engine.match")
        self._match_span = self._match_span_cm.__enter__()
        self._match_span.set_attribute("match.id", self.match_id)

    def _finish_match(self) -> None:
        duration = time.perf_counter() - self._start_time
        turns = sum(
            1 for player in self.players for space in player.spaces if space.is_checked()
        )
        winner = self.players[self.winner].name if self.winner is not None else "unknown"

        record_game_metric("battleship_core_game_completed_total", 1, {"winner": winner})
        record_game_metric("battleship_core_game_duration_seconds", duration, {"winner": winner})

        with self._tracer.start_as_current_span("battleship_core.engine.match_complete") as span:
            span.set_attribute("match.id", self.match_id)
            span.set_attribute("winner", winner)
            span.set_attribute("turns", turns)
            span.set_attribute("duration_ms", duration * 1000)

        if self._match_span is not None:
            self._match_span.set_attribute("winner", winner)
            self._match_span.set_attribute("turns", turns)

        self._logger.info(
            "Match %d finished. Winner=%s turns=%d duration_s=%.3f",
            self.match_id,
            winner,
            turns,
            duration,
        )
        self._close_match_span()

    def close(self) -> None:
        """End the match span if the match was abandoned before a winner emerged."""
        self._close_match_span()

    def _close_match_span(self, exc: BaseException | None = None) -> None:
        if self._match_span_cm is not None:
            if exc is None:
                self._match_span_cm.__exit__(None, None, None)
            else:
                self._match_span_cm.__exit__(type(exc), exc, exc.__traceback__)
            self._match_span_cm = None
            self._match_span = None
