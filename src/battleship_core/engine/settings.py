"""Match configuration for the Battleship engine."""

from __future__ import annotations

import os
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator, model_validator

MAX_GRID_SIZE = 255


class GameSettings(BaseModel):
    """Grid dimensions, fleet composition and which seats the computer plays."""

    grid_size: tuple[int, int] = (10, 10)
    ship_lengths: list[int] = Field(default_factory=lambda: [2, 3, 4, 5])
    cpu_players: tuple[bool, bool] = (False, True)

    @field_validator("grid_size")
    @classmethod
    def _check_grid_size(cls, value: tuple[int, int]) -> tuple[int, int]:
        width, height = value
        if not (1 <= width <= MAX_GRID_SIZE and 1 <= height <= MAX_GRID_SIZE):
            raise ValueError(f"grid dimensions must be between 1 and {MAX_GRID_SIZE}")
        return value

    @field_validator("ship_lengths")
    @classmethod
    def _check_ship_lengths(cls, value: list[int]) -> list[int]:
        if not value:
            raise ValueError("at least one ship is required")
        if any(length < 1 for length in value):
            raise ValueError("ship lengths must be positive")
        return value

    @model_validator(mode="after")
    def _check_ships_fit(self) -> "GameSettings":
        # Human placement starts facing West, so every ship must fit across the grid.
        width, _ = self.grid_size
        longest = max(self.ship_lengths)
        if longest > width:
            raise ValueError(f"a ship of length {longest} does not fit a grid {width} wide")
        return self

    @property
    def ship_count(self) -> int:
        return len(self.ship_lengths)

    @classmethod
    def from_env(cls, **overrides: Any) -> "GameSettings":
        """Construct settings from ``BATTLESHIP_*`` environment variables."""

        data: Dict[str, Any] = {}

        grid_env = os.getenv("BATTLESHIP_GRID_SIZE")
        if grid_env:
            data["grid_size"] = parse_grid_size(grid_env)

        ships_env = os.getenv("BATTLESHIP_SHIP_LENGTHS")
        if ships_env:
            data["ship_lengths"] = parse_ship_lengths(ships_env)

        cpu_env = os.getenv("BATTLESHIP_CPU_PLAYERS")
        if cpu_env:
            flags = [part.strip().lower() in {"1", "true", "yes", "cpu"} for part in cpu_env.split(",")]
            if len(flags) != 2:
                raise ValueError("BATTLESHIP_CPU_PLAYERS needs exactly two comma-separated flags")
            data["cpu_players"] = tuple(flags)

        data.update(overrides)
        return cls(**data)


def parse_grid_size(text: str) -> tuple[int, int]:
    """Parse ``"10x10"`` (or ``"10,10"``) into ``(width, height)``."""
    parts = text.lower().replace(",", "x").split("x")
    if len(parts) != 2:
        raise ValueError(f"grid size must look like 10x10, got {text!r}")
    return int(parts[0]), int(parts[1])


def parse_ship_lengths(text: str) -> list[int]:
    return [int(part) for part in text.split(",") if part.strip()]
