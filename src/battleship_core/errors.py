"""Typed rule errors raised by the Battleship engine."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Categories of recoverable rule violations."""

    OUT_OF_BOUNDS = "out_of_bounds"
    OVERLAP = "overlap"
    ALREADY_CHECKED = "already_checked"
    INVALID_LIFECYCLE = "invalid_lifecycle"
    INVALID_LINE = "invalid_line"


class GameRuleError(Exception):
    """Base class for every error raised by the engine."""

    kind: ErrorKind


class OutOfBoundsError(GameRuleError, ValueError):
    """A position, movement or rotation would leave the grid."""

    kind = ErrorKind.OUT_OF_BOUNDS


class OverlapError(GameRuleError, ValueError):
    """A placement collides with (or, for CPU players, touches) another ship."""

    kind = ErrorKind.OVERLAP


class AlreadyCheckedError(GameRuleError, ValueError):
    """A space was selected twice."""

    kind = ErrorKind.ALREADY_CHECKED


class InvalidLineError(GameRuleError, ValueError):
    """A ship position is not a straight, contiguous run of cells."""

    kind = ErrorKind.INVALID_LINE


class InvalidLifecycleError(GameRuleError, RuntimeError):
    """A ship or game is not in the state the operation requires."""

    kind = ErrorKind.INVALID_LIFECYCLE
