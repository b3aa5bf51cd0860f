"""Computer opponent logic for the Battleship engine."""

from .targeting import find_unchecked_space, live_hits, suggest_checks

__all__ = ["find_unchecked_space", "live_hits", "suggest_checks"]
