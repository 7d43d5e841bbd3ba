from __future__ import annotations


class MinesweeperError(Exception):
    """Base class for errors raised by the game core."""


class ConfigurationError(MinesweeperError, ValueError):
    """Board dimensions or mine count cannot produce a playable game."""


class InvariantViolation(MinesweeperError, RuntimeError):
    """The core was driven in a way its callers must never do (e.g. placing mines twice)."""
