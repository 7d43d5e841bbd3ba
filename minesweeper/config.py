from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from .errors import ConfigurationError

# Seconds added to the elapsed time per timer step
DEFAULT_TICK_INTERVAL = 0.1

# (width, height, mines)
PRESETS: Dict[str, Tuple[int, int, int]] = {
    'easy': (8, 8, 10),
    'medium': (16, 16, 40),
    'hard': (24, 24, 99),
}


def check_dimensions(width: int, height: int, num_mines: int) -> None:
    if width < 1 or height < 1:
        raise ConfigurationError(f'Board must be at least 1x1, got {width}x{height}')
    if num_mines < 0:
        raise ConfigurationError(f'Mine count must not be negative, got {num_mines}')
    if num_mines >= width * height:
        raise ConfigurationError(
            f'Mine count must be below the number of cells ({width * height}), got {num_mines}'
        )


@dataclass(frozen=True)
class GameConfig:
    width: int = 16
    height: int = 16
    num_mines: int = 40
    seed: Optional[int] = None
    tick_interval: float = DEFAULT_TICK_INTERVAL

    def validate(self) -> 'GameConfig':
        check_dimensions(self.width, self.height, self.num_mines)
        if self.tick_interval <= 0:
            raise ConfigurationError(f'Tick interval must be positive, got {self.tick_interval}')
        return self

    @classmethod
    def from_preset(cls, name: str, **overrides) -> 'GameConfig':
        try:
            width, height, mines = PRESETS[name.lower()]
        except KeyError:
            raise ConfigurationError(f'Unknown preset {name!r}; choose from {sorted(PRESETS)}') from None
        return replace(cls(width, height, mines), **overrides).validate()
