from __future__ import annotations
import logging
import random
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .board import Board, Cell, Coordinate
from .config import DEFAULT_TICK_INTERVAL, GameConfig
from .features import render_ascii, visible_grid
from .timer import GameTimer, Scheduler

logger = logging.getLogger(__name__)


class GameState(str, Enum):
    IDLE = 'idle'
    PLAYING = 'playing'
    WON = 'won'
    LOST = 'lost'

    @property
    def is_over(self) -> bool:
        return self in (GameState.WON, GameState.LOST)


class Mode(str, Enum):
    DIG = 'dig'
    FLAG = 'flag'

    @classmethod
    def parse(cls, value: Union['Mode', str]) -> 'Mode':
        if isinstance(value, Mode):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f'Unknown mode {value!r}; expected one of {[m.value for m in cls]}') from None


@dataclass(frozen=True)
class ActionResult:
    state_before: GameState
    state_after: GameState
    changed_cells: Tuple[Cell, ...]
    mines_remaining: int
    elapsed_time: float

    @property
    def no_effect(self) -> bool:
        return not self.changed_cells and not self.state_changed

    @property
    def state_changed(self) -> bool:
        return self.state_before is not self.state_after

    @property
    def changed_positions(self) -> List[Coordinate]:
        return [c.position for c in self.changed_cells]


CellCallback = Callable[[Cell], None]
StateCallback = Callable[[GameState, GameState], None]
TickCallback = Callable[[float], None]


class GameEngine:
    """One game: a board plus state machine, flag budget and elapsed time.

    Every public method runs under a single re-entrant lock shared with the
    timer, so actions and ticks never interleave. View callbacks are called
    once the board mutation is complete, still under the lock.
    """

    def __init__(self, width: int = 16, height: int = 16, num_mines: int = 40,
                 seed: Optional[int] = None,
                 tick_interval: float = DEFAULT_TICK_INTERVAL,
                 scheduler: Optional[Scheduler] = None,
                 on_cell_changed: Optional[CellCallback] = None,
                 on_state_changed: Optional[StateCallback] = None,
                 on_time_tick: Optional[TickCallback] = None,
                 board: Optional[Board] = None):
        self.lock = threading.RLock()
        self.rng = random.Random(int(seed)) if seed is not None else None
        self.tick_interval = tick_interval
        self.on_cell_changed = on_cell_changed
        self.on_state_changed = on_state_changed
        self.on_time_tick = on_time_tick
        self.timer = GameTimer(self.tick, tick_interval, scheduler=scheduler, lock=self.lock)
        self.mode = Mode.DIG
        self.board = board if board is not None else self._new_board(width, height, num_mines)
        self._clear_counters()

    @classmethod
    def from_config(cls, config: GameConfig, **kwargs) -> 'GameEngine':
        config.validate()
        return cls(config.width, config.height, config.num_mines, seed=config.seed,
                   tick_interval=config.tick_interval, **kwargs)

    def _new_board(self, width: int, height: int, num_mines: int) -> Board:
        board_seed = self.rng.randrange(1_000_000_000) if self.rng is not None else None
        return Board(width, height, num_mines, seed=board_seed)

    def _clear_counters(self) -> None:
        self.state = GameState.IDLE
        self.flags_remaining = self.board.num_mines
        self.cells_remaining = self.board.width * self.board.height - self.board.num_mines
        self._ticks = 0

    @property
    def num_mines(self) -> int:
        return self.board.num_mines

    @property
    def elapsed_time(self) -> float:
        return self._ticks * self.tick_interval

    # Operations

    def act(self, x: int, y: int, mode: Union[Mode, str, None] = None) -> ActionResult:
        with self.lock:
            mode = self.mode if mode is None else Mode.parse(mode)
            before = self.state
            transitions: List[Tuple[GameState, GameState]] = []
            if before.is_over or not self.board.in_bounds(x, y):
                return self._result(before, [])
            if before is GameState.IDLE:
                self._start((x, y), transitions)
            cell = self.board.grid[y][x]
            if mode is Mode.FLAG:
                changed = [cell] if self._flag(cell) else []
            else:
                changed = self._dig(cell, transitions)
            self._notify(changed, transitions)
            return self._result(before, changed)

    def toggle_flag(self, x: int, y: int) -> ActionResult:
        """Flag or unflag a cell without going through the current mode.

        Only accepted while playing: before the first action there is no
        flag budget to spend, and after the end the board is frozen.
        """
        with self.lock:
            before = self.state
            cell = self.board.cell_at(x, y)
            if before is not GameState.PLAYING or cell is None:
                return self._result(before, [])
            changed = [cell] if self._flag(cell) else []
            self._notify(changed, [])
            return self._result(before, changed)

    def set_mode(self, mode: Union[Mode, str]) -> None:
        mode = Mode.parse(mode)
        with self.lock:
            if self.state is GameState.PLAYING:
                self.mode = mode

    def swap_mode(self) -> Mode:
        with self.lock:
            self.set_mode(Mode.FLAG if self.mode is Mode.DIG else Mode.DIG)
            return self.mode

    def reset(self, width: Optional[int] = None, height: Optional[int] = None,
              num_mines: Optional[int] = None) -> None:
        with self.lock:
            board = self._new_board(
                self.board.width if width is None else width,
                self.board.height if height is None else height,
                self.board.num_mines if num_mines is None else num_mines,
            )
            self.timer.cancel()
            before = self.state
            self.board = board
            self._clear_counters()
            logger.info('New %dx%d game with %d mines', board.width, board.height, board.num_mines)
            if before is not GameState.IDLE:
                self._notify([], [(before, GameState.IDLE)])

    def tick(self) -> None:
        with self.lock:
            if self.state is not GameState.PLAYING:
                return
            self._ticks += 1
            if self.on_time_tick is not None:
                self.on_time_tick(self.elapsed_time)

    def close(self) -> None:
        self.timer.cancel()

    def __enter__(self) -> 'GameEngine':
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # Views

    def snapshot(self) -> Dict[str, Any]:
        with self.lock:
            disclose = self.state.is_over
            cells = []
            for c in self.board.cells():
                entry: Dict[str, Any] = {
                    'x': c.x,
                    'y': c.y,
                    'flagged': c.is_flagged,
                    'revealed': c.is_revealed,
                    'adj_mines': c.adj_mines if c.is_revealed or disclose else None,
                }
                if c.is_revealed or disclose:
                    entry['mined'] = c.is_mine
                cells.append(entry)
            return {
                'state': self.state.value,
                'mode': self.mode.value,
                'mines_remaining': self.flags_remaining,
                'elapsed_time': self.elapsed_time,
                'width': self.board.width,
                'height': self.board.height,
                'cells': cells,
            }

    def observation(self) -> np.ndarray:
        with self.lock:
            return visible_grid(self.board, show_mines=self.state.is_over)

    def render_ascii(self) -> str:
        with self.lock:
            return render_ascii(self.board, show_mines=self.state.is_over)

    def status_line(self) -> str:
        with self.lock:
            placed = self.num_mines - self.flags_remaining
            return f'{placed} / {self.num_mines} {self.elapsed_time:.1f}'

    # Internals

    def _start(self, first: Coordinate, transitions: List[Tuple[GameState, GameState]]) -> None:
        if not self.board.mines_placed:
            self.board.place_mines(first)
        self._set_state(GameState.PLAYING, transitions)
        self._ticks = 0
        self.timer.start()

    def _dig(self, cell: Cell, transitions: List[Tuple[GameState, GameState]]) -> List[Cell]:
        if cell.is_flagged:
            return []
        if cell.is_revealed:
            result = self.board.chord_reveal(cell.x, cell.y)
        else:
            result = self.board.reveal(cell.x, cell.y)
        self.cells_remaining -= result.safe_count
        if result.hit_mine:
            self._finish(GameState.LOST, transitions)
        elif self.cells_remaining == 0:
            self._finish(GameState.WON, transitions)
        return result.cells

    def _flag(self, cell: Cell) -> bool:
        if not self.board.toggle_flag(cell.x, cell.y, allow_new=self.flags_remaining > 0):
            return False
        self.flags_remaining += -1 if cell.is_flagged else 1
        return True

    def _finish(self, state: GameState, transitions: List[Tuple[GameState, GameState]]) -> None:
        self.timer.cancel()
        self._set_state(state, transitions)
        logger.info('Game %s after %.1fs', state.value, self.elapsed_time)

    def _set_state(self, state: GameState, transitions: List[Tuple[GameState, GameState]]) -> None:
        transitions.append((self.state, state))
        self.state = state

    def _notify(self, changed: Sequence[Cell], transitions: Sequence[Tuple[GameState, GameState]]) -> None:
        if self.on_cell_changed is not None:
            for c in changed:
                self.on_cell_changed(c)
        if self.on_state_changed is not None:
            for old, new in transitions:
                self.on_state_changed(old, new)

    def _result(self, before: GameState, changed: Sequence[Cell]) -> ActionResult:
        return ActionResult(before, self.state, tuple(changed), self.flags_remaining, self.elapsed_time)


def new_game(width: int, height: int, num_mines: int, **kwargs) -> GameEngine:
    return GameEngine(width, height, num_mines, **kwargs)
