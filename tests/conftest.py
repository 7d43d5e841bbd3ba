from __future__ import annotations
import pytest

from minesweeper.board import Board
from minesweeper.engine import GameEngine


class ManualScheduler:
    """Scheduler that only fires callbacks when told to."""

    def __init__(self):
        self.pending = {}
        self.cancelled = []
        self._next_id = 0

    def after(self, delay_ms, callback):
        handle = self._next_id
        self._next_id += 1
        self.pending[handle] = (delay_ms, callback)
        return handle

    def after_cancel(self, handle):
        self.cancelled.append(handle)
        self.pending.pop(handle, None)

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            handle = min(self.pending)
            _, callback = self.pending.pop(handle)
            callback()


class Recorder:
    def __init__(self):
        self.cells = []
        self.states = []
        self.ticks = []

    def cell(self, c):
        self.cells.append(c.position)

    def state(self, old, new):
        self.states.append((old, new))

    def tick(self, elapsed):
        self.ticks.append(elapsed)

    def callbacks(self):
        return dict(on_cell_changed=self.cell, on_state_changed=self.state, on_time_tick=self.tick)


def fixed_board(width, height, mines):
    board = Board(width, height, len(mines))
    board.lay_mines(mines)
    return board


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_engine(scheduler):
    engines = []

    def factory(width=3, height=3, mines=None, num_mines=1, **kwargs):
        board = fixed_board(width, height, mines) if mines is not None else None
        engine = GameEngine(width, height, num_mines, scheduler=scheduler, board=board, **kwargs)
        engines.append(engine)
        return engine

    yield factory
    for e in engines:
        e.close()
