from __future__ import annotations
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from .config import check_dimensions
from .errors import ConfigurationError, InvariantViolation

logger = logging.getLogger(__name__)

Coordinate = Tuple[int, int]

# N, NE, E, SE, S, SW, W, NW
NEIGHBOR_OFFSETS: Tuple[Coordinate, ...] = (
    (0, -1), (1, -1), (1, 0), (1, 1), (0, 1), (-1, 1), (-1, 0), (-1, -1),
)


@dataclass
class Cell:
    x: int
    y: int
    is_mine: bool = False
    is_revealed: bool = False
    is_flagged: bool = False
    adj_mines: int = 0

    @property
    def position(self) -> Coordinate:
        return (self.x, self.y)


@dataclass
class RevealResult:
    """Cells switched to revealed by one reveal call, in reveal order."""
    cells: List[Cell] = field(default_factory=list)
    hit_mine: bool = False

    @property
    def safe_count(self) -> int:
        return sum(1 for c in self.cells if not c.is_mine)

    @property
    def positions(self) -> List[Coordinate]:
        return [c.position for c in self.cells]

    def merge(self, other: 'RevealResult') -> 'RevealResult':
        self.cells.extend(other.cells)
        self.hit_mine = self.hit_mine or other.hit_mine
        return self


class Board:
    """Grid of cells with deferred mine placement and cascading reveal.

    Cells are addressed by ``(x, y)`` with ``grid[y][x]``. Mines are not
    placed at construction: call :meth:`place_mines` with the first acted-on
    position (kept mine-free), or :meth:`lay_mines` for a fixed layout.
    """

    def __init__(self, width: int, height: int, num_mines: int, seed: Optional[int] = None):
        check_dimensions(width, height, num_mines)
        self.width = width
        self.height = height
        self.num_mines = num_mines
        self.rng = random.Random(int(seed)) if seed is not None else random.Random()
        self.grid: List[List[Cell]] = [[Cell(x, y) for x in range(width)] for y in range(height)]
        self.mines_placed = False

    @classmethod
    def create_empty(cls, width: int, height: int, num_mines: int, seed: Optional[int] = None) -> 'Board':
        return cls(width, height, num_mines, seed=seed)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def cell_at(self, x: int, y: int) -> Optional[Cell]:
        if not self.in_bounds(x, y):
            return None
        return self.grid[y][x]

    def neighbors(self, x: int, y: int) -> List[Coordinate]:
        coords = []
        for dx, dy in NEIGHBOR_OFFSETS:
            nx, ny = x + dx, y + dy
            if self.in_bounds(nx, ny):
                coords.append((nx, ny))
        return coords

    def neighbors_of(self, x: int, y: int) -> List[Cell]:
        return [self.grid[ny][nx] for (nx, ny) in self.neighbors(x, y)]

    def cells(self) -> Iterator[Cell]:
        for row in self.grid:
            yield from row

    # Mine placement

    def _check_unplaced(self) -> None:
        if self.mines_placed:
            raise InvariantViolation('Mines have already been placed on this board')

    def place_mines(self, excluded: Coordinate) -> None:
        self._check_unplaced()
        ex, ey = excluded
        placed = 0
        # Terminates since num_mines < width * height leaves a free cell
        while placed < self.num_mines:
            x = self.rng.randrange(self.width)
            y = self.rng.randrange(self.height)
            c = self.grid[y][x]
            if c.is_mine or (x, y) == (ex, ey):
                continue
            c.is_mine = True
            placed += 1
        self._compute_adjacency()
        self.mines_placed = True
        logger.debug('Placed %d mines on %dx%d board, excluding %s', placed, self.width, self.height, excluded)

    def lay_mines(self, positions: Iterable[Coordinate]) -> None:
        """Place mines at fixed positions instead of random ones."""
        self._check_unplaced()
        coords = [(int(x), int(y)) for (x, y) in positions]
        if len(set(coords)) != len(coords):
            raise ConfigurationError('Mine positions contain duplicates')
        for (x, y) in coords:
            if not self.in_bounds(x, y):
                raise ConfigurationError(f'Mine position {(x, y)} is outside the {self.width}x{self.height} board')
        check_dimensions(self.width, self.height, len(coords))
        for (x, y) in coords:
            self.grid[y][x].is_mine = True
        self.num_mines = len(coords)
        self._compute_adjacency()
        self.mines_placed = True
        logger.debug('Laid %d fixed mines on %dx%d board', len(coords), self.width, self.height)

    def _compute_adjacency(self) -> None:
        for y in range(self.height):
            for x in range(self.width):
                self.grid[y][x].adj_mines = sum(1 for c in self.neighbors_of(x, y) if c.is_mine)

    # Reveal

    def reveal(self, x: int, y: int) -> RevealResult:
        result = RevealResult()
        if not self.in_bounds(x, y):
            return result
        frontier = deque([(x, y)])
        while frontier:
            cx, cy = frontier.popleft()
            c = self.grid[cy][cx]
            if c.is_revealed or c.is_flagged:
                continue
            c.is_revealed = True
            result.cells.append(c)
            if c.is_mine:
                result.hit_mine = True
                continue
            if c.adj_mines == 0:
                for (nx, ny) in self.neighbors(cx, cy):
                    n = self.grid[ny][nx]
                    if not n.is_revealed and not n.is_flagged:
                        frontier.append((nx, ny))
        if len(result.cells) > 1:
            logger.debug('Reveal at %s cascaded over %d cells', (x, y), len(result.cells))
        return result

    def chord_reveal(self, x: int, y: int) -> RevealResult:
        result = RevealResult()
        c = self.cell_at(x, y)
        if c is None or not c.is_revealed:
            return result
        for (nx, ny) in self.neighbors(x, y):
            result.merge(self.reveal(nx, ny))
            if result.hit_mine:
                break
        return result

    def toggle_flag(self, x: int, y: int, allow_new: bool = True) -> bool:
        c = self.cell_at(x, y)
        if c is None or c.is_revealed:
            return False
        if c.is_flagged:
            c.is_flagged = False
            return True
        if not allow_new:
            return False
        c.is_flagged = True
        return True

    # Queries

    def mine_positions(self) -> List[Coordinate]:
        return [c.position for c in self.cells() if c.is_mine]
