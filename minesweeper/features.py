from __future__ import annotations
import numpy as np

# Codes for the visible-board grid. Revealed safe cells hold their number 0..8.
HIDDEN = -1
FLAG = -2
MINE = -3

GLYPHS = {HIDDEN: '#', FLAG: 'F', MINE: '*', 0: '.'}


def visible_grid(board, show_mines: bool = False) -> np.ndarray:
    """What a player may see of ``board`` as an int8 array of shape (height, width).

    Mines are only shown where revealed, unless ``show_mines`` is set
    (the game is over and the layout may be disclosed).
    """
    grid = np.full((board.height, board.width), HIDDEN, dtype=np.int8)
    for row in board.grid:
        for c in row:
            if c.is_revealed:
                grid[c.y, c.x] = MINE if c.is_mine else c.adj_mines
            elif show_mines and c.is_mine:
                grid[c.y, c.x] = MINE
            elif c.is_flagged:
                grid[c.y, c.x] = FLAG
    return grid


def render_ascii(board, show_mines: bool = False) -> str:
    grid = visible_grid(board, show_mines=show_mines)
    rows = []
    for line in grid.tolist():
        rows.append(' '.join(GLYPHS.get(v, str(v)) for v in line))
    return '\n'.join(rows)
