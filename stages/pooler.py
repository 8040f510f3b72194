"""
Pooling Module

Hierarchical max pooling. The grid is split into 4x4 blocks, each block into
its four 2x2 quadrants, and every quadrant is replaced by its maximum pixel:

    4x4 block                 2x2 output block
    +-----+-----+
    | TL  | TR  |             [max(TL), max(TR)]
    +-----+-----+     ->      [max(BL), max(BR)]
    | BL  | BR  |
    +-----+-----+

Every input pixel belongs to exactly one quadrant, so one pass maps an NxN grid
to (N/2)x(N/2). When N is not a multiple of 4 the trailing N % 4 rows and
columns are dropped before pooling.
"""

import logging
from typing import Optional

import numpy as np

from config import PipelineConfig
from .errors import PoolingTooSmallError
from .pixel_values import PixelValueFunction, composite_value

logger = logging.getLogger(__name__)


class Pooler:
    """Max-pools pixel grids by a pluggable scalar pixel value."""

    def __init__(self,
                 value_fn: Optional[PixelValueFunction] = None,
                 config: dict = None):
        """
        Initialize pooler.

        Args:
            value_fn: Scalar used to rank pixels, defaults to composite_value
            config: Optional config dict, uses PipelineConfig.POOLING if None
        """
        self.config = config or PipelineConfig.POOLING
        self.value_fn = value_fn or composite_value
        self.block_size = self.config['BLOCK_SIZE']
        self.min_size = self.config['MIN_SIZE']

    def usable_side(self, n: int) -> int:
        """Side length left after truncating to whole blocks."""
        return n - n % self.block_size

    def pooled_side(self, n: int) -> int:
        """Output side length of one pass over an n x n grid."""
        if n < self.min_size:
            raise PoolingTooSmallError(
                f"Cannot pool a {n}x{n} grid, minimum side is {self.min_size}"
            )
        return self.usable_side(n) // 2

    def pool(self, grid: np.ndarray) -> np.ndarray:
        """
        Run one pooling pass.

        Args:
            grid: Square pixel grid, 2-D or (N, N, C)

        Returns:
            Pooled grid of side pooled_side(N), same dtype and channels
        """
        h, w = grid.shape[:2]
        if h != w:
            raise ValueError(f"Pooling requires a square grid, got {w}x{h}")

        out_side = self.pooled_side(h)
        n = self.usable_side(h)
        grid = grid[:n, :n]

        # Rank every pixel once, then view the ranks as 2x2 quadrants:
        # quadrant (i, j) covers rows 2i..2i+1 and columns 2j..2j+1. Quadrants
        # 2b..2b+1 in each direction are the four quadrants of 4x4 block b.
        keys = self.value_fn(grid)
        quads = keys.reshape(out_side, 2, out_side, 2).transpose(0, 2, 1, 3)
        quads = quads.reshape(out_side, out_side, 4)

        # argmax keeps the first maximum, i.e. row-major order inside a quadrant
        winner = np.argmax(quads, axis=2)
        rows = 2 * np.arange(out_side)[:, None] + winner // 2
        cols = 2 * np.arange(out_side)[None, :] + winner % 2

        pooled = grid[rows, cols]
        logger.debug(f"Pooled {h}x{h} -> {out_side}x{out_side}")
        return pooled

    def pool_passes(self, grid: np.ndarray, passes: int) -> np.ndarray:
        """Apply pool() repeatedly."""
        for _ in range(passes):
            grid = self.pool(grid)
        return grid
