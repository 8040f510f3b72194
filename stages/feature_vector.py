"""
Feature Vector Module

Flattens the final pooled grid into the vector the classifier compares.
"""

import math
from typing import Optional

import numpy as np

from config import PipelineConfig
from .pixel_values import PixelValueFunction, composite_value


class FeatureVectorBuilder:
    """Row-major flattening of pixel values."""

    def __init__(self, value_fn: Optional[PixelValueFunction] = None):
        self.value_fn = value_fn or composite_value

    def flatten(self, grid: np.ndarray) -> np.ndarray:
        """Return one float64 per pixel, row by row."""
        return np.asarray(self.value_fn(grid), dtype=np.float64).ravel()


def feature_length(size: int, passes: int, pooling_config: dict = None) -> int:
    """
    Length of the feature vector for a square resize of `size` followed by
    `passes` pooling passes. Does not check the minimum pooling size.
    """
    block = (pooling_config or PipelineConfig.POOLING)['BLOCK_SIZE']
    side = size
    for _ in range(passes):
        side = (side - side % block) // 2
    return side * side


def grid_side(vector_length: int) -> int:
    """Side of the square grid a feature vector was flattened from."""
    side = math.isqrt(vector_length)
    if side * side != vector_length:
        raise ValueError(f"Vector length {vector_length} is not a square")
    return side
