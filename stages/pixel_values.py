"""
Pixel Value Functions

Maps a pixel grid to one scalar per pixel. Pooling uses the scalar to pick the
maximum pixel and the feature vector is made of these scalars.

Two functions are available:
- composite: packed integer (a << 24) | (r << 16) | (g << 8) | b. Fast, but
  not perceptual: the ordering is
  alpha first, then red, green and blue, so a saturated red pixel outranks a
  light grey one.
- luminance: 0.299 R + 0.587 G + 0.114 B, a perceptual brightness.

Grids are BGRA (OpenCV channel order). 2-D grids are already scalar and are
returned as-is.
"""

from typing import Callable, Dict

import numpy as np

from .errors import ConfigurationError


PixelValueFunction = Callable[[np.ndarray], np.ndarray]


def _split_channels(grid: np.ndarray):
    """Return (b, g, r, a) as int64 planes; 3-channel grids are treated as opaque."""
    channels = grid.shape[2]
    b = grid[:, :, 0].astype(np.int64)
    g = grid[:, :, 1].astype(np.int64)
    r = grid[:, :, 2].astype(np.int64)
    if channels >= 4:
        a = grid[:, :, 3].astype(np.int64)
    else:
        a = np.full(b.shape, 255, dtype=np.int64)
    return b, g, r, a


def composite_value(grid: np.ndarray) -> np.ndarray:
    """Packed ARGB integer per pixel."""
    if grid.ndim == 2:
        return grid.astype(np.int64)
    b, g, r, a = _split_channels(grid)
    return (a << 24) | (r << 16) | (g << 8) | b


def luminance_value(grid: np.ndarray) -> np.ndarray:
    """ITU-R BT.601 luma per pixel."""
    if grid.ndim == 2:
        return grid.astype(np.float64)
    b, g, r, _ = _split_channels(grid)
    return 0.299 * r + 0.587 * g + 0.114 * b


PIXEL_VALUE_FUNCTIONS: Dict[str, PixelValueFunction] = {
    'composite': composite_value,
    'luminance': luminance_value,
}


def get_pixel_value_function(name: str) -> PixelValueFunction:
    try:
        return PIXEL_VALUE_FUNCTIONS[name]
    except KeyError:
        known = ', '.join(sorted(PIXEL_VALUE_FUNCTIONS))
        raise ConfigurationError(f"Unknown pixel value function '{name}' (expected one of: {known})")
