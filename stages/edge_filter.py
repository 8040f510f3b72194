"""
Edge Filter Module

Applies a fixed 3x3 convolution kernel to a pixel grid. The default kernel is
a horizontal Sobel gradient biased to mid-grey, so flat regions map to 127 and
vertical edges push towards 0 or 255.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from config import PipelineConfig


@dataclass(frozen=True)
class ConvolutionKernel:
    """3x3 weights, divisor, offset and per-channel clamp range."""

    weights: Tuple[Tuple[int, int, int], ...]
    divisor: float = 1
    offset: float = 0
    clamp: Tuple[int, int] = (0, 255)

    def __post_init__(self):
        if len(self.weights) != 3 or any(len(row) != 3 for row in self.weights):
            raise ValueError("Kernel weights must be 3x3")
        if self.divisor == 0:
            raise ValueError("Kernel divisor must be non-zero")

    @classmethod
    def from_config(cls, config: dict) -> 'ConvolutionKernel':
        return cls(
            weights=tuple(tuple(row) for row in config['KERNEL']),
            divisor=config['DIVISOR'],
            offset=config['OFFSET'],
            clamp=tuple(config['CLAMP']),
        )

    def as_array(self) -> np.ndarray:
        return np.array(self.weights, dtype=np.float32)


SOBEL_X_KERNEL = ConvolutionKernel.from_config(PipelineConfig.EDGE_FILTER)


class EdgeFilter:
    """Convolves colour channels with a fixed kernel; alpha passes through."""

    def __init__(self, kernel: Optional[ConvolutionKernel] = None):
        self.kernel = kernel or SOBEL_X_KERNEL

    def apply_kernel(self,
                     grid: np.ndarray,
                     kernel: Optional[ConvolutionKernel] = None) -> np.ndarray:
        """
        Apply a kernel to every pixel.

        Neighbours outside the grid are taken from the nearest edge pixel
        (edge replication), so the first and last rows/columns see a zero
        gradient across the border.

        Args:
            grid: uint8 grid, 2-D, BGR or BGRA
            kernel: Kernel to use, defaults to the filter's kernel

        Returns:
            Filtered grid with the same shape and dtype
        """
        kernel = kernel or self.kernel
        has_alpha = grid.ndim == 3 and grid.shape[2] == 4
        colour = grid[:, :, :3] if has_alpha else grid

        # filter2D correlates, the kernel is not flipped
        summed = cv2.filter2D(
            colour.astype(np.float32),
            cv2.CV_32F,
            kernel.as_array(),
            borderType=cv2.BORDER_REPLICATE,
        )
        low, high = kernel.clamp
        result = np.clip(summed / kernel.divisor + kernel.offset, low, high)
        result = np.trunc(result).astype(grid.dtype)

        if has_alpha:
            result = np.dstack([result, grid[:, :, 3]])
        return result
