"""
Resizer Module

Normalizes decoded images to the fixed pipeline resolution.
"""

import math
from typing import Tuple

import cv2
import numpy as np

from config import PipelineConfig
from .codec import DecodedImage
from .errors import UnsupportedFormatError


SUPPORTED_MIME_TYPES = PipelineConfig.SUPPORTED_MIME_TYPES


class Resizer:
    """Resamples images to a target box, either fitting inside it or cropping to it."""

    def __init__(self, supported_mime_types: Tuple[str, ...] = SUPPORTED_MIME_TYPES):
        self.supported_mime_types = supported_mime_types

    def source_region(self,
                      width: int,
                      height: int,
                      target_width: int,
                      target_height: int,
                      crop: bool) -> Tuple[int, int, int, int]:
        """
        Compute the source region and output size.

        Args:
            width, height: Source size
            target_width, target_height: Target box
            crop: Crop the longer side to the target aspect ratio instead of fitting

        Returns:
            (src_width, src_height, new_width, new_height). The source region
            is anchored at the top-left corner.
        """
        r = width / height
        target_r = target_width / target_height

        if crop:
            if r > target_r:
                width = min(width, math.ceil(height * target_r))
            else:
                height = min(height, math.ceil(width / target_r))
            return width, height, target_width, target_height

        if target_r > r:
            new_width = target_height * r
            new_height = target_height
        else:
            new_width = target_width
            new_height = target_width / r
        return width, height, max(1, int(round(new_width))), max(1, int(round(new_height)))

    def resize(self,
               image: DecodedImage,
               target_width: int,
               target_height: int,
               crop: bool = False) -> np.ndarray:
        """
        Resample an image into the target box.

        Args:
            image: Decoded image (BGRA pixels keep their alpha)
            target_width: Output width
            target_height: Output height
            crop: See source_region()

        Returns:
            Resized pixel grid
        """
        if image.mime_type not in self.supported_mime_types:
            raise UnsupportedFormatError(
                f"Unsupported image type '{image.mime_type}'", path=image.source
            )

        pixels = image.pixels
        height, width = pixels.shape[:2]
        src_w, src_h, new_w, new_h = self.source_region(
            width, height, target_width, target_height, crop
        )
        region = np.ascontiguousarray(pixels[:src_h, :src_w])

        if new_w == src_w and new_h == src_h:
            return region.copy()

        shrinking = new_w * new_h < src_w * src_h
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        return cv2.resize(region, (new_w, new_h), interpolation=interpolation)
