"""
Image Codec

Decodes PNG/JPEG bytes into BGRA pixel grids with OpenCV and sniffs the MIME
type from the file signature.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from .errors import ImageFormatError

logger = logging.getLogger(__name__)

PNG_MIME = 'image/png'
JPEG_MIME = 'image/jpeg'

_SIGNATURES = [
    (b'\x89PNG\r\n\x1a\n', PNG_MIME),
    (b'\xff\xd8\xff', JPEG_MIME),
    (b'GIF87a', 'image/gif'),
    (b'GIF89a', 'image/gif'),
    (b'BM', 'image/bmp'),
]


@dataclass
class DecodedImage:
    """A decoded image together with what the decoder learned about it."""

    pixels: np.ndarray
    mime_type: str
    width: int
    height: int
    source: Optional[str] = None

    @property
    def is_square(self) -> bool:
        return self.width == self.height


def detect_mime_type(data: bytes) -> Optional[str]:
    """Return the MIME type from the leading magic bytes, or None if unknown."""
    for signature, mime_type in _SIGNATURES:
        if data.startswith(signature):
            return mime_type
    if data[8:12] == b'WEBP' and data.startswith(b'RIFF'):
        return 'image/webp'
    return None


def to_bgra(pixels: np.ndarray) -> np.ndarray:
    """Normalize a decoded array to 4-channel BGRA uint8."""
    if pixels.ndim == 2:
        return cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGRA)
    channels = pixels.shape[2]
    if channels == 4:
        return pixels
    if channels == 3:
        return cv2.cvtColor(pixels, cv2.COLOR_BGR2BGRA)
    if channels == 1:
        return cv2.cvtColor(pixels[:, :, 0], cv2.COLOR_GRAY2BGRA)
    raise ImageFormatError(f"Unsupported channel count: {channels}")


def decode_image(data: bytes,
                 source: Optional[str] = None,
                 mime_type: Optional[str] = None) -> DecodedImage:
    """
    Decode raw image bytes.

    Args:
        data: Encoded image bytes
        source: Path or identifier used in error messages
        mime_type: Declared MIME type; sniffed from the bytes when None

    Returns:
        DecodedImage with BGRA pixels
    """
    if not data:
        raise ImageFormatError("Image data is empty", path=source)

    sniffed = detect_mime_type(data)
    if mime_type is None:
        mime_type = sniffed
    if mime_type is None:
        raise ImageFormatError("File is not a recognized image", path=source)

    arr = np.frombuffer(data, dtype=np.uint8)
    pixels = cv2.imdecode(arr, cv2.IMREAD_UNCHANGED)
    if pixels is None:
        raise ImageFormatError(f"Failed to decode {mime_type} data", path=source)

    # 16-bit PNGs come back as uint16
    if pixels.dtype != np.uint8:
        pixels = (pixels / 257).astype(np.uint8)

    pixels = to_bgra(pixels)
    h, w = pixels.shape[:2]
    logger.debug(f"Decoded {source or '<bytes>'}: {mime_type} {w}x{h}")
    return DecodedImage(pixels=pixels, mime_type=mime_type, width=w, height=h, source=source)


def read_image(path: Union[str, Path]) -> DecodedImage:
    """Read and decode an image file."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageFormatError(f"Could not read image: {e}", path=str(path))
    return decode_image(data, source=str(path))


def encode_png(grid: np.ndarray) -> bytes:
    """Encode a grid as PNG bytes."""
    ok, buf = cv2.imencode('.png', grid)
    if not ok:
        raise ImageFormatError("PNG encoding failed")
    return bytes(buf)
