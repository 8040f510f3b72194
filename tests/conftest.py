import json

import cv2
import numpy as np
import pytest


def encode(pixels: np.ndarray, ext: str = '.png') -> bytes:
    ok, buf = cv2.imencode(ext, pixels)
    assert ok
    return bytes(buf)


def vertical_stripes(size: int, period: int = 10, low: int = 40, high: int = 200) -> np.ndarray:
    """BGR image whose colour changes along x (strong horizontal gradient)."""
    cols = np.where((np.arange(size) // (period // 2)) % 2 == 0, low, high).astype(np.uint8)
    grey = np.tile(cols, (size, 1))
    return cv2.cvtColor(grey, cv2.COLOR_GRAY2BGR)


def horizontal_stripes(size: int, period: int = 10, low: int = 40, high: int = 200) -> np.ndarray:
    """BGR image whose colour only changes along y (no horizontal gradient)."""
    return np.ascontiguousarray(vertical_stripes(size, period, low, high).transpose(1, 0, 2))


@pytest.fixture
def cat_images():
    """Three square PNGs sharing one vertical stripe layout."""
    return [encode(vertical_stripes(120, 12, low, high), '.png')
            for low, high in [(40, 200), (50, 210), (30, 190)]]


@pytest.fixture
def dog_images():
    """Three square JPEGs with horizontal stripes."""
    return [encode(horizontal_stripes(150, period, 60, 180), '.jpg')
            for period in (8, 12, 20)]


@pytest.fixture
def training_dirs(tmp_path, cat_images, dog_images):
    """config.json plus one directory per label, laid out like a real project."""
    for label, images, ext in [('cat', cat_images, 'png'), ('dog', dog_images, 'jpg')]:
        directory = tmp_path / 'images' / label
        directory.mkdir(parents=True)
        for i, data in enumerate(images):
            (directory / f'{label}{i}.{ext}').write_bytes(data)

    config = {
        'labels': [
            {'label_name': 'cat', 'training_images_path': 'images/cat'},
            {'label_name': 'dog', 'training_images_path': 'images/dog'},
        ]
    }
    config_path = tmp_path / 'config.json'
    config_path.write_text(json.dumps(config))
    return config_path
