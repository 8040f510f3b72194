import numpy as np
import pytest

from stages import DecodedImage, ImageFormatError, Resizer, UnsupportedFormatError


def image(pixels, mime_type='image/png', source='test.png'):
    h, w = pixels.shape[:2]
    return DecodedImage(pixels=pixels, mime_type=mime_type, width=w, height=h, source=source)


def bgra(h, w, value=(0, 0, 255, 255)):
    pixels = np.zeros((h, w, 4), dtype=np.uint8)
    pixels[:, :] = value
    return pixels


def test_square_image_to_square_target():
    out = Resizer().resize(image(bgra(300, 300)), 150, 150)
    assert out.shape == (150, 150, 4)


def test_fit_mode_keeps_aspect_ratio_of_wide_image():
    out = Resizer().resize(image(bgra(100, 200)), 150, 150)
    assert out.shape == (75, 150, 4)


def test_fit_mode_keeps_aspect_ratio_of_tall_image():
    out = Resizer().resize(image(bgra(200, 100)), 150, 150)
    assert out.shape == (150, 75, 4)


def test_crop_mode_cuts_longer_side_from_origin():
    pixels = bgra(100, 200, (0, 0, 255, 255))
    pixels[:, 100:] = (255, 0, 0, 255)

    out = Resizer().resize(image(pixels), 150, 150, crop=True)

    assert out.shape == (150, 150, 4)
    assert (out[:, :, 2] == 255).all()
    assert (out[:, :, 0] == 0).all()


def test_crop_mode_on_tall_image():
    out = Resizer().resize(image(bgra(200, 100)), 150, 150, crop=True)
    assert out.shape == (150, 150, 4)


def test_area_resampling_not_nearest_neighbour():
    checker = (np.indices((64, 64)).sum(axis=0) % 2 * 255).astype(np.uint8)
    pixels = np.dstack([checker, checker, checker, np.full_like(checker, 255)])

    out = Resizer().resize(image(pixels), 32, 32)

    assert (out[:, :, :3] > 100).all()
    assert (out[:, :, :3] < 155).all()


def test_alpha_survives_resize():
    pixels = bgra(64, 64)
    pixels[:, :32, 3] = 0

    out = Resizer().resize(image(pixels), 32, 32)

    assert (out[:, :8, 3] == 0).all()
    assert (out[:, -8:, 3] == 255).all()


def test_unsupported_format():
    gif = image(bgra(16, 16), mime_type='image/gif', source='anim.gif')

    with pytest.raises(UnsupportedFormatError) as excinfo:
        Resizer().resize(gif, 8, 8)

    assert isinstance(excinfo.value, ImageFormatError)
    assert 'anim.gif' in str(excinfo.value)


def test_source_region_arithmetic():
    resizer = Resizer()
    assert resizer.source_region(200, 100, 150, 150, crop=False) == (200, 100, 150, 75)
    assert resizer.source_region(200, 100, 150, 150, crop=True) == (100, 100, 150, 150)
    assert resizer.source_region(90, 90, 150, 150, crop=False) == (90, 90, 150, 150)
