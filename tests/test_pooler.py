import numpy as np
import pytest

from stages import Pooler, PoolingTooSmallError
from stages.pixel_values import composite_value


def reference_pool(grid, value_fn):
    """Straightforward loop over 4x4 blocks and their four quadrants."""
    n = grid.shape[0] - grid.shape[0] % 4
    out = np.zeros((n // 2, n // 2) + grid.shape[2:], dtype=grid.dtype)
    keys = value_fn(grid)
    for by in range(0, n, 4):
        for bx in range(0, n, 4):
            for qy in (0, 2):
                for qx in (0, 2):
                    y0, x0 = by + qy, bx + qx
                    sub = keys[y0:y0 + 2, x0:x0 + 2]
                    dy, dx = np.unravel_index(np.argmax(sub), sub.shape)
                    out[(by + qy) // 2, (bx + qx) // 2] = grid[y0 + dy, x0 + dx]
    return out


def test_known_maximum_in_top_left_quadrant():
    grid = np.zeros((8, 8), dtype=np.uint8)
    grid[1, 1] = 200

    pooled = Pooler().pool(grid)

    assert pooled.shape == (4, 4)
    assert pooled[0, 0] == 200
    assert pooled.sum() == 200


def test_known_maximum_keeps_whole_pixel():
    grid = np.zeros((8, 8, 4), dtype=np.uint8)
    grid[:, :, 3] = 255
    grid[1, 1] = (10, 20, 30, 255)

    pooled = Pooler().pool(grid)

    assert tuple(pooled[0, 0]) == (10, 20, 30, 255)


@pytest.mark.parametrize('n', [8, 16, 32, 148])
def test_each_output_is_max_of_its_quadrant(n):
    rng = np.random.default_rng(n)
    grid = rng.integers(0, 256, size=(n, n), dtype=np.uint8)

    pooled = Pooler().pool(grid)

    assert pooled.shape == (n // 2, n // 2)
    for i in range(n // 2):
        for j in range(n // 2):
            assert pooled[i, j] == grid[2 * i:2 * i + 2, 2 * j:2 * j + 2].max()


def test_colour_grid_matches_block_reference():
    rng = np.random.default_rng(7)
    grid = rng.integers(0, 256, size=(24, 24, 4), dtype=np.uint8)

    pooled = Pooler().pool(grid)

    np.testing.assert_array_equal(pooled, reference_pool(grid, composite_value))


def test_whole_grid_is_covered():
    # An N/4 sized output that only reads the first N/4 rows/columns would
    # never see the bottom-right block.
    grid = np.zeros((16, 16), dtype=np.uint8)
    grid[15, 15] = 255

    pooled = Pooler().pool(grid)

    assert pooled.shape == (8, 8)
    assert pooled.shape[0] != 16 // 4
    assert pooled[7, 7] == 255


def test_remainder_rows_and_columns_are_truncated():
    rng = np.random.default_rng(3)
    grid = rng.integers(0, 100, size=(10, 10), dtype=np.uint8)
    grid[8:, :] = 255
    grid[:, 8:] = 255

    pooled = Pooler().pool(grid)

    assert pooled.shape == (4, 4)
    np.testing.assert_array_equal(pooled, Pooler().pool(grid[:8, :8]))
    assert pooled.max() < 255


@pytest.mark.parametrize('n', [4, 7])
def test_small_grid_is_rejected(n):
    with pytest.raises(PoolingTooSmallError):
        Pooler().pool(np.zeros((n, n), dtype=np.uint8))


def test_non_square_grid_is_rejected():
    with pytest.raises(ValueError):
        Pooler().pool(np.zeros((8, 16), dtype=np.uint8))


def test_ties_keep_first_pixel_in_row_major_order():
    grid = np.zeros((8, 8, 4), dtype=np.uint8)
    grid[0, 1] = (9, 1, 0, 255)
    grid[1, 0] = (9, 2, 0, 255)

    pooled = Pooler(value_fn=lambda g: g[:, :, 0].astype(np.int64)).pool(grid)

    assert tuple(pooled[0, 0]) == (9, 1, 0, 255)


def test_pooled_side_arithmetic():
    pooler = Pooler()
    assert pooler.pooled_side(150) == 74
    assert pooler.pooled_side(74) == 36
    assert pooler.pooled_side(8) == 4
    with pytest.raises(PoolingTooSmallError):
        pooler.pooled_side(6)


def test_pool_passes_applies_repeatedly():
    grid = np.zeros((32, 32), dtype=np.uint8)
    grid[31, 0] = 99

    pooled = Pooler().pool_passes(grid, 2)

    assert pooled.shape == (8, 8)
    assert pooled[7, 0] == 99
