"""
Configuration settings for the image classification pipeline.
Centralized defaults for all stages.
"""


class PipelineConfig:
    """Configuration for the entire classification pipeline."""

    # Resizing: every image becomes SIZE x SIZE
    RESIZE = {
        'SIZE': 150,
        'CROP': False
    }

    # Horizontal Sobel, biased to mid-grey
    EDGE_FILTER = {
        'KERNEL': [
            [-1, 0, 1],
            [-2, 0, 2],
            [-1, 0, 1]
        ],
        'DIVISOR': 1,
        'OFFSET': 127,
        'CLAMP': (0, 255)
    }

    # Pooling: 4x4 blocks -> 2x2, applied PASSES times (150 -> 74 -> 36)
    POOLING = {
        'PASSES': 2,
        'BLOCK_SIZE': 4,
        'MIN_SIZE': 8
    }

    # Nearest neighbour vote
    CLASSIFIER = {
        'K': 3,
        'METRIC': 'euclidean'
    }

    # 'composite' (packed ARGB integer) or 'luminance'
    PIXEL_VALUE = 'composite'

    SUPPORTED_MIME_TYPES = ('image/png', 'image/jpeg')

    PROCESSING = {
        'WORKERS': 1
    }

    # Visualization
    VIZ_COLORS = {
        'TEXT': (255, 255, 255),
        'BANNER': (0, 0, 0),
        'PREDICTED': (0, 255, 0),
        'CHECKER_LIGHT': (200, 200, 200),
        'CHECKER_DARK': (150, 150, 150)
    }

    VIZ_PANEL_SIZE = 300
