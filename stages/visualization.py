"""
Visualization utilities for the classification pipeline.
Debug views of the intermediate grids and of the trained labels.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np
from matplotlib.figure import Figure

from config import PipelineConfig
from .classifier import ClassifierModel
from .feature_vector import grid_side


def add_label_to_image(img: np.ndarray,
                       text: str,
                       color: Tuple[int, int, int] = (255, 255, 255),
                       bg_color: Tuple[int, int, int] = (0, 0, 0),
                       position: str = 'top') -> np.ndarray:
    """
    Add a labeled banner to an image.

    Args:
        img: Input image (BGR or grayscale)
        text: Label text
        color: Text color
        bg_color: Background color
        position: 'top' or 'bottom'

    Returns:
        Image with label added
    """
    if len(img.shape) == 2:
        vis = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    else:
        vis = img.copy()

    h, w = vis.shape[:2]
    font_scale = w / 600.0
    thickness = max(1, int(w / 300.0))
    bar_h = max(12, int(h * 0.08))

    if position == 'top':
        y_start, y_end = 0, bar_h
        text_y = int(bar_h * 0.7)
    else:
        y_start, y_end = h - bar_h, h
        text_y = h - int(bar_h * 0.3)

    cv2.rectangle(vis, (0, y_start), (w, y_end), bg_color, -1)
    cv2.putText(vis, text, (10, text_y), cv2.FONT_HERSHEY_SIMPLEX,
                font_scale, color, thickness, cv2.LINE_AA)

    return vis


def to_display(grid: np.ndarray, size: int = None) -> np.ndarray:
    """
    Convert a grid to an opaque BGR image of size x size.

    Transparent areas are shown over a checkerboard; small grids are enlarged
    with nearest neighbour so individual pooled pixels stay visible.
    """
    size = size or PipelineConfig.VIZ_PANEL_SIZE

    if grid.ndim == 2:
        bgr = cv2.cvtColor(grid, cv2.COLOR_GRAY2BGR)
    elif grid.shape[2] == 4:
        h, w = grid.shape[:2]
        yy, xx = np.mgrid[0:h, 0:w]
        light = np.array(PipelineConfig.VIZ_COLORS['CHECKER_LIGHT'], dtype=np.float32)
        dark = np.array(PipelineConfig.VIZ_COLORS['CHECKER_DARK'], dtype=np.float32)
        checker = np.where((((yy // 8) + (xx // 8)) % 2 == 0)[..., None], light, dark)
        alpha = grid[:, :, 3:4].astype(np.float32) / 255.0
        bgr = (grid[:, :, :3].astype(np.float32) * alpha + checker * (1 - alpha)).astype(np.uint8)
    else:
        bgr = grid

    return cv2.resize(bgr, (size, size), interpolation=cv2.INTER_NEAREST)


def create_grid_visualization(images: List[np.ndarray],
                              labels: Optional[List[str]] = None,
                              grid_size: Optional[Tuple[int, int]] = None) -> np.ndarray:
    """
    Create a grid visualization from multiple same-sized BGR images.

    Args:
        images: List of images to arrange
        labels: Optional labels for each image
        grid_size: Optional (rows, cols), auto-calculated if None

    Returns:
        Grid visualization
    """
    if not images:
        raise ValueError("No images provided")

    n = len(images)

    if grid_size is None:
        cols = int(np.ceil(np.sqrt(n)))
        rows = int(np.ceil(n / cols))
    else:
        rows, cols = grid_size

    if labels:
        images = [add_label_to_image(img, label)
                  for img, label in zip(images, labels)]
    else:
        images = list(images)

    # Pad with blank images if needed
    h, w = images[0].shape[:2]
    while len(images) < rows * cols:
        images.append(np.zeros((h, w, 3), dtype=np.uint8))

    image_rows = [np.hstack(images[r * cols:(r + 1) * cols]) for r in range(rows)]
    return np.vstack(image_rows)


def create_stage_panel(stages: Sequence[Tuple[str, np.ndarray]],
                       title: Optional[str] = None) -> np.ndarray:
    """
    Lay out named intermediate grids in one row.

    Args:
        stages: (name, grid) pairs in pipeline order
        title: Optional banner drawn under the row (e.g. the prediction)
    """
    panels = [to_display(grid) for _, grid in stages]
    names = [f"{i}. {name} {grid.shape[1]}x{grid.shape[0]}"
             for i, (name, grid) in enumerate(stages, 1)]
    panel = create_grid_visualization(panels, names, grid_size=(1, len(panels)))
    if title:
        panel = add_label_to_image(panel, title,
                                   color=PipelineConfig.VIZ_COLORS['PREDICTED'],
                                   position='bottom')
    return panel


def save_label_summary(model: ClassifierModel, path: Union[str, Path]) -> Path:
    """
    Plot the mean feature map of every label in a trained model.

    Returns:
        Path of the written figure
    """
    side = grid_side(model.dimension)
    labels = model.labels
    matrix = model.matrix()
    label_of = np.array([s.label for s in model.samples])

    fig = Figure(figsize=(4 * len(labels), 4))
    axes = fig.subplots(1, len(labels), squeeze=False)
    for ax, label in zip(axes[0], labels):
        rows = matrix[label_of == label]
        ax.imshow(rows.mean(axis=0).reshape(side, side), cmap='viridis')
        ax.set_title(f"{label} (n={len(rows)})", fontsize=10)
        ax.axis('off')

    fig.tight_layout()
    path = Path(path)
    fig.savefig(path, dpi=100, bbox_inches='tight')
    return path
