"""
Label Configuration

Loads and validates config.json, which names the labels and the directory of
training images for each:

    {
        "labels": [
            {"label_name": "cat", "training_images_path": "images/cat"},
            {"label_name": "dog", "training_images_path": "images/dog"}
        ],
        "settings": {"k": 3, "pooling_passes": 2}
    }

"labels" may also be an object keyed by an arbitrary id; the key (or list
index) is what error messages refer to. Relative paths resolve against the
directory holding config.json.
"""

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Union

from config import PipelineConfig
from .errors import ConfigurationError, PoolingTooSmallError
from .pixel_values import PIXEL_VALUE_FUNCTIONS
from .pooler import Pooler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineSettings:
    """Resolved pipeline parameters. Defaults come from PipelineConfig."""

    image_size: int = PipelineConfig.RESIZE['SIZE']
    crop: bool = PipelineConfig.RESIZE['CROP']
    pooling_passes: int = PipelineConfig.POOLING['PASSES']
    k: int = PipelineConfig.CLASSIFIER['K']
    metric: str = PipelineConfig.CLASSIFIER['METRIC']
    pixel_value: str = PipelineConfig.PIXEL_VALUE
    workers: int = PipelineConfig.PROCESSING['WORKERS']

    def __post_init__(self):
        if self.image_size < PipelineConfig.POOLING['MIN_SIZE']:
            raise ConfigurationError(
                f"image_size must be at least {PipelineConfig.POOLING['MIN_SIZE']}, got {self.image_size}"
            )
        if self.pooling_passes < 0:
            raise ConfigurationError(f"pooling_passes must not be negative, got {self.pooling_passes}")
        if self.k < 1:
            raise ConfigurationError(f"k must be at least 1, got {self.k}")
        if self.workers < 1:
            raise ConfigurationError(f"workers must be at least 1, got {self.workers}")
        if self.pixel_value not in PIXEL_VALUE_FUNCTIONS:
            raise ConfigurationError(f"Unknown pixel_value '{self.pixel_value}'")

        pooler = Pooler()
        side = self.image_size
        for _ in range(self.pooling_passes):
            try:
                side = pooler.pooled_side(side)
            except PoolingTooSmallError:
                raise ConfigurationError(
                    f"image_size {self.image_size} is too small for {self.pooling_passes} pooling passes"
                )

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'PipelineSettings':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown settings: {', '.join(unknown)}")
        return cls(**values)

    def override(self, **values) -> 'PipelineSettings':
        """Copy with the given non-None values replaced."""
        return replace(self, **{k: v for k, v in values.items() if v is not None})


@dataclass(frozen=True)
class LabelEntry:
    key: str
    label_name: str
    training_images_path: Path


@dataclass(frozen=True)
class LabelConfig:
    labels: List[LabelEntry]
    settings: PipelineSettings = field(default_factory=PipelineSettings)
    source: Path = None

    @property
    def label_names(self) -> List[str]:
        return [entry.label_name for entry in self.labels]


def _iter_label_items(labels: Union[list, dict]):
    if isinstance(labels, dict):
        return [(str(key), value) for key, value in labels.items()]
    if isinstance(labels, list):
        return [(str(index), value) for index, value in enumerate(labels)]
    raise ConfigurationError("Field 'labels' must be a list or an object")


def parse_label_config(data: Dict[str, Any], base_dir: Path) -> LabelConfig:
    """Validate an already parsed config.json document."""
    if not isinstance(data, dict) or 'labels' not in data:
        raise ConfigurationError("Field 'labels' is missing in the config file")

    items = _iter_label_items(data['labels'])
    if len(items) < 2:
        raise ConfigurationError("The config file has less than two labels, this is not acceptable")

    entries = []
    seen = {}
    for key, label in items:
        if not isinstance(label, dict):
            raise ConfigurationError(f"Label '{key}' must be an object")
        if 'training_images_path' not in label:
            raise ConfigurationError(f"The 'training_images_path' field at label '{key}' has not been set")
        if 'label_name' not in label:
            raise ConfigurationError(f"The 'label_name' field at label '{key}' has not been set")

        if not isinstance(label['label_name'], str):
            raise ConfigurationError(f"The 'label_name' field at label '{key}' must be a string")
        label_name = label['label_name'].strip()
        if not label_name:
            raise ConfigurationError(f"The 'label_name' field at label '{key}' seems to be empty")
        if label_name in seen:
            raise ConfigurationError(
                f"Label name '{label_name}' at label '{key}' duplicates label '{seen[label_name]}'"
            )
        seen[label_name] = key

        raw_path = label['training_images_path']
        if not isinstance(raw_path, str):
            raise ConfigurationError(f"The 'training_images_path' field at label '{key}' must be a string")
        if not raw_path:
            raise ConfigurationError(f"The 'training_images_path' field at label '{key}' seems to be empty")
        path = Path(raw_path)
        if not path.is_absolute():
            path = base_dir / path

        if not path.is_dir():
            raise ConfigurationError(
                f"Invalid 'training_images_path' dir path at label '{key}' ('{label_name}'): {path}"
            )
        if not any(p.is_file() and not p.name.startswith('.') for p in path.iterdir()):
            raise ConfigurationError(
                f"The 'training_images_path' value at label '{key}' ('{label_name}') "
                f"seems to point to an empty directory: {path}"
            )

        entries.append(LabelEntry(key=key, label_name=label_name, training_images_path=path))

    settings = data.get('settings') or {}
    if not isinstance(settings, dict):
        raise ConfigurationError("Field 'settings' must be an object")
    try:
        pipeline_settings = PipelineSettings.from_dict(settings)
    except TypeError as e:
        raise ConfigurationError(f"Invalid settings: {e}")

    return LabelConfig(labels=entries, settings=pipeline_settings)


def load_label_config(path: Union[str, Path]) -> LabelConfig:
    """
    Read and validate a config.json file.

    Raises:
        ConfigurationError: unreadable file, invalid JSON or any validation failure
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except OSError as e:
        raise ConfigurationError(f"Could not read config file '{path}': {e}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config file '{path}' is not valid JSON: {e}")

    config = parse_label_config(data, path.parent)
    logger.info(f"Loaded {len(config.labels)} labels from {path}: {config.label_names}")
    return replace(config, source=path)
