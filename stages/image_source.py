"""
Labeled Image Sources

A source yields (label, encoded bytes, MIME type, path) records for training.
The pipeline only needs labels() and iteration, so tests can use the
in-memory source and never touch the file system.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol, Tuple

from .errors import ConfigurationError
from .label_config import LabelConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabeledImage:
    label: str
    data: bytes
    mime_type: Optional[str] = None
    path: Optional[str] = None


class LabeledImageSource(Protocol):
    def labels(self) -> List[str]:
        """Distinct labels the source will yield, in order."""
        ...

    def __iter__(self) -> Iterator[LabeledImage]:
        ...


class InMemoryImageSource:
    """Source backed by a list of LabeledImage records."""

    def __init__(self, images: Iterable[LabeledImage]):
        self.images = list(images)

    def labels(self) -> List[str]:
        return list(dict.fromkeys(image.label for image in self.images))

    def __iter__(self) -> Iterator[LabeledImage]:
        return iter(self.images)

    def __len__(self) -> int:
        return len(self.images)


class DirectoryImageSource:
    """One directory of images per label; files are read lazily in sorted order."""

    def __init__(self, directories: Iterable[Tuple[str, Path]]):
        self.directories = [(label, Path(path)) for label, path in directories]
        for label, path in self.directories:
            if not path.is_dir():
                raise ConfigurationError(f"Training directory for label '{label}' does not exist: {path}")
            if not self._files(path):
                raise ConfigurationError(f"Training directory for label '{label}' is empty: {path}")

    @classmethod
    def from_config(cls, config: LabelConfig) -> 'DirectoryImageSource':
        return cls((entry.label_name, entry.training_images_path) for entry in config.labels)

    @staticmethod
    def _files(path: Path) -> List[Path]:
        return sorted(p for p in path.iterdir() if p.is_file() and not p.name.startswith('.'))

    def labels(self) -> List[str]:
        return list(dict.fromkeys(label for label, _ in self.directories))

    def __iter__(self) -> Iterator[LabeledImage]:
        for label, directory in self.directories:
            files = self._files(directory)
            logger.debug(f"Label '{label}': {len(files)} file(s) in {directory}")
            for path in files:
                yield LabeledImage(label=label, data=path.read_bytes(), path=str(path))
