"""
Nearest Neighbour Classifier

Stores labeled feature vectors and predicts by majority vote of the k closest
samples. Models are immutable values: train() returns a new ClassifierModel
and predict() takes the model explicitly, so several models can coexist and
prediction is safe to call concurrently.

Tie-breaking is deterministic:
1. Neighbours are ranked by (distance, label, insertion order), which fixes
   who makes it into the k nearest when distances are equal at the boundary.
2. Among labels with the same number of votes, the label owning the closest
   individual neighbour wins.
3. Remaining ties go to the lexicographically smallest label.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.spatial.distance import cdist

from config import PipelineConfig
from .errors import (
    ConfigurationError,
    DimensionMismatchError,
    EmptyTrainingSetError,
    NotTrainedError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabeledSample:
    """A feature vector with its ground-truth label."""

    label: str
    vector: np.ndarray = field(compare=False)

    def __post_init__(self):
        vector = np.array(self.vector, dtype=np.float64).ravel()
        vector.setflags(write=False)
        object.__setattr__(self, 'vector', vector)

    def __eq__(self, other):
        if not isinstance(other, LabeledSample):
            return NotImplemented
        return self.label == other.label and np.array_equal(self.vector, other.vector)


@dataclass(frozen=True)
class ClassifierModel:
    """Trained samples plus the trained flag. Replaced, never mutated."""

    samples: Tuple[LabeledSample, ...] = ()
    dimension: Optional[int] = None
    trained: bool = False
    _matrix: Optional[np.ndarray] = field(default=None, repr=False, compare=False)

    @classmethod
    def empty(cls) -> 'ClassifierModel':
        return cls()

    @property
    def labels(self) -> List[str]:
        """Distinct labels in first-seen order."""
        return list(dict.fromkeys(s.label for s in self.samples))

    def matrix(self) -> np.ndarray:
        """Sample vectors stacked as rows."""
        if self._matrix is None:
            object.__setattr__(self, '_matrix', np.vstack([s.vector for s in self.samples]))
        return self._matrix

    def save(self, path: Union[str, Path]) -> None:
        """Write the model to a compressed .npz file."""
        if not self.trained:
            raise NotTrainedError("Cannot save a model that has not been trained")
        np.savez_compressed(
            path,
            labels=np.array([s.label for s in self.samples]),
            vectors=self.matrix(),
            dimension=np.array(self.dimension),
        )
        logger.info(f"Saved model with {len(self.samples)} samples to {path}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ClassifierModel':
        """Read a model written by save()."""
        try:
            with np.load(path, allow_pickle=False) as data:
                labels = [str(label) for label in data['labels']]
                vectors = data['vectors']
                dimension = int(data['dimension'])
        except (OSError, KeyError, ValueError) as e:
            raise ConfigurationError(f"Could not load model from '{path}': {e}")

        if not labels or vectors.ndim != 2 or vectors.shape != (len(labels), dimension):
            raise ConfigurationError(f"Model file '{path}' is empty or malformed")

        samples = tuple(LabeledSample(label, vec) for label, vec in zip(labels, vectors))
        return cls(samples=samples, dimension=dimension, trained=True)


class NearestNeighborClassifier:
    """k-nearest-neighbour classifier over Euclidean distance."""

    def __init__(self, k: int = None, metric: str = None):
        """
        Args:
            k: Number of neighbours that vote, defaults to PipelineConfig.CLASSIFIER['K']
            metric: scipy cdist metric, defaults to PipelineConfig.CLASSIFIER['METRIC']
        """
        cfg = PipelineConfig.CLASSIFIER
        self.k = cfg['K'] if k is None else k
        self.metric = metric or cfg['METRIC']
        if self.k < 1:
            raise ConfigurationError(f"k must be at least 1, got {self.k}")

    def train(self, samples: Iterable[LabeledSample]) -> ClassifierModel:
        """Build a trained model from the complete sample set."""
        samples = tuple(samples)
        if not samples:
            raise EmptyTrainingSetError("Cannot train without any samples")

        dimension = samples[0].vector.shape[0]
        for sample in samples:
            if sample.vector.shape[0] != dimension:
                raise DimensionMismatchError(
                    f"Sample for '{sample.label}' has {sample.vector.shape[0]} features, "
                    f"expected {dimension}"
                )

        model = ClassifierModel(samples=samples, dimension=dimension, trained=True)
        counts = Counter(s.label for s in samples)
        logger.info(f"Trained on {len(samples)} samples, {dimension} features: {dict(counts)}")
        return model

    def predict_neighbors(self, model: ClassifierModel, vector: Sequence[float]) -> List[Tuple[str, float]]:
        """
        Rank the k nearest samples.

        Returns:
            List of (label, distance), closest first
        """
        if not model.trained:
            raise NotTrainedError("The classifier has not been trained")

        query = np.asarray(vector, dtype=np.float64).ravel()
        if query.shape[0] != model.dimension:
            raise DimensionMismatchError(
                f"Query has {query.shape[0]} features, model expects {model.dimension}"
            )

        distances = cdist(query[None, :], model.matrix(), metric=self.metric)[0]
        ranked = sorted(
            range(len(model.samples)),
            key=lambda i: (distances[i], model.samples[i].label, i),
        )
        k = min(self.k, len(ranked))
        return [(model.samples[i].label, float(distances[i])) for i in ranked[:k]]

    def predict(self, model: ClassifierModel, vector: Sequence[float]) -> str:
        """Majority label among the k nearest samples."""
        neighbors = self.predict_neighbors(model, vector)

        votes = Counter(label for label, _ in neighbors)
        closest = {}
        for label, distance in neighbors:
            closest.setdefault(label, distance)

        best = min(votes, key=lambda label: (-votes[label], closest[label], label))
        logger.debug(f"Votes {dict(votes)} -> '{best}'")
        return best
