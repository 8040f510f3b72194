"""
Nearest Neighbour Image Classification Pipeline

Main script that orchestrates all stages to train a classifier and label images.
Process: Resize -> Edge Filter -> Pooling (xN) -> Feature Vector -> Classifier

Usage:
    python pipeline.py <config.json> [image ...] [--model <out.npz>] [--visualize <dir>]
"""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional, Union

import cv2
import numpy as np

from stages import (
    ClassifierModel,
    ConfigurationError,
    DecodedImage,
    DirectoryImageSource,
    EdgeFilter,
    FeatureVectorBuilder,
    ImageClassifierError,
    ImageFormatError,
    LabeledImage,
    LabeledSample,
    NearestNeighborClassifier,
    NotTrainedError,
    PipelineSettings,
    Pooler,
    Resizer,
    UnsupportedFormatError,
    decode_image,
    feature_length,
    load_label_config,
    read_image,
)
from stages.image_source import LabeledImageSource
from stages.pixel_values import get_pixel_value_function
from stages.visualization import create_stage_panel, save_label_summary

logger = logging.getLogger(__name__)

ImageInput = Union[DecodedImage, bytes, str, Path]


class ImageClassifierPipeline:
    """Main pipeline for nearest-neighbour image classification."""

    def __init__(self, settings: Optional[PipelineSettings] = None):
        """Initialize all stages from the settings."""
        self.settings = settings or PipelineSettings()
        value_fn = get_pixel_value_function(self.settings.pixel_value)

        self.resizer = Resizer()
        self.edge_filter = EdgeFilter()
        self.pooler = Pooler(value_fn=value_fn)
        self.vector_builder = FeatureVectorBuilder(value_fn=value_fn)
        self.classifier = NearestNeighborClassifier(k=self.settings.k, metric=self.settings.metric)

        self.model = ClassifierModel.empty()

    @property
    def feature_length(self) -> int:
        return feature_length(self.settings.image_size, self.settings.pooling_passes)

    # ── Feature extraction ────────────────────────────────────────────────

    def validate(self, image: DecodedImage, label: Optional[str] = None) -> None:
        """Reject images the pipeline cannot process."""
        if image.mime_type not in self.resizer.supported_mime_types:
            raise UnsupportedFormatError(
                f"Unsupported image type '{image.mime_type}'", path=image.source, label=label
            )
        if not image.is_square:
            raise ImageFormatError(
                f"Image must have an equal width and height, got {image.width}x{image.height}",
                path=image.source, label=label,
            )

    def process_image(self, image: DecodedImage) -> Dict[str, np.ndarray]:
        """
        Run every stage on an image.

        Args:
            image: Decoded image

        Returns:
            Dictionary with the intermediate grids and the feature vector
        """
        results = {}
        size = self.settings.image_size

        # Step 1: Resize
        grid = self.resizer.resize(image, size, size, crop=self.settings.crop)
        results['resized'] = grid

        # Step 2: Edge filter
        grid = self.edge_filter.apply_kernel(grid)
        results['filtered'] = grid

        # Step 3: Pooling passes
        for i in range(self.settings.pooling_passes):
            grid = self.pooler.pool(grid)
            results[f'pooled_{i + 1}'] = grid

        # Step 4: Flatten
        results['vector'] = self.vector_builder.flatten(grid)
        return results

    def extract_features(self, image: DecodedImage) -> np.ndarray:
        """Feature vector of a decoded image."""
        return self.process_image(image)['vector']

    def _load(self, image: ImageInput) -> DecodedImage:
        if isinstance(image, DecodedImage):
            return image
        if isinstance(image, (bytes, bytearray)):
            return decode_image(bytes(image))
        return read_image(image)

    def _sample_from(self, item: LabeledImage) -> LabeledSample:
        # Decoded pixels live only for the duration of this call
        try:
            image = decode_image(item.data, source=item.path, mime_type=item.mime_type)
        except ImageFormatError as e:
            raise type(e)(e.message, path=e.path or item.path, label=item.label) from e
        self.validate(image, label=item.label)
        vector = self.extract_features(image)
        logger.debug(f"Extracted {vector.shape[0]} features for '{item.label}' from {item.path}")
        return LabeledSample(item.label, vector)

    # ── Training / classification ─────────────────────────────────────────

    def train(self, source: LabeledImageSource) -> ClassifierModel:
        """
        Train a new model from a labeled image source.

        Any malformed image aborts the whole run. On success the new model
        replaces self.model and is also returned.
        """
        labels = source.labels()
        if len(labels) < 2:
            raise ConfigurationError(
                f"Training needs at least two distinct labels, got {len(labels)}: {labels}"
            )

        if self.settings.workers > 1:
            with ThreadPoolExecutor(max_workers=self.settings.workers) as executor:
                samples = list(executor.map(self._sample_from, source))
        else:
            samples = [self._sample_from(item) for item in source]

        self.model = self.classifier.train(samples)
        return self.model

    def classify(self, image: ImageInput, model: Optional[ClassifierModel] = None) -> str:
        """
        Predict the label of an image.

        Args:
            image: DecodedImage, encoded bytes, or a file path
            model: Trained model, defaults to the one from the last train()
        """
        model = model if model is not None else self.model
        if not model.trained:
            raise NotTrainedError("classify() called before the classifier was trained")

        decoded = self._load(image)
        self.validate(decoded)
        label = self.classifier.predict(model, self.extract_features(decoded))
        logger.info(f"Classified {decoded.source or '<bytes>'} as '{label}'")
        return label

    def visualize(self, image: ImageInput, model: Optional[ClassifierModel] = None) -> np.ndarray:
        """Panel of every intermediate grid, titled with the prediction when trained."""
        decoded = self._load(image)
        self.validate(decoded)
        results = self.process_image(decoded)

        stages = [('Resized', results['resized']), ('Edges', results['filtered'])]
        stages += [(f'Pool {i + 1}', results[f'pooled_{i + 1}'])
                   for i in range(self.settings.pooling_passes)]

        model = model if model is not None else self.model
        title = None
        if model.trained:
            title = f"Prediction: {self.classifier.predict(model, results['vector'])}"
        return create_stage_panel(stages, title)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Nearest Neighbour Image Classifier')
    parser.add_argument('config', type=str, help='Label configuration (config.json)')
    parser.add_argument('images', nargs='*', help='Images to classify')
    parser.add_argument('--model', '-m', type=str, help='Save the trained model to this .npz file')
    parser.add_argument('--load-model', type=str, help='Skip training and load a saved .npz model')
    parser.add_argument('-k', type=int, help='Number of neighbours that vote')
    parser.add_argument('--workers', '-w', type=int, help='Threads used to extract training features')
    parser.add_argument('--visualize', type=str, help='Write stage panels and a label summary to this directory')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging and the nearest neighbours of each image')
    return parser


def run(args: argparse.Namespace) -> List[str]:
    label_config = load_label_config(args.config)
    settings = label_config.settings.override(k=args.k, workers=args.workers)
    pipeline = ImageClassifierPipeline(settings)

    print(f"Labels: {', '.join(label_config.label_names)}")
    print(f"Feature length: {pipeline.feature_length}")

    if args.load_model:
        model = ClassifierModel.load(args.load_model)
        if model.dimension != pipeline.feature_length:
            raise ConfigurationError(
                f"Model '{args.load_model}' has {model.dimension} features, "
                f"settings produce {pipeline.feature_length}"
            )
        pipeline.model = model
        print(f"Loaded model: {len(model.samples)} samples")
    else:
        source = DirectoryImageSource.from_config(label_config)
        model = pipeline.train(source)
        print(f"✓ Trained on {len(model.samples)} images")

    if args.model:
        model.save(args.model)
        print(f"Saved model: {args.model}")

    output_dir = None
    if args.visualize:
        output_dir = Path(args.visualize)
        output_dir.mkdir(exist_ok=True, parents=True)
        summary = save_label_summary(model, output_dir / 'label_summary.png')
        print(f"Saved: {summary.name}")

    predictions = []
    for idx, image_path in enumerate(args.images, 1):
        label = pipeline.classify(image_path)
        predictions.append(label)
        print(f"[{idx}/{len(args.images)}] {Path(image_path).name}: Your prediction is '{label}'")

        if args.verbose:
            vector = pipeline.extract_features(read_image(image_path))
            neighbors = pipeline.classifier.predict_neighbors(pipeline.model, vector)
            for rank, (neighbor_label, distance) in enumerate(neighbors, 1):
                print(f"  {rank}. {neighbor_label} (distance {distance:.1f})")

        if output_dir is not None:
            panel = pipeline.visualize(image_path)
            out_path = output_dir / f"{Path(image_path).stem}_stages.png"
            cv2.imwrite(str(out_path), panel)
            print(f"  Saved: {out_path.name}")

    return predictions


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        run(args)
    except ImageClassifierError as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
