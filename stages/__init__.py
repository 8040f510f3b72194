"""
Image Classification Stages

This package contains the components of the nearest-neighbour image classifier:
- codec: PNG/JPEG decoding into BGRA pixel grids
- resizer: Normalizes images to a square resolution
- edge_filter: Fixed 3x3 convolution (horizontal gradient)
- pooler: Hierarchical 4x4 -> 2x2 max pooling
- feature_vector: Flattens the pooled grid into a feature vector
- classifier: k-nearest-neighbour training and prediction
- image_source / label_config: Where labeled training images come from
"""

from .errors import (
    ImageClassifierError,
    ConfigurationError,
    ImageFormatError,
    UnsupportedFormatError,
    PoolingTooSmallError,
    NotTrainedError,
    EmptyTrainingSetError,
    DimensionMismatchError,
)
from .codec import DecodedImage, decode_image, read_image
from .resizer import Resizer
from .edge_filter import ConvolutionKernel, EdgeFilter
from .pooler import Pooler
from .feature_vector import FeatureVectorBuilder, feature_length
from .classifier import ClassifierModel, LabeledSample, NearestNeighborClassifier
from .label_config import LabelConfig, PipelineSettings, load_label_config
from .image_source import DirectoryImageSource, InMemoryImageSource, LabeledImage

__all__ = [
    'ImageClassifierError',
    'ConfigurationError',
    'ImageFormatError',
    'UnsupportedFormatError',
    'PoolingTooSmallError',
    'NotTrainedError',
    'EmptyTrainingSetError',
    'DimensionMismatchError',
    'DecodedImage',
    'decode_image',
    'read_image',
    'Resizer',
    'ConvolutionKernel',
    'EdgeFilter',
    'Pooler',
    'FeatureVectorBuilder',
    'feature_length',
    'ClassifierModel',
    'LabeledSample',
    'NearestNeighborClassifier',
    'LabelConfig',
    'PipelineSettings',
    'load_label_config',
    'DirectoryImageSource',
    'InMemoryImageSource',
    'LabeledImage',
]
