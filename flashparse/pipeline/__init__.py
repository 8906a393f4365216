"""
flashparse.pipeline

Parse pipeline stages: preprocessing, pattern recognition, field extraction
and result validation.
"""

from .base import BasePipelineComponent
from .extractor import Extraction, RegexFieldExtractor
from .preprocessor import ContentPreprocessor, PreprocessResult, needs_preprocessing
from .recognition import PatternRecognitionEngine, RecognitionResult
from .validator import ParseResultValidator

__all__ = [
    "BasePipelineComponent",
    "ContentPreprocessor",
    "PreprocessResult",
    "needs_preprocessing",
    "PatternRecognitionEngine",
    "RecognitionResult",
    "RegexFieldExtractor",
    "Extraction",
    "ParseResultValidator",
]
