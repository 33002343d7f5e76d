"""Path extraction backends for JSON payloads"""
from .base import (
    ExtractionError,
    Extractor,
    ObjectIterator,
    ParseError,
    PathNotFound,
    ValueTypeError,
)
from .factory import ExtractorFactory

__all__ = [
    'ExtractionError',
    'Extractor',
    'ExtractorFactory',
    'ObjectIterator',
    'ParseError',
    'PathNotFound',
    'ValueTypeError',
]
