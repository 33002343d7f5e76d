"""Extractor factory"""
from metrics.models import ExtractorBackend
from .base import Extractor


class ExtractorFactory:
    """Factory for creating extractors based on the metric configuration"""

    @staticmethod
    def create_extractor(backend: ExtractorBackend) -> Extractor:
        """Create an extractor for the configured backend"""
        if backend == ExtractorBackend.JSONPATH:
            from .jsonpath import JsonPathExtractor
            return JsonPathExtractor()
        elif backend == ExtractorBackend.JQ:
            from .jq import JqExtractor
            return JqExtractor()
        else:
            raise ValueError(f"Unsupported extractor backend: {backend}")
