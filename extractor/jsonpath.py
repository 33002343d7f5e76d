"""JSONPath extraction backend"""
from functools import lru_cache
from typing import Any, List, Sequence

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse
from jsonpath_ng.ext.filter import Filter
from jsonpath_ng.jsonpath import Child, Descendants, Fields, Index, Slice, Union, Where

from logging_config import get_logger
from .base import (
    Extractor,
    ObjectIterator,
    ParseError,
    PathNotFound,
    Payload,
    ValueTypeError,
    is_static_path,
    load_payload,
    parse_static_value,
)
from .sanitizer import sanitize_value


logger = get_logger(__name__)


@lru_cache(maxsize=512)
def compile_path(path: str):
    """Compile a JSONPath expression, caching the result"""
    try:
        return parse(path)
    except JSONPathError as e:
        raise ParseError(f"failed to compile path '{path}': {e}", path) from e


def is_multi_valued(expression) -> bool:
    """Check if an expression selects a collection of matches rather than one node.

    Wildcards, slices, filters, unions and descendant searches are multi-valued
    whatever the number of matches they find in a given document.
    """
    if isinstance(expression, (Slice, Filter, Descendants, Union)):
        return True
    if isinstance(expression, Fields):
        return len(expression.fields) != 1 or "*" in expression.fields
    if isinstance(expression, Index):
        return len(getattr(expression, "indices", ())) > 1
    if isinstance(expression, (Child, Where)):
        return is_multi_valued(expression.left) or is_multi_valued(expression.right)
    return False


class JsonPathExtractor(Extractor):
    """Extractor evaluating JSONPath expressions such as ``$.items[*].name``"""

    name = "jsonpath"

    def extract_value(self, payload: Payload, path: str) -> float:
        if is_static_path(path):
            return parse_static_value(path)

        matches = self._find(load_payload(payload), path)
        if not matches:
            logger.debug("Path not found", path=path)
            raise PathNotFound("Path not found", path)
        return sanitize_value(matches[0], path)

    def extract_labels(self, payload: Payload, paths: Sequence[str]) -> List[str]:
        document = load_payload(payload)
        labels = []
        for path in paths:
            matches = [m for m in self._find(document, path) if m is not None]
            if not matches:
                logger.warning("Label path not found in json", path=path)
                labels.append("")
                continue
            # Matches of a multi-valued path behave like an array of label parts
            value = matches if is_multi_valued(compile_path(path)) else matches[0]
            labels.append(self.label_value(value, path))
        return labels

    def extract_object(self, payload: Payload, path: str) -> ObjectIterator:
        matches = self._find(load_payload(payload), path)
        if not matches:
            raise PathNotFound("Path not found", path)
        if is_multi_valued(compile_path(path)):
            # The matches are the elements, whatever their count or type
            return ObjectIterator(matches, path)
        return ObjectIterator(self.object_elements(matches[0], path), path)

    def _find(self, document: Any, path: str) -> List[Any]:
        expression = compile_path(path)
        try:
            return [match.value for match in expression.find(document)]
        except (TypeError, ValueError, AttributeError) as e:
            raise ValueTypeError(f"failed to evaluate path '{path}': {e}", path) from e
