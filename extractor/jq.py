"""jq extraction backend"""
from functools import lru_cache
from typing import Any, List, Sequence

import jq

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
def compile_program(path: str):
    """Compile the jq filter following the leading '$' of a path"""
    program = path[1:] if path.startswith("$") else path
    try:
        return jq.compile(program or ".")
    except ValueError as e:
        raise ParseError(f"failed to compile path '{path}': {e}", path) from e


_NO_OUTPUT = object()


class JqExtractor(Extractor):
    """Extractor evaluating jq filters written as ``$`` followed by the filter, e.g. ``$.items``"""

    name = "jq"

    def extract_value(self, payload: Payload, path: str) -> float:
        if is_static_path(path):
            return parse_static_value(path)

        value = self._first(load_payload(payload), path)
        if value is _NO_OUTPUT:
            logger.debug("Path not found", path=path)
            raise PathNotFound("Path not found", path)
        return sanitize_value(value, path)

    def extract_labels(self, payload: Payload, paths: Sequence[str]) -> List[str]:
        document = load_payload(payload)
        labels = []
        for path in paths:
            value = self._first(document, path)
            if value is _NO_OUTPUT or value is None:
                logger.warning("Label path not found in json", path=path)
                labels.append("")
                continue
            labels.append(self.label_value(value, path))
        return labels

    def extract_object(self, payload: Payload, path: str) -> ObjectIterator:
        value = self._first(load_payload(payload), path)
        if value is _NO_OUTPUT:
            raise PathNotFound("Path not found", path)
        return ObjectIterator(self.object_elements(value, path), path)

    def _first(self, document: Any, path: str) -> Any:
        """Run the program and return its first output, or _NO_OUTPUT"""
        program = compile_program(path)
        try:
            return program.input_value(document).first()
        except StopIteration:
            return _NO_OUTPUT
        except ValueError as e:
            raise ValueTypeError(f"failed to evaluate path '{path}': {e}", path) from e
