"""Base extractor interface, extraction errors and the object iterator"""
import abc
import json
from typing import Any, List, Optional, Sequence, Tuple, Union


Payload = Union[bytes, str]

# Paths starting with this sigil are evaluated against the payload,
# anything else is a static numeric literal.
PATH_SIGIL = "$"


class ExtractionError(Exception):
    """Raised when a value, label or object cannot be extracted from a payload"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class PathNotFound(ExtractionError):
    """The path expression matched nothing in the payload"""


class ParseError(ExtractionError):
    """Malformed path syntax, malformed JSON or an unparseable numeric literal"""


class ValueTypeError(ExtractionError, TypeError):
    """The resolved JSON value has a type the requested extraction cannot use"""


def is_static_path(path: str) -> bool:
    """Check if a value path is a static literal rather than a path expression"""
    return not path or not path.startswith(PATH_SIGIL)


def parse_static_value(path: str) -> float:
    """Parse a static literal value path as a float"""
    try:
        return float(path)
    except (TypeError, ValueError) as e:
        raise ParseError(f"failed to parse value as float; value: {path!r}; err: {e}", path) from e


def load_payload(payload: Payload) -> Any:
    """Decode a raw JSON payload"""
    try:
        return json.loads(payload)
    except (TypeError, ValueError) as e:
        raise ParseError(f"failed to decode JSON payload: {e}") from e


class ObjectIterator:
    """Lazy, finite cursor over the elements selected by an object path.

    Each call to :meth:`next` returns ``(fragment, has_more)`` where fragment is
    the element re-encoded as a standalone JSON document. Once ``has_more`` is
    False the cursor stays exhausted. An element that cannot be encoded raises
    :class:`ExtractionError` after the cursor has moved past it, so a caller
    that logs and continues still reaches the end.
    """

    def __init__(self, elements: Sequence[Any], path: Optional[str] = None):
        self._elements = elements
        self._index = 0
        self._exhausted = False
        self.path = path

    def __len__(self) -> int:
        return len(self._elements)

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def next(self) -> Tuple[Optional[bytes], bool]:
        if self._exhausted or self._index >= len(self._elements):
            self._exhausted = True
            self._elements = ()
            return None, False

        element = self._elements[self._index]
        self._index += 1
        try:
            fragment = json.dumps(element, allow_nan=True).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise ExtractionError(
                f"failed to encode element {self._index - 1} of object path: {e}", self.path
            ) from e
        return fragment, True


class Extractor(abc.ABC):
    """Abstract base class for path extraction backends"""

    name = "base"

    @abc.abstractmethod
    def extract_value(self, payload: Payload, path: str) -> float:
        """Return the first value matched by path as a float"""
        pass

    @abc.abstractmethod
    def extract_labels(self, payload: Payload, paths: Sequence[str]) -> List[str]:
        """Return one label value per path, in path order"""
        pass

    @abc.abstractmethod
    def extract_object(self, payload: Payload, path: str) -> ObjectIterator:
        """Return an iterator over the array or object selected by path"""
        pass

    @staticmethod
    def object_elements(value: Any, path: str) -> List[Any]:
        """Turn a resolved object path value into the list of elements to iterate"""
        if isinstance(value, list):
            return value
        if isinstance(value, dict):
            return [value]
        raise ValueTypeError(
            f"error while extracting object: path '{path}' value is not an object or array "
            f"(got {type(value).__name__})",
            path,
        )

    @staticmethod
    def label_value(value: Any, path: str) -> str:
        """Turn a resolved label value into the string for its label slot"""
        if isinstance(value, str):
            return value
        if isinstance(value, list):
            parts = []
            for item in value:
                if not isinstance(item, str):
                    raise ValueTypeError(
                        f"error while extracting labels: path '{path}' value is an array "
                        "but contains a non string type",
                        path,
                    )
                parts.append(item)
            return "".join(parts)
        raise ValueTypeError(
            f"error while extracting labels: path '{path}' value type is invalid - "
            "should be string or []string",
            path,
        )
