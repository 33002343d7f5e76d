"""Metric configuration and sample models"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from enum import Enum


class ExtractorBackend(Enum):
    """Path query languages available to metric definitions"""
    JSONPATH = "jsonpath"
    JQ = "jq"


class ScrapeType(Enum):
    """How a metric definition turns the payload into samples"""
    VALUE = "value"
    OBJECT = "object"


@dataclass(frozen=True)
class MetricDefinition:
    """A single metric to extract from each probed JSON document"""
    name: str
    help_text: str
    path: str
    object_path: Optional[str] = None
    label_names: Tuple[str, ...] = ()
    label_paths: Tuple[str, ...] = ()

    def __post_init__(self):
        if len(self.label_names) != len(self.label_paths):
            raise ValueError(
                f"metric {self.name}: {len(self.label_names)} label names "
                f"but {len(self.label_paths)} label paths"
            )

    @property
    def scrape_type(self) -> ScrapeType:
        return ScrapeType.OBJECT if self.object_path else ScrapeType.VALUE

    def empty_labels(self) -> Tuple[str, ...]:
        """Label values used when label extraction fails"""
        return ("",) * len(self.label_names)


@dataclass(frozen=True)
class MetricsConfig:
    """A loaded metric configuration. Replaced wholesale on reload."""
    metrics: Tuple[MetricDefinition, ...] = ()
    extractor: ExtractorBackend = ExtractorBackend.JSONPATH
    headers: Tuple[Tuple[str, str], ...] = ()

    @property
    def header_dict(self) -> Dict[str, str]:
        return dict(self.headers)


@dataclass
class ExtractedSample:
    """One sample value and its label values, in label-name order"""
    value: float
    labels: Tuple[str, ...] = field(default_factory=tuple)


@dataclass
class CollectionWarning:
    """An extraction problem surfaced during a collection pass"""
    metric: str
    path: str
    error: str
