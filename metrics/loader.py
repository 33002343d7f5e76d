"""Loading and validation of the YAML metric configuration"""
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, validator

from logging_config import get_logger
from .models import ExtractorBackend, MetricDefinition, MetricsConfig, ScrapeType


logger = get_logger(__name__)

METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class ConfigError(Exception):
    """Raised when a metric configuration cannot be read or is invalid"""


class MetricSchema(BaseModel):
    """Schema of one entry of the ``metrics`` list"""
    name: str
    help: Optional[str] = None
    type: Optional[ScrapeType] = None
    path: str = Field(..., min_length=1)
    object_path: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)

    @validator('path', pre=True)
    def coerce_static_path(cls, v):
        # Unquoted static values arrive from YAML as numbers
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @validator('name')
    def validate_name(cls, v):
        if not METRIC_NAME_RE.match(v):
            raise ValueError(f"invalid metric name {v!r}")
        return v

    @validator('labels')
    def validate_labels(cls, v):
        for label_name, label_path in v.items():
            if not LABEL_NAME_RE.match(label_name) or label_name.startswith("__"):
                raise ValueError(f"invalid label name {label_name!r}")
            if not label_path:
                raise ValueError(f"label {label_name!r} has an empty path")
        return v

    def to_definition(self) -> MetricDefinition:
        if self.type == ScrapeType.OBJECT and not self.object_path:
            raise ConfigError(f"metric {self.name}: type 'object' requires object_path")
        if self.type == ScrapeType.VALUE and self.object_path:
            raise ConfigError(f"metric {self.name}: type 'value' does not take an object_path")
        return MetricDefinition(
            name=self.name,
            help_text=self.help or self.name,
            path=self.path,
            object_path=self.object_path or None,
            label_names=tuple(self.labels.keys()),
            label_paths=tuple(self.labels.values()),
        )


class ConfigSchema(BaseModel):
    """Schema of the metric configuration document"""
    extractor: ExtractorBackend = ExtractorBackend.JSONPATH
    headers: Dict[str, str] = Field(default_factory=dict)
    metrics: List[MetricSchema] = Field(default_factory=list)

    @validator('extractor', pre=True)
    def normalize_extractor(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


def parse_config(content: Union[str, bytes], source: str = "<config>") -> MetricsConfig:
    """Parse a YAML metric configuration document.

    Args:
        content: Raw YAML text.
        source: Name used in error messages.

    Raises:
        ConfigError: If the document is not valid YAML or does not match the schema.
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {source}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config in {source}: top level must be a mapping")
    bad_keys = [key for key in data if not isinstance(key, str)]
    if bad_keys:
        raise ConfigError(f"Invalid config in {source}: keys must be strings, got {bad_keys!r}")

    try:
        schema = ConfigSchema.parse_obj(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config schema in {source}: {e}") from e

    return MetricsConfig(
        metrics=tuple(metric.to_definition() for metric in schema.metrics),
        extractor=schema.extractor,
        headers=tuple(schema.headers.items()),
    )


def load_config(path: Union[str, Path]) -> MetricsConfig:
    """Load the metric configuration from a YAML file"""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    config = parse_config(content, source=str(path))
    logger.debug("Loaded config file", file=str(path), metrics_count=len(config.metrics))
    return config


def write_config(path: Union[str, Path], content: Union[str, bytes]) -> None:
    """Write a config body atomically, replacing the file at path"""
    path = Path(path)
    if isinstance(content, str):
        content = content.encode("utf-8")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = path.with_suffix(path.suffix + ".tmp")
        temp_file.write_bytes(content)
        temp_file.replace(path)
    except OSError as e:
        raise ConfigError(f"Failed to write config file {path}: {e}") from e
    logger.info("Config file rewritten", file=str(path))
