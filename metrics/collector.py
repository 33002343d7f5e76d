"""Collection of metric samples from a JSON payload"""
from typing import Iterable, Iterator, List, Tuple, Union

from prometheus_client.core import UntypedMetricFamily

from extractor.base import ExtractionError, Extractor, PathNotFound, Payload
from logging_config import get_logger
from .models import CollectionWarning, ExtractedSample, MetricDefinition, MetricsConfig


logger = get_logger(__name__)

Sample = Tuple[MetricDefinition, ExtractedSample]


class JsonMetricCollector:
    """Turns a JSON payload into samples for every configured metric definition.

    Extraction errors are isolated per definition and, in object mode, per
    element: they are logged, recorded in ``warnings`` and collection moves on.
    """

    def __init__(self, extractor: Extractor):
        self.extractor = extractor
        self.warnings: List[CollectionWarning] = []

    def collect(self, metrics: Union[MetricsConfig, Iterable[MetricDefinition]],
                payload: Payload) -> Iterator[Sample]:
        """Yield (definition, sample) pairs in definition order"""
        definitions = metrics.metrics if isinstance(metrics, MetricsConfig) else metrics
        for metric in definitions:
            if metric.object_path:
                yield from self._collect_object(metric, payload)
            else:
                yield from self._collect_value(metric, payload)

    def _collect_value(self, metric: MetricDefinition, payload: Payload) -> Iterator[Sample]:
        try:
            value = self.extractor.extract_value(payload, metric.path)
        except PathNotFound as e:
            # Missing paths are expected for optional fields
            logger.debug("Failed to extract float value for metric", metric=metric.name,
                         path=metric.path, error=str(e))
            return
        except ExtractionError as e:
            self._warn(metric, metric.path, e, "Failed to extract float value for metric")
            return

        try:
            labels = tuple(self.extractor.extract_labels(payload, metric.label_paths))
        except ExtractionError as e:
            self._warn(metric, e.path or "", e, "Failed to extract labels")
            labels = metric.empty_labels()

        yield metric, ExtractedSample(value=value, labels=labels)

    def _collect_object(self, metric: MetricDefinition, payload: Payload) -> Iterator[Sample]:
        try:
            iterator = self.extractor.extract_object(payload, metric.object_path)
        except ExtractionError as e:
            self._warn(metric, metric.object_path, e, "Failed to extract object")
            return

        while True:
            try:
                fragment, has_more = iterator.next()
            except ExtractionError as e:
                self._warn(metric, metric.object_path, e, "Failed to extract element")
                continue
            if not has_more:
                break

            try:
                value = self.extractor.extract_value(fragment, metric.path)
                labels = tuple(self.extractor.extract_labels(fragment, metric.label_paths))
            except ExtractionError as e:
                self._warn(metric, e.path or metric.path, e, "Failed to extract value")
                continue

            yield metric, ExtractedSample(value=value, labels=labels)

    def _warn(self, metric: MetricDefinition, path: str, error: Exception, message: str) -> None:
        self.warnings.append(CollectionWarning(metric=metric.name, path=path, error=str(error)))
        logger.warning(message, metric=metric.name, path=path, error=str(error),
                       error_type=type(error).__name__)


class PrometheusJsonCollector:
    """prometheus_client custom collector exposing one collection pass as untyped metrics"""

    def __init__(self, config: MetricsConfig, payload: Payload, extractor: Extractor):
        self.config = config
        self.payload = payload
        self.extractor = extractor
        # Results of the most recent collect() call
        self.warnings: List[CollectionWarning] = []
        self.samples_count = 0

    def describe(self):
        families = {}
        for metric in self.config.metrics:
            if metric.name not in families:
                families[metric.name] = UntypedMetricFamily(
                    metric.name, metric.help_text, labels=list(metric.label_names)
                )
        return list(families.values())

    def collect(self):
        json_collector = JsonMetricCollector(self.extractor)
        families = {}
        samples_count = 0
        for metric, sample in json_collector.collect(self.config, self.payload):
            samples_count += 1
            family = families.get(metric.name)
            if family is None:
                family = UntypedMetricFamily(metric.name, metric.help_text,
                                             labels=list(metric.label_names))
                families[metric.name] = family
            family.add_metric(list(sample.labels), sample.value)
        self.warnings = json_collector.warnings
        self.samples_count = samples_count
        return list(families.values())
