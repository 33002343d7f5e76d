"""Probe orchestration: config snapshot, target templating, fetch and collection"""
from dataclasses import dataclass, field
from typing import Dict, List

import httpx
from prometheus_client import CollectorRegistry, generate_latest

from extractor.base import Extractor, Payload
from extractor.factory import ExtractorFactory
from logging_config import get_logger
from metrics.collector import PrometheusJsonCollector
from metrics.models import CollectionWarning, ExtractorBackend, MetricsConfig
from metrics.store import ConfigStore
from .fetch import TargetMissing, fetch_json
from .target import TargetTemplater


logger = get_logger(__name__)


@dataclass
class ProbeResult:
    """Exposition output of one probe"""
    target: str
    body: bytes
    samples_count: int = 0
    warnings: List[CollectionWarning] = field(default_factory=list)


class ProbeHandler:
    """Runs one scrape of a target against the active metric configuration"""

    def __init__(self, store: ConfigStore, templater: TargetTemplater, client: httpx.AsyncClient):
        self.store = store
        self.templater = templater
        self.client = client
        self._extractors: Dict[ExtractorBackend, Extractor] = {}

    def get_extractor(self, backend: ExtractorBackend) -> Extractor:
        extractor = self._extractors.get(backend)
        if extractor is None:
            extractor = ExtractorFactory.create_extractor(backend)
            self._extractors[backend] = extractor
        return extractor

    async def probe(self, target: str) -> ProbeResult:
        """Fetch target and render its metrics.

        Raises:
            TargetMissing: If target is empty.
            FetchFailed: If the target cannot be fetched.
        """
        if not target:
            raise TargetMissing("Target parameter is missing")

        # One snapshot for the whole probe, a concurrent reload does not affect it
        config = self.store.get()
        resolved = self.templater.resolve(target)
        payload = await fetch_json(self.client, resolved, config.header_dict)
        return self.render(config, payload, resolved)

    def render(self, config: MetricsConfig, payload: Payload, target: str = "") -> ProbeResult:
        """Collect payload against config and render the exposition text"""
        collector = PrometheusJsonCollector(config, payload, self.get_extractor(config.extractor))
        registry = CollectorRegistry()
        registry.register(collector)
        body = generate_latest(registry)

        return ProbeResult(
            target=target,
            body=body,
            samples_count=collector.samples_count,
            warnings=list(collector.warnings),
        )
