"""Hot-reloadable holder of the active metric configuration"""
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from logging_config import get_logger
from .loader import ConfigError, load_config, parse_config, write_config
from .models import MetricsConfig


logger = get_logger(__name__)


class ReloadState(Enum):
    """Reload state machine: IDLE -> LOADING -> APPLIED | REJECTED -> IDLE"""
    IDLE = "idle"
    LOADING = "loading"
    APPLIED = "applied"
    REJECTED = "rejected"


class ConfigStore:
    """Holds exactly one active MetricsConfig.

    ``get`` is a single reference read and never waits on a reload. ``set``
    swaps the reference under a short lock. Reloads are serialized by a
    separate lock shared by every trigger, so concurrent triggers queue and
    each gets its own outcome.
    """

    def __init__(self, config: Optional[MetricsConfig] = None,
                 loader: Callable[[Union[str, Path]], MetricsConfig] = load_config):
        self._config = config or MetricsConfig()
        self._loader = loader
        self._swap_lock = threading.Lock()
        self._reload_lock = threading.Lock()
        self.state = ReloadState.IDLE
        self.last_outcome: Optional[ReloadState] = None
        self.last_error: Optional[str] = None
        self.reload_count = 0

    def get(self) -> MetricsConfig:
        """Get the active configuration snapshot"""
        return self._config

    def set(self, config: MetricsConfig) -> None:
        """Atomically replace the active configuration"""
        with self._swap_lock:
            self._config = config

    def reload(self, source_path: Union[str, Path]) -> MetricsConfig:
        """Re-read the config source and apply it if it parses.

        Raises:
            ConfigError: If the source cannot be loaded. The active config is kept.
        """
        with self._reload_lock:
            return self._apply(lambda: self._loader(source_path), str(source_path))

    def update(self, body: Union[str, bytes], target_path: Union[str, Path]) -> MetricsConfig:
        """Validate a replacement config body, persist it to target_path and apply it"""
        with self._reload_lock:
            def load():
                config = parse_config(body, source="request body")
                write_config(target_path, body)
                return config
            return self._apply(load, "request body")

    def _apply(self, load: Callable[[], MetricsConfig], source: str) -> MetricsConfig:
        self.state = ReloadState.LOADING
        try:
            config = load()
        except ConfigError as e:
            self.last_outcome = ReloadState.REJECTED
            self.last_error = str(e)
            logger.error("Error reloading config", source=source, error=str(e))
            raise
        finally:
            self.state = ReloadState.IDLE

        self.set(config)
        self.last_outcome = ReloadState.APPLIED
        self.last_error = None
        self.reload_count += 1
        logger.info("Config file was reloaded", source=source, metrics_count=len(config.metrics))
        return config
