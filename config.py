"""Configuration management for the JSON exporter"""
from pathlib import Path
from typing import Literal, Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Process settings read from the environment.

    The metric definitions themselves live in the YAML file named by
    ``config_file`` and are managed by the ConfigStore.
    """

    # Metric configuration
    config_file: Path = Field(default=Path("examples/config.yml"), description="Metric configuration file")
    config_check: bool = Field(default=False, description="Validate the configuration file and exit")
    reload_on_sighup: bool = Field(default=True, description="Reload the configuration file on SIGHUP")

    # Server settings
    listen_host: str = Field(default="0.0.0.0", description="Listen host")
    listen_port: int = Field(default=7979, ge=1, le=65535, description="Listen port")

    # Probe settings
    scrape_interval_seconds: int = Field(default=0, ge=0, description="Scrape interval used for the first ${__from} of a target")
    fetch_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout for fetching a target")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO", description="Log level")
    log_file: Optional[Path] = Field(default=None, description="Optional log file path")
    enable_request_logging: bool = Field(default=True, description="Enable HTTP request logging")

    # Service settings
    service_name: str = Field(default="json-exporter", description="Service name")
    service_version: str = Field(default="1.0.0", description="Service version")

    class Config:
        env_prefix = ""
        case_sensitive = False

    @validator('log_level', pre=True)
    def normalize_log_level(cls, v):
        """Accept log levels in any case"""
        if isinstance(v, str):
            return v.upper()
        return v

    @validator('log_file')
    def ensure_log_directory(cls, v):
        """Ensure the parent directory exists for the log file"""
        if isinstance(v, Path):
            v.parent.mkdir(parents=True, exist_ok=True)
        return v
