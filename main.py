#!/usr/bin/env python3
"""Main entry point for the JSON exporter"""
import sys
import uvicorn
from config import Config
from app.server import JsonExporterServer
from logging_config import setup_structured_logging, get_logger, log_server_startup, log_error
from metrics.loader import ConfigError, load_config
from metrics.store import ConfigStore


def main():
    """Main application entry point"""
    try:
        # Load settings
        config = Config()

        # Setup structured logging
        setup_structured_logging(config)
        logger = get_logger(__name__)

        # Load metric configuration
        logger.info("Loading config file", file=str(config.config_file))
        try:
            metrics_config = load_config(config.config_file)
        except ConfigError as e:
            logger.error("Error loading config", error=str(e))
            sys.exit(1)

        if config.config_check:
            logger.info("Config file is valid", metrics_count=len(metrics_config.metrics))
            sys.exit(0)

        log_server_startup(logger, config, len(metrics_config.metrics))

        # Create server
        store = ConfigStore(metrics_config)
        server = JsonExporterServer(config, store)
        app = server.get_app()

        # Run server
        uvicorn.run(
            app,
            host=config.listen_host,
            port=config.listen_port,
            log_config=None  # We handle logging ourselves
        )

    except Exception as e:
        logger = get_logger(__name__)
        log_error(logger, e, {"component": "main", "phase": "startup"})
        sys.exit(1)


if __name__ == '__main__':
    main()
