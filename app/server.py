"""FastAPI server setup and routes"""
import asyncio
import signal
import time
from typing import Optional
import httpx
from fastapi import FastAPI, Request, Response, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from config import Config
from exporter.fetch import FetchFailed, TargetMissing
from exporter.probe import ProbeHandler, ProbeResult
from exporter.target import TargetTemplater
from logging_config import get_logger, log_probe, log_error
from metrics.loader import ConfigError
from metrics.store import ConfigStore
from middleware.request_logging import RequestLoggingMiddleware


logger = get_logger(__name__)

# How often a pending probe checks whether its client went away
DISCONNECT_POLL_SECONDS = 0.25

PROBES_TOTAL = Counter(
    "json_exporter_probes_total", "Probes served, by result", ["result"]
)
CONFIG_RELOADS_TOTAL = Counter(
    "json_exporter_config_reloads_total", "Configuration reloads, by result", ["result"]
)


class ClientDisconnected(Exception):
    """The probe client went away before the fetch finished"""


class JsonExporterServer:
    """FastAPI server for the JSON exporter"""

    def __init__(self, config: Config, store: ConfigStore,
                 client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.store = store
        self.app = FastAPI(
            title="JSON Exporter",
            version=config.service_version,
            docs_url=None,
            redoc_url=None,
            openapi_url=None
        )
        self.client = client or httpx.AsyncClient(
            timeout=config.fetch_timeout_seconds,
            follow_redirects=True
        )
        self.templater = TargetTemplater(config.scrape_interval_seconds)
        self.probe_handler = ProbeHandler(store, self.templater, self.client)

        # Probe state
        self.probe_count = 0
        self.probe_errors = 0
        self.start_time = time.time()
        self._signal_tasks = set()
        self._sighup_installed = False

        self._setup_middleware()
        self._setup_routes()
        self._setup_events()

    def _setup_middleware(self):
        """Setup request logging middleware"""
        if self.config.enable_request_logging:
            self.app.add_middleware(RequestLoggingMiddleware)

    def _setup_routes(self):
        """Setup FastAPI routes"""

        @self.app.get('/probe')
        async def probe(request: Request, target: str = ""):
            """Fetch target and serve its metrics in Prometheus format"""
            start_time = time.time()
            self.probe_count += 1

            try:
                result = await self._probe_until_disconnect(request, target)
            except TargetMissing as e:
                self._count_probe_error("missing_target")
                return PlainTextResponse(str(e), status_code=400)
            except FetchFailed as e:
                self._count_probe_error("fetch_failed")
                return PlainTextResponse(
                    f"Failed to fetch JSON response. TARGET: {e.target}, ERROR: {e.reason}",
                    status_code=503
                )
            except ClientDisconnected:
                self._count_probe_error("cancelled")
                return Response(status_code=499)

            PROBES_TOTAL.labels(result="success").inc()
            log_probe(logger, result.target, result.samples_count,
                      time.time() - start_time, len(result.warnings))
            return Response(result.body, media_type=CONTENT_TYPE_LATEST)

        @self.app.get('/metrics')
        def get_metrics():
            """Serve the exporter's own metrics"""
            return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

        @self.app.post('/config/reload')
        async def reload_config():
            """Reload the configuration file"""
            try:
                config = await self.reload()
            except ConfigError as e:
                raise HTTPException(status_code=500, detail=f"failed to reload config: {e}")
            return {"status": "success", "metrics_count": len(config.metrics)}

        @self.app.post('/config/update')
        async def update_config(request: Request):
            """Replace the configuration file with the request body and reload it"""
            body = await request.body()
            try:
                config = await self.reload(body or None)
            except ConfigError as e:
                raise HTTPException(status_code=500, detail=f"failed to reload config: {e}")
            return {"status": "success", "metrics_count": len(config.metrics)}

        @self.app.get('/health')
        def health_check():
            """Health check endpoint"""
            return {
                "status": "healthy",
                "uptime_seconds": round(time.time() - self.start_time, 1),
                "total_probes": self.probe_count,
                "probe_errors": self.probe_errors,
                "tracked_targets": len(self.templater.timestamps),
                "config": {
                    "file": str(self.config.config_file),
                    "extractor": self.store.get().extractor.value,
                    "metrics_count": len(self.store.get().metrics),
                    "reload_state": self.store.state.value,
                    "last_reload": self.store.last_outcome.value if self.store.last_outcome else None,
                    "last_reload_error": self.store.last_error,
                    "reload_count": self.store.reload_count,
                }
            }

        @self.app.get('/', response_class=HTMLResponse)
        def index():
            """Web interface"""
            return self._generate_html_interface()

    def _setup_events(self):
        """Setup FastAPI startup/shutdown events"""

        @self.app.on_event("startup")
        async def startup_event():
            self.start_time = time.time()
            if self.config.reload_on_sighup:
                self._install_sighup_handler()

        @self.app.on_event("shutdown")
        async def shutdown_event():
            logger.info("Shutting down json_exporter", event_type="server_shutdown")
            if self._sighup_installed:
                asyncio.get_event_loop().remove_signal_handler(signal.SIGHUP)
                self._sighup_installed = False
            await self.client.aclose()

    def _install_sighup_handler(self):
        """Reload the configuration on SIGHUP where the platform allows it"""
        try:
            asyncio.get_event_loop().add_signal_handler(signal.SIGHUP, self._on_sighup)
            self._sighup_installed = True
        except (AttributeError, NotImplementedError, RuntimeError, ValueError) as e:
            logger.warning("SIGHUP reload not available", error=str(e))

    def _on_sighup(self):
        task = asyncio.ensure_future(self._reload_from_signal())
        self._signal_tasks.add(task)
        task.add_done_callback(self._signal_tasks.discard)

    async def _reload_from_signal(self):
        logger.info("Received SIGHUP, reloading config", event_type="config_reload")
        try:
            await self.reload()
        except ConfigError as e:
            log_error(logger, e, {"component": "config_reload", "trigger": "signal"})

    async def reload(self, body: Optional[bytes] = None):
        """Run one serialized reload in a worker thread.

        With a body, the body replaces the configuration file if it is valid.
        """
        loop = asyncio.get_event_loop()
        try:
            if body:
                config = await loop.run_in_executor(
                    None, self.store.update, body, self.config.config_file
                )
            else:
                config = await loop.run_in_executor(
                    None, self.store.reload, self.config.config_file
                )
        except ConfigError:
            CONFIG_RELOADS_TOTAL.labels(result="failure").inc()
            raise
        CONFIG_RELOADS_TOTAL.labels(result="success").inc()
        return config

    async def _probe_until_disconnect(self, request: Request, target: str) -> ProbeResult:
        """Run the probe, cancelling it if the client disconnects first"""
        task = asyncio.ensure_future(self.probe_handler.probe(target))
        try:
            while True:
                done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
                if done:
                    return task.result()
                if await request.is_disconnected():
                    logger.info("Client disconnected, cancelling probe", target=target)
                    raise ClientDisconnected(target)
        finally:
            if not task.done():
                task.cancel()

    def _count_probe_error(self, reason: str):
        self.probe_errors += 1
        PROBES_TOTAL.labels(result=reason).inc()

    def _generate_html_interface(self) -> str:
        """Generate HTML interface"""
        config = self.store.get()
        metrics_items = ''.join(
            f'<li><strong>{m.name}</strong> ({m.scrape_type.value}) - {m.help_text}</li>'
            for m in config.metrics
        )
        return f"""
        <!DOCTYPE html>
        <html>
        <head><title>JSON Exporter</title></head>
        <body>
            <h1>JSON Exporter</h1>
            <h2>Available Endpoints:</h2>
            <ul>
                <li><a href="/probe?target=">/probe?target=&lt;url&gt;</a> - Probe a JSON endpoint</li>
                <li><a href="/metrics">/metrics</a> - Exporter metrics</li>
                <li><a href="/health">/health</a> - Health check</li>
                <li>POST /config/reload - Reload configuration</li>
                <li>POST /config/update - Replace and reload configuration</li>
            </ul>
            <h2>Configuration:</h2>
            <ul>
                <li><strong>Config file:</strong> {self.config.config_file}</li>
                <li><strong>Extractor:</strong> {config.extractor.value}</li>
            </ul>
            <h2>Metrics:</h2>
            <ul>{metrics_items}</ul>
        </body>
        </html>
        """

    def get_app(self) -> FastAPI:
        """Get the FastAPI application"""
        return self.app
