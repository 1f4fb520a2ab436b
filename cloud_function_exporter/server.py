"""WSGI scrape endpoint (multi-target exporter pattern) and a threaded server to host it."""
import logging
from typing import Callable, List, Optional, Tuple
from urllib.parse import parse_qs
from wsgiref.simple_server import WSGIServer, make_server

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST, ThreadingWSGIServer, _SilentHandler

from .client import FunctionClient, ProjectResolver, Target
from .collector import FunctionCollector, exposed_names
from .config import Config, parse_listen_address
from .exceptions import ExporterError
from .logger import Logger
from .region import MetadataClient, RegionResolver
from .registry import DescriptorRegistry, descriptors as shared_descriptors

logger = logging.getLogger(__name__)

TEXT_PLAIN = "text/plain; charset=utf-8"
LANDING_PAGE = """<html>
<head><title>Cloud Function Exporter</title></head>
<body>
<h1>Cloud Function Exporter</h1>
<p><a href="{path}">Metrics</a></p>
</body>
</html>
"""

ClientFactory = Callable[[str], FunctionClient]


def _response(start_response, status: str, body: bytes, content_type: str = TEXT_PLAIN) -> List[bytes]:
    start_response(status, [("Content-Type", content_type), ("Content-Length", str(len(body)))])
    return [body]


def _function_name(query_string: str) -> Optional[str]:
    params = parse_qs(query_string)
    values = params.get("function_name[]") or params.get("function_name") or []
    return values[0] if values else None


class ExporterApp:
    """WSGI application serving one scrape per request on the telemetry path."""

    def __init__(
        self,
        cfg: Config,
        log: Logger,
        resolver: Optional[RegionResolver] = None,
        client_factory: Optional[ClientFactory] = None,
        descriptors: Optional[DescriptorRegistry] = None,
    ):
        self.cfg = cfg
        self.log = log
        self.resolver = resolver or RegionResolver(
            MetadataClient(timeout=cfg.METADATA_TIMEOUT),
            override=cfg.region_override,
            default=cfg.DEFAULT_REGION,
        )
        self.projects = ProjectResolver(cfg.GCP_PROJECT_ID)
        self.client_factory = client_factory or (
            lambda region: FunctionClient(region, project_id=self.projects.resolve(), timeout=cfg.INVOKE_TIMEOUT)
        )
        self.descriptors = descriptors if descriptors is not None else shared_descriptors

    def __call__(self, environ, start_response):
        path = environ.get("PATH_INFO", "/")
        if path == self.cfg.TELEMETRY_PATH:
            return self.scrape(environ, start_response)
        if path == "/health":
            return _response(start_response, "200 OK", b"ok\n")
        if path == "/":
            body = LANDING_PAGE.format(path=self.cfg.TELEMETRY_PATH).encode("utf-8")
            return _response(start_response, "200 OK", body, "text/html; charset=utf-8")
        return _response(start_response, "404 Not Found", b"not found\n")

    def scrape(self, environ, start_response):
        metrics = self.log.metrics
        metrics.in_flight.inc()
        try:
            status, body, content_type = self._scrape(environ)
        finally:
            metrics.in_flight.dec()
        metrics.scrape_requests.labels(code=status.split(" ", 1)[0]).inc()
        return _response(start_response, status, body, content_type)

    def _scrape(self, environ) -> Tuple[str, bytes, str]:
        if environ.get("REQUEST_METHOD", "GET").upper() not in ("GET", "HEAD"):
            return "405 Method Not Allowed", b"method not allowed\n", TEXT_PLAIN

        function = _function_name(environ.get("QUERY_STRING", ""))
        if not function:
            return "400 Bad Request", b"missing required query param: function_name\n", TEXT_PLAIN
        logger.debug(f"function name: {function}")

        try:
            region = self.resolver.resolve()
        except ExporterError as e:
            logger.warning(f"Couldn't get region: {e}")
            return "400 Bad Request", f"Couldn't get region {e}\n".encode("utf-8"), TEXT_PLAIN

        try:
            client = self.client_factory(region)
        except ExporterError as e:
            logger.warning(f"Couldn't create client for {function}: {e}")
            return "400 Bad Request", f"Couldn't create {e}\n".encode("utf-8"), TEXT_PLAIN

        try:
            client.resource_name(function)
        except ExporterError as e:
            logger.warning(f"Couldn't create client for {function}: {e}")
            client.close()
            return "400 Bad Request", f"Couldn't create {e}\n".encode("utf-8"), TEXT_PLAIN

        try:
            return self._expose(Target(region, function), client)
        finally:
            client.close()

    def _expose(self, target: Target, client) -> Tuple[str, bytes, str]:
        # one snapshot of the host metrics, so the function cannot repeat their families
        host = _Snapshot(self.log.metrics.registry)
        registry = CollectorRegistry(auto_describe=False)
        collector = FunctionCollector(target, client, self.log, self.descriptors, reserved=exposed_names(host.metrics))
        try:
            registry.register(collector)
        except ValueError as e:
            logger.error(f"Couldn't register collector: {e}")
            return "500 Internal Server Error", f"Couldn't register collector: {e}\n".encode("utf-8"), TEXT_PLAIN

        body = generate_latest(host) + generate_latest(registry)
        return "200 OK", body, CONTENT_TYPE_LATEST


class _Snapshot:
    """Metrics of a registry collected once, exposable with generate_latest."""

    def __init__(self, registry: CollectorRegistry):
        self.metrics = list(registry.collect())

    def collect(self):
        return iter(self.metrics)


def make_exporter_server(app: ExporterApp, listen_address: str) -> WSGIServer:
    host, port = parse_listen_address(listen_address)
    return make_server(host, port, app, server_class=ThreadingWSGIServer, handler_class=_SilentHandler)


def serve(cfg: Config, log: Logger) -> None:
    app = ExporterApp(cfg, log)
    httpd = make_exporter_server(app, cfg.LISTEN_ADDRESS)
    log.log(f"Listening on {cfg.LISTEN_ADDRESS}", info={"telemetry_path": cfg.TELEMETRY_PATH})
    try:
        httpd.serve_forever()
    finally:
        httpd.server_close()
