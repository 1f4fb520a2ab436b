"""Self-instrumentation of the exporter, exposed through prometheus_client."""
import threading
from typing import Dict, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge

NAMESPACE = "cloud_function_exporter"


class ExporterMetrics:
    """Process-wide counters describing what the exporter skipped, dropped or failed on.

    Bound to one `CollectorRegistry`; the process default registry is used
    unless a registry is passed in (tests pass a fresh one).
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else REGISTRY
        self.skipped_families = Counter(
            "skipped_families_total",
            "Metric families returned by a function but not exposed",
            ["reason"],
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.dropped_samples = Counter(
            "dropped_samples_total",
            "Samples of a known family that could not be exposed",
            ["reason"],
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.phase_failures = Counter(
            "phase_failures_total",
            "Describe or collect phases aborted by an invocation, decode or exposition error",
            ["phase", "reason"],
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.descriptors = Gauge(
            "descriptors",
            "Number of metric descriptors registered in this process",
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.scrape_requests = Counter(
            "scrape_requests_total",
            "Scrape requests handled, by HTTP status code",
            ["code"],
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.in_flight = Gauge(
            "scrape_requests_in_flight",
            "Scrape requests currently being served",
            namespace=NAMESPACE,
            registry=self.registry,
        )

    def increment(self, name: str, labels: Optional[Dict[str, str]] = None, value: float = 1) -> None:
        """Increment one of the counters above by its attribute name."""
        counter = getattr(self, name)
        if labels:
            counter = counter.labels(**labels)
        counter.inc(value)


_default: Optional[ExporterMetrics] = None
_default_lock = threading.Lock()


def default_metrics() -> ExporterMetrics:
    """The ExporterMetrics bound to the process default registry, created on first use."""
    global _default
    with _default_lock:
        if _default is None:
            _default = ExporterMetrics()
    return _default
