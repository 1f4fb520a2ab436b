"""Prometheus collector that republishes the metrics returned by a cloud function.

Registering a FunctionCollector on a `CollectorRegistry` runs the description
phase (prometheus_client calls `describe()` on registration); exposing the
registry runs the collection phase. Each phase invokes the function once.
"""
import logging
import time
from typing import Dict, Iterable, Iterator, List, Optional, Set

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from .client import Target
from .exceptions import ScrapeError
from .logger import Logger
from .metrics import NAMESPACE
from .parser import COUNTER, GAUGE, MetricFamily, parse_payload
from .registry import DescriptorRegistry, descriptors as shared_descriptors

logger = logging.getLogger(__name__)

UP = f"{NAMESPACE}_up"
SCRAPE_DURATION = f"{NAMESPACE}_scrape_duration_seconds"


def exposed_names(metrics: Iterable[Metric]) -> Set[str]:
    """Family names the given metrics occupy in a text exposition, suffixes included."""
    names = set()
    for metric in metrics:
        if metric.type == "counter":
            names.update((metric.name + "_total", metric.name + "_created"))
        elif metric.type == "info":
            names.add(metric.name + "_info")
        else:
            names.add(metric.name)
            if metric.type in ("summary", "histogram"):
                names.add(metric.name + "_created")
    return names


class FunctionCollector:
    def __init__(
        self,
        target: Target,
        client,
        log: Logger,
        descriptors: Optional[DescriptorRegistry] = None,
        reserved: Iterable[str] = (),
    ):
        """
        Args:
            target: region and function to scrape
            client: object with `invoke(function) -> payload`, e.g. FunctionClient
            log: Logger used to report phase failures and skips
            descriptors: descriptor registry, defaults to the process-wide one
            reserved: family names already exposed by the host; function families
                with these names are never emitted
        """
        self.target = target
        self.client = client
        self.log = log
        self.descriptors = descriptors if descriptors is not None else shared_descriptors
        self.reserved = set(reserved) | {UP, SCRAPE_DURATION}

    def _fetch(self) -> Dict[str, MetricFamily]:
        payload = self.client.invoke(self.target.function)
        return parse_payload(payload)

    def _phase_failed(self, phase: str, error: ScrapeError) -> None:
        logger.error(f"{phase} failed for {self.target.function} ({self.target.region}): {error}")
        self.log.metric(
            "phase_failures",
            labels={"phase": phase, "reason": error.reason},
            message=str(error),
            info={"function": self.target.function, "region": self.target.region},
        )

    def describe(self) -> List[Metric]:
        try:
            families = self._fetch()
        except ScrapeError as e:
            self._phase_failed("describe", e)
            return []

        registered = self.descriptors.describe(families.values())
        self.log.metrics.descriptors.set(len(self.descriptors))
        described = [Metric(d.name, d.help, "unknown") for d in registered if d.name not in self.reserved]
        described.append(GaugeMetricFamily(UP, "Whether the last function invocation and parse succeeded"))
        described.append(GaugeMetricFamily(SCRAPE_DURATION, "Seconds spent invoking the function and translating its metrics"))
        return described

    def translate(self, family: MetricFamily) -> Optional[Metric]:
        """Turn one parsed family into a family shaped by its registered descriptor.

        Returns None when the family name is taken by the host, has no descriptor,
        or is neither a counter nor a gauge.
        """
        if family.name in self.reserved:
            self.log.metrics.increment("skipped_families", {"reason": "name_collision"})
            logger.debug(f"skipping {family.name}: name already exposed by the exporter")
            return None

        desc = self.descriptors.lookup(family.name)
        if desc is None:
            self.log.metrics.increment("skipped_families", {"reason": "unknown_descriptor"})
            logger.debug(f"skipping {family.name}: no descriptor registered")
            return None

        if family.type == COUNTER:
            metric = CounterMetricFamily(desc.name, desc.help, labels=desc.labels)
        elif family.type == GAUGE:
            metric = GaugeMetricFamily(desc.name, desc.help, labels=desc.labels)
        else:
            self.log.metrics.increment("skipped_families", {"reason": "unsupported_type"})
            logger.debug(f"skipping {family.name}: unsupported type {family.type}")
            return None

        for sample in family.samples:
            labels = sample.label_dict()
            unknown = set(labels) - set(desc.labels)
            if unknown:
                # descriptors are never widened after registration
                self.log.metrics.increment("dropped_samples", {"reason": "label_mismatch"})
                logger.debug(f"dropping {family.name} sample with unregistered labels {sorted(unknown)}")
                continue
            metric.add_metric([labels.get(name, "") for name in desc.labels], sample.value)
        return metric

    def collect(self) -> Iterator[Metric]:
        start = time.perf_counter()
        try:
            families = self._fetch()
            up = 1
        except ScrapeError as e:
            self._phase_failed("collect", e)
            families = {}
            up = 0

        for family in families.values():
            metric = self.translate(family)
            if metric is not None:
                yield metric

        yield GaugeMetricFamily(UP, "Whether the last function invocation and parse succeeded", value=up)
        yield GaugeMetricFamily(
            SCRAPE_DURATION,
            "Seconds spent invoking the function and translating its metrics",
            value=time.perf_counter() - start,
        )
