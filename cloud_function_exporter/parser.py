"""Decode a function result into Prometheus metric families.

The function returns a JSON object whose ``result`` field holds a document in
the Prometheus text exposition format::

    {"result": "# TYPE demo_total counter\\ndemo_total{x=\\"a\\"} 3\\n"}
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Union

from prometheus_client.parser import text_string_to_metric_families

from .exceptions import DecodeError, ExpositionError

logger = logging.getLogger(__name__)

COUNTER = "counter"
GAUGE = "gauge"
SUPPORTED_TYPES = (COUNTER, GAUGE)


@dataclass(frozen=True)
class Sample:
    labels: Tuple[Tuple[str, str], ...]
    value: float

    def label_dict(self) -> Dict[str, str]:
        return dict(self.labels)


@dataclass
class MetricFamily:
    """One named group of samples of a single type.

    `name` is the name samples are exposed under: counters always carry the
    `_total` suffix, whether or not the TYPE line spelled it.
    """

    name: str
    help: str
    type: str
    samples: List[Sample] = field(default_factory=list)

    def label_names(self) -> List[str]:
        """Sorted union of the label names used by any sample."""
        names = set()
        for sample in self.samples:
            names.update(name for name, _ in sample.labels)
        return sorted(names)


def extract_result(payload: Union[bytes, str]) -> str:
    """Return the exposition text held in the payload's ``result`` field."""
    try:
        decoded = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"function payload is not valid JSON: {e}")

    if not isinstance(decoded, dict):
        raise DecodeError("function payload has no 'result' field")
    if "result" in decoded:
        key = "result"
    else:
        # an exact match wins, otherwise the field name is matched case-insensitively
        key = next((k for k in decoded if k.lower() == "result"), None)
        if key is None:
            raise DecodeError("function payload has no 'result' field")
    result = decoded[key]
    if not isinstance(result, str):
        raise DecodeError(f"'result' field must be a string, got {type(result).__name__}")
    return result


def _family_name(metric) -> str:
    if metric.type == COUNTER:
        return metric.name + "_total"
    return metric.name


def _own_samples(metric, name: str) -> List[Sample]:
    samples = []
    for s in metric.samples:
        # summaries and histograms keep their _sum/_count/_bucket samples
        if metric.type in SUPPORTED_TYPES and s.name != name:
            continue
        samples.append(Sample(tuple(sorted(s.labels.items())), float(s.value)))
    return samples


def parse_exposition(text: str) -> Dict[str, MetricFamily]:
    """Parse Prometheus text format into a mapping of family name to family."""
    families: Dict[str, MetricFamily] = {}
    try:
        for metric in text_string_to_metric_families(text):
            name = _family_name(metric)
            if name in families:
                raise ExpositionError(f"metric family {name} appears more than once")
            families[name] = MetricFamily(
                name=name,
                help=metric.documentation,
                type=metric.type,
                samples=_own_samples(metric, name),
            )
    except ExpositionError:
        raise
    except (ValueError, IndexError, KeyError, TypeError) as e:
        raise ExpositionError(f"invalid exposition format: {e}")
    return families


def parse_payload(payload: Union[bytes, str]) -> Dict[str, MetricFamily]:
    """Decode the function payload and parse the exposition text inside it."""
    families = parse_exposition(extract_result(payload))
    logger.debug(f"parsed {len(families)} metric families")
    return families
