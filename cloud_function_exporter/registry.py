"""Process-wide registry of metric descriptors, keyed by metric name."""
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .parser import MetricFamily

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Descriptor:
    """Immutable shape of an exposed metric: name, help text and sorted label names."""

    name: str
    help: str
    labels: Tuple[str, ...]


class DescriptorRegistry:
    """Maps metric name to Descriptor. Entries are added once and never changed.

    Writes are serialized by a lock; a descriptor is fully built before it is
    stored, so readers never see a partial entry.
    """

    def __init__(self):
        self._descriptors: Dict[str, Descriptor] = {}
        self._lock = threading.Lock()

    def register(self, name: str, help: str, labels: Iterable[str]) -> Descriptor:
        """Register a descriptor unless the name is known; return the stored one.

        The first registration for a name wins: later calls never widen or
        narrow its label names.
        """
        existing = self._descriptors.get(name)
        if existing is not None:
            return existing
        candidate = Descriptor(name=name, help=help, labels=tuple(sorted(set(labels))))
        with self._lock:
            existing = self._descriptors.get(name)
            if existing is not None:
                return existing
            self._descriptors[name] = candidate
        logger.debug(f"registered descriptor {name} with labels {list(candidate.labels)}")
        return candidate

    def register_family(self, family: MetricFamily) -> Descriptor:
        return self.register(family.name, family.help, family.label_names())

    def describe(self, families: Iterable[MetricFamily]) -> List[Descriptor]:
        """Register every family and return the descriptors in effect for them."""
        return [self.register_family(family) for family in families]

    def lookup(self, name: str) -> Optional[Descriptor]:
        return self._descriptors.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._descriptors)

    def __contains__(self, name: str) -> bool:
        return name in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)


# shared by every scrape of every target
descriptors = DescriptorRegistry()
