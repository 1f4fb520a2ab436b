"""Resolution of the default region functions are invoked in.

Order: GCE metadata server (when reachable), then the environment override,
then a fixed default. The first resolved value is cached for the process.
"""
import logging
import threading
from typing import Optional

import requests

from .config import DEFAULT_REGION
from .exceptions import RegionError

logger = logging.getLogger(__name__)

METADATA_URL = "http://metadata.google.internal/computeMetadata/v1/"
METADATA_HEADERS = {"Metadata-Flavor": "Google"}


def zone_to_region(zone: str) -> str:
    """`projects/123/zones/us-central1-a` -> `us-central1`."""
    zone = zone.strip().rsplit("/", 1)[-1]
    region, sep, _ = zone.rpartition("-")
    if not sep or not region:
        raise RegionError(f"unexpected zone format from metadata server: {zone!r}")
    return region


class MetadataClient:
    """Minimal GCE metadata server client. No retries."""

    def __init__(self, base_url: str = METADATA_URL, timeout: float = 1.0, session: Optional[requests.Session] = None):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def available(self) -> bool:
        try:
            resp = self.session.get(self.base_url, headers=METADATA_HEADERS, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug(f"metadata server not reachable: {e}")
            return False
        return resp.status_code == 200 and resp.headers.get("Metadata-Flavor") == "Google"

    def region(self) -> str:
        try:
            resp = self.session.get(self.base_url + "instance/zone", headers=METADATA_HEADERS, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise RegionError(f"failed to read zone from metadata server: {e}")
        return zone_to_region(resp.text)


class RegionResolver:
    """Resolves the region once per process; concurrent callers wait for the first lookup."""

    def __init__(self, metadata: Optional[MetadataClient] = None, override: str = "", default: str = DEFAULT_REGION):
        self.metadata = metadata or MetadataClient()
        self.override = override
        self.default = default or DEFAULT_REGION
        self._region: Optional[str] = None
        self._lock = threading.Lock()

    def resolve(self) -> str:
        if self._region:
            return self._region
        with self._lock:
            if not self._region:
                self._region = self._lookup()
                logger.info(f"using region {self._region}")
        return self._region

    def _lookup(self) -> str:
        if self.metadata.available():
            return self.metadata.region()
        if self.override:
            return self.override
        return self.default
