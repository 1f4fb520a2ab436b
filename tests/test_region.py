import threading

import pytest
import requests

from cloud_function_exporter.exceptions import RegionError
from cloud_function_exporter.region import MetadataClient, RegionResolver, zone_to_region

from conftest import FakeMetadata


def make_response(status=200, body=b"", headers=None):
    resp = requests.Response()
    resp.status_code = status
    resp._content = body
    resp.encoding = "utf-8"
    resp.headers.update(headers or {})
    resp.url = "http://metadata.google.internal/computeMetadata/v1/instance/zone"
    return resp


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requested = []

    def get(self, url, headers=None, timeout=None):
        self.requested.append((url, headers, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def test_region_from_metadata_is_cached():
    metadata = FakeMetadata(available=True, region="europe-west1")
    resolver = RegionResolver(metadata, override="asia-east1")

    assert resolver.resolve() == "europe-west1"
    assert resolver.resolve() == "europe-west1"
    assert metadata.available_calls == 1
    assert metadata.region_calls == 1


def test_env_override_when_metadata_unavailable():
    resolver = RegionResolver(FakeMetadata(available=False), override="asia-east1")
    assert resolver.resolve() == "asia-east1"


def test_default_when_nothing_else_is_available():
    resolver = RegionResolver(FakeMetadata(available=False), override="")
    assert resolver.resolve() == "us-central1"


def test_fetch_failure_is_raised_and_not_cached():
    metadata = FakeMetadata(available=True, error=RegionError("boom"))
    resolver = RegionResolver(metadata)

    with pytest.raises(RegionError):
        resolver.resolve()
    metadata.error = None
    assert resolver.resolve() == "europe-west1"
    assert metadata.region_calls == 2


def test_concurrent_resolution_queries_metadata_once():
    metadata = FakeMetadata(available=True)
    resolver = RegionResolver(metadata)
    barrier = threading.Barrier(10)
    results = []

    def worker():
        barrier.wait()
        results.append(resolver.resolve())

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == ["europe-west1"] * 10
    assert metadata.region_calls == 1


@pytest.mark.parametrize("zone,region", [
    ("projects/123/zones/us-central1-a", "us-central1"),
    ("europe-west4-b", "europe-west4"),
])
def test_zone_to_region(zone, region):
    assert zone_to_region(zone) == region


def test_zone_to_region_rejects_garbage():
    with pytest.raises(RegionError):
        zone_to_region("nozone")


def test_metadata_available_requires_flavor_header():
    good = MetadataClient(session=FakeSession(make_response(headers={"Metadata-Flavor": "Google"})))
    other = MetadataClient(session=FakeSession(make_response()))

    assert good.available() is True
    assert other.available() is False


def test_metadata_unreachable_is_unavailable():
    client = MetadataClient(timeout=0.5, session=FakeSession(error=requests.ConnectionError("no route")))
    assert client.available() is False
    assert client.session.requested[0][2] == 0.5


def test_metadata_region_reads_zone():
    session = FakeSession(make_response(body=b"projects/42/zones/europe-west1-b"))
    client = MetadataClient(session=session)

    assert client.region() == "europe-west1"
    url, headers, _ = session.requested[0]
    assert url.endswith("/instance/zone")
    assert headers == {"Metadata-Flavor": "Google"}


def test_metadata_region_http_error():
    client = MetadataClient(session=FakeSession(make_response(status=500)))
    with pytest.raises(RegionError):
        client.region()
