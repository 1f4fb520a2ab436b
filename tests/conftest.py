import json
import os
import sys

import pytest
from prometheus_client import CollectorRegistry

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cloud_function_exporter import Config, DescriptorRegistry, ExporterMetrics, Logger
from cloud_function_exporter.exceptions import InvocationError


def payload(text):
    """Wrap exposition text the way a function returns it."""
    return json.dumps({"result": text})


class FakeClient:
    """Stands in for FunctionClient; returns the given payloads in order, repeating the last one."""

    def __init__(self, *payloads, error=None, region="us-central1"):
        self.payloads = list(payloads)
        self.error = error
        self.region = region
        self.calls = []
        self.closed = False

    def close(self):
        self.closed = True

    def resource_name(self, function):
        return f"projects/test/locations/{self.region}/functions/{function}"

    def invoke(self, function):
        self.calls.append(function)
        if self.error is not None:
            raise InvocationError(self.error)
        if len(self.payloads) > 1:
            return self.payloads.pop(0)
        return self.payloads[0]


class FakeMetadata:
    def __init__(self, available=True, region="europe-west1", error=None):
        self._available = available
        self._region = region
        self.error = error
        self.available_calls = 0
        self.region_calls = 0

    def available(self):
        self.available_calls += 1
        return self._available

    def region(self):
        self.region_calls += 1
        if self.error is not None:
            raise self.error
        return self._region


@pytest.fixture
def prom_registry():
    return CollectorRegistry()


@pytest.fixture
def exporter_metrics(prom_registry):
    return ExporterMetrics(prom_registry)


@pytest.fixture
def cfg(monkeypatch, tmp_path):
    for key in ("APP_NAME", "METRICS_ENABLED", "LOG_LEVEL", "TELEMETRY_PATH", "LISTEN_ADDRESS",
                "GCP_PROJECT_ID", "CLOUDSDK_FUNCTIONS_REGION", "FUNCTION_REGION", "CONFIG_FILE",
                "DEFAULT_REGION", "METADATA_TIMEOUT", "INVOKE_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return Config()


@pytest.fixture
def log(cfg, exporter_metrics):
    return Logger(cfg, exporter_metrics)


@pytest.fixture
def descriptors():
    return DescriptorRegistry()
