"""Configuration loader for cloud_function_exporter.

Reads defaults, `.configs` (environment variables format) and OS environment variables (env wins).
A `.env` file in the working directory is loaded into the environment first.
"""
import os
from typing import Optional, Tuple

from dotenv import load_dotenv

from .exceptions import ValidationError

load_dotenv()

DEFAULT_REGION = "us-central1"


def _float(key: str, value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number, got {value!r}")


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split `host:port` (host may be empty, e.g. `:9408`) into a bind tuple."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValidationError(f"invalid listen address {address!r}, expected host:port")
    port_num = int(port)
    if not 0 <= port_num <= 65535:
        raise ValidationError(f"invalid port in listen address {address!r}")
    return host.strip("[]"), port_num


class Config:
    def __init__(self, config_file: Optional[str] = None):
        # defaults
        self.APP_NAME = "cloud_function_exporter"
        self.LISTEN_ADDRESS = ":9408"
        self.TELEMETRY_PATH = "/metrics"
        self.LOG_LEVEL = "INFO"
        self.METRICS_ENABLED = True
        self.GCP_PROJECT_ID = ""
        self.DEFAULT_REGION = DEFAULT_REGION
        self.METADATA_TIMEOUT = 1.0
        self.INVOKE_TIMEOUT = 0.0

        # load file if provided (environment variables format: KEY=VALUE)
        cfg_path = config_file or os.getenv("CONFIG_FILE") or os.path.join(os.getcwd(), ".configs")
        if cfg_path and os.path.isfile(cfg_path):
            try:
                with open(cfg_path, "r") as f:
                    for line in f:
                        line = line.strip()
                        # skip empty lines and comments
                        if not line or line.startswith('#'):
                            continue
                        if '=' in line:
                            key, value = line.split('=', 1)
                            key = key.strip()
                            value = value.strip().strip('"').strip("'")
                            if hasattr(self, key):
                                setattr(self, key, value)
            except OSError as e:
                raise ValidationError(f"Failed to read config file {cfg_path}: {e}")

        # environment overrides
        self.APP_NAME = os.getenv("APP_NAME", self.APP_NAME)
        self.LISTEN_ADDRESS = os.getenv("LISTEN_ADDRESS", self.LISTEN_ADDRESS)
        self.TELEMETRY_PATH = os.getenv("TELEMETRY_PATH", self.TELEMETRY_PATH)
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", self.LOG_LEVEL).upper()
        self.METRICS_ENABLED = os.getenv("METRICS_ENABLED", str(self.METRICS_ENABLED)).lower() == "true"
        self.GCP_PROJECT_ID = os.getenv("GCP_PROJECT_ID", self.GCP_PROJECT_ID)
        self.DEFAULT_REGION = os.getenv("DEFAULT_REGION", self.DEFAULT_REGION)
        self.METADATA_TIMEOUT = _float("METADATA_TIMEOUT", os.getenv("METADATA_TIMEOUT", self.METADATA_TIMEOUT))
        self.INVOKE_TIMEOUT = _float("INVOKE_TIMEOUT", os.getenv("INVOKE_TIMEOUT", self.INVOKE_TIMEOUT))

    @property
    def region_override(self) -> str:
        """Region taken from the environment, empty when unset."""
        return os.getenv("CLOUDSDK_FUNCTIONS_REGION") or os.getenv("FUNCTION_REGION") or ""

    def validate(self) -> None:
        if not self.APP_NAME:
            raise ValidationError("APP_NAME must be set")
        if not self.TELEMETRY_PATH or not self.TELEMETRY_PATH.startswith("/") or self.TELEMETRY_PATH == "/":
            raise ValidationError(f"TELEMETRY_PATH must be an absolute path other than '/', got {self.TELEMETRY_PATH!r}")
        parse_listen_address(self.LISTEN_ADDRESS)
        if self.METADATA_TIMEOUT <= 0:
            raise ValidationError("METADATA_TIMEOUT must be positive")
        if self.INVOKE_TIMEOUT < 0:
            raise ValidationError("INVOKE_TIMEOUT must not be negative")
