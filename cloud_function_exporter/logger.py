"""Logger API: normal logs + JSON metric logs + Prometheus integration."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import Config
from .metrics import NAMESPACE, ExporterMetrics, default_metrics

PACKAGE_LOGGER = "cloud_function_exporter"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stdout handler to the package logger."""
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    pkg_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not pkg_logger.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
        pkg_logger.addHandler(ch)
    return pkg_logger


class Logger:
    def __init__(self, cfg: Config, metrics: Optional[ExporterMetrics] = None):
        self.cfg = cfg
        self.metrics = metrics or default_metrics()
        self.logger = setup_logging(cfg.LOG_LEVEL)

    def log(self, message: str, info: Optional[Dict[str, Any]] = None, level: str = "info") -> None:
        """Normal application log that follows LOG_LEVEL."""
        log_method = getattr(self.logger, level.lower(), self.logger.info)
        if info:
            log_method(f"{message} | info={info}")
        else:
            log_method(message)

    def json_metric(self, name: str, value: float = 1.0, labels: Optional[Dict[str, str]] = None, info: Optional[Dict[str, Any]] = None, message: Optional[str] = None) -> None:
        """Emit a log-based metric as one JSON line on STDOUT.

        Printed regardless of LOG_LEVEL whenever METRICS_ENABLED is set, so
        that log-based metrics keep working with quiet log levels.
        """
        if not self.cfg.METRICS_ENABLED:
            return

        entry = {
            "info": info or {},
            "app_name": self.cfg.APP_NAME,
            "metric_name": name,
            "metric_value": value,
            "labels": labels or {},
            "event_type": "metric",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if message:
            entry["message"] = message

        print(json.dumps(entry), flush=True)

    def metric(self, name: str, value: float = 1.0, labels: Optional[Dict[str, str]] = None, message: Optional[str] = None, info: Optional[Dict[str, Any]] = None) -> None:
        """Increment the exporter counter `name` and emit the matching JSON metric line."""
        self.metrics.increment(name, labels=labels, value=value)
        self.json_metric(f"{NAMESPACE}_{name}_total", value, labels=labels, info=info, message=message)


def get_logger(cfg: Config, metrics: Optional[ExporterMetrics] = None) -> Logger:
    cfg.validate()
    return Logger(cfg, metrics)
