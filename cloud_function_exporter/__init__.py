from .client import FunctionClient, Target
from .collector import FunctionCollector
from .config import Config
from .exceptions import (
    DecodeError,
    ExporterError,
    ExpositionError,
    InvocationError,
    RegionError,
    ScrapeError,
    ValidationError,
)
from .logger import Logger, get_logger
from .metrics import ExporterMetrics
from .parser import MetricFamily, parse_payload
from .region import RegionResolver
from .registry import Descriptor, DescriptorRegistry

__all__ = [
    "Config",
    "DecodeError",
    "Descriptor",
    "DescriptorRegistry",
    "ExporterError",
    "ExporterMetrics",
    "ExpositionError",
    "FunctionClient",
    "FunctionCollector",
    "InvocationError",
    "Logger",
    "MetricFamily",
    "RegionError",
    "RegionResolver",
    "ScrapeError",
    "Target",
    "ValidationError",
    "get_logger",
    "parse_payload",
]
