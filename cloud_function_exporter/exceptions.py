"""Exception types raised by cloud_function_exporter."""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ValidationError(ExporterError):
    """Invalid configuration or scrape target."""


class RegionError(ExporterError):
    """The metadata server reported itself available but the region lookup failed."""


class ScrapeError(ExporterError):
    """A description or collection phase could not produce metric families.

    `reason` is used as the label value on the phase failure counter.
    """

    reason = "scrape"


class InvocationError(ScrapeError):
    reason = "invocation"


class DecodeError(ScrapeError):
    reason = "decode"


class ExpositionError(ScrapeError):
    reason = "exposition"
