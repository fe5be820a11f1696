"""Errors raised by the comparison console."""


class UrlCompareError(Exception):
    """Base class for comparison console errors."""


class ValidationError(UrlCompareError):
    """A required field is missing; the run is never dispatched."""


class TransportError(UrlCompareError):
    """The comparison service could not be reached or answered with a failure."""


class FormatError(UrlCompareError):
    """A payload could not be parsed for pretty-printing."""


class CatalogLoadError(UrlCompareError):
    """A baseline catalog listing could not be fetched."""
