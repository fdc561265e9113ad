"""
Error taxonomy for the power monitor.

Every failure the service distinguishes is a subclass of :class:`MonitorError`
carrying a short ``classification`` string. The polling supervisor logs that
string so a failed tick can be diagnosed from the logs alone (timeout vs
connection vs protocol vs persistence).

CHANGELOG:
- 2026-10-02: Initial creation (STORY-002)

TODO:
- None
"""


class MonitorError(Exception):
    """Base class for all power monitor errors."""

    classification: str = "other"


class ProviderError(MonitorError):
    """The device telemetry provider could not complete a request."""


class ProviderTimeout(ProviderError):
    """The provider did not answer within the configured timeout."""

    classification = "timeout"


class ProviderConnectionError(ProviderError):
    """The provider connection was refused, reset or otherwise broken."""

    classification = "connection"


class ProviderProtocolError(ProviderError):
    """The provider answered with an unexpected response shape."""

    classification = "protocol"


class PersistenceFailure(MonitorError):
    """The telemetry store is unavailable or rejected a read/write."""

    classification = "persistence"


class ValidationFailure(MonitorError):
    """A request carried malformed input (e.g. a non-boolean switch state)."""

    classification = "validation"


def classify(exc: BaseException) -> str:
    """Return the classification string for any exception.

    Known :class:`MonitorError` subclasses report their own classification;
    bare :class:`TimeoutError` and :class:`ConnectionError` raised below the
    provider layer are mapped to ``timeout`` and ``connection``. Anything
    else is ``other``.
    """
    if isinstance(exc, MonitorError):
        return exc.classification
    if isinstance(exc, TimeoutError):
        return "timeout"
    if isinstance(exc, ConnectionError):
        return "connection"
    return "other"
