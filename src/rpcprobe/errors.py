"""Exceptions raised by the harness.

Per-request failures never show up here; those are captured as Outcome values.
Only problems that should stop a run (bad configuration, unusable fixtures,
an unreachable head block) are raised.
"""


class ProbeError(Exception):
    """Base class for harness errors."""


class ConfigError(ProbeError):
    """Required setting missing or malformed. Detected before any network call."""


class FormatError(ProbeError, ValueError):
    """A fixture value failed its format check."""


class AddressNotFoundError(ProbeError):
    """Address has not sent any cross-layer messages in the scanned batches."""

    def __init__(self, message: str, suggestions: list | None = None):
        super().__init__(message)
        self.suggestions = suggestions or []


class OrchestrationError(ProbeError):
    """The run cannot continue, e.g. the base block could not be resolved."""
