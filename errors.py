"""Exception hierarchy for the election research pipeline."""

from __future__ import annotations

from typing import Optional


class ElectionSourceError(Exception):
    """Base class for every error raised by the pipeline."""


class ConfigurationError(ElectionSourceError):
    """Missing or rejected credentials. Aborts the whole run."""


class GatewayError(ElectionSourceError):
    """The generation service could not produce a reply."""


class TransportError(GatewayError):
    """Connection failure, timeout or rate limit on the way to the provider."""


class MalformedResponseError(ElectionSourceError, ValueError):
    """No JSON object could be isolated or parsed from a reply."""


class SchemaViolation(ElectionSourceError, ValueError):
    """A parsed element is missing a hard-required field or has the wrong shape."""


class SeedSourceError(ElectionSourceError):
    """Seed elections could not be read from a CSV file or the Civic API."""


class StageFailure(ElectionSourceError):
    """A whole pipeline stage produced no usable output."""

    def __init__(self, stage: str, message: str, seed_name: Optional[str] = None):
        self.stage = stage
        self.seed_name = seed_name
        prefix = f"[{stage}]"
        if seed_name:
            prefix = f"{prefix} {seed_name}:"
        super().__init__(f"{prefix} {message}")
