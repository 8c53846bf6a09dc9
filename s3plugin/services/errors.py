from __future__ import annotations


class IntegrationError(Exception):
    """Uniform error surfaced to the host for every plugin failure."""


class ActionValidationError(IntegrationError):
    """Raised when an action configuration is missing a required field."""


class FileResolutionError(IntegrationError):
    """Raised when a file descriptor cannot be matched to a byte source."""
