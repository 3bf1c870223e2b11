"""Exception types raised by the domain layer and caught by the controller."""

from __future__ import annotations


class TricicloError(Exception):
    """Base class for all expected, user-facing failures."""


class ValidationError(TricicloError, ValueError):
    """An operation was refused before any state changed."""


class EmptySessionError(ValidationError):
    """Closing the day would record no sales and needs explicit confirmation."""


class ProtectedPresentationError(ValidationError):
    """A protected base presentation cannot be deleted."""


class ImportFormatError(TricicloError):
    """A backup file could not be parsed into a state document."""
