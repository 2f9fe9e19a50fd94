"""Exception types raised by the acordos core."""

from __future__ import annotations


class AcordosError(ValueError):
    """Base class for user-facing failures of a single action."""


class ImportFileError(AcordosError):
    """The uploaded workbook or sheet could not be read."""


class InvalidPhoneError(AcordosError):
    """A phone number is too short to build a messaging link."""


class ValidationError(AcordosError):
    """A manual client or promise form is missing required fields."""
