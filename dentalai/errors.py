from __future__ import annotations


class DentalAIError(Exception):
    """Base class for the errors the service layer raises on purpose."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(DentalAIError):
    """Missing entity, or a referral token that is unknown or expired."""


class ValidationFailed(DentalAIError):
    """Missing required field or a business rule (e.g. double booking) violated."""


class NotConfigured(DentalAIError):
    """The text-generation provider has no endpoint/key."""


class GenerationFailed(DentalAIError):
    """The upstream model call failed."""
