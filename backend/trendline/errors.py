from __future__ import annotations


class TrendPipelineError(RuntimeError):
    """Base error carrying a user-facing message and optional raw detail lines."""

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details or [])


class IngestionError(TrendPipelineError):
    """Raised when a single evidence source cannot be turned into text."""


class RecoveryError(TrendPipelineError):
    """Raised when no structured object could be recovered from generator output."""


class PayloadValidationError(TrendPipelineError):
    """Raised when a recovered object fails the structural payload gate."""


class UpstreamError(TrendPipelineError):
    """Raised when the external generator cannot be reached."""


class GeneratorConfigurationError(TrendPipelineError):
    """Raised when the generator backend is missing required configuration."""
