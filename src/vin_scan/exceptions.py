"""
VIN Scan Exceptions
===================

Exceptions for truly unexpected failures. Expected scan outcomes (no
candidate, low confidence, timeout, ...) are reported through
``ScanStatus`` on the returned ``ScanOutcome`` and never raised.
"""

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """
    Base exception for scan pipeline errors.

    Provides structured error information with error codes for programmatic handling.
    """

    def __init__(self, message: str, error_code: str = "PIPELINE_ERROR", context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class ImageLoadError(PipelineError):
    """Raised when an image handle cannot be turned into pixels."""

    def __init__(self, source: str, reason: str = "Unknown error"):
        super().__init__(
            message=f"Failed to load image: {source}. Reason: {reason}",
            error_code="IMAGE_LOAD_ERROR",
            context={"source": source, "reason": reason}
        )
        self.source = source
        self.reason = reason


class ConfigurationError(PipelineError):
    """Raised when the engine is misconfigured."""

    def __init__(self, message: str, config_key: Optional[str] = None, expected: Optional[str] = None):
        super().__init__(
            message=f"Configuration error: {message}",
            error_code="CONFIG_ERROR",
            context={"config_key": config_key, "expected": expected}
        )
        self.config_key = config_key
        self.expected = expected


class BackendError(PipelineError):
    """Raised when a recognition backend fails while processing a frame."""

    def __init__(self, message: str, backend: str, details: Optional[str] = None):
        super().__init__(
            message=f"Recognition backend error ({backend}): {message}",
            error_code="BACKEND_ERROR",
            context={"backend": backend, "details": details}
        )
        self.backend = backend
        self.details = details


class RecognitionUnavailable(BackendError):
    """
    Raised by an adapter whose engine is not installed or not initialized.

    The race coordinator treats this as an empty result for that path.
    """

    def __init__(self, backend: str, details: Optional[str] = None):
        super().__init__("engine not available", backend=backend, details=details)
        self.error_code = "RECOGNITION_UNAVAILABLE"
