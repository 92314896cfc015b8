"""
Error types raised along the analysis path.

Every error knows the HTTP status it maps to and how to render itself as the
JSON error envelope `{"error": ..., "details": ...}` returned by the routes.
"""

from typing import Any, Dict, Optional


class AnalysisError(Exception):
    """Base class for every failure the /analyze handler turns into a response."""

    status: int = 500

    def __init__(self, message: str, status: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.details = details

    def to_envelope(self) -> Dict[str, Any]:
        envelope: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            envelope["details"] = self.details
        return envelope


class ValidationError(AnalysisError):
    """Malformed or missing `images` field."""

    status = 400


class ConfigurationError(AnalysisError):
    """Missing credential or invalid service setting."""

    status = 500


class UpstreamError(AnalysisError):
    """
    The external model call failed or answered with an error status.

    The upstream status and body are forwarded to the caller unchanged.
    """

    def __init__(self, status: int, body: Any, message: str = "Model request failed"):
        super().__init__(message, status=status, details=body)
        self.body = body


class FormatterError(UpstreamError):
    """The reformat call itself failed upstream."""

    def __init__(self, status: int, body: Any):
        super().__init__(status, body, message="Formatter request failed")


class ExtractionError(AnalysisError):
    """No JSON object could be pulled out of the reply, even after reformatting."""

    status = 500
