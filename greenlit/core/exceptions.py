"""
Greenlit Custom Exceptions

Exception hierarchy used across the service. Every error carries the HTTP
status and the ``type`` tag it is rendered with at the route boundary.
"""

from typing import Any, Dict, Optional


class GreenlitError(Exception):
    """Base exception for all Greenlit errors."""

    status_code: int = 500
    error_type: str = "internal"

    def __init__(self, message: str, details: str = None, payload: Dict[str, Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.payload = payload or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Render as the JSON error body returned to clients."""
        body: Dict[str, Any] = {"error": self.message, "type": self.error_type}
        if self.details:
            body["details"] = self.details
        body.update(self.payload)
        return body


# =============================================================================
# REQUEST ERRORS
# =============================================================================

class ValidationFailure(GreenlitError):
    """Raised when a request body is missing a required field."""
    status_code = 400
    error_type = "validation"


class MissingPrerequisiteError(GreenlitError):
    """Raised when an upstream stage artifact is absent."""
    status_code = 400
    error_type = "missing_prerequisite"

    def __init__(self, stage: str, missing: str, hint: str):
        message = f"Cannot generate {stage}: {missing} is required"
        super().__init__(message, hint, {"missing": missing})
        self.stage = stage
        self.missing = missing


class InvalidStageError(ValidationFailure):
    """Raised when a stage name is not part of the pipeline."""

    def __init__(self, stage: str):
        super().__init__(f"Unknown pipeline stage: '{stage}'")


# =============================================================================
# RESOURCE ERRORS
# =============================================================================

class NotFoundError(GreenlitError):
    """Raised when a referenced id does not exist."""
    status_code = 404
    error_type = "not_found"


class GoneError(GreenlitError):
    """Raised when a resource existed but was revoked or expired."""
    status_code = 410
    error_type = "gone"


class UnauthorizedError(GreenlitError):
    """Raised when the caller has no rights over the resource."""
    status_code = 403
    error_type = "unauthorized"


# =============================================================================
# PROVIDER ERRORS
# =============================================================================

class UpstreamError(GreenlitError):
    """Raised when a generative or image provider call fails."""
    status_code = 500
    error_type = "upstream"

    def __init__(self, provider: str, reason: str, payload: Dict[str, Any] = None):
        message = f"{provider} request failed: {reason}"
        super().__init__(message, "Retry the request; the provider may be unavailable", payload)
        self.provider = provider
        self.reason = reason


class ResponseParseError(GreenlitError):
    """Raised when a model response cannot be coerced into the stage shape."""
    status_code = 500
    error_type = "parse"

    def __init__(self, reason: str, stage: Optional[str] = None, payload: Dict[str, Any] = None):
        details = f"{reason}. Regenerate the {stage}" if stage else reason
        super().__init__("Failed to parse AI response", details, payload)
        self.reason = reason
        self.stage = stage


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(GreenlitError):
    """Raised when there's an issue with configuration."""
    status_code = 500
    error_type = "configuration"


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration value is missing."""

    def __init__(self, setting: str, purpose: str):
        message = f"{setting} is not configured"
        super().__init__(message, f"Set {setting} to enable {purpose}")
        self.setting = setting
