"""Custom exceptions for livedraw."""

from typing import Optional


class LiveDrawError(Exception):
    """Base exception for all application errors.

    Attributes:
        message: Human-readable error description
        error_code: Optional error code for programmatic handling
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ConfigurationError(LiveDrawError):
    """Error in configuration or settings.

    Attributes:
        config_key: The configuration key that caused the error (if applicable)
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, error_code="CONFIG_ERROR")
        self.config_key = config_key


class ValidationError(LiveDrawError):
    """Error validating inputs or parameters.

    Attributes:
        field: The field that failed validation (if applicable)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, error_code="VALIDATION_ERROR")
        self.field = field


class ImageLoadError(LiveDrawError):
    """An uploaded or preset image could not be decoded."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message, error_code="IMAGE_LOAD_ERROR")
        self.source = source

    def __str__(self) -> str:
        if self.source:
            return f"{super().__str__()} (source: {self.source})"
        return super().__str__()


class CaptureError(LiveDrawError):
    """The canvas/image composite could not be captured."""

    def __init__(self, message: str):
        super().__init__(message, error_code="CAPTURE_ERROR")


class InferenceError(LiveDrawError):
    """Error calling the diffusion inference endpoint.

    Attributes:
        status_code: HTTP status returned by the endpoint, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, error_code="INFERENCE_ERROR")
        self.status_code = status_code


class EnhancementError(LiveDrawError):
    """Error calling the generative enhancement API, or no image came back."""

    def __init__(self, message: str):
        super().__init__(message, error_code="ENHANCE_ERROR")


class SessionNotFoundError(LiveDrawError):
    """No editor session exists with the given id."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}", error_code="SESSION_NOT_FOUND")
        self.session_id = session_id
