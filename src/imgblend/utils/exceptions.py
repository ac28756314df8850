"""
Custom exceptions for imgblend.

This module defines all custom exceptions used throughout the application.
"""


class BlendError(Exception):
    """Base exception for all imgblend errors."""

    pass


class ValidationError(BlendError):
    """Raised when input validation fails (image count, file type, busy session)."""

    def __init__(self, message: str, field: str = "") -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of the field that failed validation (optional)
        """
        self.field = field
        super().__init__(message)


class APIError(BlendError):
    """Raised when the image service answers with an error or an unusable body."""

    def __init__(self, message: str, status_code: int = 0, response: str = "") -> None:
        """
        Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response: Raw API response (if available)
        """
        self.status_code = status_code
        self.response = response
        super().__init__(message)


class NetworkError(BlendError):
    """Raised when a network operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """
        Initialize network error.

        Args:
            message: Error message
            original_error: The underlying exception that caused this error
        """
        self.original_error = original_error
        super().__init__(message)


class RequestTimeoutError(BlendError):
    """Raised when the request to the image service times out."""

    pass


class ConfigurationError(BlendError):
    """Raised when there is a configuration problem."""

    pass


class ImageProcessingError(BlendError):
    """Raised when a reference image cannot be read, sniffed, or encoded."""

    def __init__(self, message: str, image_path: str = "") -> None:
        """
        Initialize image processing error.

        Args:
            message: Error message
            image_path: Path (or filename) of the image that caused the error
        """
        self.image_path = image_path
        super().__init__(message)


class GenerationError(BlendError):
    """Raised by the blend client when a generation attempt fails.

    The message is always prefixed with "Failed to generate image: ".
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        self.original_error = original_error
        super().__init__(message)
