"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. Every one of them is fatal to a
triage run; degraded paths (transcription, classifier parsing, name
resolution) never raise.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationException(ApplicationException):
    """Exception for malformed submissions."""


class ConfigurationException(ApplicationException):
    """Exception for missing credentials or settings."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        self.reason = message
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


class TranscriptionException(ExternalServiceException):
    """Exception for speech-to-text failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Transcription", message, details)


class TrackerException(ExternalServiceException):
    """Exception for issue tracker (Linear) failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Linear", message, details)


class ContextUnavailableException(TrackerException):
    """Raised when teams/projects/users cannot be listed from the tracker."""


class StorageException(ExternalServiceException):
    """Exception for attachment storage failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Storage", message, details)
