"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from issue_intake.core.exceptions import (
    ApplicationException,
    ValidationException,
    ConfigurationException,
    ExternalServiceException,
    LLMException,
    TranscriptionException,
    TrackerException,
    ContextUnavailableException,
    StorageException,
)

__all__ = [
    "ApplicationException",
    "ValidationException",
    "ConfigurationException",
    "ExternalServiceException",
    "LLMException",
    "TranscriptionException",
    "TrackerException",
    "ContextUnavailableException",
    "StorageException",
]
