"""
Error handling module for the build webhook.

This module provides the error hierarchy used to turn per-request failures
into denials and to abort startup on unrecoverable errors.
"""

from .webhook_errors import (
    DecodeError,
    DefaultingError,
    EncodingError,
    GenerationError,
    KubernetesAPIError,
    MissingCredentialError,
    RegistrationConflictError,
    ShapeError,
    TransportError,
    ValidationError,
    WebhookError,
)

__all__ = [
    "WebhookError",
    "DecodeError",
    "ShapeError",
    "EncodingError",
    "GenerationError",
    "ValidationError",
    "DefaultingError",
    "MissingCredentialError",
    "KubernetesAPIError",
    "RegistrationConflictError",
    "TransportError",
]
