"""
Webhook error hierarchy with categorization and admission status codes.

This module defines the error types used throughout the build webhook,
separating per-request failures (always converted to a denial) from startup
failures (fatal to the run loop).
"""


class WebhookError(Exception):
    """
    Base error class for all webhook-related exceptions.

    Provides categorization, the HTTP-style status code reported on denial,
    and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        status_code: int = 400,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize webhook error.

        Args:
            message: Human-readable error description
            category: Error category (decode, shape, generation, validation, ...)
            status_code: Status code reported when the error denies a request
            user_action: What the user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.status_code = status_code
        self.user_action = user_action
        self.cause = cause

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class DecodeError(WebhookError):
    """Malformed admission request, unknown kind or unknown resource field."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message=message, category="decode", cause=cause)


class ShapeError(WebhookError):
    """Document lacks the expected spec sub-structure."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message=message, category="shape", cause=cause)


class EncodingError(WebhookError):
    """Document cannot be normalized to a comparable JSON form."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message=message, category="encoding", cause=cause)


class GenerationError(WebhookError):
    """Failure computing or bumping the spec generation."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message=message, category="generation", cause=cause)


class ValidationError(WebhookError):
    """Business-rule violation reported by a kind validator.

    The message is shown to the user verbatim.
    """

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message=message, category="validation")


class DefaultingError(WebhookError):
    """Failure reported by a kind defaulter, shown to the user verbatim."""

    def __init__(self, message: str):
        super().__init__(message=message, category="defaulting")


class MissingCredentialError(WebhookError):
    """Serving certificate material is incomplete or unavailable."""

    def __init__(self, message: str, user_action: str | None = None):
        super().__init__(
            message=message,
            category="credential",
            status_code=500,
            user_action=user_action
            or "Delete the certificate secret so it is regenerated, or restore the missing key",
        )


class KubernetesAPIError(WebhookError):
    """Error communicating with Kubernetes API."""

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        status: int | None = None,
        cause: Exception | None = None,
    ):
        if reason:
            message = f"{message} (reason: {reason})"
        self.reason = reason
        self.status = status
        super().__init__(
            message=message,
            category="kubernetes",
            status_code=500,
            user_action="Check RBAC permissions and cluster connectivity",
            cause=cause,
        )


class RegistrationConflictError(KubernetesAPIError):
    """Optimistic-concurrency conflict while updating the webhook registration."""

    def __init__(self, name: str, cause: Exception | None = None):
        self.name = name
        super().__init__(
            f"Conflict updating webhook configuration {name}",
            reason="Conflict",
            status=409,
            cause=cause,
        )


class TransportError(WebhookError):
    """Listener or network failure of the admission server."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(
            message=message,
            category="transport",
            status_code=500,
            user_action="Check the listen address, port and TLS material",
            cause=cause,
        )
