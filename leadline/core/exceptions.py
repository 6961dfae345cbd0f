"""Custom exceptions for the application."""

from typing import Any


class AppException(Exception):
    """Base exception for application errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConfigurationError(AppException):
    """Raised when there's a configuration problem."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class ValidationError(AppException):
    """Raised when an inbound request is malformed."""

    status_code = 400

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, details=details)


class InvalidIdentifier(ValidationError):
    """Raised when a sender identifier can't be normalized to a phone number."""

    def __init__(self, raw_id: str, min_digits: int) -> None:
        super().__init__(
            f"Identifier must contain at least {min_digits} digits",
            code="INVALID_IDENTIFIER",
            details={"identifier": raw_id, "min_digits": min_digits},
        )


class NotFoundError(AppException):
    """Raised when a referenced record does not exist."""

    status_code = 404

    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(
            f"{resource} not found: {resource_id}",
            code="NOT_FOUND",
            details={"resource": resource, "id": resource_id},
        )


class SignatureError(AppException):
    """Raised when a webhook signature is missing or does not match."""

    status_code = 403

    def __init__(self, message: str = "Invalid webhook signature") -> None:
        super().__init__(message, code="SIGNATURE_ERROR")


class DuplicateKeyError(AppException):
    """Raised by storage when a uniqueness constraint rejects an insert."""

    status_code = 409

    def __init__(self, collection: str, key: str) -> None:
        super().__init__(
            f"Duplicate key in {collection}: {key}",
            code="DUPLICATE_KEY",
            details={"collection": collection, "key": key},
        )


class UpstreamError(AppException):
    """Raised when the completion service or channel provider fails."""

    status_code = 502

    def __init__(
        self,
        message: str,
        code: str = "UPSTREAM_ERROR",
        upstream_status: int | None = None,
        service: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        if service:
            details["service"] = service
        super().__init__(message, code=code, details=details)
        self.upstream_status = upstream_status


class UpstreamAuthError(UpstreamError):
    """Upstream rejected our credentials."""

    def __init__(self, message: str, upstream_status: int | None = 401, service: str | None = None) -> None:
        super().__init__(message, "UPSTREAM_AUTH_ERROR", upstream_status, service)


class UpstreamRateLimit(UpstreamError):
    """Upstream is throttling us."""

    status_code = 503

    def __init__(self, message: str, upstream_status: int | None = 429, service: str | None = None) -> None:
        super().__init__(message, "UPSTREAM_RATE_LIMIT", upstream_status, service)


class UpstreamServerError(UpstreamError):
    """Upstream failed or could not be reached."""

    def __init__(self, message: str, upstream_status: int | None = 500, service: str | None = None) -> None:
        super().__init__(message, "UPSTREAM_SERVER_ERROR", upstream_status, service)


def classify_upstream_error(
    status: int | None,
    message: str,
    service: str,
) -> UpstreamError:
    """Map an upstream HTTP status onto the normalized error taxonomy."""
    if status in (401, 403):
        return UpstreamAuthError(message, upstream_status=status, service=service)
    if status == 429:
        return UpstreamRateLimit(message, upstream_status=status, service=service)
    if status is None or status >= 500:
        return UpstreamServerError(message, upstream_status=status, service=service)
    return UpstreamError(message, upstream_status=status, service=service)
