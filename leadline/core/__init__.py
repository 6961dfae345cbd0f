"""Core module - configuration and utilities."""

from leadline.core.config import Settings, get_settings, settings
from leadline.core.diagnostics import RecentErrors
from leadline.core.exceptions import (
    AppException,
    ConfigurationError,
    DuplicateKeyError,
    InvalidIdentifier,
    NotFoundError,
    SignatureError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamRateLimit,
    UpstreamServerError,
    ValidationError,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "RecentErrors",
    "AppException",
    "ConfigurationError",
    "DuplicateKeyError",
    "InvalidIdentifier",
    "NotFoundError",
    "SignatureError",
    "UpstreamAuthError",
    "UpstreamError",
    "UpstreamRateLimit",
    "UpstreamServerError",
    "ValidationError",
]
