"""Read-only diagnostics: configuration presence, datastore and recent errors."""

from typing import Any

import structlog
from fastapi import APIRouter

from leadline.api.dependencies import DispatcherDep, ErrorsDep, SettingsDep, StorageDep
from leadline.models import utcnow

logger = structlog.get_logger()

router = APIRouter(tags=["Diagnostics"])

SECRET_SETTINGS = (
    "whatsapp_access_token",
    "whatsapp_app_secret",
    "whatsapp_verify_token",
    "anthropic_api_key",
    "openai_api_key",
)
PLAIN_SETTINGS = (
    "whatsapp_phone_number_id",
    "whatsapp_api_version",
    "whatsapp_catalog_id",
    "llm_model",
    "storage_backend",
    "gcp_project_id",
    "default_tenant",
    "product_name",
)


def mask(value: str) -> str | None:
    """Short preview of a secret that never reveals it."""
    if not value:
        return None
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}...{value[-2:]}"


@router.get("/status/config")
async def config_status(settings: SettingsDep) -> dict[str, Any]:
    """Which settings are present, with masked previews of secrets."""
    values: dict[str, dict[str, Any]] = {}
    for name in SECRET_SETTINGS:
        value = getattr(settings, name)
        values[name] = {"present": bool(value), "preview": mask(value)}
    for name in PLAIN_SETTINGS:
        value = getattr(settings, name)
        values[name] = {"present": bool(value), "preview": value or None}

    missing = settings.missing_required()
    return {
        "status": "ok" if not missing else "incomplete",
        "environment": settings.app_env,
        "missing": missing,
        "settings": values,
    }


@router.get("/status/database")
async def database_status(storage: StorageDep) -> dict[str, Any]:
    """Datastore connectivity."""
    connected = False
    error: str | None = None
    try:
        connected = await storage.health_check()
    except Exception as e:
        error = str(e)
        logger.warning("Database status check failed", error=error)

    return {
        "status": "connected" if connected else "unavailable",
        "backend": type(storage).__name__,
        "error": error,
        "timestamp": utcnow().isoformat(),
    }


@router.get("/debug/errors")
async def recent_errors(errors: ErrorsDep, dispatcher: DispatcherDep) -> dict[str, Any]:
    """Latest recorded failures, newest first."""
    latest = errors.latest(10)
    return {
        "count": len(latest),
        "total_recorded": len(errors),
        "pending_deliveries": dispatcher.pending,
        "errors": latest,
    }
