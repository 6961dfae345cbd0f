"""API routes."""

from leadline.api.routes.admin import router as admin_router
from leadline.api.routes.diagnostics import router as diagnostics_router
from leadline.api.routes.health import router as health_router
from leadline.api.routes.messages import router as messages_router
from leadline.api.routes.webhooks import router as webhooks_router

__all__ = [
    "admin_router",
    "diagnostics_router",
    "health_router",
    "messages_router",
    "webhooks_router",
]
