"""Operational endpoints: training export, scheduling and knowledge search."""

from datetime import date
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from leadline.api.dependencies import ContainerDep
from leadline.models import Tenant

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Admin"])


# ==================== Pydantic Schemas ====================


class RetrainRequest(BaseModel):
    hours: int = 24
    tenant: Tenant | None = None


class BookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lead_id: str = Field(alias="leadId")
    booking_type: str = Field(default="demo", alias="bookingType")


# ==================== Training ====================


@router.post("/nightly/retrain")
async def nightly_retrain(data: RetrainRequest, container: ContainerDep) -> dict[str, Any]:
    """Aggregate recent conversations into training pairs."""
    training_data = await container.training.aggregate(data.hours, data.tenant)
    return {
        "status": "success",
        **training_data,
        "note": "Training data aggregated. Hand it to the fine-tuning pipeline.",
    }


# ==================== Scheduling ====================


@router.post("/schedule/booking")
async def create_booking_link(data: BookingRequest, container: ContainerDep) -> dict[str, Any]:
    """Create a booking link for a known lead."""
    lead = await container.identity.get_identity(data.lead_id)
    link = container.booking.generate_booking_link(lead.id, data.booking_type)
    return {
        "status": "success",
        "booking_url": link.url,
        "booking_type": link.booking_type,
        "expires_at": link.expires_at.isoformat(),
    }


@router.get("/schedule/slots")
async def list_slots(
    container: ContainerDep,
    day: Annotated[date | None, Query(alias="date")] = None,
) -> dict[str, Any]:
    """Available slots for a day (tomorrow by default)."""
    slots = container.booking.available_slots(day)
    return {
        "status": "success",
        "slots": [{"date": s.date, "time": s.time, "available": s.available} for s in slots],
    }


# ==================== Knowledge Base ====================


@router.get("/knowledge/search")
async def search_knowledge(
    container: ContainerDep,
    q: Annotated[str, Query(min_length=1)],
    tenant: Tenant | None = None,
    limit: Annotated[int, Query(ge=1, le=10)] = 3,
) -> dict[str, Any]:
    """Search the knowledge base."""
    tenant = tenant or Tenant(container.settings.default_tenant)
    snippets = await container.knowledge.search(q, tenant, limit=limit)

    return {
        "query": q,
        "results": [
            {
                "id": s.id,
                "category": s.category,
                "question": s.question,
                "answer": s.answer,
                "content": s.content,
            }
            for s in snippets
        ],
    }
