from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class PropertyStatus(StrEnum):
    AVAILABLE = "available"
    IN_DISCUSSION = "in_discussion"
    APPROVED = "approved"
    RENTED = "rented"
    ARCHIVED = "archived"


class Furnishing(StrEnum):
    FURNISHED = "furnished"
    SEMI_FURNISHED = "semi-furnished"
    UNFURNISHED = "unfurnished"


class LeadLabel(StrEnum):
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"
    LOST = "lost"
    CONVERTED = "converted"


class LeadStage(StrEnum):
    ENQUIRY = "enquiry"
    VIEWING_SCHEDULED = "viewing_scheduled"
    VIEWING_DONE = "viewing_done"
    NEGOTIATING = "negotiating"
    APPROVED = "approved"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class ReceiptStatus(StrEnum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PropertySnapshotJSON(BaseModel):
    title: str
    address: str
    description: str | None = None
    bedrooms: int
    bathrooms: int
    area: float
    furnishing: Furnishing


class DealTermJSON(BaseModel):
    key: str = Field(min_length=1, max_length=100)
    value: str = Field(max_length=500)


class StatusEffects(BaseModel):
    """Field changes that accompany a status change on a property."""

    status: PropertyStatus
    available: bool | None = None
    set_archived_at: bool = False
    clear_archived_at: bool = False


class StageEffects(BaseModel):
    stage: LeadStage
    label: LeadLabel | None = None
    stamp_converted_at: bool = False
    stamp_rejected_at: bool = False
    record_rejection_reason: bool = False
