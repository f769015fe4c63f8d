from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from packages.lifecycle import (
    DealTermJSON,
    Furnishing,
    LeadLabel,
    LeadStage,
    PropertySnapshotJSON,
    PropertyStatus,
    ReceiptStatus,
)

from .models import NotificationCategory, NotificationType, Role


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class PartySummary(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    phone: str | None = None


class PropertySummary(BaseModel):
    id: uuid.UUID
    title: str
    address: str
    images: list[str] = Field(default_factory=list)


class UserResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    phone: str | None
    role: Role
    suspended: bool
    suspended_at: datetime | None
    created_at: datetime


class PropertyCreateRequest(BaseModel):
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=2000)
    address: str = Field(min_length=1, max_length=500)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    price: float = Field(ge=0)
    bedrooms: int = Field(ge=0, le=50)
    bathrooms: int = Field(ge=0, le=50)
    area: float = Field(ge=1)
    furnishing: Furnishing
    images: list[str] = Field(default_factory=list, max_length=10)


class PropertyUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=5, max_length=200)
    description: str | None = Field(default=None, min_length=20, max_length=2000)
    address: str | None = Field(default=None, min_length=1, max_length=500)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    price: float | None = Field(default=None, ge=0)
    bedrooms: int | None = Field(default=None, ge=0, le=50)
    bathrooms: int | None = Field(default=None, ge=0, le=50)
    area: float | None = Field(default=None, ge=1)
    furnishing: Furnishing | None = None
    available: bool | None = None
    images: list[str] | None = Field(default=None, max_length=10)


class PropertyStatusUpdateRequest(BaseModel):
    status: PropertyStatus


class PropertyResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: str
    address: str
    latitude: float
    longitude: float
    price: float
    bedrooms: int
    bathrooms: int
    area: float
    furnishing: Furnishing
    status: PropertyStatus
    allowed_transitions: list[PropertyStatus]
    available: bool
    confirmed_tenant_id: uuid.UUID | None
    rented_at: datetime | None
    archived_at: datetime | None
    deleted: bool
    deleted_at: datetime | None
    hidden: bool
    hidden_at: datetime | None
    hidden_reason: str | None
    images: list[str]
    rating_average: float
    rating_count: int
    views: int
    created_at: datetime
    updated_at: datetime


class PropertyPage(BaseModel):
    items: list[PropertyResponse]
    pagination: Pagination


class LeadPatchRequest(BaseModel):
    label: LeadLabel | None = None
    stage: LeadStage | None = None
    tenant_budget: float | None = Field(default=None, ge=0)
    preferred_move_in_date: date | None = None
    rejection_reason: str | None = Field(default=None, max_length=500)


class LeadNoteCreateRequest(BaseModel):
    text: str = Field(min_length=1, max_length=500)


class LeadNoteResponse(BaseModel):
    id: uuid.UUID
    author_user_id: uuid.UUID
    text: str
    noted_at: datetime


class LeadResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    tenant_id: uuid.UUID
    property_id: uuid.UUID
    tenant: PartySummary | None = None
    property: PropertySummary | None = None
    label: LeadLabel
    stage: LeadStage
    notes: list[LeadNoteResponse] = Field(default_factory=list)
    last_contact_at: datetime | None
    days_since_contact: int | None
    total_messages: int
    tenant_budget: float | None
    preferred_move_in_date: date | None
    converted_at: datetime | None
    rejected_at: datetime | None
    rejection_reason: str | None
    created_at: datetime
    updated_at: datetime


class LeadPage(BaseModel):
    items: list[LeadResponse]
    stats: dict[str, int]
    pagination: Pagination


class PropertyStatsResponse(BaseModel):
    total: int
    active: int
    rented: int
    archived: int
    by_status: dict[str, int]


class EngagementStatsResponse(BaseModel):
    total_views: int
    avg_views_per_property: float


class LeadStatsResponse(BaseModel):
    total: int
    hot: int
    warm: int
    cold: int
    lost: int
    converted: int
    conversion_rate: float


class OwnerAnalyticsResponse(BaseModel):
    properties: PropertyStatsResponse
    engagement: EngagementStatsResponse
    leads: LeadStatsResponse


class DealConfirmRequest(BaseModel):
    property_id: uuid.UUID
    tenant_id: uuid.UUID
    agreed_rent: float = Field(ge=0)
    security_deposit: float | None = Field(default=None, ge=0)
    lease_start_date: date | None = None
    lease_duration_months: int | None = Field(default=None, ge=1, le=120)
    notes: str | None = Field(default=None, max_length=1000)
    terms: list[DealTermJSON] = Field(default_factory=list, max_length=50)


class ReceiptCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class ReceiptResponse(BaseModel):
    id: uuid.UUID
    receipt_id: str
    property_id: uuid.UUID
    owner_id: uuid.UUID
    tenant_id: uuid.UUID
    property: PropertySummary | None = None
    owner: PartySummary | None = None
    tenant: PartySummary | None = None
    property_snapshot: PropertySnapshotJSON
    agreed_rent: float
    security_deposit: float
    lease_start_date: date | None
    lease_duration_months: int
    status: ReceiptStatus
    confirmed_at: datetime
    cancelled_at: datetime | None
    cancellation_reason: str | None
    notes: str | None
    terms: list[DealTermJSON]
    created_at: datetime


class ReceiptPage(BaseModel):
    items: list[ReceiptResponse]
    pagination: Pagination


class MessageCreateRequest(BaseModel):
    property_id: uuid.UUID
    receiver_id: uuid.UUID
    content: str = Field(min_length=1, max_length=2000)


class MessageResponse(BaseModel):
    id: uuid.UUID
    property_id: uuid.UUID
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    content: str
    sent_at: datetime
    read: bool


class NotificationResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    title: str
    body: str | None
    related_property_id: uuid.UUID | None
    related_user_id: uuid.UUID | None
    related_receipt_id: uuid.UUID | None
    action_url: str | None
    category: NotificationCategory
    read: bool
    read_at: datetime | None
    delivered_at: datetime | None
    created_at: datetime


class NotificationPage(BaseModel):
    items: list[NotificationResponse]
    unread_count: int
    pagination: Pagination


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int


class ListingVisibilityRequest(BaseModel):
    hide: bool
    reason: str | None = Field(default=None, max_length=500)


class AdminListingPage(BaseModel):
    items: list[PropertyResponse]
    counts: dict[str, int]
    pagination: Pagination


class AdminStatsResponse(BaseModel):
    users: dict[str, int]
    listings: dict[str, int]
    receipts: dict[str, int]


class ConversationResponse(BaseModel):
    property_id: uuid.UUID
    property: PropertySummary | None = None
    counterpart: PartySummary | None = None
    last_message: str
    last_message_at: datetime
    unread_count: int


class ReviewCreateRequest(BaseModel):
    property_id: uuid.UUID
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=10, max_length=500)


class ReviewUpdateRequest(BaseModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    comment: str | None = Field(default=None, min_length=10, max_length=500)


class ReviewResponse(BaseModel):
    id: uuid.UUID
    property_id: uuid.UUID
    tenant_id: uuid.UUID
    tenant: PartySummary | None = None
    rating: int
    comment: str
    helpful: int
    created_at: datetime
    updated_at: datetime


class ReviewPage(BaseModel):
    items: list[ReviewResponse]
    rating_average: float
    rating_count: int
    pagination: Pagination


class FavoriteToggleResponse(BaseModel):
    property_id: uuid.UUID
    is_favorite: bool


class FavoriteResponse(BaseModel):
    id: uuid.UUID
    property: PropertyResponse
    created_at: datetime
