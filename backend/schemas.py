"""Pydantic schemas for FastAPI request / response models."""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class Pagination(BaseModel):
    next_cursor: Optional[str] = None
    has_more: bool = False
    limit: int = 20


class PageResponse(BaseModel):
    data: list[dict]
    pagination: Pagination


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

class SearchHit(BaseModel):
    entity_type: str
    id: str
    permalink: str
    name: str
    description: str = ""


class SearchResponse(BaseModel):
    query: str
    results: list[SearchHit]
    page: int = 1
    limit: int = 10
    total: int = 0
    total_pages: int = 0


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------

class SlotInfo(BaseModel):
    name: str
    description: str = ""


class PluginInfo(BaseModel):
    id: str
    name: str
    description: str = ""
    version: str = ""
    author: Optional[str] = None
    icon: Optional[str] = None
    entity_types: list[str] = []
    slots: list[SlotInfo] = []
    installed: bool = False
    enabled: bool = False
    settings: dict[str, Any] = Field(default_factory=dict)


class PluginListResponse(BaseModel):
    plugins: list[PluginInfo]
    is_authenticated: bool


class InstallRequest(BaseModel):
    plugin_id: str = Field(..., min_length=1)


class UpdatePluginRequest(BaseModel):
    plugin_id: str = Field(..., min_length=1)
    enabled: Optional[bool] = None
    settings: Optional[dict[str, Any]] = None
    merge_settings: bool = False


class InstallationOut(BaseModel):
    plugin_id: str
    enabled: bool
    settings: dict[str, Any] = Field(default_factory=dict)
    installed_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class InstallationResponse(BaseModel):
    success: bool = True
    installation: InstallationOut
    manifest: Optional[PluginInfo] = None


class SuccessResponse(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Entity overrides
# ---------------------------------------------------------------------------

class OverrideRequest(BaseModel):
    plugin_ids: list[str] = Field(default_factory=list)


class OverrideResponse(BaseModel):
    entity_type: str
    entity_id: str
    has_override: bool
    plugin_ids: list[str] = []


# ---------------------------------------------------------------------------
# Slots
# ---------------------------------------------------------------------------

class RenderedSlotComponent(BaseModel):
    plugin_id: str
    slot_name: str
    content: dict[str, Any]


class SlotResponse(BaseModel):
    slot_name: str
    entity_type: str
    entity_id: str
    components: list[RenderedSlotComponent]
