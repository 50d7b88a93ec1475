"""
Plugin contracts -- manifests, loaded modules and slot components.

A plugin is described statically by a ``PluginManifest`` (identity, entity
types, declared slots) and materialised on demand into a ``PluginModule``
that maps slot names to components.

A component is any callable ``(data, context, settings) -> dict | None``.
It receives the entity payload, free-form page context and the viewer's
settings for that plugin, and returns a JSON-serialisable panel. ``None``
means "nothing to show".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EntityType(str, Enum):
    COMPANY = "company"
    INVESTOR = "investor"
    GLOBAL = "global"


# Entity kinds a viewer can attach an override to
OVERRIDABLE_ENTITY_TYPES = (EntityType.COMPANY, EntityType.INVESTOR)


class SlotSpec(BaseModel):
    """An extension point a plugin contributes to, e.g. ``CompanyProfile.Header``."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=128)
    description: str = ""


class PluginManifest(BaseModel):
    """Static plugin descriptor, immutable once registered."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=128)
    name: str
    description: str = ""
    version: str = "1.0.0"
    author: Optional[str] = None
    icon: Optional[str] = None
    entity_types: tuple[EntityType, ...] = ()
    slots: tuple[SlotSpec, ...] = ()

    def declares_slot(self, slot_name: str) -> bool:
        return any(slot.name == slot_name for slot in self.slots)

    def supports(self, entity_type: EntityType | str) -> bool:
        return EntityType(entity_type) in self.entity_types


SlotComponent = Callable[[Any, dict, dict], Optional[dict]]
LifecycleHook = Callable[[], Union[None, Awaitable[None]]]


@dataclass
class PluginModule:
    """The loaded, executable form of a plugin."""

    manifest: PluginManifest
    components: dict[str, SlotComponent] = field(default_factory=dict)
    initialize: Optional[LifecycleHook] = None
    cleanup: Optional[LifecycleHook] = None

    @property
    def plugin_id(self) -> str:
        return self.manifest.id


PluginFactory = Callable[[], PluginModule]


@dataclass(frozen=True)
class InstallationRecord:
    """A viewer's installation of one plugin, as read from the store."""

    user_id: str
    plugin_id: str
    enabled: bool
    settings: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedComponent:
    """One active component for a slot, in render order."""

    plugin_id: str
    slot_name: str
    component: SlotComponent
    settings: dict = field(default_factory=dict)


@dataclass(frozen=True)
class RenderedComponent:
    plugin_id: str
    slot_name: str
    content: dict
