"""Plugins endpoint -- catalog, installation lifecycle, entity overrides."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import Viewer, get_viewer
from backend.database import get_session
from backend.dependencies import get_plugin_service
from backend.schemas import (
    InstallationOut,
    InstallationResponse,
    InstallRequest,
    OverrideRequest,
    OverrideResponse,
    PluginInfo,
    PluginListResponse,
    SuccessResponse,
    UpdatePluginRequest,
)
from plugin_system.errors import ValidationError
from plugin_system.service import PluginService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plugins", tags=["plugins"])


@router.get("/", response_model=PluginListResponse)
async def list_plugins(
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
    plugins: PluginService = Depends(get_plugin_service),
):
    """Available plugins combined with the viewer's installation state."""
    items = await plugins.list_plugins(session, viewer.user_id)
    return PluginListResponse(
        plugins=[PluginInfo(**item) for item in items],
        is_authenticated=viewer.is_authenticated,
    )


@router.post("/", response_model=InstallationResponse)
async def install_plugin(
    req: InstallRequest,
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
    plugins: PluginService = Depends(get_plugin_service),
):
    installation = await plugins.install(session, viewer.user_id, req.plugin_id)
    manifest = plugins.registry.get_by_id(req.plugin_id)
    return InstallationResponse(
        installation=InstallationOut.model_validate(installation),
        manifest=PluginInfo(
            **manifest.model_dump(mode="json"),
            installed=True,
            enabled=installation.enabled,
            settings=installation.settings or {},
        ),
    )


@router.patch("/", response_model=InstallationResponse)
async def update_plugin(
    req: UpdatePluginRequest,
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
    plugins: PluginService = Depends(get_plugin_service),
):
    """Enable / disable an installed plugin and/or update its settings."""
    if req.enabled is None and req.settings is None:
        raise ValidationError(
            code="plugin.update_empty",
            message="Nothing to update: pass enabled and/or settings",
        )

    installation = None
    if req.enabled is not None:
        installation = await plugins.set_enabled(session, viewer.user_id, req.plugin_id, req.enabled)
    if req.settings is not None:
        installation = await plugins.set_settings(
            session, viewer.user_id, req.plugin_id, req.settings, merge=req.merge_settings
        )
    return InstallationResponse(installation=InstallationOut.model_validate(installation))


@router.delete("/", response_model=SuccessResponse)
async def uninstall_plugin(
    plugin_id: str = Query(..., min_length=1),
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
    plugins: PluginService = Depends(get_plugin_service),
):
    await plugins.uninstall(session, viewer.user_id, plugin_id)
    return SuccessResponse()


# ---------------------------------------------------------------------------
# Entity overrides
# ---------------------------------------------------------------------------

@router.get("/overrides/{entity_type}/{entity_id}", response_model=OverrideResponse)
async def get_override(
    entity_type: str,
    entity_id: str,
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
    plugins: PluginService = Depends(get_plugin_service),
):
    plugin_ids = await plugins.get_entity_override(session, viewer.user_id, entity_type, entity_id)
    return OverrideResponse(
        entity_type=entity_type,
        entity_id=entity_id,
        has_override=plugin_ids is not None,
        plugin_ids=plugin_ids or [],
    )


@router.put("/overrides/{entity_type}/{entity_id}", response_model=OverrideResponse)
async def set_override(
    entity_type: str,
    entity_id: str,
    req: OverrideRequest,
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
    plugins: PluginService = Depends(get_plugin_service),
):
    stored = await plugins.set_entity_override(
        session, viewer.user_id, entity_type, entity_id, req.plugin_ids
    )
    return OverrideResponse(
        entity_type=entity_type,
        entity_id=entity_id,
        has_override=True,
        plugin_ids=stored,
    )


@router.delete("/overrides/{entity_type}/{entity_id}", response_model=OverrideResponse)
async def clear_override(
    entity_type: str,
    entity_id: str,
    viewer: Viewer = Depends(get_viewer),
    session: AsyncSession = Depends(get_session),
    plugins: PluginService = Depends(get_plugin_service),
):
    await plugins.clear_entity_override(session, viewer.user_id, entity_type, entity_id)
    return OverrideResponse(entity_type=entity_type, entity_id=entity_id, has_override=False)
