"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from plugin_system.service import PluginService


def get_plugin_service(request: Request) -> PluginService:
    """The process-wide plugin service built at application startup."""
    return request.app.state.plugins
