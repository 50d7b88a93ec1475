"""
API Client -- Thin async HTTP client for the Metior FastAPI backend.

Covers the plugin endpoints (catalog, install lifecycle, entity overrides)
and rendered profile slots.

Configuration:
    BACKEND_URL env var or fallback to http://localhost:8000
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

import config_env

logger = logging.getLogger(__name__)

TIMEOUT = 30.0


class MetiorAPI:
    """Async HTTP client for the Metior backend.

    Read calls return None on any error; write calls raise
    ``httpx.HTTPStatusError`` so callers can see 401 / 404 / 422.
    """

    def __init__(
        self,
        base_url: str = config_env.BACKEND_URL,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=TIMEOUT,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get(self, path: str, **params) -> Optional[dict]:
        client = await self._get_client()
        try:
            resp = await client.get(path, params={k: v for k, v in params.items() if v is not None})
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("GET %s -> %d: %s", path, e.response.status_code, e.response.text)
            return None
        except Exception as e:
            logger.error("GET %s failed: %s", path, e)
            return None

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health(self) -> dict:
        """Check if the backend is alive."""
        client = await self._get_client()
        try:
            resp = await client.get("/health")
            resp.raise_for_status()
            return resp.json()
        except Exception as e:
            logger.warning("Backend health check failed: %s", e)
            return {"status": "unavailable", "error": str(e)}

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    async def list_plugins(self) -> Optional[dict]:
        return await self._get("/plugins/")

    async def install_plugin(self, plugin_id: str) -> dict:
        client = await self._get_client()
        resp = await client.post("/plugins/", json={"plugin_id": plugin_id})
        resp.raise_for_status()
        return resp.json()

    async def update_plugin(
        self,
        plugin_id: str,
        enabled: Optional[bool] = None,
        settings: Optional[dict] = None,
        merge_settings: bool = False,
    ) -> dict:
        payload: dict = {"plugin_id": plugin_id, "merge_settings": merge_settings}
        if enabled is not None:
            payload["enabled"] = enabled
        if settings is not None:
            payload["settings"] = settings

        client = await self._get_client()
        resp = await client.patch("/plugins/", json=payload)
        resp.raise_for_status()
        return resp.json()

    async def uninstall_plugin(self, plugin_id: str) -> dict:
        client = await self._get_client()
        resp = await client.delete("/plugins/", params={"plugin_id": plugin_id})
        resp.raise_for_status()
        return resp.json()

    # ------------------------------------------------------------------
    # Entity overrides
    # ------------------------------------------------------------------

    async def get_override(self, entity_type: str, entity_id: str) -> Optional[dict]:
        return await self._get(f"/plugins/overrides/{entity_type}/{entity_id}")

    async def set_override(self, entity_type: str, entity_id: str, plugin_ids: list[str]) -> dict:
        client = await self._get_client()
        resp = await client.put(
            f"/plugins/overrides/{entity_type}/{entity_id}",
            json={"plugin_ids": plugin_ids},
        )
        resp.raise_for_status()
        return resp.json()

    async def clear_override(self, entity_type: str, entity_id: str) -> dict:
        client = await self._get_client()
        resp = await client.delete(f"/plugins/overrides/{entity_type}/{entity_id}")
        resp.raise_for_status()
        return resp.json()

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    async def render_slot(
        self,
        entity_type: str,
        permalink: str,
        slot_name: str,
        now: Optional[str] = None,
    ) -> list[dict]:
        """Rendered components for one profile slot ([] on any error)."""
        collection = "companies" if entity_type == "company" else "investors"
        data = await self._get(f"/{collection}/{permalink}/slots/{slot_name}", now=now)
        return data["components"] if data else []


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_api_client: Optional[MetiorAPI] = None


def get_api_client() -> MetiorAPI:
    """Get or create the global API client singleton."""
    global _api_client
    if _api_client is None:
        _api_client = MetiorAPI()
    return _api_client
