import httpx
import pytest

from services.api_client import MetiorAPI

from tests.conftest import NOW


@pytest.fixture
def api_factory(app):
    def _make(token=None):
        return MetiorAPI(base_url="http://test", token=token, transport=httpx.ASGITransport(app=app))

    return _make


@pytest.mark.asyncio
async def test_health(api_factory):
    api = api_factory()
    try:
        assert (await api.health())["status"] == "ok"
    finally:
        await api.close()


@pytest.mark.asyncio
async def test_plugin_lifecycle_through_client(api_factory, seeded, alice_token):
    api = api_factory(alice_token)
    try:
        listing = await api.list_plugins()
        assert listing["is_authenticated"] is True

        installed = await api.install_plugin("company-metrics")
        assert installed["installation"]["enabled"] is True

        updated = await api.update_plugin("company-metrics", settings={"compact_currency": False})
        assert updated["installation"]["settings"] == {"compact_currency": False}

        components = await api.render_slot("company", "acme", "CompanyProfile.Header", now=NOW)
        assert [c["plugin_id"] for c in components] == ["company-metrics"]

        await api.set_override("company", "acme", [])
        assert (await api.get_override("company", "acme"))["has_override"] is True
        assert await api.render_slot("company", "acme", "CompanyProfile.Header") == []

        await api.clear_override("company", "acme")
        assert (await api.uninstall_plugin("company-metrics")) == {"success": True}
    finally:
        await api.close()


@pytest.mark.asyncio
async def test_write_errors_are_raised(api_factory):
    api = api_factory()
    try:
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await api.install_plugin("timeline")
        assert exc_info.value.response.status_code == 401
    finally:
        await api.close()


@pytest.mark.asyncio
async def test_read_errors_return_empty(api_factory, seeded):
    api = api_factory()
    try:
        assert await api.render_slot("company", "missing", "CompanyProfile.Header") == []
        assert await api.get_override("company", "acme") is None  # 401 for anonymous
    finally:
        await api.close()


@pytest.mark.asyncio
async def test_unreachable_backend_health():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    api = MetiorAPI(base_url="http://test", transport=httpx.MockTransport(handler))
    try:
        health = await api.health()
        assert health["status"] == "unavailable"
    finally:
        await api.close()
