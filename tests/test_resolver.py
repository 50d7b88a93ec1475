"""Slot resolution against in-memory installation / override sources."""

from typing import Optional

import pytest

from plugin_system.catalog import build_plugin_service
from plugin_system.types import EntityType, InstallationRecord, ResolvedComponent

from tests.conftest import make_plugin

HEADER = "CompanyProfile.Header"
DETAILS = "CompanyProfile.Details"


class FakeInstallations:
    def __init__(self, records=(), error: Optional[Exception] = None):
        self.records = list(records)
        self.error = error

    async def list_for_user(self, user_id):
        if self.error:
            raise self.error
        return [r for r in self.records if r.user_id == user_id]


class FakeOverrides:
    def __init__(self, overrides=None, error: Optional[Exception] = None):
        self.overrides = dict(overrides or {})
        self.error = error

    async def get(self, user_id, entity_type, entity_id):
        if self.error:
            raise self.error
        return self.overrides.get((user_id, entity_type, entity_id))


def installed(*plugin_ids, user_id="u1", enabled=True, settings=None):
    return [InstallationRecord(user_id, pid, enabled, dict(settings or {})) for pid in plugin_ids]


def _service(*plugin_ids, **extra):
    plugins = [make_plugin(pid, slots=(HEADER, DETAILS)) for pid in plugin_ids]
    plugins.extend(extra.get("more", []))
    return build_plugin_service(plugins=plugins)


async def _resolve(service, installations, overrides=None, slot=HEADER, user_id="u1",
                   entity_type="company", entity_id="acme"):
    resolved = await service.resolver.resolve(
        slot,
        user_id,
        installations=installations,
        overrides=overrides or FakeOverrides(),
        entity_type=entity_type,
        entity_id=entity_id,
    )
    return [r.plugin_id for r in resolved]


@pytest.mark.asyncio
async def test_anonymous_viewer_gets_nothing():
    service = _service("a", "b")
    records = FakeInstallations(installed("a", "b", user_id=""))
    assert await _resolve(service, records, user_id=None) == []
    assert await _resolve(service, records, user_id="") == []


@pytest.mark.asyncio
async def test_output_follows_registry_order_not_installation_order():
    service = _service("a", "b", "c")
    records = FakeInstallations(installed("c", "a", "b"))
    assert await _resolve(service, records) == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_resolution_is_deterministic():
    service = _service("a", "b", "c")
    records = FakeInstallations(installed("b", "c", "a"))
    overrides = FakeOverrides({("u1", "company", "acme"): ["c", "a"]})

    first = await _resolve(service, records, overrides)
    second = await _resolve(service, records, overrides)
    assert first == second == ["a", "c"]


@pytest.mark.asyncio
async def test_disabled_installation_never_resolves():
    service = _service("a", "b")
    records = FakeInstallations(installed("a") + installed("b", enabled=False))
    assert await _resolve(service, records) == ["a"]

    # even when an override names it explicitly
    overrides = FakeOverrides({("u1", "company", "acme"): ["a", "b"]})
    assert await _resolve(service, records, overrides) == ["a"]


@pytest.mark.asyncio
async def test_override_intersects_never_unions():
    service = _service("a", "b", "c")
    records = FakeInstallations(installed("a", "b", "c"))
    overrides = FakeOverrides({("u1", "company", "acme"): ["a"]})

    assert await _resolve(service, records, overrides) == ["a"]
    # not installed plugins named in the override are not added
    overrides = FakeOverrides({("u1", "company", "acme"): ["a", "zzz"]})
    assert await _resolve(service, records, overrides) == ["a"]


@pytest.mark.asyncio
async def test_empty_override_hides_everything():
    service = _service("a", "b")
    records = FakeInstallations(installed("a", "b"))
    overrides = FakeOverrides({("u1", "company", "acme"): []})
    assert await _resolve(service, records, overrides) == []


@pytest.mark.asyncio
async def test_override_is_scoped_to_one_entity():
    service = _service("a", "b")
    records = FakeInstallations(installed("a", "b"))
    overrides = FakeOverrides({("u1", "company", "acme"): ["b"]})

    assert await _resolve(service, records, overrides, entity_id="acme") == ["b"]
    assert await _resolve(service, records, overrides, entity_id="other-co") == ["a", "b"]
    assert await _resolve(service, records, overrides, entity_type="investor") == ["a", "b"]


@pytest.mark.asyncio
async def test_override_ignored_without_entity():
    service = _service("a", "b")
    records = FakeInstallations(installed("a", "b"))
    overrides = FakeOverrides({("u1", "company", "acme"): ["b"]})
    assert await _resolve(service, records, overrides, entity_type=None, entity_id=None) == ["a", "b"]


@pytest.mark.asyncio
async def test_override_lookup_uses_canonical_entity_type():
    service = _service("a", "b")
    records = FakeInstallations(installed("a", "b"))
    overrides = FakeOverrides({("u1", "company", "acme"): ["b"]})

    assert await _resolve(service, records, overrides, entity_type=EntityType.COMPANY) == ["b"]


@pytest.mark.asyncio
async def test_unknown_entity_type_resolves_nothing():
    service = _service("a", "b")
    records = FakeInstallations(installed("a", "b"))
    assert await _resolve(service, records, entity_type="startup") == []


@pytest.mark.asyncio
async def test_only_plugins_declaring_the_slot_are_selected():
    service = _service("a", more=[make_plugin("header-only", slots=(HEADER,))])
    records = FakeInstallations(installed("a", "header-only"))

    assert await _resolve(service, records, slot=HEADER) == ["a", "header-only"]
    assert await _resolve(service, records, slot=DETAILS) == ["a"]
    assert await _resolve(service, records, slot="Unknown.Slot") == []


@pytest.mark.asyncio
async def test_installation_fetch_failure_degrades_to_empty():
    service = _service("a")
    records = FakeInstallations(error=RuntimeError("db down"))
    assert await _resolve(service, records) == []


@pytest.mark.asyncio
async def test_override_fetch_failure_degrades_to_empty():
    service = _service("a")
    records = FakeInstallations(installed("a"))
    overrides = FakeOverrides(error=RuntimeError("storage down"))
    assert await _resolve(service, records, overrides) == []


@pytest.mark.asyncio
async def test_failing_plugin_load_is_skipped():
    def boom():
        raise RuntimeError("init failed")

    service = build_plugin_service(plugins=[
        make_plugin("a", slots=(HEADER,)),
        make_plugin("broken", slots=(HEADER,), initialize=boom),
        make_plugin("c", slots=(HEADER,)),
    ])
    records = FakeInstallations(installed("a", "broken", "c"))
    assert await _resolve(service, records) == ["a", "c"]


@pytest.mark.asyncio
async def test_uninstalled_plugins_are_not_loaded():
    service = _service("a", "b")
    records = FakeInstallations(installed("a"))
    await _resolve(service, records)
    assert service.loader.loaded_ids == ["a"]


@pytest.mark.asyncio
async def test_resolved_component_carries_installation_settings():
    service = _service("a")
    records = FakeInstallations(installed("a", settings={"compact": False}))
    resolved = await service.resolver.resolve(
        HEADER, "u1", installations=records, overrides=FakeOverrides()
    )
    assert resolved[0].settings == {"compact": False}


@pytest.mark.asyncio
async def test_undeclared_component_is_never_selected():
    # timeline provides CompanyProfile.Summary in its module but does not declare it
    service = build_plugin_service()
    records = FakeInstallations(installed("timeline", "company-metrics"))

    assert await _resolve(service, records, slot="CompanyProfile.Summary") == []
    assert await _resolve(service, records) == ["company-metrics", "timeline"]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_render_isolates_failing_components():
    def exploding(data, context, settings):
        raise ValueError("bad data")

    def nothing(data, context, settings):
        return None

    service = build_plugin_service(plugins=[
        make_plugin("a", slots=(HEADER,)),
        make_plugin("b", slots=(HEADER,)),
        make_plugin("c", slots=(HEADER,)),
    ])
    records = FakeInstallations(installed("a", "b", "c"))
    resolved = await service.resolver.resolve(
        HEADER, "u1", installations=records, overrides=FakeOverrides()
    )
    resolved[1] = ResolvedComponent(
        plugin_id="b", slot_name=HEADER, component=exploding, settings={}
    )
    resolved.append(ResolvedComponent(plugin_id="d", slot_name=HEADER, component=nothing))

    rendered = await service.resolver.render(resolved, data={}, context={})
    assert [r.plugin_id for r in rendered] == ["a", "c"]
    assert rendered[0].content == {"plugin": "a", "settings": {}}


@pytest.mark.asyncio
async def test_render_awaits_async_components():
    async def async_component(data, context, settings):
        return {"name": data["name"], "now": context["now"]}

    service = build_plugin_service(plugins=[make_plugin("a", slots=(HEADER,))])
    resolved = await service.resolver.resolve(
        HEADER, "u1", installations=FakeInstallations(installed("a")), overrides=FakeOverrides()
    )
    resolved[0] = ResolvedComponent(plugin_id="a", slot_name=HEADER, component=async_component)

    rendered = await service.resolver.render(resolved, {"name": "Acme"}, {"now": "2024-01-01"})
    assert rendered[0].content == {"name": "Acme", "now": "2024-01-01"}
