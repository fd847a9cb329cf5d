"""Locations unit tests."""

import asyncio
import json

import httpx
import pytest

from farmreg.services.locations import api, config
from farmreg.services.locations.api import (
    AdministrativeLevel,
    AdministrativeUnit,
    BundledTier,
    HierarchyDataSource,
    LocationPath,
    LocationResolver,
    RemoteTier,
    SyntheticTier,
    TierResult,
    UnitSource,
    format_name,
)

BASE_URL = "http://locations.test"


@pytest.fixture
def source(sample_tree):
    return HierarchyDataSource(tree=sample_tree)


@pytest.fixture
def resolver(source):
    return LocationResolver(source=source, remote_base_url=None, allow_synthetic=True)


def test_external_services_registry():
    assert api.EXTERNAL_SERVICES.get("states") is True, "State list should be exposed externally"
    assert api.EXTERNAL_SERVICES.get("children") is True, "Child lookups should be exposed externally"


# --- Name helpers ---


def test_format_name_title_cases_hyphenated_ids():
    assert format_name("lagos-island") == "Lagos Island"
    assert format_name("ikeja") == "Ikeja"
    assert format_name("") == ""


def test_format_name_is_idempotent_on_formatted_names():
    once = format_name("ajeromi-ifelodun")
    assert format_name(once) == once


def test_normalize_id_collapses_case_and_whitespace():
    assert api.normalize_id("  Lagos  Island ") == "lagos-island"


def test_slugify_strips_unsafe_characters():
    assert api.slugify("FCT - Abuja") == "fct-abuja"
    assert api.slugify(42) == "42"


# --- Models ---


def test_level_parent_child_chain():
    assert AdministrativeLevel.STATE.child is AdministrativeLevel.LGA
    assert AdministrativeLevel.WARD.child is AdministrativeLevel.POLLING_UNIT
    assert AdministrativeLevel.POLLING_UNIT.child is None
    assert AdministrativeLevel.STATE.parent is None


def test_location_path_gap_detection():
    assert LocationPath("lagos", "ikeja", "ojodu").has_gaps() is False
    assert LocationPath("lagos", None, "ojodu").has_gaps() is True
    assert LocationPath(None, None, None, "pu-1").has_gaps() is True


def test_location_path_completeness_ignores_polling_unit():
    assert LocationPath("lagos", "ikeja", "ojodu").is_complete is True
    assert LocationPath("lagos", "ikeja").is_complete is False


def test_units_are_immutable():
    unit = AdministrativeUnit(id="lagos", display_name="Lagos", level=AdministrativeLevel.STATE)
    with pytest.raises(Exception):
        unit.id = "kano"


# --- Dataset ---


def test_dataset_lookups_match_case_insensitively(source):
    assert source.lgas("LAGOS") == ["ikeja", "lagos-island"]
    assert source.wards("Ikeja") == ["ojodu", "onigbongbo"]
    assert source.polling_units("ojodu") == ["ojodu-grammar-school", "berger-open-space"]


def test_dataset_treats_empty_children_as_missing(source):
    assert source.wards("bende") is None
    assert source.polling_units("olowogbowo") is None
    assert source.lgas("kano") is None


def test_dataset_loads_from_disk(sample_tree_path):
    source = HierarchyDataSource(path=sample_tree_path)
    assert source.lgas("lagos") == ["ikeja", "lagos-island"]


def test_dataset_missing_file_yields_empty_tree(tmp_path):
    source = HierarchyDataSource(path=tmp_path / "missing.json")
    assert source.tree == []
    assert source.lgas("lagos") is None


def test_bundled_dataset_ships_lagos_ikeja():
    source = HierarchyDataSource()
    assert "ikeja" in (source.lgas("lagos") or [])
    assert source.wards("ikeja"), "Ikeja wards should be bundled"


LAGOS_LGAS = [
    "agege", "ajeromi-ifelodun", "alimosho", "amuwo-odofin", "apapa", "badagry", "epe",
    "eti-osa", "ibeju-lekki", "ifako-ijaiye", "ikeja", "ikorodu", "kosofe", "lagos-island",
    "lagos-mainland", "mushin", "ojo", "oshodi-isolo", "shomolu", "surulere",
]
ABIA_LGAS = [
    "aba-north", "aba-south", "arochukwu", "bende", "ikwuano", "isiala-ngwa-north",
    "isiala-ngwa-south", "isuikwuato", "obi-ngwa", "ohafia", "osisioma", "ugwunagbo",
    "ukwa-east", "ukwa-west", "umuahia-north", "umuahia-south", "umu-nneochi",
]


@pytest.mark.anyio
@pytest.mark.parametrize("state_id, expected", [("lagos", LAGOS_LGAS), ("abia", ABIA_LGAS)])
async def test_bundled_dataset_ships_complete_lga_lists(state_id, expected):
    resolver = LocationResolver(remote_base_url=None, allow_synthetic=False)
    lgas = await resolver.get_lgas(state_id)
    assert [u.id for u in lgas] == expected
    assert {u.source for u in lgas} == {UnitSource.BUNDLED}
    for lga_id in expected:
        names = await resolver.resolve_path(LocationPath(state_id, lga_id))
        assert names["lga"]["source"] == "bundled"


@pytest.mark.anyio
async def test_lga_without_bundled_wards_degrades_to_placeholders():
    resolver = LocationResolver(remote_base_url=None, allow_synthetic=True)
    names = await resolver.resolve_path(LocationPath("lagos", "mushin", "mushin-ward-1"))
    assert names["lga"] == {"id": "mushin", "name": "Mushin", "source": "bundled"}
    assert names["ward"]["source"] == "synthetic"


def test_dataset_stats_counts_tree(source):
    stats = source.stats()
    assert stats["total_states"] == 37
    assert stats["total_lgas"] == 3
    assert stats["total_wards"] == 3
    assert stats["total_polling_units"] == 3


# --- States ---


def test_states_are_bundled_and_cached(resolver):
    states = resolver.get_states()
    assert len(states) == 37, "36 states plus the FCT"
    assert resolver.get_states() is states, "Second call should return the cached list"
    fct = next(s for s in states if s.id == "abuja")
    assert fct.display_name == "FCT - Abuja"
    assert all(s.parent_id is None and s.code for s in states)


# --- Children: bundled and synthetic tiers ---


@pytest.mark.anyio
async def test_bundled_children_match_dataset_formatted(resolver, source):
    lgas = await resolver.get_lgas("lagos")
    assert [u.id for u in lgas] == source.lgas("lagos")
    assert [u.display_name for u in lgas] == [format_name(i) for i in source.lgas("lagos")]
    assert all(u.source is UnitSource.BUNDLED and u.parent_id == "lagos" for u in lgas)


@pytest.mark.anyio
async def test_blank_parent_returns_empty_without_caching(resolver):
    assert await resolver.get_lgas("") == []
    assert await resolver.get_wards("   ") == []
    assert resolver.stats()["cached"]["lgas_by_state"] == 0


@pytest.mark.anyio
async def test_second_call_returns_cached_list(resolver):
    first = await resolver.get_wards("ikeja")
    second = await resolver.get_wards("ikeja")
    assert first is second


@pytest.mark.anyio
async def test_cache_key_is_normalized(resolver):
    first = await resolver.get_wards("ikeja")
    assert await resolver.get_wards(" IKEJA ") is first


@pytest.mark.anyio
async def test_unknown_parent_yields_synthetic_placeholders(resolver):
    lgas = await resolver.get_lgas("zamfara")
    assert len(lgas) == 2
    assert all(u.synthetic for u in lgas), "Placeholder rows must be tagged synthetic"
    assert [u.id for u in lgas] == ["zamfara-lga-1", "zamfara-lga-2"]
    assert lgas[0].display_name == "Zamfara LGA 1"


@pytest.mark.anyio
async def test_synthetic_placeholders_are_deterministic(source):
    a = LocationResolver(source=source, remote_base_url=None)
    b = LocationResolver(source=source, remote_base_url=None)
    assert await a.get_polling_units("nowhere") == await b.get_polling_units("nowhere")


@pytest.mark.anyio
async def test_synthetic_counts_per_level():
    tier = SyntheticTier()
    wards = await tier.resolve(AdministrativeLevel.WARD, "bende")
    units = await tier.resolve(AdministrativeLevel.POLLING_UNIT, "bende-ward-1")
    assert [u.id for u in wards.units] == ["bende-ward-1", "bende-ward-2", "bende-ward-3"]
    assert [u.id for u in units.units][0] == "bende-ward-1-pu-001"


@pytest.mark.anyio
async def test_disabled_synthetic_tier_reports_data_unavailable(source):
    resolver = LocationResolver(source=source, remote_base_url=None, allow_synthetic=False)
    assert await resolver.get_wards("bende") == []
    assert [t.name for t in resolver.tiers] == ["bundled"]


@pytest.mark.anyio
async def test_polling_units_have_no_children(resolver):
    with pytest.raises(ValueError):
        await resolver.get_children(AdministrativeLevel.POLLING_UNIT, "ojodu-grammar-school")


@pytest.mark.anyio
async def test_clear_cache_forces_fresh_resolution(resolver):
    states = resolver.get_states()
    first = await resolver.get_lgas("lagos")
    resolver.clear_cache()
    assert resolver.get_states() is not states
    second = await resolver.get_lgas("lagos")
    assert second is not first
    assert second == first


@pytest.mark.anyio
async def test_clear_cache_rereads_dataset_file(sample_tree, sample_tree_path):
    resolver = LocationResolver(source=HierarchyDataSource(path=sample_tree_path), remote_base_url=None)
    assert [u.id for u in await resolver.get_lgas("abia")] == ["bende"]

    sample_tree[1]["lgas"].append({"lga": "aba-south", "wards": []})
    sample_tree_path.write_text(json.dumps(sample_tree))
    assert [u.id for u in await resolver.get_lgas("abia")] == ["bende"], "Cached until cleared"

    resolver.clear_cache()
    assert [u.id for u in await resolver.get_lgas("abia")] == ["bende", "aba-south"]


@pytest.mark.anyio
async def test_concurrent_misses_converge_on_one_list(resolver):
    results = await asyncio.gather(*(resolver.get_wards("ikeja") for _ in range(5)))
    assert all(r is results[0] for r in results)


@pytest.mark.anyio
async def test_fallback_order_is_explicit_data(source):
    class Exploding:
        name = "exploding"

        async def resolve(self, level, parent_id):
            return TierResult.miss(self.name, "down")

    resolver = LocationResolver(source=source, tiers=[Exploding(), BundledTier(source)])
    lgas = await resolver.get_lgas("lagos")
    assert [u.id for u in lgas] == ["ikeja", "lagos-island"]


# --- Remote tier ---


def _resolver_with_remote(source, remote, **kwargs):
    return LocationResolver(
        source=source,
        remote_base_url=BASE_URL,
        http_client=remote.client(),
        **kwargs,
    )


@pytest.mark.anyio
async def test_remote_tier_success_is_normalized(source, remote_api):
    remote = remote_api(
        {
            ("/api/locations/local-governments", "lagos"): {
                "success": True,
                "data": [{"id": "IKEJA", "name": "ikeja", "code": 7}, {"id": "epe", "name": "Epe"}],
            }
        }
    )
    resolver = _resolver_with_remote(source, remote)
    lgas = await resolver.get_lgas("lagos")
    assert [u.id for u in lgas] == ["ikeja", "epe"]
    assert [u.display_name for u in lgas] == ["Ikeja", "Epe"]
    assert lgas[0].code == "7"
    assert all(u.source is UnitSource.REMOTE and u.parent_id == "lagos" for u in lgas)
    assert remote.requests[0].url.params["stateId"] == "lagos"


@pytest.mark.anyio
async def test_remote_units_share_the_bundled_shape(source, remote_api):
    remote = remote_api({("/api/locations/wards", "ikeja"): {"success": True, "data": [{"id": "ojodu", "name": "Ojodu"}]}})
    remote_unit = (await _resolver_with_remote(source, remote).get_wards("ikeja"))[0]
    bundled_unit = (await LocationResolver(source=source, remote_base_url=None).get_wards("ikeja"))[0]
    assert remote_unit.to_dict().keys() == bundled_unit.to_dict().keys()
    assert (remote_unit.id, remote_unit.display_name, remote_unit.parent_id) == (
        bundled_unit.id,
        bundled_unit.display_name,
        bundled_unit.parent_id,
    )


@pytest.mark.anyio
async def test_remote_failure_falls_back_to_bundled(source, remote_api):
    remote = remote_api()
    remote.fail_with = 503
    lgas = await _resolver_with_remote(source, remote).get_lgas("lagos")
    assert [u.source for u in lgas] == [UnitSource.BUNDLED, UnitSource.BUNDLED]


@pytest.mark.anyio
async def test_remote_timeout_falls_back_to_bundled(source, remote_api):
    remote = remote_api()
    remote.fail_with = httpx.ConnectTimeout("connect timed out")
    wards = await _resolver_with_remote(source, remote).get_wards("ikeja")
    assert [u.id for u in wards] == ["ojodu", "onigbongbo"]


@pytest.mark.anyio
async def test_remote_unsuccessful_body_is_a_miss(source, remote_api):
    remote = remote_api({("/api/locations/local-governments", "lagos"): {"success": False, "data": []}})
    lgas = await _resolver_with_remote(source, remote).get_lgas("lagos")
    assert lgas[0].source is UnitSource.BUNDLED


@pytest.mark.anyio
async def test_remote_malformed_json_is_a_miss(source, remote_api):
    remote = remote_api({("/api/locations/local-governments", "lagos"): b"<html>oops</html>"})
    result = await RemoteTier(BASE_URL, client=remote.client()).resolve(AdministrativeLevel.LGA, "lagos")
    assert result.ok is False
    assert result.units == []


@pytest.mark.anyio
async def test_hung_remote_is_cut_off_by_deadline(source):
    class HangingTier(RemoteTier):
        async def _get(self, url, params):
            await asyncio.sleep(10)

    tier = HangingTier(BASE_URL, timeout=0.05)
    resolver = LocationResolver(source=source, tiers=[tier, BundledTier(source)])
    lgas = await asyncio.wait_for(resolver.get_lgas("lagos"), timeout=2)
    assert lgas[0].source is UnitSource.BUNDLED


@pytest.mark.anyio
async def test_remote_miss_everywhere_degrades_to_synthetic(source, remote_api):
    remote = remote_api()
    units = await _resolver_with_remote(source, remote).get_polling_units("unknown-ward")
    assert units and all(u.synthetic for u in units)


def test_remote_tier_only_configured_with_base_url(source):
    without = LocationResolver(source=source, remote_base_url=None)
    with_remote = LocationResolver(source=source, remote_base_url=BASE_URL)
    assert [t.name for t in without.tiers] == ["bundled", "synthetic"]
    assert [t.name for t in with_remote.tiers] == ["remote", "bundled", "synthetic"]


def test_remote_urls_follow_endpoint_config():
    tier = RemoteTier(BASE_URL + "/")
    assert tier.url_for(AdministrativeLevel.POLLING_UNIT) == BASE_URL + config.REMOTE_ENDPOINTS["polling_unit"]


# --- Path resolution and stats ---


@pytest.mark.anyio
async def test_resolve_path_returns_display_names(resolver):
    names = await resolver.resolve_path(LocationPath("lagos", "ikeja", "ojodu", "berger-open-space"))
    assert names["state"]["name"] == "Lagos"
    assert names["ward"]["name"] == "Ojodu"
    assert names["polling_unit"]["name"] == "Berger Open Space"


@pytest.mark.anyio
async def test_resolve_path_rejects_foreign_child(resolver):
    with pytest.raises(ValueError):
        await resolver.resolve_path(LocationPath("lagos", "ikeja", "olowogbowo"))


@pytest.mark.anyio
async def test_resolve_path_rejects_gaps_and_unknown_state(resolver):
    with pytest.raises(ValueError):
        await resolver.resolve_path(LocationPath("lagos", None, "ojodu"))
    with pytest.raises(ValueError):
        await resolver.resolve_path(LocationPath("atlantis", "x", "y"))


@pytest.mark.anyio
async def test_stats_reports_cache_sizes(resolver):
    await resolver.get_lgas("lagos")
    stats = resolver.stats()
    assert stats["cached"]["lgas_by_state"] == 1
    assert stats["cached"]["wards_by_lga"] == 0


# --- End to end ---


@pytest.mark.anyio
async def test_cascade_lagos_to_polling_unit_round_trips_parent_ids():
    resolver = LocationResolver(remote_base_url=None)
    state = next(s for s in resolver.get_states() if s.id == "lagos")

    lgas = await resolver.get_lgas(state.id)
    lga = next(u for u in lgas if u.id == "ikeja")
    assert lga.parent_id == state.id

    wards = await resolver.get_wards(lga.id)
    ward = wards[0]
    assert ward.parent_id == lga.id

    units = await resolver.get_polling_units(ward.id)
    unit = units[0]
    assert unit.parent_id == ward.id

    path = LocationPath(state.id, lga.id, ward.id, unit.id)
    assert path.has_gaps() is False
    assert path.is_complete is True
    assert not any(u.synthetic for u in (lga, ward, unit)), "Bundled dataset should cover Ikeja"
