"""Tests for the reference-data loaders."""

import pytest

from elective_cache.catalog.reference import RESOURCES, ReferenceCatalog
from elective_cache.catalog.refresh import ForceRefreshFlags
from elective_cache.config.settings import CacheSettings
from elective_cache.core.errors import RemoteQueryError
from elective_cache.remote.source import InMemoryDataSource

TABLES = {
    "degrees": [
        {"id": 1, "name": "BSc", "code": "B", "status": "active"},
        {"id": 2, "name": "MSc", "code": "M", "status": "active"},
    ],
    "groups": [
        {"id": 10, "name": "B-24", "display_name": "Bachelors 2024", "degree_id": 1, "academic_year": "2024", "status": "active"},
        {"id": 11, "name": "M-24", "display_name": "Masters 2024", "degree_id": 2, "academic_year": "2024", "status": "active"},
    ],
    "profiles": [
        {"id": "s1", "role": "student", "group_id": 10},
        {"id": "s2", "role": "student", "group_id": 10},
        {"id": "m1", "role": "program_manager", "group_id": 10},
    ],
    "courses": [
        {"id": "c1", "name": "Ethics", "group_id": 10, "degree_id": 1},
        {"id": "c2", "name": "Algebra", "group_id": 11, "degree_id": 9},
    ],
    "universities": [
        {"id": "u1", "name": "Bocconi", "country": "IT"},
        {"id": "u2", "name": "Aalto", "country": "FI"},
    ],
    "exchange_universities": [
        {"elective_exchange_id": "p1", "university_id": "u2"},
    ],
    "countries": [{"code": "FI", "name": "Finland"}],
    "settings": [{"institution_name": "GSOM", "primary_color": "#123456"}],
    "course_selections": [{"student_id": "s1", "elective_courses_id": "e1", "status": "pending"}],
    "exchange_selections": [],
}


@pytest.fixture
def source():
    return InMemoryDataSource(TABLES)


@pytest.fixture
def flags():
    return ForceRefreshFlags()


@pytest.fixture
def catalog(store, source, flags):
    return ReferenceCatalog(store, source, CacheSettings(), flags)


@pytest.mark.asyncio
async def test_degrees_read_through(catalog, source):
    first = await catalog.degrees()
    second = await catalog.degrees()

    assert first.key == "degrees"
    assert [d["name"] for d in first.data] == ["BSc", "MSc"]
    assert first.cache_hit is False
    assert second.cache_hit is True
    assert second.data == first.data
    assert source.calls["degrees"] == 1


@pytest.mark.asyncio
async def test_degrees_expire_after_catalog_ttl(catalog, source, clock):
    await catalog.degrees()
    clock.advance(CacheSettings().ttl_ms("catalog"))
    again = await catalog.degrees()
    assert again.cache_hit is False
    assert source.calls["degrees"] == 2


@pytest.mark.asyncio
async def test_groups_format_and_student_counts(catalog):
    loaded = await catalog.groups()
    assert loaded.key == "groups_degree_id-~"
    by_name = {g["name"]: g for g in loaded.data}
    assert by_name["B-24"]["students"] == 2
    assert by_name["B-24"]["degree"] == "BSc"
    assert by_name["M-24"]["students"] == 0
    assert by_name["B-24"]["id"] == "10"


@pytest.mark.asyncio
async def test_scoped_keys_do_not_leak_between_scopes(catalog):
    bachelors = await catalog.groups(degree_id=1)
    masters = await catalog.groups(degree_id=2)
    assert bachelors.key != masters.key
    assert [g["name"] for g in bachelors.data] == ["B-24"]
    assert [g["name"] for g in masters.data] == ["M-24"]
    assert masters.cache_hit is False


@pytest.mark.asyncio
async def test_courses_attach_degree(catalog):
    loaded = await catalog.courses(group_id=10)
    assert loaded.key == "courses_group_id-10"
    assert loaded.data[0]["degree"] == {"id": 1, "name": "BSc", "code": "B"}

    unknown_degree = await catalog.courses(group_id=11)
    assert unknown_degree.data[0]["degree"] is None


@pytest.mark.asyncio
async def test_exchange_universities_for_pack(catalog):
    loaded = await catalog.exchange_universities("p1")
    assert loaded.key == "exchange_universities_pack_id-p1"
    assert [u["name"] for u in loaded.data] == ["Aalto"]


@pytest.mark.asyncio
async def test_universities_and_countries(catalog):
    assert [u["name"] for u in (await catalog.universities()).data] == ["Aalto", "Bocconi"]
    assert (await catalog.countries()).data == [{"code": "FI", "name": "Finland"}]


@pytest.mark.asyncio
async def test_settings_is_single_object(catalog):
    loaded = await catalog.app_settings()
    assert loaded.data["institution_name"] == "GSOM"


@pytest.mark.asyncio
async def test_settings_empty_table(store, flags):
    catalog = ReferenceCatalog(store, InMemoryDataSource({"settings": []}), CacheSettings(), flags)
    assert (await catalog.app_settings()).data == {}


@pytest.mark.asyncio
async def test_student_selections(catalog):
    loaded = await catalog.student_selections("s1")
    assert loaded.key == "student_selections_student_id-s1"
    assert len(loaded.data["courses"]) == 1
    assert loaded.data["exchanges"] == []


@pytest.mark.asyncio
async def test_force_refresh_is_one_shot(catalog, source, flags):
    await catalog.degrees()
    flags.set("degrees")

    refreshed = await catalog.degrees()
    cached = await catalog.degrees()

    assert refreshed.cache_hit is False
    assert cached.cache_hit is True
    assert source.calls["degrees"] == 2
    assert not flags.is_set("degrees")


@pytest.mark.asyncio
async def test_remote_failure_propagates_and_is_not_cached(catalog, source, store):
    source.fail("universities")
    with pytest.raises(RemoteQueryError):
        await catalog.universities()
    assert not store.has("universities")

    source.recover("universities")
    loaded = await catalog.universities()
    assert loaded.cache_hit is False


def test_resources_point_at_loaders(catalog):
    for loader_name, accepted, required in RESOURCES.values():
        assert callable(getattr(catalog, loader_name))
        assert set(required) <= set(accepted)


def test_force_refresh_flags():
    flags = ForceRefreshFlags()
    assert flags.consume("courses") is False
    flags.set("courses")
    assert flags.is_set("courses")
    assert flags.consume("courses") is True
    assert flags.consume("courses") is False
    flags.set("groups")
    flags.clear("groups")
    assert not flags.is_set("groups")
