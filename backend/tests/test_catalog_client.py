from __future__ import annotations

import asyncio

import httpx
import pytest

from adaptive_engine.catalog_client import CatalogClientError, HttpCatalogClient, StaticCatalog, build_catalog
from adaptive_engine.config import Settings

BASE_URL = "http://catalog.test/api"


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path.removeprefix("/api")
    if path == "/challenge-types":
        return httpx.Response(200, json={"items": [{"code": "design", "name": "Design", "relatedTypes": ["analysis"]}]})
    if path == "/challenge-types/debugging":
        return httpx.Response(200, json={"code": "debugging", "displayName": "Debugging", "defaultFormatTypeCode": "debug"})
    if path == "/format-types":
        return httpx.Response(200, json=[{"code": "code"}, {"code": "essay"}])
    if path == "/focus-areas":
        return httpx.Response(200, json=[{"code": "RAG", "name": "RAG"}])
    if path == "/trait-mappings":
        return httpx.Response(200, json={"Analytical": ["Debugging"], "Broken": "nope"})
    if path == "/difficulty-levels/expert":
        return httpx.Response(200, json={"code": "expert", "complexity": 0.9})
    if path == "/format-types/explode":
        return httpx.Response(500, json={"error": "boom"})
    return httpx.Response(404, json={"error": "not found"})


def _run(call):
    async def runner():
        async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
            catalog = HttpCatalogClient(Settings(), base_url=BASE_URL, client=client)
            return await call(catalog)

    return asyncio.run(runner())


def test_lists_are_parsed_into_descriptors() -> None:
    challenge_types = _run(lambda catalog: catalog.get_all_challenge_types())
    format_types = _run(lambda catalog: catalog.get_all_format_types())
    focus_areas = _run(lambda catalog: catalog.get_all_focus_areas())

    assert [item.code for item in challenge_types] == ["design"]
    assert challenge_types[0].related_types == ["analysis"]
    assert [item.code for item in format_types] == ["code", "essay"]
    assert focus_areas[0].code == "RAG"


def test_single_lookups_and_missing_entries() -> None:
    debugging = _run(lambda catalog: catalog.get_challenge_type("debugging"))
    missing = _run(lambda catalog: catalog.get_challenge_type("unknown"))
    expert = _run(lambda catalog: catalog.get_difficulty_level("expert"))

    assert debugging.name == "Debugging"
    assert debugging.default_format_type_code == "debug"
    assert missing is None
    assert expert.complexity == pytest.approx(0.9)


def test_trait_mappings_drop_malformed_entries() -> None:
    assert _run(lambda catalog: catalog.get_trait_mappings()) == {"Analytical": ["Debugging"]}


def test_server_errors_raise_catalog_client_error() -> None:
    with pytest.raises(CatalogClientError):
        _run(lambda catalog: catalog.get_format_type("explode"))


def test_missing_list_endpoint_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async def runner():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            catalog = HttpCatalogClient(Settings(), base_url=BASE_URL, client=client)
            return await catalog.get_all_focus_areas()

    with pytest.raises(CatalogClientError):
        asyncio.run(runner())


def test_client_requires_a_base_url() -> None:
    with pytest.raises(CatalogClientError):
        HttpCatalogClient(Settings(ADAPTIVE_CATALOG_URL=None))


def test_build_catalog_selects_by_configuration() -> None:
    assert isinstance(build_catalog(Settings(ADAPTIVE_CATALOG_URL=None)), StaticCatalog)
    assert isinstance(build_catalog(Settings(ADAPTIVE_CATALOG_URL=BASE_URL)), HttpCatalogClient)


def test_static_catalog_returns_copies() -> None:
    catalog = StaticCatalog()

    first = asyncio.run(catalog.get_challenge_type("implementation"))
    first.related_types.append("mutated")
    second = asyncio.run(catalog.get_challenge_type("implementation"))

    assert "mutated" not in second.related_types
    assert asyncio.run(catalog.get_challenge_type("missing")) is None
    assert asyncio.run(catalog.get_difficulty_level("hard")).code == "hard"
