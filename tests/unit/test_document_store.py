import json

import httpx
import pytest

from bi_dashboards.core.config import Settings
from bi_dashboards.services.storage import DocumentStore, WriteMode
from bi_dashboards.services.storage.document_store import encode_fields, encode_value


def test_encode_value_types():
    assert encode_value(None) == {"nullValue": None}
    assert encode_value(True) == {"booleanValue": True}
    assert encode_value(3) == {"integerValue": "3"}
    assert encode_value(1.5) == {"doubleValue": 1.5}
    assert encode_value("x") == {"stringValue": "x"}
    assert encode_value([1, "a"]) == {
        "arrayValue": {"values": [{"integerValue": "1"}, {"stringValue": "a"}]},
    }


def test_encode_fields_nests_maps():
    assert encode_fields({"group": {"measure": False}}) == {
        "group": {"mapValue": {"fields": {"measure": {"booleanValue": False}}}},
    }


@pytest.mark.anyio
async def test_unconfigured_store_degrades_without_network():
    def handler(request):
        raise AssertionError("no request expected")

    store = DocumentStore(transport=httpx.MockTransport(handler))
    try:
        result = await store.upsert("configs/def", {"a": 1})
    finally:
        await store.aclose()

    assert not store.available
    assert result.mode is WriteMode.DEGRADED
    assert not result.succeeded


@pytest.mark.anyio
async def test_upsert_patches_document():
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["key"] = request.url.params.get("key")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"name": "doc"})

    settings = Settings(FIRESTORE_PROJECT_ID="proj", FIRESTORE_API_KEY="k")
    store = DocumentStore.from_settings(settings, transport=httpx.MockTransport(handler))
    try:
        result = await store.upsert("configs/def", {"a": 1})
    finally:
        await store.aclose()

    assert result.succeeded
    assert result.reference == "configs/def"
    assert captured["method"] == "PATCH"
    assert captured["path"].startswith("/v1/projects/proj/")
    assert captured["path"].endswith("/documents/configs/def")
    assert captured["key"] == "k"
    assert captured["body"] == {"fields": {"a": {"integerValue": "1"}}}


@pytest.mark.anyio
async def test_http_error_degrades():
    store = DocumentStore(
        project_id="proj",
        transport=httpx.MockTransport(lambda request: httpx.Response(403, text="denied")),
    )
    try:
        result = await store.upsert("configs/def", {})
    finally:
        await store.aclose()

    assert result.mode is WriteMode.DEGRADED
    assert "403" in result.error


@pytest.mark.anyio
async def test_connection_error_degrades():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    store = DocumentStore(project_id="proj", transport=httpx.MockTransport(handler))
    try:
        result = await store.upsert("configs/def", {"a": 1})
    finally:
        await store.aclose()

    assert result.mode is WriteMode.DEGRADED
    assert "Connection failed" in result.error
