"""Tests for the record store gateway using an in-memory httpx transport."""

import json

import httpx
import pytest

from rental_sync.config import Settings
from rental_sync.model import UNSET
from rental_sync.records_gateway import RecordsGateway, RecordUpdateError, drop_unset


@pytest.fixture
def settings():
    return Settings.create(base_url="https://records.example.com/api/", token="secret")


def make_gateway(settings, handler):
    return RecordsGateway(settings, transport=httpx.MockTransport(handler))


# --------------------------------------------------------------------
# READS
# --------------------------------------------------------------------
@pytest.mark.asyncio
async def test_get_record_parses_relationships(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(
            200,
            json={
                "data": {
                    "id": "42",
                    "attributes": {"pkey": "RENT-001"},
                    "relationships": {
                        "type": {"data": {"id": "7"}},
                        "status": {"data": {"id": "9"}},
                        "parent": {"data": None},
                    },
                }
            },
        )

    async with make_gateway(settings, handler) as gateway:
        record = await gateway.get_record("42")

    assert seen["url"] == "https://records.example.com/api/records/42/meta"
    assert seen["auth"] == "Bearer secret"
    assert record.id == "42"
    assert record.pkey == "RENT-001"
    assert record.type_id == "7"
    assert record.status_id == "9"
    assert record.parent_id is None


@pytest.mark.asyncio
async def test_get_record_not_found_returns_none(settings):
    def handler(request):
        return httpx.Response(404, text="not found")

    async with make_gateway(settings, handler) as gateway:
        assert await gateway.get_record("missing") is None


@pytest.mark.asyncio
async def test_get_record_malformed_json_returns_none(settings):
    def handler(request):
        return httpx.Response(200, text="<html>oops</html>")

    async with make_gateway(settings, handler) as gateway:
        assert await gateway.get_record("42") is None


@pytest.mark.asyncio
async def test_get_workflow_step_text(settings):
    def handler(request):
        assert request.url.path == "/api/workflow-steps/9"
        return httpx.Response(200, json={"data": {"attributes": {"text": "Equipment On Hold"}}})

    async with make_gateway(settings, handler) as gateway:
        step = await gateway.get_workflow_step("9")

    assert step.id == "9"
    assert step.text == "Equipment On Hold"


@pytest.mark.asyncio
async def test_get_record_type_name_searches_by_id(settings):
    def handler(request):
        assert request.method == "POST"
        assert request.url.path == "/api/record-types/search"
        body = json.loads(request.content)
        assert body == {"aql": "select id, name from __main__ where id eq 7"}
        return httpx.Response(200, json={"data": [{"attributes": {"name": "Equipment Rental"}}]})

    async with make_gateway(settings, handler) as gateway:
        assert await gateway.get_record_type_name("7") == "Equipment Rental"


@pytest.mark.asyncio
async def test_get_record_type_name_no_rows(settings):
    def handler(request):
        return httpx.Response(200, json={"data": []})

    async with make_gateway(settings, handler) as gateway:
        assert await gateway.get_record_type_name("7") is None


@pytest.mark.asyncio
async def test_search_child_records_skips_invalid_rows(settings):
    def handler(request):
        body = json.loads(request.content)
        assert body["aql"].endswith("where parent_id eq A1")
        return httpx.Response(
            200,
            json={"data": [{"id": "r1", "attributes": {"pkey": "RENT-1"}}, {"attributes": {}}]},
        )

    async with make_gateway(settings, handler) as gateway:
        children = await gateway.search_child_records("A1")

    assert [c.id for c in children] == ["r1"]


@pytest.mark.asyncio
async def test_search_child_records_failure_returns_empty(settings):
    def handler(request):
        return httpx.Response(500, text="boom")

    async with make_gateway(settings, handler) as gateway:
        assert await gateway.search_child_records("A1") == []


# --------------------------------------------------------------------
# WRITES
# --------------------------------------------------------------------
@pytest.mark.asyncio
async def test_update_record_drops_unset_and_keeps_null(settings):
    sent = {}

    def handler(request):
        sent["method"] = request.method
        sent["path"] = request.url.path
        sent["body"] = json.loads(request.content)
        return httpx.Response(200, json={})

    async with make_gateway(settings, handler) as gateway:
        await gateway.update_record(
            "A1", {"cf_client_name": None, "cf_address_city": UNSET, "cf_address_zip": "12345"}
        )

    assert sent["method"] == "PATCH"
    assert sent["path"] == "/api/records/A1"
    assert sent["body"] == {
        "data": {
            "type": "records",
            "id": "A1",
            "attributes": {"cf_client_name": None, "cf_address_zip": "12345"},
        }
    }


@pytest.mark.asyncio
async def test_update_record_failure_raises_with_body(settings):
    def handler(request):
        return httpx.Response(422, text='{"errors": ["bad field"]}')

    async with make_gateway(settings, handler) as gateway:
        with pytest.raises(RecordUpdateError, match="bad field") as excinfo:
            await gateway.update_record("A1", {"cf_client_name": "Acme"})

    assert excinfo.value.status_code == 422
    assert "bad field" in excinfo.value.body


def test_drop_unset():
    assert drop_unset({"a": UNSET, "b": None, "c": 0}) == {"b": None, "c": 0}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"data": [{"attributes": ["x"]}]},
        {"data": [{"attributes": {"name": ["Equipment Rental"]}}]},
        {"data": [{"attributes": None}]},
    ],
)
async def test_get_record_type_name_unexpected_shape_returns_none(settings, payload):
    def handler(request):
        return httpx.Response(200, json=payload)

    async with make_gateway(settings, handler) as gateway:
        assert await gateway.get_record_type_name("7") is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"data": {"attributes": ["Equipment On Hold"]}},
        {"data": {"attributes": {"text": 12}}},
    ],
)
async def test_get_workflow_step_unexpected_shape_has_no_text(settings, payload):
    def handler(request):
        return httpx.Response(200, json=payload)

    async with make_gateway(settings, handler) as gateway:
        step = await gateway.get_workflow_step("9")

    assert step.text is None
