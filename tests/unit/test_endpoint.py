"""Unit tests for gqlcache.endpoint."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
import respx
from graphql import GraphQLSchema

from gqlcache.config import EndpointSettings
from gqlcache.endpoint import (
    INTROSPECTION_QUERY,
    EndpointLoader,
    build_http_client,
    schema_from_introspection,
)
from gqlcache.errors import EndpointError, ErrorCode
from gqlcache.models.project import EndpointConfig

ENDPOINT_URL = "https://example.com/graphql"


@pytest.fixture()
def loader(http_client: httpx.AsyncClient) -> EndpointLoader:
    return EndpointLoader(http_client)


# ---------------------------------------------------------------------------
# EndpointLoader.load
# ---------------------------------------------------------------------------


class TestLoad:
    async def test_success_returns_data(
        self, loader: EndpointLoader, introspection_result: dict[str, Any]
    ) -> None:
        with respx.mock:
            route = respx.post(ENDPOINT_URL).mock(
                return_value=httpx.Response(200, json={"data": introspection_result})
            )
            data = await loader.load(EndpointConfig(url=ENDPOINT_URL))

        assert "__schema" in data
        body = json.loads(route.calls.last.request.content)
        assert body["query"] == INTROSPECTION_QUERY
        assert body["operationName"] == "IntrospectionQuery"

    async def test_forwards_configured_headers(
        self, loader: EndpointLoader, introspection_result: dict[str, Any]
    ) -> None:
        with respx.mock:
            route = respx.post(ENDPOINT_URL).mock(
                return_value=httpx.Response(200, json={"data": introspection_result})
            )
            await loader.load(
                EndpointConfig(url=ENDPOINT_URL, headers={"X-Api-Key": "secret"})
            )

        request = route.calls.last.request
        assert request.headers["x-api-key"] == "secret"
        assert request.headers["accept"] == "application/json"

    async def test_server_error_is_recoverable(self, loader: EndpointLoader) -> None:
        with respx.mock:
            respx.post(ENDPOINT_URL).mock(return_value=httpx.Response(503))
            with pytest.raises(EndpointError) as exc_info:
                await loader.load(EndpointConfig(url=ENDPOINT_URL))

        assert exc_info.value.code == ErrorCode.ENDPOINT_BAD_STATUS
        assert exc_info.value.recoverable is True

    async def test_client_error_is_not_recoverable(self, loader: EndpointLoader) -> None:
        with respx.mock:
            respx.post(ENDPOINT_URL).mock(return_value=httpx.Response(401))
            with pytest.raises(EndpointError) as exc_info:
                await loader.load(EndpointConfig(url=ENDPOINT_URL))

        assert exc_info.value.code == ErrorCode.ENDPOINT_BAD_STATUS
        assert exc_info.value.recoverable is False

    async def test_network_error(self, loader: EndpointLoader) -> None:
        with respx.mock:
            respx.post(ENDPOINT_URL).mock(side_effect=httpx.ConnectError("Connection refused"))
            with pytest.raises(EndpointError) as exc_info:
                await loader.load(EndpointConfig(url=ENDPOINT_URL))

        assert exc_info.value.code == ErrorCode.ENDPOINT_REQUEST_FAILED
        assert exc_info.value.recoverable is True

    async def test_non_json_content_type(self, loader: EndpointLoader) -> None:
        with respx.mock:
            respx.post(ENDPOINT_URL).mock(
                return_value=httpx.Response(
                    200, text="<html>GraphiQL</html>", headers={"content-type": "text/html"}
                )
            )
            with pytest.raises(EndpointError) as exc_info:
                await loader.load(EndpointConfig(url=ENDPOINT_URL))

        assert exc_info.value.code == ErrorCode.ENDPOINT_BAD_PAYLOAD

    async def test_malformed_json(self, loader: EndpointLoader) -> None:
        with respx.mock:
            respx.post(ENDPOINT_URL).mock(
                return_value=httpx.Response(
                    200, content=b"{not json", headers={"content-type": "application/json"}
                )
            )
            with pytest.raises(EndpointError) as exc_info:
                await loader.load(EndpointConfig(url=ENDPOINT_URL))

        assert exc_info.value.code == ErrorCode.ENDPOINT_BAD_PAYLOAD

    async def test_missing_schema_reports_errors(self, loader: EndpointLoader) -> None:
        with respx.mock:
            respx.post(ENDPOINT_URL).mock(
                return_value=httpx.Response(
                    200, json={"errors": [{"message": "introspection disabled"}]}
                )
            )
            with pytest.raises(EndpointError) as exc_info:
                await loader.load(EndpointConfig(url=ENDPOINT_URL))

        assert exc_info.value.code == ErrorCode.ENDPOINT_BAD_PAYLOAD
        assert "introspection disabled" in exc_info.value.message


# ---------------------------------------------------------------------------
# schema_from_introspection
# ---------------------------------------------------------------------------


class TestSchemaFromIntrospection:
    def test_builds_schema(self, introspection_result: dict[str, Any]) -> None:
        schema = schema_from_introspection(introspection_result, ENDPOINT_URL)
        assert isinstance(schema, GraphQLSchema)
        assert schema.query_type is not None
        assert schema.query_type.name == "Query"

    @pytest.mark.parametrize(
        "introspection",
        [
            {"__schema": {"types": []}},
            {"__schema": {}},
            {"__schema": {"types": [{"kind": "OBJECT"}]}},
        ],
    )
    def test_incomplete_result_is_a_payload_error(self, introspection: dict[str, Any]) -> None:
        with pytest.raises(EndpointError) as exc_info:
            schema_from_introspection(introspection, ENDPOINT_URL)
        assert exc_info.value.code == ErrorCode.ENDPOINT_BAD_PAYLOAD


# ---------------------------------------------------------------------------
# build_http_client
# ---------------------------------------------------------------------------


class TestBuildHttpClient:
    async def test_applies_settings(self) -> None:
        settings = EndpointSettings(timeout_seconds=5.0, user_agent="test-agent/0.1")
        client = build_http_client(settings)
        try:
            assert client.timeout.connect == 5.0
            assert client.headers["user-agent"] == "test-agent/0.1"
        finally:
            await client.aclose()
