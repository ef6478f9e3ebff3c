"""Remote schema loading via GraphQL introspection.

All network I/O goes through a single EndpointLoader sharing one
httpx.AsyncClient, injected by the owner of the client lifecycle
(see service.open_cache). Each load is a single attempt; retrying is the
caller's decision.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import structlog
from graphql import (
    GraphQLError,
    build_client_schema,
    get_introspection_query,
    validate_schema,
)

from gqlcache.errors import EndpointError, ErrorCode

if TYPE_CHECKING:
    from graphql import GraphQLSchema

    from gqlcache.config import EndpointSettings
    from gqlcache.models.project import EndpointConfig

log = structlog.get_logger()

INTROSPECTION_QUERY = get_introspection_query(descriptions=True)


def build_http_client(settings: EndpointSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once per cache service."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_connections // 2 or 1,
        ),
    )


class EndpointLoader:
    """Posts the introspection query and validates the response shape."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def load(self, endpoint: EndpointConfig) -> dict[str, Any]:
        """Return the introspection ``data`` object (the dict holding ``__schema``).

        Raises EndpointError on transport errors, non-2xx responses, non-JSON
        bodies and JSON lacking ``data.__schema``.
        """
        try:
            response = await self._client.post(
                endpoint.url,
                json={"query": INTROSPECTION_QUERY, "operationName": "IntrospectionQuery"},
                headers={"Accept": "application/json", **endpoint.headers},
            )
        except httpx.HTTPError as exc:
            raise EndpointError(
                code=ErrorCode.ENDPOINT_REQUEST_FAILED,
                message=f"Network error introspecting {endpoint.url}: {exc}",
                suggestion="Check that the endpoint is running and reachable.",
                recoverable=True,
            ) from exc

        if not response.is_success:
            raise EndpointError(
                code=ErrorCode.ENDPOINT_BAD_STATUS,
                message=f"HTTP {response.status_code} introspecting {endpoint.url}",
                suggestion="Check the endpoint URL and any authorization headers.",
                recoverable=response.status_code >= 500,
            )

        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            raise EndpointError(
                code=ErrorCode.ENDPOINT_BAD_PAYLOAD,
                message=f"Expected application/json from {endpoint.url}, got {content_type!r}",
                suggestion="The URL may point at a GraphQL IDE page instead of the API.",
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise EndpointError(
                code=ErrorCode.ENDPOINT_BAD_PAYLOAD,
                message=f"Invalid JSON from {endpoint.url}: {exc}",
                suggestion="The endpoint returned a malformed response body.",
            ) from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not isinstance(data.get("__schema"), dict):
            errors = payload.get("errors") if isinstance(payload, dict) else None
            raise EndpointError(
                code=ErrorCode.ENDPOINT_BAD_PAYLOAD,
                message=f"Response from {endpoint.url} has no data.__schema"
                + (f" (errors: {errors})" if errors else ""),
                suggestion="Introspection may be disabled on this server.",
            )

        log.info(
            "endpoint_introspection_complete",
            url=endpoint.url,
            status_code=response.status_code,
            types=len(data["__schema"].get("types") or []),
        )
        return data


def schema_from_introspection(introspection: dict[str, Any], url: str) -> GraphQLSchema:
    """Convert an introspection result to a schema, as a payload-shape failure if it can't."""
    try:
        schema = build_client_schema(introspection)
    # build_client_schema indexes the payload directly; missing keys surface as KeyError
    except (KeyError, TypeError, ValueError, GraphQLError) as exc:
        raise EndpointError(
            code=ErrorCode.ENDPOINT_BAD_PAYLOAD,
            message=f"Introspection result from {url} is not a valid schema: {exc}",
            suggestion="The endpoint returned an incomplete introspection result.",
        ) from exc
    errors = validate_schema(schema)
    if errors:
        raise EndpointError(
            code=ErrorCode.ENDPOINT_BAD_PAYLOAD,
            message=f"Introspected schema from {url} failed validation: "
            + "; ".join(error.message for error in errors),
            suggestion="The endpoint returned an inconsistent introspection result.",
        )
    return schema
