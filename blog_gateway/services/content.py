"""
ContentService - blog-level operations over the content gateway.

Results are the upstream JSON payloads, untouched. Object IDs are checked
before any gateway interaction.
"""

import asyncio
import re
from typing import Any

import httpx
from loguru import logger

from blog_gateway.services.errors import ValidationError
from blog_gateway.services.gateway import PROBE_ENDPOINT, ContentGateway

# 32 hex digits, optionally dashed as a UUID
_OBJECT_ID = re.compile(
    r"^[a-zA-Z0-9]{8}-?[a-zA-Z0-9]{4}-?[a-zA-Z0-9]{4}-?[a-zA-Z0-9]{4}-?[a-zA-Z0-9]{12}$"
)

MAX_PAGE_SIZE = 100


def validate_object_id(value: Any, kind: str = "object") -> str:
    if not isinstance(value, str) or not _OBJECT_ID.match(value):
        raise ValidationError(f"invalid {kind} id: {value!r}")
    return value


def _page_size(page_size: int) -> int:
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
    return page_size


class ContentService:
    """Thin wrapper exposing the content operations the blog front end needs."""

    def __init__(self, gateway: ContentGateway, default_database_id: str | None = None):
        self.gateway = gateway
        self.default_database_id = default_database_id

    async def query_database(
        self, database_id: str | None = None, client_id: str | None = None
    ) -> Any:
        database_id = validate_object_id(database_id or self.default_database_id, "database")
        return await self.gateway.fetch_resource(
            f"databases/{database_id}/query",
            {"method": "POST", "body": {}},
            client_id,
        )

    async def list_databases(self, client_id: str | None = None) -> Any:
        return await self.gateway.fetch_resource(
            "search",
            {
                "method": "POST",
                "body": {"filter": {"value": "database", "property": "object"}},
            },
            client_id,
        )

    async def get_database_info(self, database_id: str, client_id: str | None = None) -> Any:
        database_id = validate_object_id(database_id, "database")
        return await self.gateway.fetch_resource(f"databases/{database_id}", None, client_id)

    async def get_block_children(
        self,
        block_id: str,
        page_size: int = MAX_PAGE_SIZE,
        cursor: str | None = None,
        client_id: str | None = None,
    ) -> Any:
        block_id = validate_object_id(block_id, "block")
        params: dict[str, Any] = {"page_size": _page_size(page_size)}
        if cursor:
            params["start_cursor"] = cursor
        endpoint = f"blocks/{block_id}/children?{httpx.QueryParams(params)}"
        return await self.gateway.fetch_resource(endpoint, None, client_id)

    async def get_all_block_children(
        self, block_id: str, page_size: int = MAX_PAGE_SIZE, client_id: str | None = None
    ) -> dict[str, Any]:
        """Follow pagination until the block has no more children."""
        blocks: list[Any] = []
        cursor: str | None = None

        while True:
            data = await self.get_block_children(block_id, page_size, cursor, client_id)
            blocks.extend(data.get("results", []))
            cursor = data.get("next_cursor")
            if not data.get("has_more") or not cursor:
                break

        return {"blocks": blocks, "hasMore": False, "nextCursor": None}

    async def get_page_content(
        self,
        page_id: str,
        page_size: int = 10,
        cursor: str | None = None,
        client_id: str | None = None,
    ) -> dict[str, Any]:
        """The page object plus one page of its blocks, fetched concurrently."""
        page_id = validate_object_id(page_id, "page")
        page, children = await asyncio.gather(
            self.gateway.fetch_resource(f"pages/{page_id}", None, client_id),
            self.get_block_children(page_id, page_size, cursor, client_id),
        )
        return {
            "page": page,
            "blocks": children.get("results", []),
            "hasMore": children.get("has_more", False),
            "nextCursor": children.get("next_cursor"),
        }

    async def test_connection(self, client_id: str | None = None) -> Any:
        """Fetch the integration's bot user, bypassing any cached copy."""
        self.gateway.invalidate(PROBE_ENDPOINT)
        data = await self.gateway.fetch_resource(PROBE_ENDPOINT, None, client_id)
        logger.info("Content service connection test succeeded")
        return data
