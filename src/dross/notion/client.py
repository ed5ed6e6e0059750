"""Async HTTP client wrapper for interacting with the Notion REST API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import httpx

from dross.errors import MalformedResponse, TransportError

from .extractors import ExtractorRegistry, default_registry
from .models import ContentNode, Document

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.notion.com/v1/"
DEFAULT_API_VERSION = "2022-06-28"
DEFAULT_PAGE_SIZE = 100

PAGE_FILTER = {"value": "page", "property": "object"}
LAST_EDITED_DESCENDING = {"timestamp": "last_edited_time", "direction": "descending"}


@dataclass(slots=True)
class ResultPage:
    """One page of a cursor-paginated Notion listing."""

    items: list = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


class NotionClient:
    """Thin async wrapper above the Notion REST API."""

    def __init__(
        self,
        *,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30.0,
        max_retries: int = 3,
        extractors: Optional[ExtractorRegistry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": api_version,
        }
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            headers=headers,
            transport=transport,
        )
        self.max_retries = max_retries
        self.extractors = extractors or default_registry()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "NotionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------
    async def _request(self, method: str, url: str, **kwargs) -> dict:
        attempt = 0
        while True:
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.HTTPError as exc:
                raise TransportError(f"{method} {url} failed: {exc}") from exc

            if response.status_code == 429 and attempt < self.max_retries:
                attempt += 1
                delay = _retry_after(response)
                logger.warning("Rate limited on %s %s, retrying in %.1fs", method, url, delay)
                await asyncio.sleep(delay)
                continue

            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise TransportError(
                    f"{method} {url} returned HTTP {response.status_code}: {_error_message(response)}",
                    status_code=response.status_code,
                ) from exc

            try:
                data = response.json()
            except ValueError as exc:
                raise TransportError(f"{method} {url} returned invalid JSON") from exc
            if not isinstance(data, dict):
                raise MalformedResponse(f"{method} {url} returned {type(data).__name__}, expected an object")
            return data

    @staticmethod
    def _to_result_page(data: dict, items: list) -> ResultPage:
        return ResultPage(
            items=items,
            next_cursor=data.get("next_cursor"),
            has_more=bool(data.get("has_more", False)),
        )

    # ------------------------------------------------------------------
    # Parsers
    # ------------------------------------------------------------------
    @staticmethod
    def _results(data: dict) -> list:
        results = data.get("results", [])
        if not isinstance(results, list):
            raise MalformedResponse(f"Expected a list of results, got {type(results).__name__}")
        return results

    @staticmethod
    def _to_document(data: dict) -> Document:
        if not isinstance(data, dict):
            raise MalformedResponse(f"Expected a page object, got {type(data).__name__}")
        if data.get("object") != "page":
            raise MalformedResponse(
                f"Expected only pages in search results, got {data.get('object')!r} ({data.get('id')!r})"
            )
        try:
            return Document(
                id=str(data["id"]),
                url=data.get("url", ""),
                created_at=_parse_timestamp(data["created_time"]),
                updated_at=_parse_timestamp(data["last_edited_time"]),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise MalformedResponse(f"Unreadable page {data.get('id')!r}: {exc}") from exc

    def _to_content_node(self, data: dict, *, container_id: str) -> ContentNode:
        if not isinstance(data, dict):
            raise MalformedResponse(f"Expected a block object, got {type(data).__name__}")
        if data.get("object") != "block":
            raise MalformedResponse(f"Expected a block, got {data.get('object')!r} ({data.get('id')!r})")
        try:
            parent = data.get("parent") or {}
            extracted = self.extractors.extract(data)
            return ContentNode(
                id=str(data["id"]),
                container_id=container_id,
                text=extracted.text,
                created_at=_parse_timestamp(data["created_time"]),
                updated_at=_parse_timestamp(data["last_edited_time"]),
                parent_id=parent.get("block_id") if parent.get("type") == "block_id" else None,
                has_children=bool(data.get("has_children", False)),
                kind=extracted.kind,
                level=extracted.level,
                ordered=extracted.ordered,
            )
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise MalformedResponse(f"Unreadable block {data.get('id')!r}: {exc}") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def search(
        self,
        *,
        object_filter: Optional[dict] = None,
        sort: Optional[dict] = None,
        cursor: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> ResultPage:
        payload: dict[str, Any] = {
            "filter": object_filter or PAGE_FILTER,
            "sort": sort or LAST_EDITED_DESCENDING,
            "page_size": page_size,
        }
        if cursor:
            payload["start_cursor"] = cursor
        data = await self._request("POST", "search", json=payload)
        documents = [self._to_document(item) for item in self._results(data)]
        return self._to_result_page(data, documents)

    async def list_children(
        self,
        node_id: str,
        *,
        cursor: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        container_id: Optional[str] = None,
    ) -> ResultPage:
        params: dict[str, object] = {"page_size": page_size}
        if cursor:
            params["start_cursor"] = cursor
        data = await self._request("GET", f"blocks/{node_id}/children", params=params)
        container = container_id or node_id
        nodes = [self._to_content_node(item, container_id=container) for item in self._results(data)]
        return self._to_result_page(data, nodes)

    async def search_recent_pages(self, cutoff: datetime) -> list[Document]:
        """Return every page edited at or after ``cutoff``, most recent first."""

        pages: list[Document] = []
        cursor: Optional[str] = None
        while True:
            result = await self.search(cursor=cursor)
            for document in result.items:
                if document.updated_at < cutoff:
                    return pages
                pages.append(document)
            if not result.has_more or not result.next_cursor:
                return pages
            cursor = result.next_cursor


def _parse_timestamp(value: object) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"expected an ISO 8601 timestamp, got {value!r}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp {value!r} has no UTC offset")
    return parsed


def _retry_after(response: httpx.Response) -> float:
    try:
        return max(0.0, float(response.headers.get("Retry-After", "1")))
    except ValueError:
        return 1.0


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text


def create_client(
    *,
    token: str,
    base_url: str = DEFAULT_BASE_URL,
    api_version: str = DEFAULT_API_VERSION,
    text_separator: Optional[str] = None,
) -> NotionClient:
    return NotionClient(
        token=token,
        base_url=base_url,
        api_version=api_version,
        extractors=default_registry(text_separator),
    )
