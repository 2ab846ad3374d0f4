"""Lazy traversal of cursor-paginated list endpoints."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterator, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from .metrics import PAGE_COUNTER

logger = logging.getLogger("anthropic_client.pagination")

DEFAULT_ITEM_KEY = "data"
DEFAULT_CURSOR_PARAM = "after_id"

Page = Mapping[str, Any]
PageFetcher = Callable[[Dict[str, Any]], Page]
AsyncPageFetcher = Callable[[Dict[str, Any]], Awaitable[Page]]


class Cursor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    has_more: bool = False
    # Cursor ids are opaque and passed back to the server unchanged.
    first_id: Optional[Any] = None
    last_id: Optional[Any] = None

    @classmethod
    def from_page(cls, page: Page) -> "Cursor":
        fields = ("has_more", "first_id", "last_id")
        return cls.model_validate({key: page[key] for key in fields if page.get(key) is not None})


def next_params(
    params: Mapping[str, Any],
    page: Page,
    cursor_param: str = DEFAULT_CURSOR_PARAM,
) -> Optional[Dict[str, Any]]:
    """Parameters for the page after ``page``, or ``None`` when traversal is done."""
    cursor = Cursor.from_page(page)
    if not cursor.has_more:
        return None
    if cursor.last_id is None:
        logger.warning("Page reports has_more without last_id; stopping traversal")
        return None
    logger.debug("Advancing pagination %s=%s", cursor_param, cursor.last_id)
    return {**params, cursor_param: cursor.last_id}


def iter_pages(
    fetch_page: PageFetcher,
    params: Optional[Mapping[str, Any]] = None,
    *,
    cursor_param: str = DEFAULT_CURSOR_PARAM,
) -> Iterator[Page]:
    current: Optional[Dict[str, Any]] = dict(params or {})
    while current is not None:
        page = fetch_page(dict(current))
        PAGE_COUNTER.inc()
        yield page
        current = next_params(current, page, cursor_param)


def iter_items(
    fetch_page: PageFetcher,
    params: Optional[Mapping[str, Any]] = None,
    item_key: str = DEFAULT_ITEM_KEY,
    *,
    cursor_param: str = DEFAULT_CURSOR_PARAM,
) -> Iterator[Any]:
    for page in iter_pages(fetch_page, params, cursor_param=cursor_param):
        yield from page.get(item_key) or ()


def fetch_all(
    fetch_page: PageFetcher,
    params: Optional[Mapping[str, Any]] = None,
    item_key: str = DEFAULT_ITEM_KEY,
    *,
    cursor_param: str = DEFAULT_CURSOR_PARAM,
) -> List[Any]:
    return list(iter_items(fetch_page, params, item_key, cursor_param=cursor_param))


async def aiter_pages(
    fetch_page: AsyncPageFetcher,
    params: Optional[Mapping[str, Any]] = None,
    *,
    cursor_param: str = DEFAULT_CURSOR_PARAM,
) -> AsyncIterator[Page]:
    current: Optional[Dict[str, Any]] = dict(params or {})
    while current is not None:
        page = await fetch_page(dict(current))
        PAGE_COUNTER.inc()
        yield page
        current = next_params(current, page, cursor_param)


async def aiter_items(
    fetch_page: AsyncPageFetcher,
    params: Optional[Mapping[str, Any]] = None,
    item_key: str = DEFAULT_ITEM_KEY,
    *,
    cursor_param: str = DEFAULT_CURSOR_PARAM,
) -> AsyncIterator[Any]:
    async for page in aiter_pages(fetch_page, params, cursor_param=cursor_param):
        for item in page.get(item_key) or ():
            yield item


async def afetch_all(
    fetch_page: AsyncPageFetcher,
    params: Optional[Mapping[str, Any]] = None,
    item_key: str = DEFAULT_ITEM_KEY,
    *,
    cursor_param: str = DEFAULT_CURSOR_PARAM,
) -> List[Any]:
    return [item async for item in aiter_items(fetch_page, params, item_key, cursor_param=cursor_param)]


__all__ = [
    "Cursor",
    "DEFAULT_CURSOR_PARAM",
    "DEFAULT_ITEM_KEY",
    "afetch_all",
    "aiter_items",
    "aiter_pages",
    "fetch_all",
    "iter_items",
    "iter_pages",
    "next_params",
]
