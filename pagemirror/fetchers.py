from typing import Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ._logging import logger, redact_key
from .config import ClientOptions
from .exceptions import handle_http_errors
from .pagination import Page

T = TypeVar("T")


class _FeedData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[Any] = Field(default_factory=list)


class _FeedResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: _FeedData | None = None
    next_page_token: str | None = Field(default=None, alias="nextPageToken")


class HttpPageFetcher(Generic[T]):
    """
    PageFetcher for the JSON feed endpoints.

    Posts {"start-token": cursor, "max-results": n} and reads
    {"data": {"items": [...]}, "nextPageToken": "..."}. A reply without "data"
    is an empty last page. Items are validated into item_type with pydantic.

    Usage:
        fetch = HttpPageFetcher(http, "trackfeed", Track)
        tracks = PagingIterator(fetch).collect_all()
    """

    def __init__(
        self,
        client: httpx.Client,
        path: str,
        item_type: type[T],
        options: ClientOptions | None = None,
    ) -> None:
        self.client = client
        self.path = path
        self.options = options or ClientOptions()
        self._adapter = TypeAdapter(list[item_type])  # type: ignore[valid-type]

    def request_body(self, cursor: str | None) -> dict[str, Any]:
        body: dict[str, Any] = {"max-results": str(self.options.page_size)}
        if cursor:
            body["start-token"] = cursor
        return body

    def __call__(self, cursor: str | None) -> Page[T]:
        url = self.options.url_for(self.path)
        logger.debug(
            "Requesting feed page",
            extra={"endpoint": self.path, "cursor_hash": redact_key(cursor)},
        )

        with handle_http_errors(operation=self.path):
            response = self.client.post(
                url, json=self.request_body(cursor), timeout=self.options.timeout
            )
            response.raise_for_status()
            feed = _FeedResponse.model_validate(response.json())
            raw_items = feed.data.items if feed.data is not None else []
            items = self._adapter.validate_python(raw_items)

        return Page(items=items, next_cursor=feed.next_page_token or None)
