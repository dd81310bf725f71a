"""Search service: users and posts matching a free-text query."""

import logging
from typing import Optional

from src.adapters.http_client import TypedHTTPClient
from src.core.types import SearchResponse

logger = logging.getLogger("oeeecafe")


class SearchService:

    def __init__(self, client: TypedHTTPClient):
        self._client = client

    def search(self, query: str, limit: Optional[int] = None) -> SearchResponse:
        """Search users and posts.

        A blank query returns an empty result without a request. ``limit``
        is only sent when given; the server picks its own default otherwise.
        """
        query = (query or "").strip()
        if not query:
            return SearchResponse()
        response = self._client.get("/search", SearchResponse, params={"q": query, "limit": limit})
        logger.debug(f"Search '{query}': {len(response.users)} users, {len(response.posts)} posts")
        return response
