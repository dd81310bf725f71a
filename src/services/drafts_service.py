"""Drafts service: the current user's unpublished posts."""

import logging

from src.adapters.http_client import TypedHTTPClient
from src.core.types import DraftPost, DraftPostsResponse
from src.services.post_service import path_segment

logger = logging.getLogger("oeeecafe")


class DraftsService:

    def __init__(self, client: TypedHTTPClient):
        self._client = client

    def fetch_drafts(self) -> list[DraftPost]:
        response = self._client.get("/posts/drafts", DraftPostsResponse)
        logger.info(f"Fetched {len(response.drafts)} drafts")
        return response.drafts

    def delete_draft(self, post_id: str) -> None:
        # Drafts are posts; they are deleted through the post endpoint
        self._client.delete(f"/posts/{path_segment(post_id)}")
        logger.info(f"Deleted draft {post_id}")
