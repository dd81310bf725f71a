"""Banner service: the current user's profile banners."""

import logging

from src.adapters.http_client import TypedHTTPClient
from src.core.types import BannerListResponse, EmptyRequest
from src.services.post_service import path_segment

logger = logging.getLogger("oeeecafe")


class BannerService:

    def __init__(self, client: TypedHTTPClient):
        self._client = client

    def fetch_banners(self) -> BannerListResponse:
        return self._client.get("/banners", BannerListResponse)

    def activate_banner(self, banner_id: str) -> None:
        """Make ``banner_id`` the one shown on the profile."""
        self._client.post(f"/banners/{path_segment(banner_id)}/activate", body=EmptyRequest())
        logger.info(f"Activated banner {banner_id}")

    def delete_banner(self, banner_id: str) -> None:
        self._client.delete(f"/banners/{path_segment(banner_id)}")
        logger.info(f"Deleted banner {banner_id}")
