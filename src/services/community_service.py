"""Community service: directory, detail, membership, invitations and community CRUD."""

import logging
from typing import Optional

from src.adapters.http_client import TypedHTTPClient
from src.core.exceptions import InvalidRequestError
from src.core.types import (
    CommunityDetail,
    CommunityInvitationsListResponse,
    CommunityMembersListResponse,
    CreateCommunityRequest,
    CreateCommunityResponse,
    InviteUserRequest,
    MyCommunitiesResponse,
    PublicCommunitiesResponse,
    UpdateCommunityRequest,
    UserInvitationsListResponse,
)
from src.services.post_service import path_segment

logger = logging.getLogger("oeeecafe")

COMMUNITY_VISIBILITIES = ("public", "unlisted", "private")


def normalize_slug(slug: str) -> str:
    """Community pages are addressed as "@slug"."""
    return slug if slug.startswith("@") else f"@{slug}"


def bare_slug(slug: str) -> str:
    """Management endpoints take the slug without the "@"."""
    return slug[1:] if slug.startswith("@") else slug


def _check_visibility(visibility: str) -> None:
    if visibility not in COMMUNITY_VISIBILITIES:
        raise InvalidRequestError(f"Unknown community visibility: {visibility!r}")


class CommunityService:
    """Community lookups plus the owner/moderator management calls."""

    def __init__(self, client: TypedHTTPClient, posts_limit: int = 18, directory_limit: int = 20):
        self._client = client
        self.posts_limit = posts_limit
        self.directory_limit = directory_limit

    # --- Directory ---

    def fetch_my_communities(self) -> MyCommunitiesResponse:
        response = self._client.get("/communities", MyCommunitiesResponse)
        logger.info(f"Fetched {len(response.communities)} of my communities")
        return response

    def fetch_public_communities(self, offset: int = 0,
                                 limit: Optional[int] = None) -> PublicCommunitiesResponse:
        response = self._client.get(
            "/communities/public", PublicCommunitiesResponse,
            params={"offset": offset, "limit": self.directory_limit if limit is None else limit},
        )
        logger.info(
            f"Fetched {len(response.communities)} public communities "
            f"(offset: {offset}, has_more: {response.pagination.has_more})"
        )
        return response

    def search_public_communities(self, query: str, offset: int = 0,
                                  limit: Optional[int] = None) -> PublicCommunitiesResponse:
        response = self._client.get(
            "/communities/search", PublicCommunitiesResponse,
            params={
                "q": query,
                "offset": offset,
                "limit": self.directory_limit if limit is None else limit,
            },
        )
        logger.info(f"Found {len(response.communities)} communities for '{query}'")
        return response

    def fetch_community_detail(self, slug: str, offset: int = 0,
                               limit: Optional[int] = None) -> CommunityDetail:
        detail = self._client.get(
            f"/communities/{path_segment(normalize_slug(slug))}", CommunityDetail,
            params={"offset": offset, "limit": self.posts_limit if limit is None else limit},
        )
        logger.debug(f"Fetched community @{detail.community.slug}: {len(detail.posts)} posts")
        return detail

    # --- Members ---

    def fetch_members(self, slug: str) -> CommunityMembersListResponse:
        response = self._client.get(
            f"/communities/{path_segment(bare_slug(slug))}/members", CommunityMembersListResponse
        )
        logger.info(f"Fetched {len(response.members)} members of @{bare_slug(slug)}")
        return response

    def invite_user(self, slug: str, login_name: str) -> None:
        if not login_name or not login_name.strip():
            raise InvalidRequestError("Login name is empty")
        self._client.post(
            f"/communities/{path_segment(bare_slug(slug))}/members",
            body=InviteUserRequest(login_name=login_name.strip()),
        )
        logger.info(f"Invited '{login_name.strip()}' to @{bare_slug(slug)}")

    def remove_member(self, slug: str, user_id: str) -> None:
        self._client.delete(
            f"/communities/{path_segment(bare_slug(slug))}/members/{path_segment(user_id)}"
        )
        logger.info(f"Removed member {user_id} from @{bare_slug(slug)}")

    # --- Invitations ---

    def fetch_community_invitations(self, slug: str) -> CommunityInvitationsListResponse:
        response = self._client.get(
            f"/communities/{path_segment(bare_slug(slug))}/invitations",
            CommunityInvitationsListResponse,
        )
        logger.info(f"Fetched {len(response.invitations)} pending invitations for @{bare_slug(slug)}")
        return response

    def retract_invitation(self, slug: str, invitation_id: str) -> None:
        self._client.delete(
            f"/communities/{path_segment(bare_slug(slug))}/invitations/{path_segment(invitation_id)}"
        )
        logger.info(f"Retracted invitation {invitation_id} for @{bare_slug(slug)}")

    def fetch_my_invitations(self) -> UserInvitationsListResponse:
        response = self._client.get("/invitations", UserInvitationsListResponse)
        logger.info(f"Fetched {len(response.invitations)} pending invitations")
        return response

    def accept_invitation(self, invitation_id: str) -> None:
        self._client.post(f"/invitations/{path_segment(invitation_id)}/accept")
        logger.info(f"Accepted invitation {invitation_id}")

    def reject_invitation(self, invitation_id: str) -> None:
        self._client.post(f"/invitations/{path_segment(invitation_id)}/reject")
        logger.info(f"Rejected invitation {invitation_id}")

    # --- Community CRUD ---

    def create_community(self, name: str, slug: str, description: str = "",
                         visibility: str = "public") -> CreateCommunityResponse:
        """Create a community owned by the current user.

        Raises:
            InvalidRequestError: blank name or slug, or unknown visibility
            APIError: the server refused (e.g. slug taken)
        """
        if not name or not name.strip():
            raise InvalidRequestError("Community name is empty")
        if not bare_slug(slug or "").strip():
            raise InvalidRequestError("Community slug is empty")
        _check_visibility(visibility)

        response = self._client.post(
            "/communities", CreateCommunityResponse,
            body=CreateCommunityRequest(
                name=name.strip(),
                slug=bare_slug(slug.strip()),
                description=description,
                visibility=visibility,
            ),
        )
        logger.info(f"Created community @{response.community.slug}")
        return response

    def update_community(self, slug: str, name: str, description: str,
                         visibility: str) -> None:
        if not name or not name.strip():
            raise InvalidRequestError("Community name is empty")
        _check_visibility(visibility)
        self._client.put(
            f"/communities/{path_segment(bare_slug(slug))}",
            body=UpdateCommunityRequest(
                name=name.strip(), description=description, visibility=visibility,
            ),
        )
        logger.info(f"Updated community @{bare_slug(slug)}")

    def delete_community(self, slug: str) -> None:
        self._client.delete(f"/communities/{path_segment(bare_slug(slug))}")
        logger.info(f"Deleted community @{bare_slug(slug)}")
