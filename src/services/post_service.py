"""Post service: feeds, post detail, comments, reactions, profiles."""

import logging
from typing import Optional
from urllib.parse import quote

from src.adapters.http_client import TypedHTTPClient
from src.core.exceptions import InvalidRequestError
from src.core.fanout import gather_all
from src.core.types import (
    ActiveCommunitiesResponse,
    CommentNode,
    CommentsListResponse,
    CreateCommentRequest,
    DeletePostResponse,
    EmptyRequest,
    HomeFeed,
    MovableCommunitiesResponse,
    MoveCommunityRequest,
    PostDetailResponse,
    PostsResponse,
    ProfileDetail,
    ProfileFollowingsListResponse,
    ReactionResponse,
    ReactorsResponse,
    RecentCommentsResponse,
)

logger = logging.getLogger("oeeecafe")


def path_segment(value: str) -> str:
    """Percent-encode one path segment (ids, login names, emoji)."""
    return quote(str(value), safe="@")


class PostService:
    """Posts, comments, reactions and profile lookups."""

    def __init__(self, client: TypedHTTPClient, posts_limit: int = 18,
                 comments_limit: int = 100, followings_limit: int = 50):
        self._client = client
        self.posts_limit = posts_limit
        self.comments_limit = comments_limit
        self.followings_limit = followings_limit

    # --- Feeds ---

    def fetch_public_posts(self, offset: int = 0, limit: Optional[int] = None) -> PostsResponse:
        return self._client.get(
            "/posts/public", PostsResponse,
            params={"offset": offset, "limit": self.posts_limit if limit is None else limit},
        )

    def fetch_active_communities(self) -> ActiveCommunitiesResponse:
        return self._client.get("/communities/active", ActiveCommunitiesResponse)

    def fetch_latest_comments(self) -> RecentCommentsResponse:
        return self._client.get("/comments/latest", RecentCommentsResponse)

    def fetch_home(self) -> HomeFeed:
        """Fetch the three home-screen lists concurrently.

        Raises the first failure; there is no partial result.
        """
        posts, communities, comments = gather_all(
            self.fetch_public_posts,
            self.fetch_active_communities,
            self.fetch_latest_comments,
        )
        logger.info(
            f"Fetched home: {len(posts.posts)} posts, {len(communities.communities)} communities, "
            f"{len(comments.comments)} comments"
        )
        return HomeFeed(posts=posts, communities=communities.communities, comments=comments.comments)

    # --- Posts ---

    def fetch_post_details(self, post_id: str) -> PostDetailResponse:
        return self._client.get(f"/posts/{path_segment(post_id)}", PostDetailResponse)

    def delete_post(self, post_id: str) -> bool:
        response = self._client.delete(f"/posts/{path_segment(post_id)}", DeletePostResponse)
        logger.info(f"Deleted post {post_id}: {response.success}")
        return response.success

    def fetch_movable_communities(self, post_id: str) -> MovableCommunitiesResponse:
        return self._client.get(
            f"/posts/{path_segment(post_id)}/movable-communities", MovableCommunitiesResponse
        )

    def move_post_to_community(self, post_id: str, community_id: Optional[str]) -> None:
        """Move a post; ``community_id=None`` moves it to personal posts."""
        self._client.put(
            f"/posts/{path_segment(post_id)}/community",
            body=MoveCommunityRequest(community_id=community_id),
        )

    # --- Comments ---

    def fetch_post_comments(self, post_id: str, offset: int = 0,
                            limit: Optional[int] = None) -> CommentsListResponse:
        return self._client.get(
            f"/posts/{path_segment(post_id)}/comments", CommentsListResponse,
            params={"offset": offset, "limit": self.comments_limit if limit is None else limit},
        )

    def post_comment(self, post_id: str, content: str,
                     parent_comment_id: Optional[str] = None) -> CommentNode:
        if not content or not content.strip():
            raise InvalidRequestError("Comment content is empty")
        return self._client.post(
            f"/posts/{path_segment(post_id)}/comments", CommentNode,
            body=CreateCommentRequest(content=content, parent_comment_id=parent_comment_id),
        )

    def delete_comment(self, comment_id: str) -> None:
        self._client.delete(f"/comments/{path_segment(comment_id)}")

    # --- Reactions ---

    def add_reaction(self, post_id: str, emoji: str) -> ReactionResponse:
        return self._client.post(
            f"/posts/{path_segment(post_id)}/reactions/{path_segment(emoji)}",
            ReactionResponse, body=EmptyRequest(),
        )

    def remove_reaction(self, post_id: str, emoji: str) -> ReactionResponse:
        return self._client.delete(
            f"/posts/{path_segment(post_id)}/reactions/{path_segment(emoji)}", ReactionResponse
        )

    def fetch_reactions_by_emoji(self, post_id: str, emoji: str) -> ReactorsResponse:
        return self._client.get(
            f"/posts/{path_segment(post_id)}/reactions/{path_segment(emoji)}", ReactorsResponse
        )

    # --- Profiles ---

    def fetch_profile_detail(self, login_name: str, offset: int = 0,
                             limit: Optional[int] = None) -> ProfileDetail:
        return self._client.get(
            f"/profiles/{path_segment(login_name)}", ProfileDetail,
            params={"offset": offset, "limit": self.posts_limit if limit is None else limit},
        )

    def fetch_profile_followings(self, login_name: str, offset: int = 0,
                                 limit: Optional[int] = None) -> ProfileFollowingsListResponse:
        return self._client.get(
            f"/profiles/{path_segment(login_name)}/followings", ProfileFollowingsListResponse,
            params={"offset": offset, "limit": self.followings_limit if limit is None else limit},
        )

    def follow_profile(self, login_name: str) -> None:
        self._client.post(f"/profiles/{path_segment(login_name)}/follow")

    def unfollow_profile(self, login_name: str) -> None:
        self._client.post(f"/profiles/{path_segment(login_name)}/unfollow")
