"""Data Transfer Objects for the oeee.cafe API.

Attribute names are the snake_case wire keys; see src.core.codec.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


# --- Common ---

@dataclass
class Pagination:
    """Pagination metadata returned with every list response.

    ``has_more`` is authoritative; never infer it from the page length.
    """

    offset: int                      # offset the server served this page from
    limit: int
    has_more: bool
    total: Optional[int] = None

    def next_offset(self, returned_count: int) -> int:
        """Offset for the following page: server offset + items returned."""
        return self.offset + returned_count


@dataclass
class ErrorEnvelope:
    """Structured failure: {"error": {"code": ..., "message": ...}}."""

    code: str
    message: str


@dataclass
class ErrorResponse:
    error: ErrorEnvelope


@dataclass
class EmptyRequest:
    """Empty request body for calls that take no parameters."""


# --- Auth ---

@dataclass
class CurrentUser:
    id: str
    login_name: str
    display_name: str
    email: Optional[str] = None
    email_verified_at: Optional[str] = None
    banner_id: Optional[str] = None
    preferred_language: Optional[str] = None


@dataclass
class LoginRequest:
    login_name: str
    password: str


@dataclass
class LoginResponse:
    success: bool
    user: Optional[CurrentUser] = None
    error: Optional[str] = None


SignupResponse = LoginResponse


@dataclass
class SignupRequest:
    login_name: str
    password: str
    display_name: str


@dataclass
class LogoutRequest:
    device_token: Optional[str] = None


@dataclass
class DeleteAccountRequest:
    password: str


@dataclass
class RequestEmailVerificationRequest:
    email: str


@dataclass
class RequestEmailVerificationResponse:
    success: bool
    challenge_id: Optional[str] = None
    email: Optional[str] = None
    expires_in_seconds: Optional[int] = None
    error: Optional[str] = None


@dataclass
class VerifyEmailCodeRequest:
    challenge_id: str
    token: str


# --- Posts ---

@dataclass
class Post:
    """Post thumbnail as shown in feeds."""

    id: str
    image_url: str
    image_width: int
    image_height: int
    is_sensitive: bool = False


@dataclass
class PostsResponse:
    posts: list[Post]
    pagination: Pagination


@dataclass
class AuthorInfo:
    id: str
    login_name: str
    display_name: str


@dataclass
class ImageInfo:
    filename: str
    width: int
    height: int
    tool: str
    paint_duration: str

    @property
    def url(self) -> str:
        return f"https://r2.oeee.cafe/image/{self.filename[:2]}/{self.filename}"


@dataclass
class PostCommunityInfo:
    id: str
    name: str
    slug: str
    background_color: Optional[str] = None
    foreground_color: Optional[str] = None


@dataclass
class PostDetail:
    id: str
    author: AuthorInfo
    viewer_count: int
    image: ImageInfo
    is_sensitive: bool
    allow_relay: bool
    title: Optional[str] = None
    content: Optional[str] = None
    published_at_utc: Optional[datetime] = None
    community: Optional[PostCommunityInfo] = None
    hashtags: list[str] = field(default_factory=list)


@dataclass
class ChildPostImage:
    url: str
    width: int
    height: int


@dataclass
class ChildPostAuthor:
    id: str
    login_name: str
    display_name: str
    actor_handle: str


@dataclass
class ChildPost:
    """Reply post; forms its own tree through ``children``."""

    id: str
    author: ChildPostAuthor
    image: ChildPostImage
    comments_count: int
    title: Optional[str] = None
    content: Optional[str] = None
    published_at: Optional[datetime] = None
    children: list[ChildPost] = field(default_factory=list)


@dataclass
class ReactionCount:
    emoji: str
    count: int
    reacted_by_user: bool


@dataclass
class ReactionResponse:
    reactions: list[ReactionCount]


@dataclass
class Reactor:
    iri: str
    post_id: str
    actor_id: str
    emoji: str
    created_at: datetime
    actor_name: str
    actor_handle: str


@dataclass
class ReactorsResponse:
    reactions: list[Reactor]


@dataclass
class PostDetailResponse:
    post: PostDetail
    child_posts: list[ChildPost]
    reactions: list[ReactionCount]
    parent_post: Optional[ChildPost] = None


@dataclass
class DeletePostResponse:
    success: bool


@dataclass
class MovableCommunity:
    """Move target; ``id`` is None for the personal-posts option."""

    name: str
    id: Optional[str] = None
    slug: Optional[str] = None
    visibility: Optional[str] = None
    background_color: Optional[str] = None
    foreground_color: Optional[str] = None
    owner_login_name: Optional[str] = None
    owner_display_name: Optional[str] = None
    has_participated: Optional[bool] = None

    @property
    def is_personal_post(self) -> bool:
        return self.id is None


@dataclass
class MovableCommunitiesResponse:
    communities: list[MovableCommunity]


@dataclass
class MoveCommunityRequest:
    community_id: Optional[str] = None   # None moves the post to personal posts


# --- Comments ---

@dataclass(frozen=True)
class CommentAuthor:
    actor_id: str
    name: str
    handle: str
    login_name: Optional[str] = None
    is_local: bool = True


@dataclass(frozen=True)
class CommentNode:
    """Threaded comment. Immutable; ``children`` is an ordered tuple."""

    id: str
    post_id: str
    actor_id: str
    content: str                     # plain text
    actor_name: str
    actor_handle: str
    is_local: bool
    created_at: datetime
    updated_at: datetime
    parent_comment_id: Optional[str] = None
    content_html: Optional[str] = None   # rich text
    actor_login_name: Optional[str] = None
    is_deleted: bool = False
    children: tuple[CommentNode, ...] = ()

    @property
    def author(self) -> CommentAuthor:
        return CommentAuthor(
            actor_id=self.actor_id,
            name=self.actor_name,
            handle=self.actor_handle,
            login_name=self.actor_login_name,
            is_local=self.is_local,
        )


@dataclass
class CommentsListResponse:
    comments: list[CommentNode]
    pagination: Pagination


@dataclass
class CreateCommentRequest:
    content: str
    parent_comment_id: Optional[str] = None


@dataclass
class RecentComment:
    id: str
    post_id: str
    actor_id: str
    content: str
    actor_name: str
    actor_handle: str
    is_local: bool
    created_at: datetime
    post_author_login_name: str
    content_html: Optional[str] = None
    actor_login_name: Optional[str] = None
    post_title: Optional[str] = None
    post_image_url: Optional[str] = None
    post_image_width: Optional[int] = None
    post_image_height: Optional[int] = None


@dataclass
class RecentCommentsResponse:
    comments: list[RecentComment]


# --- Communities ---

@dataclass
class CommunityPost:
    id: str
    image_url: str
    image_width: int
    image_height: int
    is_sensitive: bool = False


@dataclass
class ActiveCommunity:
    id: str
    name: str
    slug: str
    visibility: str                  # "public" | "unlisted" | "private"
    owner_login_name: str
    description: Optional[str] = None
    posts_count: Optional[int] = None
    members_count: Optional[int] = None
    recent_posts: list[CommunityPost] = field(default_factory=list)


@dataclass
class ActiveCommunitiesResponse:
    communities: list[ActiveCommunity]


@dataclass
class PublicCommunitiesResponse:
    communities: list[ActiveCommunity]
    pagination: Pagination


@dataclass
class CommunityInfo:
    id: str
    name: str
    slug: str
    visibility: str
    owner_id: str
    description: Optional[str] = None
    background_color: Optional[str] = None
    foreground_color: Optional[str] = None


@dataclass
class CommunityStats:
    total_posts: int
    total_contributors: int
    total_comments: int


@dataclass
class CommunityDetailPost:
    id: str
    image_url: str
    image_width: int
    image_height: int


@dataclass
class CommunityDetail:
    community: CommunityInfo
    stats: CommunityStats
    posts: list[CommunityDetailPost]
    pagination: Pagination
    comments: list[RecentComment] = field(default_factory=list)


@dataclass
class MyCommunitiesResponse:
    communities: list[ActiveCommunity]


@dataclass
class CommunityMember:
    id: str
    user_id: str
    username: str
    display_name: str
    role: str                        # "owner" | "moderator" | "member"
    joined_at: datetime
    avatar_url: Optional[str] = None
    invited_by_username: Optional[str] = None


@dataclass
class CommunityMembersListResponse:
    members: list[CommunityMember]


@dataclass
class InvitationCommunityInfo:
    id: str
    name: str
    slug: str
    description: str
    visibility: str


@dataclass
class InvitationUserInfo:
    id: str
    username: str
    display_name: str
    avatar_url: Optional[str] = None


@dataclass
class UserInvitation:
    """An invitation addressed to the current user."""

    id: str
    community: InvitationCommunityInfo
    inviter: InvitationUserInfo
    created_at: datetime


@dataclass
class UserInvitationsListResponse:
    invitations: list[UserInvitation]


@dataclass
class CommunityInvitation:
    """A pending invitation sent from a community, as its moderators see it."""

    id: str
    community_id: str
    invitee: InvitationUserInfo
    inviter: InvitationUserInfo
    created_at: datetime


@dataclass
class CommunityInvitationsListResponse:
    invitations: list[CommunityInvitation]


@dataclass
class InviteUserRequest:
    login_name: str


@dataclass
class CreateCommunityRequest:
    name: str
    slug: str
    description: str
    visibility: str


@dataclass
class CreateCommunityResponse:
    community: CommunityInfo


@dataclass
class UpdateCommunityRequest:
    name: str
    description: str
    visibility: str


# --- Profiles ---

@dataclass
class ProfileUser:
    id: str
    login_name: str
    display_name: str
    is_following: bool


@dataclass
class ProfileBanner:
    id: str
    image_filename: str
    image_url: str


@dataclass
class ProfilePost:
    id: str
    image_url: str
    image_width: int
    image_height: int


@dataclass
class ProfileFollowing:
    id: str
    login_name: str
    display_name: str
    banner_image_url: Optional[str] = None
    banner_image_width: Optional[int] = None
    banner_image_height: Optional[int] = None


@dataclass
class ProfileLink:
    id: str
    url: str
    description: Optional[str] = None


@dataclass
class ProfileDetail:
    user: ProfileUser
    posts: list[ProfilePost]
    pagination: Pagination
    followings: list[ProfileFollowing]
    total_followings: int
    links: list[ProfileLink]
    banner: Optional[ProfileBanner] = None


@dataclass
class ProfileFollowingsListResponse:
    followings: list[ProfileFollowing]
    pagination: Pagination


# --- Notifications ---

class NotificationType(Enum):
    COMMENT = "Comment"
    COMMENT_REPLY = "CommentReply"
    REACTION = "Reaction"
    FOLLOW = "Follow"
    GUESTBOOK_ENTRY = "GuestbookEntry"
    GUESTBOOK_REPLY = "GuestbookReply"
    MENTION = "Mention"
    POST_REPLY = "PostReply"
    UNKNOWN = "Unknown"

    @classmethod
    def _missing_(cls, value):
        # Types added server-side after this client shipped.
        return cls.UNKNOWN


@dataclass
class NotificationItem:
    id: str
    recipient_id: str
    actor_id: str
    actor_name: str
    actor_handle: str
    notification_type: NotificationType
    created_at: datetime
    actor_login_name: Optional[str] = None
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    reaction_iri: Optional[str] = None
    reaction_emoji: Optional[str] = None
    guestbook_entry_id: Optional[str] = None
    read_at: Optional[datetime] = None
    post_title: Optional[str] = None
    post_author_login_name: Optional[str] = None
    post_image_filename: Optional[str] = None
    post_image_url: Optional[str] = None
    post_image_width: Optional[int] = None
    post_image_height: Optional[int] = None
    comment_content: Optional[str] = None
    comment_content_html: Optional[str] = None
    guestbook_content: Optional[str] = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


@dataclass
class NotificationsResponse:
    """Notification list. Carries ``total``/``has_more`` at the top level."""

    notifications: list[NotificationItem]
    total: int
    has_more: bool


@dataclass
class UnreadCountResponse:
    count: int


@dataclass
class MarkReadResponse:
    notification: NotificationItem


@dataclass
class MarkAllReadResponse:
    count: int


# --- Home ---

@dataclass
class HomeFeed:
    """The three independent home-screen lists, fetched together."""

    posts: PostsResponse
    communities: list[ActiveCommunity]
    comments: list[RecentComment]


# --- Search ---

@dataclass
class SearchUser:
    id: str
    login_name: str
    display_name: str


@dataclass
class SearchPost:
    id: str
    image_url: str
    image_width: int
    image_height: int
    is_sensitive: bool = False


@dataclass
class SearchResponse:
    users: list[SearchUser] = field(default_factory=list)
    posts: list[SearchPost] = field(default_factory=list)


# --- Drafts ---

@dataclass
class DraftPost:
    id: str
    image_url: str
    created_at: str                  # passed through as sent
    community_id: str
    width: int
    height: int
    title: Optional[str] = None


@dataclass
class DraftPostsResponse:
    drafts: list[DraftPost]


# --- Banners ---

@dataclass
class BannerListItem:
    id: str
    image_url: str
    created_at: str
    is_active: bool


@dataclass
class BannerListResponse:
    banners: list[BannerListItem]
