"""PaginationCursor factories for the paginated lists, plus read-side filters."""

from typing import Optional

from src.core.comment_tree import CommentPredicate, filter_comments, keep_all, merge_comment_forests
from src.core.pagination import Page, PaginationCursor
from src.core.types import CommentNode, NotificationItem, NotificationType, Pagination
from src.services.community_service import CommunityService
from src.services.notification_service import NotificationService
from src.services.post_service import PostService


def public_posts_cursor(posts: PostService, limit: Optional[int] = None) -> PaginationCursor:
    def fetch(offset: int, page_size: int) -> Page:
        response = posts.fetch_public_posts(offset=offset, limit=page_size)
        return Page(response.posts, response.pagination)

    page_size = posts.posts_limit if limit is None else limit
    return PaginationCursor(fetch, page_size, name="public posts")


def post_comments_cursor(posts: PostService, post_id: str,
                         limit: Optional[int] = None) -> PaginationCursor:
    """Comment pages merge by id, so a reply arriving on a later page joins its thread."""
    def fetch(offset: int, page_size: int) -> Page:
        response = posts.fetch_post_comments(post_id, offset=offset, limit=page_size)
        return Page(response.comments, response.pagination)

    return PaginationCursor(
        fetch, posts.comments_limit if limit is None else limit,
        merge=merge_comment_forests, name=f"comments of {post_id}",
    )


def visible_comments(cursor: PaginationCursor,
                     predicate: CommentPredicate = keep_all) -> list[CommentNode]:
    return filter_comments(cursor.items, predicate)


def notifications_cursor(notifications: NotificationService,
                         limit: Optional[int] = None) -> PaginationCursor:
    """The notification list has no pagination block; it is built from the request offset."""
    def fetch(offset: int, page_size: int) -> Page:
        response = notifications.fetch_notifications(offset=offset, limit=page_size)
        pagination = Pagination(
            offset=offset, limit=page_size, has_more=response.has_more, total=response.total,
        )
        return Page(response.notifications, pagination)

    page_size = notifications.notifications_limit if limit is None else limit
    return PaginationCursor(fetch, page_size, name="notifications")


def known_notifications(cursor: PaginationCursor) -> list[NotificationItem]:
    """Items of a notifications cursor, minus types this client cannot render.

    Unknown types stay in the cursor so offsets keep counting them.
    """
    return [item for item in cursor.items if item.notification_type is not NotificationType.UNKNOWN]


def community_posts_cursor(communities: CommunityService, slug: str,
                           limit: Optional[int] = None) -> PaginationCursor:
    def fetch(offset: int, page_size: int) -> Page:
        detail = communities.fetch_community_detail(slug, offset=offset, limit=page_size)
        return Page(detail.posts, detail.pagination)

    page_size = communities.posts_limit if limit is None else limit
    return PaginationCursor(fetch, page_size, name=f"community {slug}")


def profile_followings_cursor(posts: PostService, login_name: str,
                              limit: Optional[int] = None) -> PaginationCursor:
    def fetch(offset: int, page_size: int) -> Page:
        response = posts.fetch_profile_followings(login_name, offset=offset, limit=page_size)
        return Page(response.followings, response.pagination)

    page_size = posts.followings_limit if limit is None else limit
    return PaginationCursor(fetch, page_size, name=f"followings of {login_name}")


def public_communities_cursor(communities: CommunityService,
                              limit: Optional[int] = None) -> PaginationCursor:
    def fetch(offset: int, page_size: int) -> Page:
        response = communities.fetch_public_communities(offset=offset, limit=page_size)
        return Page(response.communities, response.pagination)

    page_size = communities.directory_limit if limit is None else limit
    return PaginationCursor(fetch, page_size, name="public communities")


def community_search_cursor(communities: CommunityService, query: str,
                            limit: Optional[int] = None) -> PaginationCursor:
    def fetch(offset: int, page_size: int) -> Page:
        response = communities.search_public_communities(query, offset=offset, limit=page_size)
        return Page(response.communities, response.pagination)

    page_size = communities.directory_limit if limit is None else limit
    return PaginationCursor(fetch, page_size, name=f"community search '{query}'")
