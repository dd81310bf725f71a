"""Tests for WireCodec, key casing and timestamps."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import pytest

from src.core.codec import (
    WireCodec,
    convert_keys,
    format_timestamp,
    parse_timestamp,
    to_camel_case,
    to_snake_case,
)
from src.core.exceptions import DecodeError, EncodeError
from src.core.types import (
    CommentNode,
    CommentsListResponse,
    CommunityMember,
    CommunityMembersListResponse,
    CreateCommentRequest,
    DraftPost,
    DraftPostsResponse,
    InvitationCommunityInfo,
    InvitationUserInfo,
    LogoutRequest,
    MovableCommunitiesResponse,
    MovableCommunity,
    MoveCommunityRequest,
    NotificationItem,
    NotificationsResponse,
    NotificationType,
    Pagination,
    Post,
    PostDetailResponse,
    PostsResponse,
    SearchPost,
    SearchResponse,
    SearchUser,
    UserInvitation,
    UserInvitationsListResponse,
)


class Color(Enum):
    RED = "red"


@dataclass
class Sample:
    name: str
    count: int
    ratio: float = 0.0
    tags: list[str] = field(default_factory=list)
    color: Optional[Color] = None
    seen_at: Optional[datetime] = None


def decode(payload, target):
    return WireCodec().decode(json.dumps(payload).encode("utf-8"), target)


class TestKeyCasing:

    @pytest.mark.parametrize("camel,snake", [
        ("parentCommentId", "parent_comment_id"),
        ("hasMore", "has_more"),
        ("id", "id"),
    ])
    def test_round_trip(self, camel, snake):
        assert to_snake_case(camel) == snake
        assert to_camel_case(snake) == camel

    def test_leading_underscore_kept(self):
        assert to_camel_case("_private_value") == "_privateValue"

    def test_convert_keys_recursive(self):
        raw = {"hasMore": True, "items": [{"postId": "p1"}]}
        assert convert_keys(raw, to_snake_case) == {"has_more": True, "items": [{"post_id": "p1"}]}


class TestTimestamps:

    def test_fractional_seconds(self):
        parsed = parse_timestamp("2025-03-01T12:00:00.5Z")
        assert parsed == datetime(2025, 3, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)

    def test_nanoseconds_truncated(self):
        parsed = parse_timestamp("2025-03-01T12:00:00.123456789Z")
        assert parsed.microsecond == 123456

    def test_without_fraction(self):
        assert parse_timestamp("2025-03-01T12:00:00Z") == datetime(2025, 3, 1, 12, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self):
        parsed = parse_timestamp("2025-03-01T09:00:00+09:00")
        assert parsed == datetime(2025, 3, 1, 0, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    @pytest.mark.parametrize("text", ["2025-03-01T12:00:00", "2025-03-01", "yesterday", ""])
    def test_rejects_invalid(self, text):
        with pytest.raises(ValueError, match="Cannot decode date string"):
            parse_timestamp(text)

    def test_format_utc(self):
        value = datetime(2025, 3, 1, 21, 0, tzinfo=timezone(timedelta(hours=9)))
        assert format_timestamp(value) == "2025-03-01T12:00:00Z"

    def test_format_keeps_microseconds(self):
        value = datetime(2025, 3, 1, 12, 0, 0, 250, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2025-03-01T12:00:00.000250Z"

    def test_format_naive_is_utc(self):
        assert format_timestamp(datetime(2025, 3, 1)) == "2025-03-01T00:00:00Z"


class TestEncode:

    def test_none_optionals_omitted(self):
        body = WireCodec().encode(CreateCommentRequest(content="hi"))
        assert json.loads(body) == {"content": "hi"}

    def test_nested_values(self):
        value = Sample(name="a", count=1, tags=["x"], color=Color.RED,
                       seen_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
        assert json.loads(WireCodec().encode(value)) == {
            "name": "a", "count": 1, "ratio": 0.0, "tags": ["x"],
            "color": "red", "seen_at": "2025-01-01T00:00:00Z",
        }

    def test_move_to_personal_posts_omits_community(self):
        assert json.loads(WireCodec().encode(MoveCommunityRequest())) == {}

    def test_logout_with_device_token(self):
        body = WireCodec().encode(LogoutRequest(device_token="abc"))
        assert json.loads(body) == {"device_token": "abc"}

    def test_camel_case_codec(self):
        codec = WireCodec(key_to_wire=to_camel_case)
        body = codec.encode(CreateCommentRequest(content="hi", parent_comment_id="c1"))
        assert json.loads(body) == {"content": "hi", "parentCommentId": "c1"}

    @pytest.mark.parametrize("value", [float("inf"), float("nan")])
    def test_non_finite_float_rejected(self, value):
        with pytest.raises(EncodeError):
            WireCodec().encode(Sample(name="a", count=1, ratio=value))

    def test_unsupported_type_rejected(self):
        with pytest.raises(EncodeError, match="Unsupported type"):
            WireCodec().encode({"value": object()})

    def test_non_string_key_rejected(self):
        with pytest.raises(EncodeError):
            WireCodec().encode({1: "a"})


class TestDecode:

    def test_defaults_for_missing_optionals(self):
        result = decode({"name": "a", "count": 2, "unknown": "ignored"}, Sample)
        assert result == Sample(name="a", count=2)

    def test_missing_required_key(self):
        with pytest.raises(DecodeError) as exc_info:
            decode({"name": "a"}, Sample)
        error = exc_info.value
        assert error.path == "count"
        assert error.actual == "missing"
        assert "Missing key 'count'" in error.message

    def test_type_mismatch_path(self):
        with pytest.raises(DecodeError) as exc_info:
            decode({"name": "a", "count": 1, "tags": ["ok", 3]}, Sample)
        error = exc_info.value
        assert error.path == "tags[1]"
        assert error.expected == "str"
        assert error.actual == "int"

    def test_bool_is_not_int(self):
        with pytest.raises(DecodeError):
            decode({"name": "a", "count": True}, Sample)

    def test_int_accepted_as_float(self):
        assert decode({"name": "a", "count": 1, "ratio": 2}, Sample).ratio == 2.0

    def test_null_for_required_field(self):
        with pytest.raises(DecodeError, match="Value not found"):
            decode({"name": None, "count": 1}, Sample)

    def test_invalid_json_reports_position(self):
        with pytest.raises(DecodeError, match="line 1 column"):
            WireCodec().decode(b'{"name": ', Sample)

    def test_non_utf8_body(self):
        with pytest.raises(DecodeError, match="UTF-8"):
            WireCodec().decode(b"\xff\xfe", Sample)

    def test_bad_enum_value(self):
        with pytest.raises(DecodeError) as exc_info:
            decode({"name": "a", "count": 1, "color": "blue"}, Sample)
        assert exc_info.value.path == "color"

    def test_unknown_notification_type(self):
        item = decode({
            "id": "n1", "recipient_id": "u1", "actor_id": "a1", "actor_name": "Kim",
            "actor_handle": "@kim", "notification_type": "BrandNewKind",
            "created_at": "2025-01-01T00:00:00Z",
        }, NotificationItem)
        assert item.notification_type is NotificationType.UNKNOWN
        assert item.is_read is False

    def test_comment_tree_decodes_to_tuples(self):
        comment = {
            "id": "c1", "post_id": "p1", "actor_id": "a1", "content": "hi",
            "actor_name": "Kim", "actor_handle": "@kim", "is_local": True,
            "created_at": "2025-01-01T00:00:00Z", "updated_at": "2025-01-01T00:00:00Z",
        }
        reply = dict(comment, id="c2", parent_comment_id="c1")
        payload = {
            "comments": [dict(comment, children=[reply])],
            "pagination": {"offset": 0, "limit": 100, "has_more": False},
        }
        result = decode(payload, CommentsListResponse)
        root = result.comments[0]
        assert isinstance(root.children, tuple)
        assert root.children[0].parent_comment_id == "c1"
        assert root.children[0].children == ()

    def test_nested_post_detail(self):
        payload = {
            "post": {
                "id": "p1",
                "author": {"id": "u1", "login_name": "kim", "display_name": "Kim"},
                "viewer_count": 3,
                "image": {"filename": "abcdef.png", "width": 300, "height": 300,
                          "tool": "neo", "paint_duration": "00:10:00"},
                "is_sensitive": False,
                "allow_relay": True,
                "published_at_utc": "2025-01-01T00:00:00.000Z",
            },
            "child_posts": [],
            "reactions": [{"emoji": "❤️", "count": 2, "reacted_by_user": True}],
        }
        result = decode(payload, PostDetailResponse)
        assert result.post.image.url == "https://r2.oeee.cafe/image/ab/abcdef.png"
        assert result.post.hashtags == []
        assert result.parent_post is None
        assert result.reactions[0].count == 2


PRECISE = datetime(2025, 3, 1, 12, 30, 15, 123456, tzinfo=timezone.utc)


def make_comment(comment_id, *children, **kwargs):
    return CommentNode(
        id=comment_id, post_id="p1", actor_id="a1", content="hi", actor_name="Kim",
        actor_handle="@kim@oeee.cafe", is_local=True, created_at=PRECISE, updated_at=PRECISE,
        children=tuple(children), **kwargs,
    )


inviter = InvitationUserInfo(id="u2", username="lee", display_name="Lee")

ROUND_TRIP_VALUES = [
    PostsResponse(
        posts=[Post(id="p1", image_url="u", image_width=300, image_height=200, is_sensitive=True)],
        pagination=Pagination(offset=18, limit=18, has_more=True, total=40),
    ),
    CommentsListResponse(
        comments=[
            make_comment(
                "c1",
                make_comment("c2", make_comment("c3", parent_comment_id="c2"), parent_comment_id="c1"),
                content_html="<p>hi</p>",
            ),
            make_comment("c4", is_deleted=True),
        ],
        pagination=Pagination(offset=0, limit=100, has_more=False),
    ),
    NotificationsResponse(
        notifications=[
            NotificationItem(
                id="n1", recipient_id="u1", actor_id="a1", actor_name="Kim",
                actor_handle="@kim", notification_type=NotificationType.REACTION,
                created_at=PRECISE, reaction_emoji="❤️", read_at=PRECISE,
            ),
            NotificationItem(
                id="n2", recipient_id="u1", actor_id="a1", actor_name="Kim",
                actor_handle="@kim", notification_type=NotificationType.FOLLOW,
                created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            ),
        ],
        total=2,
        has_more=False,
    ),
    MovableCommunitiesResponse(communities=[
        MovableCommunity(name="Personal posts"),
        MovableCommunity(name="Cats", id="c1", slug="cats", visibility="public"),
    ]),
    CommunityMembersListResponse(members=[
        CommunityMember(id="m1", user_id="u1", username="kim", display_name="Kim",
                        role="owner", joined_at=PRECISE),
        CommunityMember(id="m2", user_id="u2", username="lee", display_name="Lee",
                        role="member", joined_at=PRECISE, avatar_url="a.png",
                        invited_by_username="kim"),
    ]),
    UserInvitationsListResponse(invitations=[
        UserInvitation(
            id="i1",
            community=InvitationCommunityInfo(id="c1", name="Cats", slug="cats",
                                              description="", visibility="private"),
            inviter=inviter,
            created_at=PRECISE,
        ),
    ]),
    SearchResponse(
        users=[SearchUser(id="u1", login_name="kim", display_name="Kim")],
        posts=[SearchPost(id="p1", image_url="u", image_width=1, image_height=1)],
    ),
    DraftPostsResponse(drafts=[
        DraftPost(id="d1", image_url="u", created_at="2025-01-01T00:00:00Z",
                  community_id="c1", width=300, height=300),
    ]),
    MoveCommunityRequest(),
    CreateCommentRequest(content="hi", parent_comment_id="c1"),
]


class TestRoundTrip:

    @pytest.mark.parametrize(
        "value", ROUND_TRIP_VALUES, ids=[type(v).__name__ for v in ROUND_TRIP_VALUES]
    )
    def test_decode_of_encode_is_identity(self, value):
        codec = WireCodec()
        assert codec.decode(codec.encode(value), type(value)) == value
