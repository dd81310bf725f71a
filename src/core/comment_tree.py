"""Pure functions over threaded comment forests."""

import dataclasses
from typing import Callable, Iterable, Optional, Sequence

from src.core.types import CommentNode

CommentPredicate = Callable[[CommentNode], bool]


def keep_all(node: CommentNode) -> bool:
    """Default filter. Deleted comments stay as tombstones so their replies still show."""
    return True


def drop_deleted(node: CommentNode) -> bool:
    """Opt-in filter: remove deleted comments together with their replies."""
    return not node.is_deleted


def filter_comments(forest: Iterable[CommentNode],
                    predicate: CommentPredicate = keep_all) -> list[CommentNode]:
    """Recursively keep the nodes ``predicate`` accepts.

    Children are filtered first and the predicate sees the node with its
    already-filtered children, so filtering twice gives the same result.
    A rejected node takes its whole subtree with it. Input is not modified.
    """
    result = []
    for node in forest:
        children = tuple(filter_comments(node.children, predicate))
        candidate = dataclasses.replace(node, children=children)
        if predicate(candidate):
            result.append(candidate)
    return result


def merge_comment_forests(existing: Sequence[CommentNode],
                          incoming: Sequence[CommentNode]) -> list[CommentNode]:
    """Merge a newly fetched page into an accumulated forest.

    Roots already present are updated in place (their replies merged
    recursively), new roots are appended in arrival order.
    """
    incoming_by_id = {node.id: node for node in incoming}
    merged = []
    seen = set()

    for node in existing:
        update = incoming_by_id.get(node.id)
        merged.append(node if update is None else _merge_node(node, update))
        seen.add(node.id)

    for node in incoming:
        if node.id not in seen:
            merged.append(node)
            seen.add(node.id)

    return merged


def _merge_node(old: CommentNode, new: CommentNode) -> CommentNode:
    children = tuple(merge_comment_forests(old.children, new.children))
    return dataclasses.replace(new, children=children)


def count_comments(forest: Iterable[CommentNode]) -> int:
    return sum(1 + count_comments(node.children) for node in forest)


def find_comment(forest: Iterable[CommentNode], comment_id: str) -> Optional[CommentNode]:
    for node in forest:
        if node.id == comment_id:
            return node
        found = find_comment(node.children, comment_id)
        if found is not None:
            return found
    return None
