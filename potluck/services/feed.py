"""Feed grouping of related posts.

Posts joined by relationship edges (a meal and the dishes contributed to it,
dishes cooked together) are shown as one feed unit. Grouping is a plain
connected-components pass over the edges; the edge set may contain cycles,
so traversal tracks visited posts.
"""
import logging
from datetime import datetime
from typing import Literal, Union
from uuid import UUID

from sqlmodel import SQLModel

from potluck.core.config import settings
from potluck.core.result import operation
from potluck.models import PostRelationship, RelationshipType
from potluck.store import MealStore

logger = logging.getLogger(__name__)


class FeedPost(SQLModel):
    """Minimal view of a post for grouping and display."""
    id: UUID
    kind: str  # "meal" or "dish"
    title: str
    user_id: UUID | None = None
    created_at: datetime


class SingleFeedItem(SQLModel):
    type: Literal["single"] = "single"
    post: FeedPost


class GroupedFeedItem(SQLModel):
    type: Literal["grouped"] = "grouped"
    id: UUID  # id of the anchor post
    main_post: FeedPost
    linked_posts: list[FeedPost]
    relationship_type: RelationshipType


FeedItem = Union[SingleFeedItem, GroupedFeedItem]


def build_adjacency(edges: list[PostRelationship]) -> dict[UUID, dict[UUID, RelationshipType]]:
    """Undirected adjacency map: post id -> {neighbor id: relationship type}."""
    adjacency: dict[UUID, dict[UUID, RelationshipType]] = {}
    for edge in edges:
        adjacency.setdefault(edge.post_id_1, {})[edge.post_id_2] = edge.relationship_type
        adjacency.setdefault(edge.post_id_2, {})[edge.post_id_1] = edge.relationship_type
    return adjacency


def connected_component(
    start: UUID, adjacency: dict[UUID, dict[UUID, RelationshipType]], visited: set[UUID]
) -> list[UUID]:
    """Collect every post reachable from ``start`` with an iterative DFS.

    Marks what it reaches in ``visited``. Neighbors are visited in id order
    so the result does not depend on edge order.
    """
    component = []
    stack = [start]
    while stack:
        node = stack.pop()
        if node in visited:
            continue
        visited.add(node)
        component.append(node)
        for neighbor in sorted(adjacency.get(node, {}), key=str, reverse=True):
            if neighbor not in visited:
                stack.append(neighbor)
    return component


def _latest(item: FeedItem) -> datetime:
    if isinstance(item, GroupedFeedItem):
        return max(post.created_at for post in [item.main_post, *item.linked_posts])
    return item.post.created_at


def _item_id(item: FeedItem) -> str:
    return str(item.id if isinstance(item, GroupedFeedItem) else item.post.id)


def group_posts_for_feed(posts: list[FeedPost], edges: list[PostRelationship]) -> list[FeedItem]:
    """Turn posts plus their edges into grouped and single feed units.

    A component with two or more of the given posts becomes one grouped
    unit anchored on its earliest post; every other post stays single. Edges
    may lead through posts outside ``posts``; those connect the component
    but never appear in it. Units are ordered newest activity first.
    """
    if not posts:
        return []

    adjacency = build_adjacency(edges)
    by_id = {post.id: post for post in posts}
    visited: set[UUID] = set()
    items: list[FeedItem] = []

    for post in posts:
        if post.id in visited:
            continue
        component = connected_component(post.id, adjacency, visited)
        members = sorted(
            (by_id[post_id] for post_id in component if post_id in by_id),
            key=lambda p: (p.created_at, str(p.id)),
        )
        if len(members) < 2:
            items.append(SingleFeedItem(post=post))
            continue

        kinds = {
            kind
            for post_id in component
            for kind in adjacency.get(post_id, {}).values()
        }
        relationship_type = (
            RelationshipType.meal_group if RelationshipType.meal_group in kinds else RelationshipType.dish_pair
        )
        anchor, *linked = members
        items.append(
            GroupedFeedItem(
                id=anchor.id,
                main_post=anchor,
                linked_posts=linked,
                relationship_type=relationship_type,
            )
        )

    items.sort(key=lambda item: (_latest(item), _item_id(item)), reverse=True)
    return items


class FeedService:
    """Assemble the feed from recent completed meals and dishes."""

    def __init__(self, store: MealStore):
        self.store = store

    @operation
    def build_feed(self, limit: int | None = None) -> list[FeedItem]:
        limit = limit or settings.feed_page_size
        posts = [
            FeedPost(id=meal.id, kind="meal", title=meal.title, user_id=meal.created_by, created_at=meal.created_at)
            for meal in self.store.recent_meals(limit)
        ] + [
            FeedPost(id=dish.id, kind="dish", title=dish.title, user_id=dish.user_id, created_at=dish.created_at)
            for dish in self.store.recent_dishes(limit)
        ]
        edges = self.store.edges_touching([post.id for post in posts])
        items = group_posts_for_feed(posts, edges)
        logger.debug(f"Feed built from {len(posts)} posts into {len(items)} units")
        return items

    @operation
    def is_post_in_group(self, post_id: UUID) -> bool:
        """Whether any relationship edge touches the post."""
        return self.store.has_relationship(post_id)
