"""Relationship edges between posts, used to group posts in the feed.

An edge is an unordered pair: the two ids are stored smallest first so the
same pair always maps to the same row.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class RelationshipType(str, Enum):
    meal_group = "meal_group"  # a meal and a dish contributed to it
    dish_pair = "dish_pair"  # dishes cooked together


def canonical_pair(a: UUID, b: UUID) -> tuple[UUID, UUID]:
    """Order two post ids the way edges are stored."""
    return (a, b) if str(a) <= str(b) else (b, a)


class PostRelationship(SQLModel, table=True):
    """An association between two posts.

    Edges are immutable; breaking an association deletes the row.

    Attributes:
        id: Unique identifier (UUID).
        post_id_1: The smaller of the two post ids.
        post_id_2: The larger of the two post ids.
        relationship_type: Kind of association.
        created_at: Creation timestamp.
    """
    __table_args__ = (UniqueConstraint("post_id_1", "post_id_2", name="uq_post_relationship_pair"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    post_id_1: UUID = Field(index=True)
    post_id_2: UUID = Field(index=True)
    relationship_type: RelationshipType = Field(default=RelationshipType.meal_group)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def between(cls, a: UUID, b: UUID, relationship_type: RelationshipType) -> "PostRelationship":
        first, second = canonical_pair(a, b)
        return cls(post_id_1=first, post_id_2=second, relationship_type=relationship_type)
