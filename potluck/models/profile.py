"""User profile model.

Profiles are owned by the authentication layer; the planning core only reads
them to validate invitations and to decorate participant and plan item views.
"""

from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class UserProfile(SQLModel, table=True):
    """Public profile of a user.

    Attributes:
        id: Unique identifier (UUID), shared with the authentication layer.
        username: Unique handle.
        display_name: Human-readable name, if set.
        avatar_url: Profile picture, if set.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    username: str = Field(index=True, unique=True)
    display_name: str | None = None
    avatar_url: str | None = None
