"""Participant model relating one user to one meal.

The creator of a meal joins as an accepted host; everyone else joins through
an invitation and starts out ``pending`` until they respond.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from potluck.models.meal import Meal


class ParticipantRole(str, Enum):
    host = "host"
    attendee = "attendee"


class RSVPStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    maybe = "maybe"
    declined = "declined"


class Participant(SQLModel, table=True):
    """Membership of a user in a meal.

    Attributes:
        id: Unique identifier (UUID).
        meal_id: Foreign key to the Meal.
        user_id: Foreign key to the member's UserProfile.
        role: "host" or "attendee". A meal always has an accepted host.
        rsvp_status: "pending", "accepted", "maybe" or "declined".
        invited_at: When the invitation was created.
        responded_at: When the member last answered, if ever.
        meal: Reference to the parent Meal.
    """
    __table_args__ = (UniqueConstraint("meal_id", "user_id", name="uq_participant_meal_user"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    meal_id: UUID = Field(foreign_key="meal.id", index=True)
    user_id: UUID = Field(foreign_key="userprofile.id", index=True)
    role: ParticipantRole = Field(default=ParticipantRole.attendee)
    rsvp_status: RSVPStatus = Field(default=RSVPStatus.pending)
    invited_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    responded_at: datetime | None = None

    # Relationship
    meal: Optional["Meal"] = Relationship(back_populates="participants")

    @property
    def is_host(self) -> bool:
        return self.role == ParticipantRole.host

    @property
    def is_accepted(self) -> bool:
        return self.rsvp_status == RSVPStatus.accepted


class ParticipantView(SQLModel):
    """A participant joined with profile data and their dish count."""
    id: UUID
    meal_id: UUID
    user_id: UUID
    role: ParticipantRole
    rsvp_status: RSVPStatus
    invited_at: datetime
    responded_at: datetime | None = None
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    dish_count: int = 0


class PendingInvitation(SQLModel):
    """An unanswered invitation for the current user."""
    participant_id: UUID
    meal_id: UUID
    meal_title: str
    meal_time: datetime | None = None
    host_username: str | None = None
    host_display_name: str | None = None
    invited_at: datetime
