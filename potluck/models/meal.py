"""Meal model: the top-level planning aggregate.

A meal is an event with participants and dish slots. It starts in
``planning`` and is moved to ``completed`` by its host once the meal has
happened. The host is not stored on the meal itself; it is whichever
participant currently holds the ``host`` role.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from potluck.models.participant import Participant
    from potluck.models.plan_item import PlanItem


class MealStatus(str, Enum):
    planning = "planning"
    completed = "completed"


class Meal(SQLModel, table=True):
    """A shared meal event.

    Attributes:
        id: Unique identifier (UUID).
        title: Meal title, never empty.
        description: Free-form description.
        meal_type: Optional label such as "dinner" or "brunch".
        location: Where the meal takes place.
        meal_time: When the meal is scheduled.
        status: Lifecycle status, "planning" or "completed".
        created_by: User who created the meal (the first host).
        created_at: Creation timestamp.
        participants: Membership records, including the host.
        plan_items: Dish slots of this meal.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str
    description: str | None = None
    meal_type: str | None = None
    location: str | None = None
    meal_time: datetime | None = Field(default=None, index=True)
    status: MealStatus = Field(default=MealStatus.planning)
    created_by: UUID = Field(foreign_key="userprofile.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Relationships
    participants: list["Participant"] = Relationship(back_populates="meal")
    plan_items: list["PlanItem"] = Relationship(back_populates="meal")


class MealCreate(SQLModel):
    """Input for creating a meal."""
    title: str
    description: str | None = None
    meal_type: str | None = None
    location: str | None = None
    meal_time: datetime | None = None


class MealUpdate(SQLModel):
    """Partial update of meal details; unset fields are left alone."""
    title: str | None = None
    description: str | None = None
    meal_type: str | None = None
    location: str | None = None
    meal_time: datetime | None = None


class MealDetail(SQLModel):
    """A meal with its derived host and counts."""
    id: UUID
    title: str
    description: str | None = None
    meal_type: str | None = None
    location: str | None = None
    meal_time: datetime | None = None
    status: MealStatus
    created_at: datetime
    host_id: UUID | None = None
    participant_count: int = 0
    dish_count: int = 0
    plan_item_count: int = 0


class PlanningMeal(SQLModel):
    """A planning meal as seen by one of its members."""
    meal_id: UUID
    title: str
    meal_time: datetime | None = None
    role: str
    unclaimed_count: int = 0
