"""Plan item ("dish slot") model and its derived status.

A plan item is a course placeholder within a meal. It moves through
``unclaimed -> assigned -> claimed -> has_recipe -> completed`` as the host
assigns it, a participant claims it, picks a recipe and finally links the
cooked dish. The status is never stored: it is computed from which of the
nullable columns are populated, so the columns are the single source of
truth.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from potluck.models.meal import Meal


class CourseType(str, Enum):
    appetizer = "appetizer"
    main = "main"
    side = "side"
    dessert = "dessert"
    drink = "drink"
    other = "other"


COURSE_ORDER = [
    CourseType.appetizer,
    CourseType.main,
    CourseType.side,
    CourseType.dessert,
    CourseType.drink,
    CourseType.other,
]


class PlanItemStatus(str, Enum):
    unclaimed = "unclaimed"
    assigned = "assigned"
    claimed = "claimed"
    has_recipe = "has_recipe"
    completed = "completed"


def derive_status(item) -> PlanItemStatus:
    """Compute the status of a plan item from its populated fields.

    Works on anything exposing ``dish_id``, ``recipe_id``, ``claimed_by`` and
    ``assigned_to``. The first populated field wins, in that order.
    """
    if item.dish_id:
        return PlanItemStatus.completed
    if item.recipe_id:
        return PlanItemStatus.has_recipe
    if item.claimed_by:
        return PlanItemStatus.claimed
    if item.assigned_to:
        return PlanItemStatus.assigned
    return PlanItemStatus.unclaimed


class PlanItem(SQLModel, table=True):
    """A dish slot within a meal.

    Attributes:
        id: Unique identifier (UUID).
        meal_id: Foreign key to the parent Meal.
        course_type: Course category of the slot.
        placeholder_name: Optional display name ("Grandma's pie").
        is_main_dish: Whether this slot is the centerpiece of the meal.
        assigned_to: User the host pre-designated for this slot.
        assigned_at: When the assignment was made.
        claimed_by: User who took responsibility for cooking it.
        claimed_at: When the claim was made.
        recipe_id: Recipe the claimer intends to cook.
        dish_id: Cooked dish post completing the slot. Terminal.
        completed_at: When the dish was linked.
        created_by: User who created the slot.
        created_at: Creation timestamp.
        meal: Reference to the parent Meal.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    meal_id: UUID = Field(foreign_key="meal.id", index=True)
    course_type: CourseType = Field(default=CourseType.other)
    placeholder_name: str | None = None
    is_main_dish: bool = Field(default=False)

    assigned_to: UUID | None = Field(default=None, foreign_key="userprofile.id", index=True)
    assigned_at: datetime | None = None

    claimed_by: UUID | None = Field(default=None, foreign_key="userprofile.id", index=True)
    claimed_at: datetime | None = None

    recipe_id: UUID | None = Field(default=None, foreign_key="recipe.id", index=True)

    dish_id: UUID | None = Field(default=None, foreign_key="dish.id")
    completed_at: datetime | None = None

    created_by: UUID = Field(foreign_key="userprofile.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Relationship
    meal: Optional["Meal"] = Relationship(back_populates="plan_items")

    @property
    def status(self) -> PlanItemStatus:
        return derive_status(self)


class PlanItemCreate(SQLModel):
    """Input for a new dish slot."""
    course_type: CourseType
    placeholder_name: str | None = None
    is_main_dish: bool = False
    assigned_to: UUID | None = None


class PlanItemUpdate(SQLModel):
    """Partial update of a slot's descriptive fields."""
    course_type: CourseType | None = None
    placeholder_name: str | None = None
    is_main_dish: bool | None = None


class PlanItemView(SQLModel):
    """A plan item joined with its assignee, claimer, recipe and dish."""
    id: UUID
    meal_id: UUID
    course_type: CourseType
    placeholder_name: str | None = None
    is_main_dish: bool = False
    assigned_to: UUID | None = None
    assigned_at: datetime | None = None
    assignee_username: str | None = None
    assignee_display_name: str | None = None
    claimed_by: UUID | None = None
    claimed_at: datetime | None = None
    claimer_username: str | None = None
    claimer_display_name: str | None = None
    recipe_id: UUID | None = None
    recipe_title: str | None = None
    recipe_image_url: str | None = None
    dish_id: UUID | None = None
    dish_title: str | None = None
    dish_rating: float | None = None
    completed_at: datetime | None = None
    created_by: UUID
    created_at: datetime
    status: PlanItemStatus


class PlanSummary(SQLModel):
    """Counts of a meal's slots by progress.

    ``claimed_items`` counts every slot that is claimed or further along,
    ``with_recipe`` every slot that has a recipe or is completed.
    """
    total_items: int = 0
    unclaimed_items: int = 0
    assigned_items: int = 0
    claimed_items: int = 0
    with_recipe: int = 0
    completed: int = 0


class Commitment(SQLModel):
    """A slot a user has claimed or been assigned, in a planning meal."""
    plan_item_id: UUID
    meal_id: UUID
    meal_title: str
    meal_time: datetime | None = None
    course_type: CourseType
    placeholder_name: str | None = None
    recipe_title: str | None = None
    status: PlanItemStatus


class RecipeUsage(SQLModel):
    """A slot, in any meal, that plans to use a given recipe."""
    meal_id: UUID
    meal_title: str
    plan_item_id: UUID
    claimed_by: UUID | None = None
    status: PlanItemStatus
