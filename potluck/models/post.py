"""Recipe, dish and meal photo models.

Recipes and dishes are owned by other parts of the application; the planning
core references recipes from plan items and links cooked dishes to meals.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from potluck.models.plan_item import CourseType


class Recipe(SQLModel, table=True):
    """A recipe a participant can plan to cook.

    Attributes:
        id: Unique identifier (UUID).
        title: Recipe title.
        image_url: Cover image, if any.
        user_id: Owner of the recipe.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str
    image_url: str | None = None
    user_id: UUID = Field(foreign_key="userprofile.id")


class Dish(SQLModel, table=True):
    """A cooked dish post.

    Dishes exist on their own. Linking one to a meal sets ``parent_meal_id``;
    deleting the meal only clears that link so the dish survives.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Cook who posted the dish.
        title: Dish title.
        rating: Optional rating given by the cook.
        recipe_id: Recipe the dish was made from, if any.
        parent_meal_id: Meal the dish was contributed to, if any.
        created_at: Creation timestamp.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="userprofile.id", index=True)
    title: str
    rating: float | None = None
    recipe_id: UUID | None = Field(default=None, foreign_key="recipe.id")
    parent_meal_id: UUID | None = Field(default=None, foreign_key="meal.id", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class DishCourse(SQLModel, table=True):
    """Placement of a dish within a meal's courses.

    A dish can belong to at most one meal.

    Attributes:
        id: Unique identifier (UUID).
        dish_id: The linked dish (unique).
        meal_id: The meal it belongs to.
        course_type: Course the dish is served as.
        is_main_dish: Whether it is the centerpiece.
        course_order: Optional explicit ordering within the course.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    dish_id: UUID = Field(foreign_key="dish.id", unique=True)
    meal_id: UUID = Field(foreign_key="meal.id", index=True)
    course_type: CourseType = Field(default=CourseType.other)
    is_main_dish: bool = Field(default=False)
    course_order: int | None = None


class MealPhoto(SQLModel, table=True):
    """A photo record attached to a meal (the image itself lives elsewhere).

    Attributes:
        id: Unique identifier (UUID).
        meal_id: The meal the photo belongs to.
        user_id: Uploader.
        photo_url: Location of the stored image.
        caption: Optional caption.
        created_at: Upload timestamp.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    meal_id: UUID = Field(foreign_key="meal.id", index=True)
    user_id: UUID = Field(foreign_key="userprofile.id")
    photo_url: str
    caption: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class DishLink(SQLModel):
    """Request to place one of the caller's dishes into a meal."""
    dish_id: UUID
    course_type: CourseType = CourseType.other
    is_main_dish: bool = False
    course_order: int | None = None


class DishCourseUpdate(SQLModel):
    """Fields a host or the dish owner may change on a dish's course placement."""
    course_type: CourseType | None = None
    is_main_dish: bool | None = None
    course_order: int | None = None


class DishInMeal(SQLModel):
    """A dish of a meal joined with its recipe and contributor."""
    dish_id: UUID
    dish_title: str
    dish_user_id: UUID
    dish_rating: float | None = None
    dish_created_at: datetime
    recipe_id: UUID | None = None
    recipe_title: str | None = None
    recipe_image_url: str | None = None
    course_type: CourseType
    is_main_dish: bool = False
    course_order: int | None = None
    contributor_username: str | None = None
    contributor_display_name: str | None = None


class AvailableDish(SQLModel):
    """A recent dish of the caller that is not part of any meal yet."""
    id: UUID
    title: str
    rating: float | None = None
    recipe_id: UUID | None = None
    recipe_title: str | None = None
    recipe_image_url: str | None = None
    created_at: datetime
