from potluck.models.meal import Meal, MealCreate, MealDetail, MealStatus, MealUpdate, PlanningMeal
from potluck.models.participant import (
    Participant,
    ParticipantRole,
    ParticipantView,
    PendingInvitation,
    RSVPStatus,
)
from potluck.models.plan_item import (
    COURSE_ORDER,
    Commitment,
    CourseType,
    PlanItem,
    PlanItemCreate,
    PlanItemStatus,
    PlanItemUpdate,
    PlanItemView,
    PlanSummary,
    RecipeUsage,
    derive_status,
)
from potluck.models.post import (
    AvailableDish,
    Dish,
    DishCourse,
    DishCourseUpdate,
    DishInMeal,
    DishLink,
    MealPhoto,
    Recipe,
)
from potluck.models.profile import UserProfile
from potluck.models.relationship import PostRelationship, RelationshipType, canonical_pair

__all__ = [
    "AvailableDish",
    "COURSE_ORDER",
    "Commitment",
    "CourseType",
    "Dish",
    "DishCourse",
    "DishCourseUpdate",
    "DishInMeal",
    "DishLink",
    "Meal",
    "MealCreate",
    "MealDetail",
    "MealPhoto",
    "MealStatus",
    "MealUpdate",
    "Participant",
    "ParticipantRole",
    "ParticipantView",
    "PendingInvitation",
    "PlanItem",
    "PlanItemCreate",
    "PlanItemStatus",
    "PlanItemUpdate",
    "PlanItemView",
    "PlanSummary",
    "PlanningMeal",
    "PostRelationship",
    "RSVPStatus",
    "Recipe",
    "RecipeUsage",
    "RelationshipType",
    "UserProfile",
    "canonical_pair",
    "derive_status",
]
