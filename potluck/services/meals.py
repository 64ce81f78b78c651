"""Meal lifecycle: creation, edits, completion, deletion and linked content.

A meal is created in ``planning`` together with its creator as the accepted
host, edited and eventually completed by a host, or deleted by a host. The
dishes, photos and plan items hanging off a meal are cleaned up here as
well, without ever deleting a dish post itself.
"""
import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from potluck.core.config import settings
from potluck.core.errors import InvalidState, NotFound, PermissionDenied, ValidationError
from potluck.core.result import operation
from potluck.models import (
    AvailableDish,
    DishCourse,
    DishCourseUpdate,
    DishInMeal,
    DishLink,
    Meal,
    MealCreate,
    MealDetail,
    MealPhoto,
    MealUpdate,
    Participant,
    ParticipantRole,
    PlanningMeal,
    RSVPStatus,
)
from potluck.services import permissions
from potluck.services.base import PlanningService

logger = logging.getLogger(__name__)


def _clean(value: str | None) -> str | None:
    """Trim a free-text field; blank becomes None."""
    if value is None:
        return None
    return value.strip() or None


class MealService(PlanningService):
    """Create, read, update, complete and delete meals."""

    @operation
    def create(self, user_id: UUID, data: MealCreate) -> Meal:
        """Create a meal in planning with ``user_id`` as its accepted host.

        The meal and the host row are written in two steps. If the second
        step fails the meal row is deleted again so no meal is ever left
        without a host.
        """
        title = _clean(data.title)
        if not title:
            raise ValidationError("Meal title is required", details={"field": "title"})
        if self.store.get_user(user_id) is None:
            raise NotFound("User not found", details={"user_id": str(user_id)})

        meal = self.store.add(
            Meal(
                title=title,
                description=_clean(data.description),
                meal_type=data.meal_type or None,
                location=_clean(data.location),
                meal_time=data.meal_time,
                created_by=user_id,
            )
        )
        meal_id = meal.id

        try:
            self.store.add(
                Participant(
                    meal_id=meal_id,
                    user_id=user_id,
                    role=ParticipantRole.host,
                    rsvp_status=RSVPStatus.accepted,
                    responded_at=datetime.now(UTC),
                )
            )
        except SQLAlchemyError:
            logger.error(f"Could not add host to meal {meal_id}, deleting the meal")
            self.store.rollback()
            self.store.delete_meal_row(meal_id)
            raise

        logger.info(f"Meal {meal_id} created by {user_id}")
        return self.store.get_meal(meal_id)

    @operation
    def get(self, meal_id: UUID) -> MealDetail:
        meal = self._meal(meal_id)
        return MealDetail(
            id=meal.id,
            title=meal.title,
            description=meal.description,
            meal_type=meal.meal_type,
            location=meal.location,
            meal_time=meal.meal_time,
            status=meal.status,
            created_at=meal.created_at,
            host_id=self.store.host_id(meal_id),
            participant_count=self.store.count_accepted_participants(meal_id),
            dish_count=self.store.count_dishes(meal_id),
            plan_item_count=self.store.count_plan_items(meal_id),
        )

    @operation
    def update(self, meal_id: UUID, actor: UUID, changes: MealUpdate) -> Meal:
        """Edit meal details. Host only; the lifecycle status is never touched here."""
        meal = self._meal(meal_id)
        permissions.can_manage_meal(self._membership(meal_id, actor), "update meal details").enforce()

        fields = changes.model_dump(exclude_unset=True)
        if "title" in fields:
            title = _clean(fields["title"])
            if not title:
                raise ValidationError("Meal title cannot be empty", details={"field": "title"})
            meal.title = title
        for name in ("description", "location"):
            if name in fields:
                setattr(meal, name, _clean(fields[name]))
        if "meal_type" in fields:
            meal.meal_type = fields["meal_type"] or None
        if "meal_time" in fields:
            meal.meal_time = fields["meal_time"]

        meal = self.store.save(meal)
        logger.info(f"Meal {meal_id} updated by {actor}: {sorted(fields)}")
        return meal

    @operation
    def complete(self, meal_id: UUID, actor: UUID) -> Meal:
        """Move the meal to completed and discard invitations nobody answered.

        Completing an already completed meal changes nothing.
        """
        self._meal(meal_id)
        permissions.can_manage_meal(self._membership(meal_id, actor), "complete the meal").enforce()

        removed = self.store.complete_meal(meal_id)
        logger.info(f"Meal {meal_id} completed by {actor}, {removed} pending invitations removed")
        return self.store.get_meal(meal_id)

    @operation
    def delete(self, meal_id: UUID, actor: UUID) -> int:
        """Delete the meal and its participants, plan items and photos.

        Dishes linked to the meal are detached and survive as standalone
        posts. Returns the number of dishes detached.
        """
        self._meal(meal_id)
        permissions.can_manage_meal(self._membership(meal_id, actor), "delete the meal").enforce()

        detached = self.store.delete_meal_cascade(meal_id)
        logger.info(f"Meal {meal_id} deleted by {actor}, {detached} dishes detached")
        return detached

    # ------------------------------------------------------------------
    # Dishes
    # ------------------------------------------------------------------

    @operation
    def add_dishes(self, meal_id: UUID, actor: UUID, dishes: list[DishLink]) -> int:
        """Link the actor's dishes to a meal; returns how many were added.

        Dishes that are missing, not owned by the actor or already in a meal
        are skipped.
        """
        self._meal(meal_id)
        allowed, reason = self.store.can_add_dish_to_meal(meal_id, actor)
        if not allowed:
            raise PermissionDenied(reason)

        added = 0
        for link in dishes:
            allowed, reason = self.store.can_add_dish_to_meal(meal_id, actor, link.dish_id)
            if not allowed:
                logger.warning(f"Skipping dish {link.dish_id} for meal {meal_id}: {reason}")
                continue
            self.store.link_dish(
                meal_id, link.dish_id, link.course_type, link.is_main_dish, link.course_order
            )
            added += 1

        logger.info(f"{added} dishes added to meal {meal_id} by {actor}")
        return added

    @operation
    def remove_dish(self, meal_id: UUID, dish_id: UUID, actor: UUID) -> None:
        """Detach a dish from a meal. Host or dish owner only."""
        self._meal(meal_id)
        dish = self.store.get_dish(dish_id)
        if dish is None or dish.parent_meal_id != meal_id:
            raise NotFound("Dish is not part of this meal", details={"dish_id": str(dish_id)})
        permissions.can_remove_dish(actor, self._membership(meal_id, actor), dish.user_id).enforce()
        if self.store.dish_completes_plan_item(dish_id):
            raise InvalidState("This dish completes a plan item and cannot be removed")

        self.store.unlink_dish(meal_id, dish_id)
        logger.info(f"Dish {dish_id} removed from meal {meal_id} by {actor}")

    @operation
    def update_dish_course(
        self, meal_id: UUID, dish_id: UUID, actor: UUID, changes: DishCourseUpdate
    ) -> DishCourse:
        """Change the course, main-dish flag or order of a dish in a meal.

        Allowed for a host of the meal and for the dish's owner.
        """
        self._meal(meal_id)
        course = self.store.get_dish_course(meal_id, dish_id)
        dish = self.store.get_dish(dish_id)
        if course is None or dish is None:
            raise NotFound("Dish is not part of this meal", details={"dish_id": str(dish_id)})
        permissions.can_edit_dish_course(actor, self._membership(meal_id, actor), dish.user_id).enforce()

        values = {key: value for key, value in changes.model_dump(exclude_unset=True).items() if value is not None}
        if not values:
            return course
        if not self.store.update_dish_course(meal_id, dish_id, values):
            raise NotFound("Dish is not part of this meal", details={"dish_id": str(dish_id)})
        logger.info(f"Course info of dish {dish_id} in meal {meal_id} updated by {actor}: {sorted(values)}")
        return self.store.get_dish_course(meal_id, dish_id)

    @operation
    def list_dishes(self, meal_id: UUID) -> list[DishInMeal]:
        self._meal(meal_id)
        return self.store.list_meal_dishes(meal_id)

    # ------------------------------------------------------------------
    # Photos
    # ------------------------------------------------------------------

    @operation
    def add_photo(self, meal_id: UUID, actor: UUID, photo_url: str, caption: str | None = None) -> MealPhoto:
        self._meal(meal_id)
        permissions.can_add_photo(self._membership(meal_id, actor)).enforce()
        url = _clean(photo_url)
        if not url:
            raise ValidationError("Photo URL is required", details={"field": "photo_url"})

        photo = self.store.add(MealPhoto(meal_id=meal_id, user_id=actor, photo_url=url, caption=_clean(caption)))
        logger.info(f"Photo {photo.id} added to meal {meal_id} by {actor}")
        return photo

    @operation
    def list_photos(self, meal_id: UUID) -> list[MealPhoto]:
        self._meal(meal_id)
        return self.store.list_photos(meal_id)

    @operation
    def delete_photo(self, photo_id: UUID, actor: UUID) -> None:
        photo = self.store.get_photo(photo_id)
        if photo is None:
            raise NotFound("Photo not found", details={"photo_id": str(photo_id)})
        meal_id = photo.meal_id
        permissions.can_delete_photo(actor, self._membership(meal_id, actor), photo.user_id).enforce()

        if not self.store.delete_photo(photo_id):
            raise NotFound("Photo not found", details={"photo_id": str(photo_id)})
        logger.info(f"Photo {photo_id} deleted from meal {meal_id} by {actor}")

    # ------------------------------------------------------------------
    # Overview
    # ------------------------------------------------------------------

    @operation
    def planning_meals_for_user(self, user_id: UUID) -> list[PlanningMeal]:
        """Upcoming meals the user is part of, with their count of open slots."""
        return self.store.list_planning_meals(user_id)

    @operation
    def available_dishes(self, user_id: UUID, days: int | None = None) -> list[AvailableDish]:
        """The user's recent dishes that can still be added to a meal, newest first."""
        days = days or settings.available_dish_days
        since = datetime.now(UTC) - timedelta(days=days)
        return self.store.list_available_dishes(user_id, since)
