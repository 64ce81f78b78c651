"""Repository over the shared relational store.

``MealStore`` wraps one SQLModel session and is the only code that issues
SQL. Services receive it explicitly, so tests hand them a store bound to an
in-memory database.

Write methods come in two flavours:

* plain writes (inserts, descriptive updates) that commit and return the
  refreshed row;
* conditional writes that encode the precondition of a state transition in
  the ``WHERE`` clause and report whether exactly one row changed. The row
  count of that statement is the linearization point of the transition;
  whatever a service read beforehand is only used to build a helpful error.

Each public write method is one transaction. Multi-row operations that must
be all-or-nothing (meal deletion, host transfer, participant removal, dish
completion) run inside a single method and roll back when any step loses.
"""
import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, func, or_, update
from sqlalchemy.orm import aliased
from sqlmodel import Session, select

from potluck.models import (
    COURSE_ORDER,
    AvailableDish,
    Commitment,
    Dish,
    DishCourse,
    DishInMeal,
    Meal,
    MealPhoto,
    MealStatus,
    Participant,
    ParticipantRole,
    ParticipantView,
    PendingInvitation,
    PlanItem,
    PlanItemView,
    PlanningMeal,
    PostRelationship,
    Recipe,
    RecipeUsage,
    RelationshipType,
    RSVPStatus,
    UserProfile,
    canonical_pair,
    derive_status,
)

logger = logging.getLogger(__name__)


class MealStore:
    """Reads and writes meals, participants, plan items and their links."""

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Transaction helpers
    # ------------------------------------------------------------------

    def rollback(self) -> None:
        self.session.rollback()

    def _execute(self, statement) -> int:
        """Run a Core statement in the current transaction and return its row count."""
        self.session.flush()
        return self.session.connection().execute(statement).rowcount

    def _won(self, statement) -> bool:
        """Run a conditional write; commit if it changed exactly one row."""
        if self._execute(statement) != 1:
            self.session.rollback()
            return False
        self.session.commit()
        return True

    def add(self, entity):
        """Insert one row and return it refreshed."""
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity

    def add_all(self, entities: list) -> list:
        """Insert several rows in one transaction."""
        self.session.add_all(entities)
        self.session.commit()
        for entity in entities:
            self.session.refresh(entity)
        return entities

    def save(self, entity):
        """Persist changes made to an already loaded row."""
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity

    # ------------------------------------------------------------------
    # Fresh reads
    # ------------------------------------------------------------------

    def _get(self, model, ident):
        return self.session.get(model, ident, populate_existing=True)

    def get_user(self, user_id: UUID) -> UserProfile | None:
        return self._get(UserProfile, user_id)

    def get_meal(self, meal_id: UUID) -> Meal | None:
        return self._get(Meal, meal_id)

    def get_plan_item(self, item_id: UUID) -> PlanItem | None:
        return self._get(PlanItem, item_id)

    def get_recipe(self, recipe_id: UUID) -> Recipe | None:
        return self._get(Recipe, recipe_id)

    def get_dish(self, dish_id: UUID) -> Dish | None:
        return self._get(Dish, dish_id)

    def get_photo(self, photo_id: UUID) -> MealPhoto | None:
        return self._get(MealPhoto, photo_id)

    def get_participant(self, meal_id: UUID, user_id: UUID) -> Participant | None:
        statement = (
            select(Participant)
            .where(Participant.meal_id == meal_id)
            .where(Participant.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return self.session.exec(statement).first()

    def get_dish_course(self, meal_id: UUID, dish_id: UUID) -> DishCourse | None:
        statement = (
            select(DishCourse)
            .where(DishCourse.meal_id == meal_id)
            .where(DishCourse.dish_id == dish_id)
            .execution_options(populate_existing=True)
        )
        return self.session.exec(statement).first()

    def existing_user_ids(self, user_ids: list[UUID]) -> set[UUID]:
        statement = select(UserProfile.id).where(UserProfile.id.in_(user_ids))
        return set(self.session.exec(statement).all())

    def host_id(self, meal_id: UUID) -> UUID | None:
        statement = (
            select(Participant.user_id)
            .where(Participant.meal_id == meal_id)
            .where(Participant.role == ParticipantRole.host)
            .where(Participant.rsvp_status == RSVPStatus.accepted)
            .order_by(Participant.invited_at)
        )
        return self.session.exec(statement).first()

    def count_accepted_hosts(self, meal_id: UUID) -> int:
        statement = (
            select(func.count())
            .select_from(Participant)
            .where(Participant.meal_id == meal_id)
            .where(Participant.role == ParticipantRole.host)
            .where(Participant.rsvp_status == RSVPStatus.accepted)
        )
        return self.session.exec(statement).one()

    def count_accepted_participants(self, meal_id: UUID) -> int:
        statement = (
            select(func.count())
            .select_from(Participant)
            .where(Participant.meal_id == meal_id)
            .where(Participant.rsvp_status == RSVPStatus.accepted)
        )
        return self.session.exec(statement).one()

    def count_dishes(self, meal_id: UUID) -> int:
        statement = select(func.count()).select_from(DishCourse).where(DishCourse.meal_id == meal_id)
        return self.session.exec(statement).one()

    def count_plan_items(self, meal_id: UUID) -> int:
        statement = select(func.count()).select_from(PlanItem).where(PlanItem.meal_id == meal_id)
        return self.session.exec(statement).one()

    def count_completed_items_claimed_by(self, meal_id: UUID, user_id: UUID) -> int:
        statement = (
            select(func.count())
            .select_from(PlanItem)
            .where(PlanItem.meal_id == meal_id)
            .where(PlanItem.claimed_by == user_id)
            .where(PlanItem.dish_id.is_not(None))
        )
        return self.session.exec(statement).one()

    def dish_completes_plan_item(self, dish_id: UUID) -> bool:
        statement = select(PlanItem.id).where(PlanItem.dish_id == dish_id)
        return self.session.exec(statement).first() is not None

    def has_relationship(self, post_id: UUID) -> bool:
        statement = select(PostRelationship.id).where(
            or_(PostRelationship.post_id_1 == post_id, PostRelationship.post_id_2 == post_id)
        )
        return self.session.exec(statement).first() is not None

    # ------------------------------------------------------------------
    # Server-side procedures
    # ------------------------------------------------------------------

    def list_meal_dishes(self, meal_id: UUID) -> list[DishInMeal]:
        """Dishes of a meal sorted by course, main dishes first within a course."""
        statement = (
            select(DishCourse, Dish, Recipe, UserProfile)
            .join(Dish, DishCourse.dish_id == Dish.id)
            .outerjoin(Recipe, Dish.recipe_id == Recipe.id)
            .outerjoin(UserProfile, Dish.user_id == UserProfile.id)
            .where(DishCourse.meal_id == meal_id)
        )
        dishes = [
            DishInMeal(
                dish_id=dish.id,
                dish_title=dish.title,
                dish_user_id=dish.user_id,
                dish_rating=dish.rating,
                dish_created_at=dish.created_at,
                recipe_id=dish.recipe_id,
                recipe_title=recipe.title if recipe else None,
                recipe_image_url=recipe.image_url if recipe else None,
                course_type=course.course_type,
                is_main_dish=course.is_main_dish,
                course_order=course.course_order,
                contributor_username=profile.username if profile else None,
                contributor_display_name=profile.display_name if profile else None,
            )
            for course, dish, recipe, profile in self.session.exec(statement).all()
        ]
        dishes.sort(
            key=lambda d: (
                COURSE_ORDER.index(d.course_type),
                not d.is_main_dish,
                d.course_order if d.course_order is not None else 0,
                d.dish_created_at,
            )
        )
        return dishes

    def list_participants_with_profiles(self, meal_id: UUID) -> list[ParticipantView]:
        """Participants joined with their profile and dish count, hosts first."""
        dish_counts = dict(
            self.session.exec(
                select(Dish.user_id, func.count())
                .join(DishCourse, DishCourse.dish_id == Dish.id)
                .where(DishCourse.meal_id == meal_id)
                .group_by(Dish.user_id)
            ).all()
        )
        statement = (
            select(Participant, UserProfile)
            .outerjoin(UserProfile, Participant.user_id == UserProfile.id)
            .where(Participant.meal_id == meal_id)
            .order_by(Participant.invited_at)
        )
        views = [
            ParticipantView(
                id=participant.id,
                meal_id=participant.meal_id,
                user_id=participant.user_id,
                role=participant.role,
                rsvp_status=participant.rsvp_status,
                invited_at=participant.invited_at,
                responded_at=participant.responded_at,
                username=profile.username if profile else None,
                display_name=profile.display_name if profile else None,
                avatar_url=profile.avatar_url if profile else None,
                dish_count=dish_counts.get(participant.user_id, 0),
            )
            for participant, profile in self.session.exec(statement).all()
        ]
        views.sort(key=lambda v: v.role != ParticipantRole.host)
        return views

    def can_add_dish_to_meal(
        self, meal_id: UUID, user_id: UUID, dish_id: UUID | None = None
    ) -> tuple[bool, str]:
        """Policy check for linking dishes to a meal.

        The user must be the host or an accepted participant. When a dish is
        given it must exist, belong to the user and not already be part of a
        meal.
        """
        if self.get_meal(meal_id) is None:
            return False, "Meal not found"
        participant = self.get_participant(meal_id, user_id)
        if participant is None or not (participant.is_host or participant.is_accepted):
            return False, "Only the host or accepted participants can add dishes"
        if dish_id is None:
            return True, "OK"
        dish = self.get_dish(dish_id)
        if dish is None:
            return False, "Dish not found"
        if dish.user_id != user_id:
            return False, "You can only add your own dishes"
        if dish.parent_meal_id is not None and dish.parent_meal_id != meal_id:
            return False, "Dish is already part of another meal"
        existing = self.session.exec(select(DishCourse.id).where(DishCourse.dish_id == dish_id)).first()
        if existing is not None:
            return False, "Dish is already part of a meal"
        return True, "OK"

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def list_plan_item_views(self, meal_id: UUID) -> list[PlanItemView]:
        assignee = aliased(UserProfile)
        claimer = aliased(UserProfile)
        statement = (
            select(PlanItem, assignee, claimer, Recipe, Dish)
            .outerjoin(assignee, PlanItem.assigned_to == assignee.id)
            .outerjoin(claimer, PlanItem.claimed_by == claimer.id)
            .outerjoin(Recipe, PlanItem.recipe_id == Recipe.id)
            .outerjoin(Dish, PlanItem.dish_id == Dish.id)
            .where(PlanItem.meal_id == meal_id)
            .order_by(PlanItem.created_at)
            .execution_options(populate_existing=True)
        )
        return [
            PlanItemView(
                id=item.id,
                meal_id=item.meal_id,
                course_type=item.course_type,
                placeholder_name=item.placeholder_name,
                is_main_dish=item.is_main_dish,
                assigned_to=item.assigned_to,
                assigned_at=item.assigned_at,
                assignee_username=assigned.username if assigned else None,
                assignee_display_name=assigned.display_name if assigned else None,
                claimed_by=item.claimed_by,
                claimed_at=item.claimed_at,
                claimer_username=claiming.username if claiming else None,
                claimer_display_name=claiming.display_name if claiming else None,
                recipe_id=item.recipe_id,
                recipe_title=recipe.title if recipe else None,
                recipe_image_url=recipe.image_url if recipe else None,
                dish_id=item.dish_id,
                dish_title=dish.title if dish else None,
                dish_rating=dish.rating if dish else None,
                completed_at=item.completed_at,
                created_by=item.created_by,
                created_at=item.created_at,
                status=derive_status(item),
            )
            for item, assigned, claiming, recipe, dish in self.session.exec(statement).all()
        ]

    def list_commitments(self, user_id: UUID) -> list[Commitment]:
        """Slots claimed by or assigned to a user across planning meals."""
        statement = (
            select(PlanItem, Meal, Recipe)
            .join(Meal, PlanItem.meal_id == Meal.id)
            .outerjoin(Recipe, PlanItem.recipe_id == Recipe.id)
            .where(or_(PlanItem.claimed_by == user_id, PlanItem.assigned_to == user_id))
            .where(Meal.status == MealStatus.planning)
            .order_by(Meal.meal_time, PlanItem.created_at)
        )
        return [
            Commitment(
                plan_item_id=item.id,
                meal_id=meal.id,
                meal_title=meal.title,
                meal_time=meal.meal_time,
                course_type=item.course_type,
                placeholder_name=item.placeholder_name,
                recipe_title=recipe.title if recipe else None,
                status=derive_status(item),
            )
            for item, meal, recipe in self.session.exec(statement).all()
        ]

    def list_planning_meals(self, user_id: UUID) -> list[PlanningMeal]:
        """Planning meals the user hosts, accepted, or has yet to answer."""
        unclaimed = (
            select(PlanItem.meal_id, func.count().label("open_count"))
            .where(PlanItem.claimed_by.is_(None))
            .where(PlanItem.dish_id.is_(None))
            .group_by(PlanItem.meal_id)
            .subquery()
        )
        statement = (
            select(Participant, Meal, unclaimed.c.open_count)
            .join(Meal, Participant.meal_id == Meal.id)
            .outerjoin(unclaimed, unclaimed.c.meal_id == Meal.id)
            .where(Participant.user_id == user_id)
            .where(Participant.rsvp_status.in_([RSVPStatus.accepted, RSVPStatus.pending]))
            .where(Meal.status == MealStatus.planning)
        )
        meals = [
            PlanningMeal(
                meal_id=meal.id,
                title=meal.title,
                meal_time=meal.meal_time,
                role=participant.role.value,
                unclaimed_count=open_count or 0,
            )
            for participant, meal, open_count in self.session.exec(statement).all()
        ]
        # Scheduled meals first, soonest first
        meals.sort(key=lambda m: (m.meal_time is None, m.meal_time or datetime.min))
        return meals

    def list_pending_invitations(self, user_id: UUID) -> list[PendingInvitation]:
        statement = (
            select(Participant, Meal)
            .join(Meal, Participant.meal_id == Meal.id)
            .where(Participant.user_id == user_id)
            .where(Participant.rsvp_status == RSVPStatus.pending)
            .order_by(Participant.invited_at.desc())
        )
        invitations = []
        for participant, meal in self.session.exec(statement).all():
            host_id = self.host_id(meal.id)
            host = self.get_user(host_id) if host_id else None
            invitations.append(
                PendingInvitation(
                    participant_id=participant.id,
                    meal_id=meal.id,
                    meal_title=meal.title,
                    meal_time=meal.meal_time,
                    host_username=host.username if host else None,
                    host_display_name=host.display_name if host else None,
                    invited_at=participant.invited_at,
                )
            )
        return invitations

    def list_available_dishes(self, user_id: UUID, since: datetime) -> list[AvailableDish]:
        """The user's dishes posted since ``since`` that no meal has claimed, newest first."""
        statement = (
            select(Dish, Recipe)
            .outerjoin(Recipe, Dish.recipe_id == Recipe.id)
            .where(Dish.user_id == user_id)
            .where(Dish.parent_meal_id.is_(None))
            .where(Dish.created_at >= since)
            .order_by(Dish.created_at.desc())
        )
        return [
            AvailableDish(
                id=dish.id,
                title=dish.title,
                rating=dish.rating,
                recipe_id=dish.recipe_id,
                recipe_title=recipe.title if recipe else None,
                recipe_image_url=recipe.image_url if recipe else None,
                created_at=dish.created_at,
            )
            for dish, recipe in self.session.exec(statement).all()
        ]

    def list_recipe_usage(self, recipe_id: UUID) -> list[RecipeUsage]:
        """Slots in any meal that plan to cook ``recipe_id``."""
        statement = (
            select(PlanItem, Meal)
            .join(Meal, PlanItem.meal_id == Meal.id)
            .where(PlanItem.recipe_id == recipe_id)
            .order_by(PlanItem.created_at)
        )
        return [
            RecipeUsage(
                meal_id=meal.id,
                meal_title=meal.title,
                plan_item_id=item.id,
                claimed_by=item.claimed_by,
                status=derive_status(item),
            )
            for item, meal in self.session.exec(statement).all()
        ]

    def list_photos(self, meal_id: UUID) -> list[MealPhoto]:
        statement = (
            select(MealPhoto)
            .where(MealPhoto.meal_id == meal_id)
            .order_by(MealPhoto.created_at.desc())
        )
        return list(self.session.exec(statement).all())

    def recent_meals(self, limit: int) -> list[Meal]:
        statement = (
            select(Meal)
            .where(Meal.status == MealStatus.completed)
            .order_by(Meal.created_at.desc())
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def recent_dishes(self, limit: int) -> list[Dish]:
        statement = select(Dish).order_by(Dish.created_at.desc()).limit(limit)
        return list(self.session.exec(statement).all())

    def edges_touching(self, post_ids: list[UUID]) -> list[PostRelationship]:
        if not post_ids:
            return []
        statement = select(PostRelationship).where(
            or_(PostRelationship.post_id_1.in_(post_ids), PostRelationship.post_id_2.in_(post_ids))
        )
        return list(self.session.exec(statement).all())

    # ------------------------------------------------------------------
    # Meal writes
    # ------------------------------------------------------------------

    def delete_meal_row(self, meal_id: UUID) -> None:
        """Delete a bare meal row; compensates a half-finished creation."""
        self._execute(delete(Meal).where(Meal.id == meal_id))
        self.session.commit()

    def complete_meal(self, meal_id: UUID) -> int:
        """Mark a meal completed and drop unanswered invitations.

        Returns the number of pending invitations removed.
        """
        self._execute(update(Meal).where(Meal.id == meal_id).values(status=MealStatus.completed))
        removed = self._execute(
            delete(Participant)
            .where(Participant.meal_id == meal_id)
            .where(Participant.rsvp_status == RSVPStatus.pending)
        )
        self.session.commit()
        return removed

    def delete_meal_cascade(self, meal_id: UUID) -> int:
        """Delete a meal and everything that hangs off it, in one transaction.

        Linked dishes are detached rather than deleted. Returns the number of
        dishes detached.
        """
        detached = self._execute(
            update(Dish).where(Dish.parent_meal_id == meal_id).values(parent_meal_id=None)
        )
        self._execute(
            delete(PostRelationship).where(
                or_(PostRelationship.post_id_1 == meal_id, PostRelationship.post_id_2 == meal_id)
            )
        )
        self._execute(delete(DishCourse).where(DishCourse.meal_id == meal_id))
        self._execute(delete(PlanItem).where(PlanItem.meal_id == meal_id))
        self._execute(delete(MealPhoto).where(MealPhoto.meal_id == meal_id))
        self._execute(delete(Participant).where(Participant.meal_id == meal_id))
        self._execute(delete(Meal).where(Meal.id == meal_id))
        self.session.commit()
        return detached

    # ------------------------------------------------------------------
    # Dish links
    # ------------------------------------------------------------------

    def _link_dish(
        self,
        meal_id: UUID,
        dish_id: UUID,
        course_type,
        is_main_dish: bool,
        course_order: int | None = None,
    ) -> None:
        """Attach a dish to a meal: course row, back-reference and feed edge."""
        existing = self.session.exec(
            select(DishCourse.id).where(DishCourse.dish_id == dish_id)
        ).first()
        if existing is None:
            self.session.add(
                DishCourse(
                    dish_id=dish_id,
                    meal_id=meal_id,
                    course_type=course_type,
                    is_main_dish=is_main_dish,
                    course_order=course_order,
                )
            )
        self._execute(update(Dish).where(Dish.id == dish_id).values(parent_meal_id=meal_id))
        first, second = canonical_pair(meal_id, dish_id)
        edge = self.session.exec(
            select(PostRelationship.id)
            .where(PostRelationship.post_id_1 == first)
            .where(PostRelationship.post_id_2 == second)
        ).first()
        if edge is None:
            self.session.add(PostRelationship.between(meal_id, dish_id, RelationshipType.meal_group))

    def _unlink_dish(self, meal_id: UUID, dish_id: UUID) -> int:
        removed = self._execute(
            delete(DishCourse).where(DishCourse.meal_id == meal_id).where(DishCourse.dish_id == dish_id)
        )
        self._execute(
            update(Dish)
            .where(Dish.id == dish_id)
            .where(Dish.parent_meal_id == meal_id)
            .values(parent_meal_id=None)
        )
        first, second = canonical_pair(meal_id, dish_id)
        self._execute(
            delete(PostRelationship)
            .where(PostRelationship.post_id_1 == first)
            .where(PostRelationship.post_id_2 == second)
            .where(PostRelationship.relationship_type == RelationshipType.meal_group)
        )
        return removed

    def link_dish(self, meal_id: UUID, dish_id: UUID, course_type, is_main_dish: bool, course_order=None) -> None:
        self._link_dish(meal_id, dish_id, course_type, is_main_dish, course_order)
        self.session.commit()

    def unlink_dish(self, meal_id: UUID, dish_id: UUID) -> bool:
        removed = self._unlink_dish(meal_id, dish_id)
        self.session.commit()
        return removed > 0

    def update_dish_course(self, meal_id: UUID, dish_id: UUID, values: dict) -> bool:
        statement = (
            update(DishCourse)
            .where(DishCourse.meal_id == meal_id)
            .where(DishCourse.dish_id == dish_id)
            .values(**values)
        )
        return self._won(statement)

    def delete_photo(self, photo_id: UUID) -> bool:
        return self._won(delete(MealPhoto).where(MealPhoto.id == photo_id))

    # ------------------------------------------------------------------
    # Plan item transitions (conditional writes)
    # ------------------------------------------------------------------

    @staticmethod
    def _assignee_is(expected: UUID | None):
        if expected is None:
            return PlanItem.assigned_to.is_(None)
        return PlanItem.assigned_to == expected

    @staticmethod
    def _open(item_id: UUID):
        """Rows of ``item_id`` that nobody has claimed or completed yet."""
        return (
            (PlanItem.id == item_id)
            & PlanItem.claimed_by.is_(None)
            & PlanItem.dish_id.is_(None)
        )

    @staticmethod
    def _member_of_meal(user_id: UUID, accepted_only: bool = False):
        """``EXISTS`` clause: the user is an accepted member (or the host) of the slot's meal."""
        standing = Participant.rsvp_status == RSVPStatus.accepted
        if not accepted_only:
            standing = or_(standing, Participant.role == ParticipantRole.host)
        return (
            select(Participant.id)
            .where(Participant.meal_id == PlanItem.meal_id)
            .where(Participant.user_id == user_id)
            .where(standing)
            .correlate(PlanItem)
            .exists()
        )

    def claim_plan_item(
        self,
        item_id: UUID,
        user_id: UUID,
        expected_assignee: UUID | None,
        recipe_id: UUID | None = None,
    ) -> bool:
        """Set the claimer only if the slot is still open and unchanged.

        ``expected_assignee`` is the assignment the caller saw; a concurrent
        reassignment makes the claim lose. The claimer must still be the host
        or an accepted participant when the row is written, so a decline or
        removal that commits first wins. With ``recipe_id`` the recipe is
        attached by the same statement.
        """
        values = {"claimed_by": user_id, "claimed_at": datetime.now(UTC)}
        if recipe_id is not None:
            values["recipe_id"] = recipe_id
        statement = (
            update(PlanItem)
            .where(self._open(item_id))
            .where(self._assignee_is(expected_assignee))
            .where(self._member_of_meal(user_id))
            .values(**values)
        )
        return self._won(statement)

    def release_plan_item(self, item_id: UUID, expected_claimer: UUID) -> bool:
        """Clear claimer, claim time and recipe together, never after completion."""
        statement = (
            update(PlanItem)
            .where(PlanItem.id == item_id)
            .where(PlanItem.claimed_by == expected_claimer)
            .where(PlanItem.dish_id.is_(None))
            .values(claimed_by=None, claimed_at=None, recipe_id=None)
        )
        return self._won(statement)

    def assign_plan_item(self, item_id: UUID, assignee: UUID, expected_assignee: UUID | None) -> bool:
        statement = (
            update(PlanItem)
            .where(self._open(item_id))
            .where(self._assignee_is(expected_assignee))
            .where(self._member_of_meal(assignee, accepted_only=True))
            .values(assigned_to=assignee, assigned_at=datetime.now(UTC))
        )
        return self._won(statement)

    def unassign_plan_item(self, item_id: UUID, expected_assignee: UUID) -> bool:
        statement = (
            update(PlanItem)
            .where(self._open(item_id))
            .where(PlanItem.assigned_to == expected_assignee)
            .values(assigned_to=None, assigned_at=None)
        )
        return self._won(statement)

    def attach_recipe(self, item_id: UUID, claimer: UUID, recipe_id: UUID) -> bool:
        statement = (
            update(PlanItem)
            .where(PlanItem.id == item_id)
            .where(PlanItem.claimed_by == claimer)
            .where(PlanItem.dish_id.is_(None))
            .values(recipe_id=recipe_id)
        )
        return self._won(statement)

    def complete_plan_item(self, item: PlanItem, claimer: UUID, dish_id: UUID) -> bool:
        """Link the cooked dish to the slot and to the meal in one transaction."""
        statement = (
            update(PlanItem)
            .where(PlanItem.id == item.id)
            .where(PlanItem.claimed_by == claimer)
            .where(PlanItem.dish_id.is_(None))
            .values(dish_id=dish_id, completed_at=datetime.now(UTC))
        )
        if self._execute(statement) != 1:
            self.session.rollback()
            return False
        self._link_dish(item.meal_id, dish_id, item.course_type, item.is_main_dish)
        self.session.commit()
        return True

    def delete_open_plan_item(self, item_id: UUID) -> bool:
        return self._won(delete(PlanItem).where(self._open(item_id)))

    # ------------------------------------------------------------------
    # Participant writes
    # ------------------------------------------------------------------

    def _release_member_slots(self, meal_id: UUID, user_id: UUID) -> int:
        """Release a member's open claims and clear their open assignments."""
        released = self._execute(
            update(PlanItem)
            .where(PlanItem.meal_id == meal_id)
            .where(PlanItem.claimed_by == user_id)
            .where(PlanItem.dish_id.is_(None))
            .values(claimed_by=None, claimed_at=None, recipe_id=None)
        )
        self._execute(
            update(PlanItem)
            .where(PlanItem.meal_id == meal_id)
            .where(PlanItem.assigned_to == user_id)
            .where(PlanItem.dish_id.is_(None))
            .values(assigned_to=None, assigned_at=None)
        )
        return released

    def set_rsvp(self, meal_id: UUID, user_id: UUID, response: RSVPStatus) -> tuple[bool, int]:
        """Record a response; leaving "accepted" releases the member's slots.

        Only attendees may answer anything other than "accepted", so the host
        can never drop out from under the meal. Returns whether the row was
        updated and how many claims were released.
        """
        statement = (
            update(Participant)
            .where(Participant.meal_id == meal_id)
            .where(Participant.user_id == user_id)
            .values(rsvp_status=response, responded_at=datetime.now(UTC))
        )
        if response != RSVPStatus.accepted:
            statement = statement.where(Participant.role == ParticipantRole.attendee)
        if self._execute(statement) != 1:
            self.session.rollback()
            return False, 0
        released = 0
        if response != RSVPStatus.accepted:
            released = self._release_member_slots(meal_id, user_id)
        self.session.commit()
        return True, released

    def remove_participant(self, meal_id: UUID, user_id: UUID) -> int:
        """Release the member's slots, detach their dishes, then delete them.

        Returns the number of claims released, or -1 when the member was
        already gone.
        """
        released = self._release_member_slots(meal_id, user_id)
        dish_ids = self.session.exec(
            select(Dish.id).where(Dish.user_id == user_id).where(Dish.parent_meal_id == meal_id)
        ).all()
        for dish_id in dish_ids:
            self._unlink_dish(meal_id, dish_id)
        removed = self._execute(
            delete(Participant)
            .where(Participant.meal_id == meal_id)
            .where(Participant.user_id == user_id)
        )
        if removed != 1:
            self.session.rollback()
            return -1
        self.session.commit()
        return released

    def transfer_host(self, meal_id: UUID, current_host: UUID, new_host: UUID) -> bool:
        """Swap roles between two members, all or nothing.

        Both updates are conditioned on the roles the caller expects and the
        host count is re-checked inside the same transaction.
        """
        demoted = self._execute(
            update(Participant)
            .where(Participant.meal_id == meal_id)
            .where(Participant.user_id == current_host)
            .where(Participant.role == ParticipantRole.host)
            .values(role=ParticipantRole.attendee)
        )
        promoted = self._execute(
            update(Participant)
            .where(Participant.meal_id == meal_id)
            .where(Participant.user_id == new_host)
            .where(Participant.role == ParticipantRole.attendee)
            .where(Participant.rsvp_status == RSVPStatus.accepted)
            .values(role=ParticipantRole.host)
        )
        if demoted != 1 or promoted != 1 or self.count_accepted_hosts(meal_id) < 1:
            logger.warning(f"Host transfer on meal {meal_id} lost a race, rolling back")
            self.session.rollback()
            return False
        self.session.commit()
        return True
