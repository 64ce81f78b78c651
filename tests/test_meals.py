"""Tests for the meal lifecycle service."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from potluck.core.errors import InvalidState, NotFound, PermissionDenied, StoreError, ValidationError
from potluck.models import (
    CourseType,
    Dish,
    DishCourse,
    DishCourseUpdate,
    DishLink,
    Meal,
    MealCreate,
    MealStatus,
    MealUpdate,
    Participant,
    ParticipantRole,
    PlanItem,
    PlanItemCreate,
    PostRelationship,
    RSVPStatus,
)
from potluck.services.meals import MealService
from potluck.store import MealStore


def _dish(session: Session, owner, title: str) -> Dish:
    dish = Dish(user_id=owner.id, title=title)
    session.add(dish)
    session.commit()
    session.refresh(dish)
    return dish


class TestCreateMeal:
    """Tests for meal creation."""

    def test_creator_becomes_accepted_host(self, meals: MealService, store: MealStore, host):
        """Test the creator is inserted as the accepted host."""
        meal = meals.create(host.id, MealCreate(title="  Taco Night  ")).unwrap()

        assert meal.title == "Taco Night"
        assert meal.status == MealStatus.planning
        participant = store.get_participant(meal.id, host.id)
        assert participant.role == ParticipantRole.host
        assert participant.rsvp_status == RSVPStatus.accepted
        assert participant.responded_at is not None

    def test_blank_title_rejected(self, meals: MealService, host):
        """Test a whitespace title is a validation error."""
        result = meals.create(host.id, MealCreate(title="   "))
        assert isinstance(result.error, ValidationError)

    def test_unknown_user(self, meals: MealService):
        """Test creating a meal for a missing user."""
        result = meals.create(uuid4(), MealCreate(title="Brunch"))
        assert isinstance(result.error, NotFound)

    def test_failed_host_insert_deletes_meal(self, meals: MealService, store: MealStore, session: Session, host, monkeypatch):
        """Test a failing second step leaves no meal behind."""
        original_add = store.add

        def failing_add(entity):
            if isinstance(entity, Participant):
                raise SQLAlchemyError("connection lost")
            return original_add(entity)

        monkeypatch.setattr(store, "add", failing_add)

        result = meals.create(host.id, MealCreate(title="Brunch"))

        assert isinstance(result.error, StoreError)
        assert result.error.retryable
        assert session.exec(select(Meal)).all() == []


class TestReadAndUpdateMeal:
    """Tests for meal details and edits."""

    def test_detail_counts(self, meals: MealService, meal: Meal, host):
        """Test the detail view derives host and counts."""
        detail = meals.get(meal.id).unwrap()

        assert detail.host_id == host.id
        assert detail.participant_count == 3
        assert detail.dish_count == 0
        assert detail.plan_item_count == 0

    def test_missing_meal(self, meals: MealService):
        """Test reading a meal that does not exist."""
        assert isinstance(meals.get(uuid4()).error, NotFound)

    def test_host_updates(self, meals: MealService, meal: Meal, host):
        """Test the host can edit details without touching status."""
        updated = meals.update(meal.id, host.id, MealUpdate(title="Sunday Roast", location="Park")).unwrap()

        assert updated.title == "Sunday Roast"
        assert updated.location == "Park"
        assert updated.status == MealStatus.planning

    def test_guest_cannot_update(self, meals: MealService, meal: Meal, guest_a):
        """Test attendees cannot edit the meal."""
        result = meals.update(meal.id, guest_a.id, MealUpdate(title="Mine now"))
        assert isinstance(result.error, PermissionDenied)

    def test_empty_title_update(self, meals: MealService, meal: Meal, host):
        """Test the title cannot be blanked."""
        result = meals.update(meal.id, host.id, MealUpdate(title=""))
        assert isinstance(result.error, ValidationError)


class TestCompleteMeal:
    """Tests for completing a meal."""

    def test_complete_removes_pending_and_is_idempotent(
        self, meals: MealService, participants, store: MealStore, meal: Meal, host, guest_a, outsider
    ):
        """Test completion drops pending invitations and can be repeated."""
        participants.invite(meal.id, host.id, [outsider.id]).unwrap()

        completed = meals.complete(meal.id, host.id).unwrap()
        assert completed.status == MealStatus.completed
        assert store.get_participant(meal.id, outsider.id) is None
        assert store.get_participant(meal.id, guest_a.id) is not None

        again = meals.complete(meal.id, host.id).unwrap()
        assert again.status == MealStatus.completed
        assert len(store.list_participants_with_profiles(meal.id)) == 3

    def test_guest_cannot_complete(self, meals: MealService, meal: Meal, guest_a):
        """Test only the host completes a meal."""
        assert isinstance(meals.complete(meal.id, guest_a.id).error, PermissionDenied)


class TestDeleteMeal:
    """Tests for deleting a meal."""

    def test_delete_cascades_and_keeps_dishes(
        self, meals: MealService, plan_items, session: Session, meal: Meal, host, guest_a, dish: Dish
    ):
        """Test deletion removes the meal's rows but only detaches dishes."""
        meal_id = meal.id
        dish_id = dish.id
        plan_items.add_item(meal_id, host.id, PlanItemCreate(course_type=CourseType.side)).unwrap()
        assert meals.add_dishes(meal_id, guest_a.id, [DishLink(dish_id=dish_id)]).unwrap() == 1

        detached = meals.delete(meal_id, host.id).unwrap()

        assert detached == 1
        assert session.get(Meal, meal_id) is None
        assert session.exec(select(Participant).where(Participant.meal_id == meal_id)).all() == []
        assert session.exec(select(PlanItem).where(PlanItem.meal_id == meal_id)).all() == []
        assert session.exec(select(DishCourse).where(DishCourse.meal_id == meal_id)).all() == []
        assert session.exec(select(PostRelationship)).all() == []
        kept = session.get(Dish, dish_id, populate_existing=True)
        assert kept is not None
        assert kept.parent_meal_id is None

    def test_guest_cannot_delete(self, meals: MealService, meal: Meal, guest_a):
        """Test only the host deletes a meal."""
        assert isinstance(meals.delete(meal.id, guest_a.id).error, PermissionDenied)


class TestMealDishes:
    """Tests for linking dishes to a meal."""

    def test_dishes_sorted_by_course(self, meals: MealService, session: Session, meal: Meal, guest_a):
        """Test dishes come back in course order, main dish first."""
        cake = _dish(session, guest_a, "Cake")
        salad = _dish(session, guest_a, "Salad")
        roast = _dish(session, guest_a, "Roast")
        links = [
            DishLink(dish_id=cake.id, course_type=CourseType.dessert),
            DishLink(dish_id=salad.id, course_type=CourseType.main),
            DishLink(dish_id=roast.id, course_type=CourseType.main, is_main_dish=True),
        ]
        assert meals.add_dishes(meal.id, guest_a.id, links).unwrap() == 3

        titles = [d.dish_title for d in meals.list_dishes(meal.id).unwrap()]
        assert titles == ["Roast", "Salad", "Cake"]

    def test_foreign_dishes_skipped(self, meals: MealService, session: Session, meal: Meal, guest_a, guest_b, dish: Dish):
        """Test dishes owned by someone else are not linked."""
        own = _dish(session, guest_b, "Bread")
        added = meals.add_dishes(meal.id, guest_b.id, [DishLink(dish_id=dish.id), DishLink(dish_id=own.id)]).unwrap()
        assert added == 1

    def test_outsider_cannot_add(self, meals: MealService, meal: Meal, outsider):
        """Test non-participants cannot add dishes."""
        result = meals.add_dishes(meal.id, outsider.id, [])
        assert isinstance(result.error, PermissionDenied)

    def test_remove_dish(self, meals: MealService, session: Session, meal: Meal, guest_a, dish: Dish):
        """Test the owner can detach a dish again."""
        meals.add_dishes(meal.id, guest_a.id, [DishLink(dish_id=dish.id)]).unwrap()
        meals.remove_dish(meal.id, dish.id, guest_a.id).unwrap()

        assert meals.list_dishes(meal.id).unwrap() == []
        assert session.exec(select(PostRelationship)).all() == []

    def test_cannot_remove_dish_completing_item(self, meals: MealService, plan_items, meal: Meal, host, guest_a, dish: Dish):
        """Test a dish that completes a plan item stays linked."""
        item = plan_items.add_item(meal.id, host.id, PlanItemCreate(course_type=CourseType.main)).unwrap()
        plan_items.claim(item.id, guest_a.id).unwrap()
        plan_items.complete(item.id, guest_a.id, dish.id).unwrap()

        result = meals.remove_dish(meal.id, dish.id, host.id)
        assert isinstance(result.error, InvalidState)


    def test_owner_updates_course(self, meals: MealService, meal: Meal, guest_a, dish: Dish):
        """Test the dish owner moves their dish to another course."""
        meals.add_dishes(meal.id, guest_a.id, [DishLink(dish_id=dish.id, course_type=CourseType.side)]).unwrap()

        course = meals.update_dish_course(
            meal.id, dish.id, guest_a.id, DishCourseUpdate(course_type=CourseType.main, is_main_dish=True)
        ).unwrap()

        assert course.course_type == CourseType.main
        assert course.is_main_dish
        listed = meals.list_dishes(meal.id).unwrap()
        assert listed[0].course_type == CourseType.main

    def test_host_sets_course_order(self, meals: MealService, meal: Meal, host, guest_a, dish: Dish):
        """Test the host can reorder a guest's dish."""
        meals.add_dishes(meal.id, guest_a.id, [DishLink(dish_id=dish.id)]).unwrap()
        course = meals.update_dish_course(meal.id, dish.id, host.id, DishCourseUpdate(course_order=2)).unwrap()
        assert course.course_order == 2
        assert course.course_type == CourseType.other

    def test_other_guest_cannot_update_course(self, meals: MealService, meal: Meal, guest_a, guest_b, dish: Dish):
        """Test only the host or the dish owner edits course info."""
        meals.add_dishes(meal.id, guest_a.id, [DishLink(dish_id=dish.id)]).unwrap()
        result = meals.update_dish_course(meal.id, dish.id, guest_b.id, DishCourseUpdate(course_type=CourseType.dessert))
        assert isinstance(result.error, PermissionDenied)
        assert result.error.message == "Only the host or dish owner can update course info"

    def test_update_course_of_unlinked_dish(self, meals: MealService, meal: Meal, guest_a, dish: Dish):
        """Test a dish outside the meal has no course to edit."""
        result = meals.update_dish_course(meal.id, dish.id, guest_a.id, DishCourseUpdate(course_type=CourseType.main))
        assert isinstance(result.error, NotFound)


class TestMealPhotos:
    """Tests for meal photos."""

    def test_guest_adds_and_host_deletes(self, meals: MealService, meal: Meal, host, guest_a):
        """Test accepted guests add photos and the host can remove them."""
        photo = meals.add_photo(meal.id, guest_a.id, "https://img.example/1.jpg", " Dessert time ").unwrap()
        assert photo.caption == "Dessert time"
        assert len(meals.list_photos(meal.id).unwrap()) == 1

        meals.delete_photo(photo.id, host.id).unwrap()
        assert meals.list_photos(meal.id).unwrap() == []

    def test_other_guest_cannot_delete(self, meals: MealService, meal: Meal, guest_a, guest_b):
        """Test only the uploader or host deletes a photo."""
        photo = meals.add_photo(meal.id, guest_a.id, "https://img.example/1.jpg").unwrap()
        assert isinstance(meals.delete_photo(photo.id, guest_b.id).error, PermissionDenied)

    def test_outsider_cannot_add(self, meals: MealService, meal: Meal, outsider):
        """Test non-participants cannot add photos."""
        result = meals.add_photo(meal.id, outsider.id, "https://img.example/2.jpg")
        assert isinstance(result.error, PermissionDenied)


class TestPlanningOverview:
    """Tests for the per-user list of planning meals."""

    def test_open_slot_counts(self, meals: MealService, plan_items, meal: Meal, host, guest_a):
        """Test the overview counts unclaimed slots and drops completed meals."""
        plan_items.add_items(
            meal.id,
            host.id,
            [PlanItemCreate(course_type=CourseType.main), PlanItemCreate(course_type=CourseType.side)],
        ).unwrap()

        overview = meals.planning_meals_for_user(guest_a.id).unwrap()
        assert [(m.meal_id, m.role, m.unclaimed_count) for m in overview] == [(meal.id, "attendee", 2)]

        meals.complete(meal.id, host.id).unwrap()
        assert meals.planning_meals_for_user(guest_a.id).unwrap() == []


class TestAvailableDishes:
    """Tests for the list of dishes a user can still add to a meal."""

    def test_recent_unlinked_dishes_newest_first(self, meals: MealService, session: Session, meal: Meal, guest_a, dish: Dish):
        """Test linked and old dishes are left out and the rest come newest first."""
        linked = _dish(session, guest_a, "Soup")
        meals.add_dishes(meal.id, guest_a.id, [DishLink(dish_id=linked.id)]).unwrap()
        old = Dish(user_id=guest_a.id, title="Stew", created_at=datetime.now(UTC) - timedelta(days=45))
        session.add(old)
        session.commit()
        newest = _dish(session, guest_a, "Pie")

        available = meals.available_dishes(guest_a.id).unwrap()

        assert [d.id for d in available] == [newest.id, dish.id]
        assert available[1].recipe_title == "Lasagna"

    def test_only_own_dishes(self, meals: MealService, guest_b, dish: Dish):
        """Test another cook's dishes are never offered."""
        assert meals.available_dishes(guest_b.id).unwrap() == []

    def test_window_in_days(self, meals: MealService, session: Session, guest_a):
        """Test a wider window reaches older dishes."""
        old = Dish(user_id=guest_a.id, title="Stew", created_at=datetime.now(UTC) - timedelta(days=45))
        session.add(old)
        session.commit()

        assert meals.available_dishes(guest_a.id).unwrap() == []
        assert [d.title for d in meals.available_dishes(guest_a.id, days=60).unwrap()] == ["Stew"]
