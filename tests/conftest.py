"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from potluck.core.database import get_session
from potluck.main import app
from potluck.models import Dish, Meal, MealCreate, Recipe, RSVPStatus, UserProfile
from potluck.services.feed import FeedService
from potluck.services.meals import MealService
from potluck.services.participants import ParticipantService
from potluck.services.plan_items import PlanItemService
from potluck.store import MealStore


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with the test database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="store")
def store_fixture(session: Session) -> MealStore:
    return MealStore(session)


@pytest.fixture(name="meals")
def meals_fixture(store: MealStore) -> MealService:
    return MealService(store)


@pytest.fixture(name="participants")
def participants_fixture(store: MealStore) -> ParticipantService:
    return ParticipantService(store)


@pytest.fixture(name="plan_items")
def plan_items_fixture(store: MealStore) -> PlanItemService:
    return PlanItemService(store)


@pytest.fixture(name="feed")
def feed_fixture(store: MealStore) -> FeedService:
    return FeedService(store)


def _user(session: Session, username: str, display_name: str) -> UserProfile:
    user = UserProfile(username=username, display_name=display_name)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="host")
def host_fixture(session: Session) -> UserProfile:
    return _user(session, "hannah", "Hannah Host")


@pytest.fixture(name="guest_a")
def guest_a_fixture(session: Session) -> UserProfile:
    return _user(session, "alex", "Alex")


@pytest.fixture(name="guest_b")
def guest_b_fixture(session: Session) -> UserProfile:
    return _user(session, "blair", "Blair")


@pytest.fixture(name="outsider")
def outsider_fixture(session: Session) -> UserProfile:
    return _user(session, "olive", "Olive Outsider")


@pytest.fixture(name="new_meal")
def new_meal_fixture(meals: MealService, host: UserProfile) -> Meal:
    """A planning meal with only its host."""
    data = MealCreate(
        title="Sunday Dinner",
        location="Hannah's place",
        meal_time=datetime.now(UTC) + timedelta(days=3),
    )
    return meals.create(host.id, data).unwrap()


@pytest.fixture(name="meal")
def meal_fixture(
    new_meal: Meal,
    participants: ParticipantService,
    host: UserProfile,
    guest_a: UserProfile,
    guest_b: UserProfile,
) -> Meal:
    """A planning meal where both guests have accepted."""
    participants.invite(new_meal.id, host.id, [guest_a.id, guest_b.id]).unwrap()
    participants.respond(new_meal.id, guest_a.id, RSVPStatus.accepted).unwrap()
    participants.respond(new_meal.id, guest_b.id, RSVPStatus.accepted).unwrap()
    return new_meal


@pytest.fixture(name="recipe")
def recipe_fixture(session: Session, guest_a: UserProfile) -> Recipe:
    recipe = Recipe(title="Lasagna", user_id=guest_a.id)
    session.add(recipe)
    session.commit()
    session.refresh(recipe)
    return recipe


@pytest.fixture(name="dish")
def dish_fixture(session: Session, guest_a: UserProfile, recipe: Recipe) -> Dish:
    """A dish cooked by guest A, not linked to any meal."""
    dish = Dish(user_id=guest_a.id, title="Lasagna al forno", recipe_id=recipe.id, rating=4.5)
    session.add(dish)
    session.commit()
    session.refresh(dish)
    return dish
