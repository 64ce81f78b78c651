"""Shared route dependencies: the store, the services and the acting user."""
from uuid import UUID

from fastapi import Depends, Header
from sqlmodel import Session

from potluck.core.database import get_session
from potluck.services.feed import FeedService
from potluck.services.meals import MealService
from potluck.services.participants import ParticipantService
from potluck.services.plan_items import PlanItemService
from potluck.store import MealStore


def get_store(session: Session = Depends(get_session)) -> MealStore:
    return MealStore(session)


def get_current_user_id(x_user_id: UUID = Header(..., description="Id of the acting user")) -> UUID:
    """Acting user, as asserted by the authentication proxy in front of the API."""
    return x_user_id


def get_meal_service(store: MealStore = Depends(get_store)) -> MealService:
    return MealService(store)


def get_participant_service(store: MealStore = Depends(get_store)) -> ParticipantService:
    return ParticipantService(store)


def get_plan_item_service(store: MealStore = Depends(get_store)) -> PlanItemService:
    return PlanItemService(store)


def get_feed_service(store: MealStore = Depends(get_store)) -> FeedService:
    return FeedService(store)
