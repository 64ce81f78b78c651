"""Per-user overview routes."""
from uuid import UUID

from fastapi import APIRouter, Depends

from potluck.routes.deps import (
    get_current_user_id,
    get_meal_service,
    get_participant_service,
    get_plan_item_service,
)
from potluck.services.meals import MealService
from potluck.services.participants import ParticipantService
from potluck.services.plan_items import PlanItemService

router = APIRouter(prefix="/users/me", tags=["users"])


@router.get("/commitments")
async def my_commitments(
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    """Slots the caller claimed or was assigned, across planning meals."""
    return service.user_commitments(user_id).unwrap()


@router.get("/invitations")
async def my_invitations(
    user_id: UUID = Depends(get_current_user_id),
    service: ParticipantService = Depends(get_participant_service),
):
    """Invitations the caller has not answered yet, newest first."""
    return service.pending_invitations(user_id).unwrap()


@router.get("/planning-meals")
async def my_planning_meals(
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """Upcoming meals the caller hosts, joined or is invited to."""
    return service.planning_meals_for_user(user_id).unwrap()


@router.get("/available-dishes")
async def my_available_dishes(
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """The caller's dishes from the last month that are not part of a meal yet."""
    return service.available_dishes(user_id).unwrap()
