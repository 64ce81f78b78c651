"""Plan item routes: dish slots of a meal and their transitions."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import SQLModel

from potluck.models import CourseType, PlanItemCreate, PlanItemUpdate
from potluck.routes.deps import get_current_user_id, get_plan_item_service
from potluck.services.plan_items import PlanItemService

meal_router = APIRouter(prefix="/meals/{meal_id}/plan-items", tags=["plan-items"])
router = APIRouter(prefix="/plan-items", tags=["plan-items"])
recipe_router = APIRouter(prefix="/recipes", tags=["plan-items"])


class BulkPlanItems(SQLModel):
    items: list[PlanItemCreate]


class RecipeItemCreate(SQLModel):
    recipe_id: UUID
    course_type: CourseType
    is_main_dish: bool = False


class AssignRequest(SQLModel):
    assignee_id: UUID


class RecipeRequest(SQLModel):
    recipe_id: UUID


class CompleteRequest(SQLModel):
    dish_id: UUID


# ----------------------------------------------------------------------
# Slots of a meal
# ----------------------------------------------------------------------


@meal_router.get("")
async def list_plan_items(meal_id: UUID, service: PlanItemService = Depends(get_plan_item_service)):
    """List the meal's slots in creation order with their derived status."""
    return service.list_items(meal_id).unwrap()


@meal_router.post("", status_code=201)
async def add_plan_item(
    meal_id: UUID,
    spec: PlanItemCreate,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    """Add a slot, optionally pre-assigned. Host only."""
    return service.add_item(meal_id, user_id, spec).unwrap()


@meal_router.post("/bulk", status_code=201)
async def add_plan_items(
    meal_id: UUID,
    body: BulkPlanItems,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    """Add several slots in one go. Host only; all or nothing."""
    return service.add_items(meal_id, user_id, body.items).unwrap()


@meal_router.post("/with-recipe", status_code=201)
async def add_plan_item_with_recipe(
    meal_id: UUID,
    body: RecipeItemCreate,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    """
    Add a slot the caller will cook.

    The new slot is claimed by the caller with the recipe already attached.
    """
    return service.create_item_with_recipe(
        meal_id, user_id, body.recipe_id, body.course_type, body.is_main_dish
    ).unwrap()


@meal_router.get("/summary")
async def plan_summary(meal_id: UUID, service: PlanItemService = Depends(get_plan_item_service)):
    """Count the meal's slots by progress."""
    return service.summary(meal_id).unwrap()


@meal_router.get("/open")
async def open_plan_items(meal_id: UUID, service: PlanItemService = Depends(get_plan_item_service)):
    """Slots nobody has claimed yet."""
    return service.open_items(meal_id).unwrap()


# ----------------------------------------------------------------------
# Single slot
# ----------------------------------------------------------------------


@router.patch("/{item_id}")
async def update_plan_item(
    item_id: UUID,
    changes: PlanItemUpdate,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    return service.update_item(item_id, user_id, changes).unwrap()


@router.delete("/{item_id}", status_code=204)
async def delete_plan_item(
    item_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    """Delete an unclaimed slot. Host only."""
    service.delete_item(item_id, user_id).unwrap()


@router.post("/{item_id}/assign")
async def assign_plan_item(
    item_id: UUID,
    body: AssignRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    return service.assign(item_id, user_id, body.assignee_id).unwrap()


@router.post("/{item_id}/unassign")
async def unassign_plan_item(
    item_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    return service.unassign(item_id, user_id).unwrap()


@router.post("/{item_id}/claim")
async def claim_plan_item(
    item_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    """
    Claim a slot.

    Answers 409 with ``retryable: true`` when another participant claimed it
    first.
    """
    return service.claim(item_id, user_id).unwrap()


@router.post("/{item_id}/unclaim")
async def unclaim_plan_item(
    item_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    """Release a claim. The recipe is cleared with it."""
    return service.unclaim(item_id, user_id).unwrap()


@router.post("/{item_id}/recipe")
async def attach_recipe(
    item_id: UUID,
    body: RecipeRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    return service.attach_recipe(item_id, user_id, body.recipe_id).unwrap()


@router.post("/{item_id}/volunteer")
async def volunteer_with_recipe(
    item_id: UUID,
    body: RecipeRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    """Claim a slot and attach a recipe at once."""
    return service.volunteer_with_recipe(item_id, user_id, body.recipe_id).unwrap()


@router.post("/{item_id}/complete")
async def complete_plan_item(
    item_id: UUID,
    body: CompleteRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: PlanItemService = Depends(get_plan_item_service),
):
    """Link the cooked dish. The slot cannot change afterwards."""
    return service.complete(item_id, user_id, body.dish_id).unwrap()


@recipe_router.get("/{recipe_id}/plan-items")
async def recipe_plan_items(recipe_id: UUID, service: PlanItemService = Depends(get_plan_item_service)):
    """Slots in any meal that plan to cook this recipe, with their status."""
    return service.meals_with_recipe(recipe_id).unwrap()
