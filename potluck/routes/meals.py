"""Meal routes: lifecycle, dishes and photos."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import SQLModel

from potluck.models import DishCourseUpdate, DishLink, MealCreate, MealUpdate
from potluck.routes.deps import get_current_user_id, get_meal_service
from potluck.services.meals import MealService

router = APIRouter(prefix="/meals", tags=["meals"])
photos_router = APIRouter(prefix="/photos", tags=["photos"])


class DishesAdd(SQLModel):
    dishes: list[DishLink]


class PhotoCreate(SQLModel):
    photo_url: str
    caption: str | None = None


@router.post("", status_code=201)
async def create_meal(
    data: MealCreate,
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """
    Create a meal in planning status.

    The calling user becomes the accepted host of the new meal.
    """
    return service.create(user_id, data).unwrap()


@router.get("/{meal_id}")
async def get_meal(meal_id: UUID, service: MealService = Depends(get_meal_service)):
    """Get meal details with host and counts."""
    return service.get(meal_id).unwrap()


@router.patch("/{meal_id}")
async def update_meal(
    meal_id: UUID,
    changes: MealUpdate,
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """Edit title, description, type, location or time. Host only."""
    return service.update(meal_id, user_id, changes).unwrap()


@router.delete("/{meal_id}")
async def delete_meal(
    meal_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """
    Delete a meal. Host only.

    Participants, plan items and photos are deleted with it; linked dishes
    are detached and kept.
    """
    detached = service.delete(meal_id, user_id).unwrap()
    return {"status": "deleted", "dishes_detached": detached}


@router.post("/{meal_id}/complete")
async def complete_meal(
    meal_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """Mark the meal completed and drop unanswered invitations. Host only."""
    return service.complete(meal_id, user_id).unwrap()


@router.get("/{meal_id}/dishes")
async def list_dishes(meal_id: UUID, service: MealService = Depends(get_meal_service)):
    """List dishes linked to the meal, ordered by course."""
    return service.list_dishes(meal_id).unwrap()


@router.post("/{meal_id}/dishes")
async def add_dishes(
    meal_id: UUID,
    body: DishesAdd,
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """Link the caller's dishes to the meal; ineligible dishes are skipped."""
    added = service.add_dishes(meal_id, user_id, body.dishes).unwrap()
    return {"added": added}


@router.patch("/{meal_id}/dishes/{dish_id}")
async def update_dish_course(
    meal_id: UUID,
    dish_id: UUID,
    changes: DishCourseUpdate,
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """Change a dish's course, main-dish flag or order. Host or dish owner only."""
    return service.update_dish_course(meal_id, dish_id, user_id, changes).unwrap()


@router.delete("/{meal_id}/dishes/{dish_id}", status_code=204)
async def remove_dish(
    meal_id: UUID,
    dish_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """Detach a dish from the meal. Host or dish owner only."""
    service.remove_dish(meal_id, dish_id, user_id).unwrap()


@router.get("/{meal_id}/photos")
async def list_photos(meal_id: UUID, service: MealService = Depends(get_meal_service)):
    return service.list_photos(meal_id).unwrap()


@router.post("/{meal_id}/photos", status_code=201)
async def add_photo(
    meal_id: UUID,
    body: PhotoCreate,
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """Attach an already uploaded photo to the meal."""
    return service.add_photo(meal_id, user_id, body.photo_url, body.caption).unwrap()


@photos_router.delete("/{photo_id}", status_code=204)
async def delete_photo(
    photo_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: MealService = Depends(get_meal_service),
):
    """Delete a meal photo. Uploader or host only."""
    service.delete_photo(photo_id, user_id).unwrap()
