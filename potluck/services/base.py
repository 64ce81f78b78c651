"""Shared lookups for the planning services."""
from uuid import UUID

from potluck.core.errors import InvalidState, NotFound
from potluck.models import Meal, MealStatus, Participant, PlanItem
from potluck.store import MealStore


class PlanningService:
    """Base for services that operate on one meal at a time.

    Lookups always go back to the store so every decision is made on the
    latest committed rows.
    """

    def __init__(self, store: MealStore):
        self.store = store

    def _meal(self, meal_id: UUID) -> Meal:
        meal = self.store.get_meal(meal_id)
        if meal is None:
            raise NotFound("Meal not found", details={"meal_id": str(meal_id)})
        return meal

    def _planning_meal(self, meal_id: UUID, message: str) -> Meal:
        meal = self._meal(meal_id)
        if meal.status != MealStatus.planning:
            raise InvalidState(message)
        return meal

    def _plan_item(self, item_id: UUID) -> PlanItem:
        item = self.store.get_plan_item(item_id)
        if item is None:
            raise NotFound("Plan item not found", details={"plan_item_id": str(item_id)})
        return item

    def _membership(self, meal_id: UUID, user_id: UUID) -> Participant | None:
        return self.store.get_participant(meal_id, user_id)
