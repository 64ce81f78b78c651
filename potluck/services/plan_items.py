"""Plan item state machine.

A dish slot progresses ``unclaimed -> assigned -> claimed -> has_recipe ->
completed``. Hosts create, assign and delete slots; participants claim them,
pick a recipe and finally link the dish they cooked. A claimed slot can be
released again, which also drops its recipe, but a completed slot is final.

Each transition reads the slot, checks the rules in ``permissions`` to
produce a meaningful error, and then performs a conditional write whose
``WHERE`` clause restates the precondition. When that write changes no row,
another actor got there first and the caller receives a ConflictError.
"""
import logging
from datetime import UTC, datetime
from uuid import UUID

from potluck.core.errors import ConflictError, InvalidState, NotFound, ValidationError
from potluck.core.result import operation
from potluck.models import (
    Commitment,
    CourseType,
    PlanItem,
    PlanItemCreate,
    PlanItemStatus,
    PlanItemUpdate,
    PlanItemView,
    PlanSummary,
    Recipe,
    RecipeUsage,
)
from potluck.services import permissions
from potluck.services.base import PlanningService

logger = logging.getLogger(__name__)

CLAIMED_OR_LATER = (PlanItemStatus.claimed, PlanItemStatus.has_recipe, PlanItemStatus.completed)


class PlanItemService(PlanningService):
    """Create dish slots and move them through their lifecycle."""

    def _recipe(self, recipe_id: UUID) -> Recipe:
        recipe = self.store.get_recipe(recipe_id)
        if recipe is None:
            raise NotFound("Recipe not found", details={"recipe_id": str(recipe_id)})
        return recipe

    def _new_item(self, meal_id: UUID, host_id: UUID, spec: PlanItemCreate) -> PlanItem:
        if spec.assigned_to is not None:
            permissions.can_assign_to(self._membership(meal_id, spec.assigned_to)).enforce()
        placeholder = spec.placeholder_name.strip() if spec.placeholder_name else None
        return PlanItem(
            meal_id=meal_id,
            course_type=spec.course_type,
            placeholder_name=placeholder or None,
            is_main_dish=spec.is_main_dish,
            assigned_to=spec.assigned_to,
            assigned_at=datetime.now(UTC) if spec.assigned_to else None,
            created_by=host_id,
        )

    def _host_on_planning_meal(self, meal_id: UUID, host_id: UUID, action: str) -> None:
        self._planning_meal(meal_id, "Can only change plan items of meals in planning status")
        permissions.can_manage_meal(self._membership(meal_id, host_id), action).enforce()

    # ------------------------------------------------------------------
    # Slot management (host)
    # ------------------------------------------------------------------

    @operation
    def add_item(self, meal_id: UUID, host_id: UUID, spec: PlanItemCreate) -> PlanItem:
        """Add one slot, optionally pre-assigned to an accepted participant."""
        self._host_on_planning_meal(meal_id, host_id, "add plan items")
        item = self.store.add(self._new_item(meal_id, host_id, spec))
        logger.info(f"Plan item {item.id} ({item.course_type.value}) added to meal {meal_id}")
        return item

    @operation
    def add_items(self, meal_id: UUID, host_id: UUID, specs: list[PlanItemCreate]) -> list[PlanItem]:
        """Add several slots at once ("3 sides, 2 mains"), all or none."""
        self._host_on_planning_meal(meal_id, host_id, "add plan items")
        if not specs:
            raise ValidationError("At least one plan item is required")
        items = self.store.add_all([self._new_item(meal_id, host_id, spec) for spec in specs])
        logger.info(f"{len(items)} plan items added to meal {meal_id}")
        return items

    @operation
    def create_item_with_recipe(
        self,
        meal_id: UUID,
        actor: UUID,
        recipe_id: UUID,
        course_type: CourseType,
        is_main_dish: bool = False,
    ) -> PlanItem:
        """Add a slot that the actor already claims, with their recipe on it."""
        self._planning_meal(meal_id, "Can only add to meals in planning status")
        permissions.can_create_claimed_item(self._membership(meal_id, actor)).enforce()
        recipe = self._recipe(recipe_id)

        now = datetime.now(UTC)
        item = self.store.add(
            PlanItem(
                meal_id=meal_id,
                course_type=course_type,
                placeholder_name=recipe.title,
                is_main_dish=is_main_dish,
                claimed_by=actor,
                claimed_at=now,
                recipe_id=recipe_id,
                created_by=actor,
            )
        )
        logger.info(f"Plan item {item.id} created with recipe {recipe_id} by {actor}")
        return item

    @operation
    def update_item(self, item_id: UUID, host_id: UUID, changes: PlanItemUpdate) -> PlanItem:
        item = self._plan_item(item_id)
        self._host_on_planning_meal(item.meal_id, host_id, "update plan items")

        fields = changes.model_dump(exclude_unset=True)
        if fields.get("course_type") is not None:
            item.course_type = fields["course_type"]
        if "placeholder_name" in fields:
            name = (fields["placeholder_name"] or "").strip()
            item.placeholder_name = name or None
        if fields.get("is_main_dish") is not None:
            item.is_main_dish = fields["is_main_dish"]
        return self.store.save(item)

    @operation
    def delete_item(self, item_id: UUID, host_id: UUID) -> None:
        item = self._plan_item(item_id)
        self._planning_meal(item.meal_id, "Can only change plan items of meals in planning status")
        permissions.can_delete_item(self._membership(item.meal_id, host_id), item).enforce()

        if not self.store.delete_open_plan_item(item_id):
            raise ConflictError("This item was claimed in the meantime")
        logger.info(f"Plan item {item_id} deleted by {host_id}")

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    @operation
    def assign(self, item_id: UUID, host_id: UUID, assignee_id: UUID) -> PlanItem:
        """Pre-designate an accepted participant for an open slot."""
        item = self._plan_item(item_id)
        self._planning_meal(item.meal_id, "Can only change plan items of meals in planning status")
        permissions.can_assign(self._membership(item.meal_id, host_id), item).enforce()
        permissions.can_assign_to(self._membership(item.meal_id, assignee_id)).enforce()

        if not self.store.assign_plan_item(item_id, assignee_id, item.assigned_to):
            raise ConflictError()
        logger.info(f"Plan item {item_id} assigned to {assignee_id}")
        return self._plan_item(item_id)

    @operation
    def unassign(self, item_id: UUID, host_id: UUID) -> PlanItem:
        item = self._plan_item(item_id)
        self._planning_meal(item.meal_id, "Can only change plan items of meals in planning status")
        permissions.can_unassign(self._membership(item.meal_id, host_id), item).enforce()

        if not self.store.unassign_plan_item(item_id, item.assigned_to):
            raise ConflictError()
        logger.info(f"Plan item {item_id} unassigned")
        return self._plan_item(item_id)

    # ------------------------------------------------------------------
    # Claims and recipes
    # ------------------------------------------------------------------

    @operation
    def claim(self, item_id: UUID, actor: UUID) -> PlanItem:
        """Take responsibility for a slot.

        Exactly one of several simultaneous claimers wins; the others get a
        ConflictError.
        """
        item = self._plan_item(item_id)
        self._planning_meal(item.meal_id, "Can only claim items of meals in planning status")
        permissions.can_claim(actor, self._membership(item.meal_id, actor), item).enforce()

        if not self.store.claim_plan_item(item_id, actor, item.assigned_to):
            raise ConflictError("This item or your place at the meal changed in the meantime")
        logger.info(f"Plan item {item_id} claimed by {actor}")
        return self._plan_item(item_id)

    @operation
    def unclaim(self, item_id: UUID, actor: UUID) -> PlanItem:
        """Release a claim; the recipe goes with it."""
        item = self._plan_item(item_id)
        self._planning_meal(item.meal_id, "Can only change plan items of meals in planning status")
        permissions.can_unclaim(actor, self._membership(item.meal_id, actor), item).enforce()

        claimer = item.claimed_by
        if not self.store.release_plan_item(item_id, claimer):
            raise ConflictError()
        logger.info(f"Plan item {item_id} released by {actor} (was claimed by {claimer})")
        return self._plan_item(item_id)

    @operation
    def attach_recipe(self, item_id: UUID, actor: UUID, recipe_id: UUID) -> PlanItem:
        """Set or change the recipe of a slot the actor holds."""
        item = self._plan_item(item_id)
        self._planning_meal(item.meal_id, "Can only change plan items of meals in planning status")
        permissions.can_attach_recipe(actor, item).enforce()
        self._recipe(recipe_id)

        if not self.store.attach_recipe(item_id, actor, recipe_id):
            raise ConflictError("You no longer hold this item")
        logger.info(f"Recipe {recipe_id} attached to plan item {item_id} by {actor}")
        return self._plan_item(item_id)

    @operation
    def volunteer_with_recipe(self, item_id: UUID, actor: UUID, recipe_id: UUID) -> PlanItem:
        """Claim a slot and attach a recipe in a single write."""
        item = self._plan_item(item_id)
        self._planning_meal(item.meal_id, "Can only claim items of meals in planning status")
        permissions.can_claim(actor, self._membership(item.meal_id, actor), item).enforce()
        self._recipe(recipe_id)

        if not self.store.claim_plan_item(item_id, actor, item.assigned_to, recipe_id=recipe_id):
            raise ConflictError("This item or your place at the meal changed in the meantime")
        logger.info(f"Plan item {item_id} claimed by {actor} with recipe {recipe_id}")
        return self._plan_item(item_id)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    @operation
    def complete(self, item_id: UUID, actor: UUID, dish_id: UUID) -> PlanItem:
        """Link the dish the claimer cooked. Terminal: the slot is frozen afterwards."""
        item = self._plan_item(item_id)
        dish = self.store.get_dish(dish_id)
        if dish is None:
            raise NotFound("Dish not found", details={"dish_id": str(dish_id)})
        permissions.can_complete_item(actor, item, dish.user_id).enforce()
        if dish.parent_meal_id is not None and dish.parent_meal_id != item.meal_id:
            raise InvalidState("This dish is already part of another meal")
        if self.store.dish_completes_plan_item(dish_id):
            raise InvalidState("This dish already completes another plan item")

        if not self.store.complete_plan_item(item, actor, dish_id):
            raise ConflictError("You no longer hold this item")
        logger.info(f"Plan item {item_id} completed by {actor} with dish {dish_id}")
        return self._plan_item(item_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @operation
    def list_items(self, meal_id: UUID) -> list[PlanItemView]:
        self._meal(meal_id)
        return self.store.list_plan_item_views(meal_id)

    @operation
    def summary(self, meal_id: UUID) -> PlanSummary:
        self._meal(meal_id)
        statuses = [view.status for view in self.store.list_plan_item_views(meal_id)]
        return PlanSummary(
            total_items=len(statuses),
            unclaimed_items=statuses.count(PlanItemStatus.unclaimed),
            assigned_items=statuses.count(PlanItemStatus.assigned),
            claimed_items=sum(1 for s in statuses if s in CLAIMED_OR_LATER),
            with_recipe=sum(1 for s in statuses if s in (PlanItemStatus.has_recipe, PlanItemStatus.completed)),
            completed=statuses.count(PlanItemStatus.completed),
        )

    @operation
    def open_items(self, meal_id: UUID) -> list[PlanItemView]:
        """Slots still waiting for someone to claim them."""
        self._meal(meal_id)
        return [
            view
            for view in self.store.list_plan_item_views(meal_id)
            if view.status in (PlanItemStatus.unclaimed, PlanItemStatus.assigned)
        ]

    @operation
    def user_commitments(self, user_id: UUID) -> list[Commitment]:
        return self.store.list_commitments(user_id)

    @operation
    def meals_with_recipe(self, recipe_id: UUID) -> list[RecipeUsage]:
        """Every slot, across meals, that plans to cook this recipe."""
        self._recipe(recipe_id)
        return self.store.list_recipe_usage(recipe_id)
