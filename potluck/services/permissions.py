"""Permission rules for meals, participants and plan items.

Every function here is pure: it looks at the acting user, their participant
record (``None`` when they are not on the meal) and the current row, and
returns a Decision. Nothing is read or written. Services re-read the rows
right before calling these and only treat an allow as a precondition for the
conditional write that follows, never as the guarantee.
"""
from dataclasses import dataclass
from uuid import UUID

from potluck.core.errors import ConflictError, InvalidState, MealPlanError, PermissionDenied
from potluck.models import Participant, PlanItem, RSVPStatus


@dataclass(frozen=True)
class Decision:
    """Outcome of a permission check; a denial always carries a reason."""

    allowed: bool
    reason: str | None = None
    error: type[MealPlanError] = PermissionDenied

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str, error: type[MealPlanError] = PermissionDenied) -> "Decision":
        return cls(False, reason, error)

    def __bool__(self) -> bool:
        return self.allowed

    def enforce(self) -> None:
        """Raise the denial as its error kind; no-op when allowed."""
        if not self.allowed:
            raise self.error(self.reason)


def _is_host(participant: Participant | None) -> bool:
    return participant is not None and participant.is_host


def can_manage_meal(participant: Participant | None, action: str) -> Decision:
    """Host-only actions: editing, completing or deleting the meal, managing slots and guests."""
    if not _is_host(participant):
        return Decision.deny(f"Only the host can {action}")
    return Decision.allow()


def can_claim(actor: UUID, participant: Participant | None, item: PlanItem) -> Decision:
    """Whether ``actor`` may claim ``item``.

    Hosts may claim any open slot, including one assigned to someone else.
    Other members must have accepted the invitation and the slot must be
    unassigned or assigned to them.
    """
    if item.dish_id:
        return Decision.deny("This item is already completed", InvalidState)
    if item.claimed_by:
        return Decision.deny("This item is already claimed", ConflictError)
    if participant is None:
        return Decision.deny("You are not a participant in this meal")
    if participant.is_host:
        return Decision.allow()
    if participant.rsvp_status != RSVPStatus.accepted:
        return Decision.deny("You must accept the meal invitation before claiming items")
    if item.assigned_to and item.assigned_to != actor:
        return Decision.deny("This item is assigned to someone else")
    return Decision.allow()


def can_assign(participant: Participant | None, item: PlanItem) -> Decision:
    if not _is_host(participant):
        return Decision.deny("Only the host can assign items")
    if item.dish_id:
        return Decision.deny("Cannot reassign a completed item", InvalidState)
    if item.claimed_by:
        return Decision.deny(
            "This item is already claimed. Unclaim it first to reassign.", InvalidState
        )
    return Decision.allow()


def can_assign_to(assignee: Participant | None) -> Decision:
    if assignee is None or assignee.rsvp_status != RSVPStatus.accepted:
        return Decision.deny("Can only assign to accepted participants")
    return Decision.allow()


def can_unassign(participant: Participant | None, item: PlanItem) -> Decision:
    if not _is_host(participant):
        return Decision.deny("Only the host can unassign items")
    if item.dish_id:
        return Decision.deny("Cannot unassign a completed item", InvalidState)
    if item.claimed_by:
        return Decision.deny("Cannot unassign a claimed item. Unclaim it first.", InvalidState)
    if not item.assigned_to:
        return Decision.deny("This item is not assigned", InvalidState)
    return Decision.allow()


def can_delete_item(participant: Participant | None, item: PlanItem) -> Decision:
    if not _is_host(participant):
        return Decision.deny("Only the host can delete plan items")
    if item.dish_id:
        return Decision.deny("Cannot delete a completed item", InvalidState)
    if item.claimed_by:
        return Decision.deny("Cannot delete a claimed item. Unclaim it first.", InvalidState)
    return Decision.allow()


def can_unclaim(actor: UUID, participant: Participant | None, item: PlanItem) -> Decision:
    """Only the claimer or the host may release a claim, and never after completion."""
    if not item.claimed_by:
        return Decision.deny("This item is not claimed", InvalidState)
    if item.dish_id:
        return Decision.deny("Cannot unclaim a completed dish", InvalidState)
    if item.claimed_by != actor and not _is_host(participant):
        return Decision.deny("Only the claimer or host can unclaim this item")
    return Decision.allow()


def can_attach_recipe(actor: UUID, item: PlanItem) -> Decision:
    if item.dish_id:
        return Decision.deny("Cannot change the recipe of a completed item", InvalidState)
    if item.claimed_by != actor:
        return Decision.deny("Only the person who claimed this item can add a recipe")
    return Decision.allow()


def can_complete_item(actor: UUID, item: PlanItem, dish_owner: UUID) -> Decision:
    if item.dish_id:
        return Decision.deny("This item is already completed", InvalidState)
    if item.claimed_by != actor:
        return Decision.deny("Only the claimer can complete this item")
    if dish_owner != actor:
        return Decision.deny("You can only link your own dishes")
    return Decision.allow()


def can_demote_or_remove_host(target: Participant, accepted_host_count: int) -> Decision:
    """A host may only lose the role if another accepted host remains."""
    if not target.is_host:
        return Decision.allow()
    remaining = accepted_host_count - (1 if target.is_accepted else 0)
    if remaining < 1:
        return Decision.deny("A meal must keep at least one host. Transfer host first.")
    return Decision.allow()


def can_create_claimed_item(participant: Participant | None) -> Decision:
    """Hosts and accepted members may add a slot they will cook themselves."""
    if participant is None or not (participant.is_host or participant.is_accepted):
        return Decision.deny("You must be a participant to add recipes")
    return Decision.allow()


def can_add_photo(participant: Participant | None) -> Decision:
    if participant is None or participant.rsvp_status not in (RSVPStatus.accepted, RSVPStatus.maybe):
        return Decision.deny("Only participants can add photos")
    return Decision.allow()


def can_delete_photo(actor: UUID, participant: Participant | None, uploader: UUID) -> Decision:
    if uploader != actor and not _is_host(participant):
        return Decision.deny("Only the uploader or host can delete this photo")
    return Decision.allow()


def can_remove_dish(actor: UUID, participant: Participant | None, dish_owner: UUID) -> Decision:
    if dish_owner != actor and not _is_host(participant):
        return Decision.deny("Only the host or dish owner can remove this dish")
    return Decision.allow()


def can_edit_dish_course(actor: UUID, participant: Participant | None, dish_owner: UUID) -> Decision:
    if dish_owner != actor and not _is_host(participant):
        return Decision.deny("Only the host or dish owner can update course info")
    return Decision.allow()
