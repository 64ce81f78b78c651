"""Participant coordination: invitations, RSVPs, removal and host transfer.

Every meal keeps at least one accepted host. Invitations create pending
attendees, responses move them between RSVP states, and only a host may
remove members or hand the host role to an accepted attendee. Whenever a
member stops being an accepted participant, the slots they had claimed are
released so no claim ever points at someone who is not coming.
"""
import logging
from uuid import UUID

from potluck.core.errors import ConflictError, InvalidState, NotFound, PermissionDenied, ValidationError
from potluck.core.result import operation
from potluck.models import (
    MealStatus,
    Participant,
    ParticipantRole,
    ParticipantView,
    PendingInvitation,
    RSVPStatus,
)
from potluck.services import permissions
from potluck.services.base import PlanningService

logger = logging.getLogger(__name__)

RESPONSES = (RSVPStatus.accepted, RSVPStatus.maybe, RSVPStatus.declined)


class ParticipantService(PlanningService):
    """Manage who takes part in a meal and in which role."""

    @operation
    def invite(self, meal_id: UUID, host_id: UUID, user_ids: list[UUID]) -> list[Participant]:
        """Invite users as pending attendees.

        The host, unknown users, users already on the meal and repeated ids
        are skipped. Returns the newly created participant rows.
        """
        self._planning_meal(meal_id, "Cannot invite participants to a completed meal")
        permissions.can_manage_meal(self._membership(meal_id, host_id), "invite participants").enforce()

        candidates = []
        for user_id in user_ids:
            if user_id == host_id or user_id in candidates:
                continue
            candidates.append(user_id)

        known = self.store.existing_user_ids(candidates) if candidates else set()
        for user_id in candidates:
            if user_id not in known:
                logger.warning(f"Skipping unknown user {user_id} invited to meal {meal_id}")

        invitations = [
            Participant(meal_id=meal_id, user_id=user_id)
            for user_id in candidates
            if user_id in known and self._membership(meal_id, user_id) is None
        ]
        if invitations:
            self.store.add_all(invitations)

        logger.info(f"{len(invitations)} users invited to meal {meal_id} by {host_id}")
        return invitations

    @operation
    def respond(self, meal_id: UUID, user_id: UUID, response: RSVPStatus) -> Participant:
        """Record the user's own answer to an invitation.

        Answering anything but "accepted" releases the user's open claims and
        assignments. The host must transfer the role before leaving.
        """
        try:
            response = RSVPStatus(response)
        except ValueError:
            raise ValidationError(f"Invalid response: {response}", details={"field": "response"})
        if response not in RESPONSES:
            raise ValidationError("Response must be accepted, maybe or declined", details={"field": "response"})

        self._planning_meal(meal_id, "Cannot respond to a completed meal")
        participant = self._membership(meal_id, user_id)
        if participant is None:
            raise NotFound("You are not invited to this meal")
        if participant.is_host and response != RSVPStatus.accepted:
            raise PermissionDenied("The host cannot leave the meal. Transfer host first.")

        updated, released = self.store.set_rsvp(meal_id, user_id, response)
        if not updated:
            raise ConflictError()

        logger.info(f"User {user_id} responded {response.value} to meal {meal_id}, {released} claims released")
        return self._membership(meal_id, user_id)

    @operation
    def remove(self, meal_id: UUID, host_id: UUID, target_id: UUID) -> int:
        """Remove a member from a meal; returns how many claims were released.

        The target's open claims are released, assignments to them cleared and
        their dishes detached from the meal before the membership goes away.
        """
        meal = self._meal(meal_id)
        permissions.can_manage_meal(self._membership(meal_id, host_id), "remove participants").enforce()
        if host_id == target_id:
            raise PermissionDenied("Host cannot remove themselves. Transfer host first.")
        if meal.status == MealStatus.completed:
            raise InvalidState("Cannot remove participants from completed meals")

        target = self._membership(meal_id, target_id)
        if target is None:
            raise NotFound("Participant not found", details={"user_id": str(target_id)})
        permissions.can_demote_or_remove_host(target, self.store.count_accepted_hosts(meal_id)).enforce()
        if self.store.count_completed_items_claimed_by(meal_id, target_id):
            raise InvalidState("This participant has already cooked for this meal")

        released = self.store.remove_participant(meal_id, target_id)
        if released < 0:
            raise ConflictError()

        logger.info(f"User {target_id} removed from meal {meal_id} by {host_id}, {released} claims released")
        return released

    @operation
    def transfer_host(self, meal_id: UUID, current_host_id: UUID, new_host_id: UUID) -> list[Participant]:
        """Hand the host role to an accepted attendee; both roles flip together."""
        self._meal(meal_id)
        current = self._membership(meal_id, current_host_id)
        if current is None or not current.is_host:
            raise PermissionDenied("Only the current host can transfer host role")
        if new_host_id == current_host_id:
            raise ValidationError("You are already the host")

        new_host = self._membership(meal_id, new_host_id)
        if new_host is None or new_host.rsvp_status != RSVPStatus.accepted:
            raise PermissionDenied("New host must be an accepted participant")
        if new_host.role == ParticipantRole.host:
            raise InvalidState("That participant is already a host")
        permissions.can_demote_or_remove_host(
            current, self.store.count_accepted_hosts(meal_id) + 1
        ).enforce()

        if not self.store.transfer_host(meal_id, current_host_id, new_host_id):
            raise ConflictError()

        logger.info(f"Host of meal {meal_id} transferred from {current_host_id} to {new_host_id}")
        return [self._membership(meal_id, current_host_id), self._membership(meal_id, new_host_id)]

    @operation
    def list_participants(self, meal_id: UUID) -> list[ParticipantView]:
        self._meal(meal_id)
        return self.store.list_participants_with_profiles(meal_id)

    @operation
    def pending_invitations(self, user_id: UUID) -> list[PendingInvitation]:
        return self.store.list_pending_invitations(user_id)
