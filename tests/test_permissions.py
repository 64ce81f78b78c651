"""Tests for the permission rules."""

from uuid import uuid4

import pytest

from potluck.core.errors import ConflictError, InvalidState, PermissionDenied
from potluck.models import Participant, ParticipantRole, PlanItem, RSVPStatus
from potluck.services import permissions


def member(role=ParticipantRole.attendee, rsvp=RSVPStatus.accepted, user_id=None) -> Participant:
    return Participant(meal_id=uuid4(), user_id=user_id or uuid4(), role=role, rsvp_status=rsvp)


def item(**fields) -> PlanItem:
    return PlanItem(meal_id=uuid4(), created_by=uuid4(), **fields)


class TestClaimRules:
    """Tests for who may claim a plan item."""

    def test_accepted_member_may_claim_open_item(self):
        """Test an accepted participant can claim an unassigned item."""
        actor = uuid4()
        assert permissions.can_claim(actor, member(user_id=actor), item())

    def test_pending_member_may_not_claim(self):
        """Test an unanswered invitation is not enough to claim."""
        actor = uuid4()
        decision = permissions.can_claim(actor, member(rsvp=RSVPStatus.pending, user_id=actor), item())
        assert not decision
        assert decision.error is PermissionDenied
        assert "accept" in decision.reason

    def test_non_participant_may_not_claim(self):
        """Test users outside the meal cannot claim."""
        assert not permissions.can_claim(uuid4(), None, item())

    def test_assignee_may_claim_own_assignment(self):
        """Test the assigned participant may claim their item."""
        actor = uuid4()
        assert permissions.can_claim(actor, member(user_id=actor), item(assigned_to=actor))

    def test_other_member_may_not_claim_assigned_item(self):
        """Test an item assigned to someone else is off limits."""
        actor = uuid4()
        decision = permissions.can_claim(actor, member(user_id=actor), item(assigned_to=uuid4()))
        assert not decision
        assert decision.error is PermissionDenied

    def test_host_may_claim_item_assigned_to_someone_else(self):
        """Test the host override on assigned items."""
        actor = uuid4()
        host = member(role=ParticipantRole.host, user_id=actor)
        assert permissions.can_claim(actor, host, item(assigned_to=uuid4()))

    def test_claimed_item_is_a_conflict(self):
        """Test claiming a taken item reports a retryable conflict."""
        actor = uuid4()
        decision = permissions.can_claim(actor, member(user_id=actor), item(claimed_by=uuid4()))
        assert decision.error is ConflictError

    def test_completed_item_is_invalid_state(self):
        """Test completed items cannot be claimed at all."""
        actor = uuid4()
        decision = permissions.can_claim(actor, member(user_id=actor), item(dish_id=uuid4()))
        assert decision.error is InvalidState


class TestHostRules:
    """Tests for host-only rules and the host invariant."""

    def test_attendee_cannot_manage(self):
        """Test attendees are denied host actions with a reason."""
        decision = permissions.can_manage_meal(member(), "delete the meal")
        assert not decision
        assert decision.reason == "Only the host can delete the meal"

    def test_assign_requires_open_item(self):
        """Test the host cannot assign a claimed item."""
        host = member(role=ParticipantRole.host)
        decision = permissions.can_assign(host, item(claimed_by=uuid4()))
        assert decision.error is InvalidState

    def test_assign_to_requires_accepted(self):
        """Test only accepted participants can receive an assignment."""
        assert permissions.can_assign_to(member())
        assert not permissions.can_assign_to(member(rsvp=RSVPStatus.maybe))
        assert not permissions.can_assign_to(None)

    def test_sole_host_cannot_be_removed(self):
        """Test the last accepted host is protected."""
        host = member(role=ParticipantRole.host)
        assert not permissions.can_demote_or_remove_host(host, accepted_host_count=1)
        assert permissions.can_demote_or_remove_host(host, accepted_host_count=2)

    def test_attendee_removal_ignores_host_count(self):
        """Test the host rule only applies to hosts."""
        assert permissions.can_demote_or_remove_host(member(), accepted_host_count=1)


class TestItemOwnerRules:
    """Tests for claimer-only transitions."""

    def test_unclaim_by_claimer_or_host(self):
        """Test the claimer and the host may release a claim, others may not."""
        claimer = uuid4()
        claimed = item(claimed_by=claimer)
        assert permissions.can_unclaim(claimer, member(user_id=claimer), claimed)
        assert permissions.can_unclaim(uuid4(), member(role=ParticipantRole.host), claimed)
        assert not permissions.can_unclaim(uuid4(), member(), claimed)

    def test_unclaim_completed_item(self):
        """Test a completed item cannot be released."""
        claimer = uuid4()
        decision = permissions.can_unclaim(claimer, member(user_id=claimer), item(claimed_by=claimer, dish_id=uuid4()))
        assert decision.error is InvalidState

    def test_recipe_only_by_claimer(self):
        """Test only the current claimer can attach a recipe."""
        claimer = uuid4()
        assert permissions.can_attach_recipe(claimer, item(claimed_by=claimer))
        assert not permissions.can_attach_recipe(uuid4(), item(claimed_by=claimer))

    def test_complete_requires_own_dish(self):
        """Test completion needs the claimer's own dish."""
        claimer = uuid4()
        claimed = item(claimed_by=claimer)
        assert permissions.can_complete_item(claimer, claimed, dish_owner=claimer)
        assert not permissions.can_complete_item(claimer, claimed, dish_owner=uuid4())

    def test_course_edit_by_owner_or_host(self):
        """Test course placement can be edited by the dish owner or a host only."""
        owner = uuid4()
        assert permissions.can_edit_dish_course(owner, member(user_id=owner), dish_owner=owner)
        assert permissions.can_edit_dish_course(uuid4(), member(role=ParticipantRole.host), dish_owner=owner)
        decision = permissions.can_edit_dish_course(uuid4(), member(), dish_owner=owner)
        assert decision.reason == "Only the host or dish owner can update course info"

    def test_enforce_raises_denial(self):
        """Test enforce raises the decision's error with its reason."""
        decision = permissions.can_manage_meal(None, "invite participants")
        with pytest.raises(PermissionDenied, match="Only the host can invite participants"):
            decision.enforce()
