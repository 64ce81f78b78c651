"""Participant routes: invitations, RSVPs, removal and host transfer."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import SQLModel

from potluck.models import RSVPStatus
from potluck.routes.deps import get_current_user_id, get_participant_service
from potluck.services.participants import ParticipantService

router = APIRouter(prefix="/meals/{meal_id}", tags=["participants"])


class InviteRequest(SQLModel):
    user_ids: list[UUID]


class RSVPRequest(SQLModel):
    response: RSVPStatus


class TransferHostRequest(SQLModel):
    new_host_id: UUID


@router.get("/participants")
async def list_participants(meal_id: UUID, service: ParticipantService = Depends(get_participant_service)):
    """List participants with profiles and dish counts, host first."""
    return service.list_participants(meal_id).unwrap()


@router.post("/participants", status_code=201)
async def invite_participants(
    meal_id: UUID,
    body: InviteRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: ParticipantService = Depends(get_participant_service),
):
    """
    Invite users to the meal. Host only.

    Users already on the meal are skipped; only the new invitations are
    returned.
    """
    return service.invite(meal_id, user_id, body.user_ids).unwrap()


@router.delete("/participants/{target_id}")
async def remove_participant(
    meal_id: UUID,
    target_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: ParticipantService = Depends(get_participant_service),
):
    """Remove a participant. Host only; their open claims are released."""
    released = service.remove(meal_id, user_id, target_id).unwrap()
    return {"status": "removed", "claims_released": released}


@router.post("/rsvp")
async def respond(
    meal_id: UUID,
    body: RSVPRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: ParticipantService = Depends(get_participant_service),
):
    """Answer an invitation with accepted, maybe or declined."""
    return service.respond(meal_id, user_id, body.response).unwrap()


@router.post("/transfer-host")
async def transfer_host(
    meal_id: UUID,
    body: TransferHostRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: ParticipantService = Depends(get_participant_service),
):
    """Hand the host role to an accepted participant."""
    old_host, new_host = service.transfer_host(meal_id, user_id, body.new_host_id).unwrap()
    return {"previous_host": old_host, "new_host": new_host}
