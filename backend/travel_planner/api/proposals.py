from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from travel_planner.api.dependencies import get_workflow
from travel_planner.api.destinations import DestinationResponse, LookupResponse, to_response
from travel_planner.auth.middleware import get_current_user, require_admin, user_has_permission, CurrentUser
from travel_planner.core.errors import Forbidden
from travel_planner.services.proposals import ProposalWorkflow

router = APIRouter(tags=["proposals"])


class ProposalRequest(BaseModel):
    traveller_type_ids: List[int] = Field(..., description="Proposed traveller types")


class ProposalResponse(BaseModel):
    id: int
    destination_id: int
    user_id: int
    traveller_types: List[LookupResponse]
    is_deleted: bool
    deleted_expiry: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


@router.get("/destinations/proposals", response_model=List[ProposalResponse])
async def get_proposals(
    page: int = Query(1, description="Page number, starting at 1"),
    workflow: ProposalWorkflow = Depends(get_workflow),
    current_user: CurrentUser = Depends(require_admin)
):
    """Get a page of pending proposals (admin only)."""
    return [ProposalResponse.model_validate(proposal) for proposal in workflow.list(page)]


@router.get("/destinations/proposals/{proposal_id}", response_model=ProposalResponse)
async def get_proposal(
    proposal_id: int,
    workflow: ProposalWorkflow = Depends(get_workflow),
    current_user: CurrentUser = Depends(require_admin)
):
    return ProposalResponse.model_validate(workflow.get(proposal_id))


@router.put("/destinations/proposals/{proposal_id}", response_model=ProposalResponse)
async def modify_proposal(
    proposal_id: int,
    request: ProposalRequest,
    workflow: ProposalWorkflow = Depends(get_workflow),
    current_user: CurrentUser = Depends(require_admin)
):
    """Replace the proposed traveller types (admin only)."""
    proposal = workflow.modify(proposal_id, request.traveller_type_ids)
    return ProposalResponse.model_validate(proposal)


@router.patch("/destinations/proposals/{proposal_id}", response_model=DestinationResponse)
async def accept_proposal(
    proposal_id: int,
    workflow: ProposalWorkflow = Depends(get_workflow),
    current_user: CurrentUser = Depends(require_admin)
):
    """Apply a proposal to its destination. The proposal is gone afterwards."""
    destination = workflow.accept(proposal_id)
    return to_response(destination)


@router.put("/destinations/proposals/{proposal_id}/undoReject", response_model=ProposalResponse)
async def undo_reject_proposal(
    proposal_id: int,
    workflow: ProposalWorkflow = Depends(get_workflow),
    current_user: CurrentUser = Depends(get_current_user)
):
    proposal = workflow.undo_reject(proposal_id, current_user)
    return ProposalResponse.model_validate(proposal)


@router.post(
    "/users/{user_id}/destinations/{destination_id}/proposals",
    response_model=ProposalResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_proposal(
    user_id: int,
    destination_id: int,
    request: ProposalRequest,
    workflow: ProposalWorkflow = Depends(get_workflow),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Propose new traveller types for a public destination."""
    if not user_has_permission(current_user, user_id):
        raise Forbidden("You are not permitted to make proposals for this user")

    proposal = workflow.create(destination_id, user_id, request.traveller_type_ids)
    return ProposalResponse.model_validate(proposal)


@router.delete("/users/{user_id}/destinations/proposals/{proposal_id}")
async def reject_proposal(
    user_id: int,
    proposal_id: int,
    workflow: ProposalWorkflow = Depends(get_workflow),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Reject a proposal. The author or an admin may undo this for an hour."""
    if not user_has_permission(current_user, user_id):
        raise Forbidden("Not authorized to reject proposal")

    workflow.require_user(user_id)

    workflow.reject(proposal_id, current_user)
    return {"message": "Successfully rejected the given destination proposal"}
