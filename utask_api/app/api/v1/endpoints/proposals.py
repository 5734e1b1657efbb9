"""
Proposal decision endpoints for API v1.

Only the owner of the proposal's service may accept, reject or counter
it, and only while the proposal is ``pending``.
"""

from fastapi import APIRouter, Path

from utask_api.app.api.deps import CurrentUser, ProposalServiceDep
from utask_api.app.schemas.common import MAX_ID
from utask_api.app.schemas.proposal import CounterActionResponse, ProposalActionResponse, ProposalCounter


router = APIRouter()


@router.post("/{proposal_id}/accept", response_model=ProposalActionResponse)
async def accept_proposal(
    current_user: CurrentUser,
    proposals: ProposalServiceDep,
    proposal_id: int = Path(..., ge=1, le=MAX_ID, description="ID of the proposal"),
) -> ProposalActionResponse:
    """Accept a proposal.

    The service moves to ``in_progress`` and every other open proposal
    of the service is rejected, all in one transaction.
    """
    proposal = await proposals.accept_proposal(proposal_id, current_user["user_id"])
    return ProposalActionResponse(message="Proposal accepted", proposal=proposal)


@router.post("/{proposal_id}/reject", response_model=ProposalActionResponse)
async def reject_proposal(
    current_user: CurrentUser,
    proposals: ProposalServiceDep,
    proposal_id: int = Path(..., ge=1, le=MAX_ID, description="ID of the proposal"),
) -> ProposalActionResponse:
    proposal = await proposals.reject_proposal(proposal_id, current_user["user_id"])
    return ProposalActionResponse(message="Proposal rejected", proposal=proposal)


@router.post("/{proposal_id}/counter", response_model=CounterActionResponse)
async def counter_proposal(
    payload: ProposalCounter,
    current_user: CurrentUser,
    proposals: ProposalServiceDep,
    proposal_id: int = Path(..., ge=1, le=MAX_ID, description="ID of the proposal"),
) -> CounterActionResponse:
    proposal = await proposals.counter_proposal(
        proposal_id,
        current_user["user_id"],
        payload.price,
        payload.message,
    )
    return CounterActionResponse(message="Counter proposal sent", proposal=proposal)
