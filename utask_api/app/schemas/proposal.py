"""
Pydantic models for proposals.

A proposal is a provider's offer to perform a posted service for a
given price.  The service owner accepts, rejects or counters it; the
action endpoints answer with a small envelope holding the new state.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .user import UserSummary


ProposalStatus = Literal["pending", "accepted", "rejected", "counter"]


class ProposalCreate(BaseModel):
    price: float = Field(..., gt=0, example=150.0)
    message: Optional[str] = Field(None, example="Posso fazer amanhã de manhã")


class ProposalCounter(BaseModel):
    """Owner's counter offer: a new price and an optional note."""

    price: float = Field(..., gt=0, example=120.0)
    message: Optional[str] = Field(None, example="Consegue por este valor?")


class ProposalRead(BaseModel):
    id: int
    service_id: int
    provider_id: int
    price: float
    message: Optional[str] = None
    status: ProposalStatus
    created_at: Optional[datetime] = None
    provider: Optional[UserSummary] = None

    model_config = {
        "from_attributes": True,
    }


class ProposalState(BaseModel):
    id: int
    status: ProposalStatus


class CounterState(ProposalState):
    price: float
    message: str


class ProposalEnvelope(BaseModel):
    proposal: ProposalRead


class ProposalList(BaseModel):
    proposals: List[ProposalRead]


class ProposalActionResponse(BaseModel):
    success: bool = True
    message: str
    proposal: ProposalState


class CounterActionResponse(BaseModel):
    success: bool = True
    message: str
    proposal: CounterState
