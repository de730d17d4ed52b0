"""Admin request schemas."""
from typing import Optional

from pydantic import BaseModel, Field

from turfease.schemas.account import OwnerResponse


class ApprovalDecisionRequest(BaseModel):
    # Checked by the approval service so an unknown value reports invalid_decision
    status: str
    notes: Optional[str] = Field(default=None, max_length=1000)


class ApprovalDecisionResponse(BaseModel):
    success: bool = True
    message: str
    owner: OwnerResponse


class PendingOwnersResponse(BaseModel):
    success: bool = True
    count: int
    owners: list[OwnerResponse]
