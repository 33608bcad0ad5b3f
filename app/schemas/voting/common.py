from pydantic import BaseModel, ConfigDict
from uuid import UUID
from decimal import Decimal
from datetime import datetime


class ProposalResultInfo(BaseModel):
    """집계 결과 정보 (공통)"""
    proposal_id: UUID
    passed: bool
    yes_weight: Decimal
    no_weight: Decimal
    abstain_weight: Decimal
    total_weight: Decimal  # yes + no (기권 제외)
    tallied_at: datetime
    method_applied_version: str

    model_config = ConfigDict(from_attributes=True)
