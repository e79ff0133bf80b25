"""
schemas.py — Request bodies for the role-scoped crowdfunding routers.

The frontend sends camelCase JSON; fields are snake_case here and accept
either spelling. Values keep their natural types at this layer and are
stringified by the routers right before dispatch.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------------------------------------------------------
# Startup
# -----------------------------------------------------------------------------

class CampaignCreate(CamelModel):
    startup_id: str
    category: str
    deadline: str
    currency: str
    has_raised: bool = False
    has_gov_grants: bool = False
    incorp_date: str = ""
    project_stage: str = ""
    sector: str = ""
    tags: List[str] = []
    team_available: bool = False
    investor_committed: bool = False
    duration: int = 90
    funding_day: int = 1
    funding_month: int = 1
    funding_year: int = 2025
    goal_amount: float = 0
    investment_range: str = ""
    project_name: str = ""
    description: str = ""
    documents: List[Any] = []


class StartupCreate(CamelModel):
    name: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    description: str = ""


class StartupSync(StartupCreate):
    display_id: Optional[str] = None


class DeletionRequest(CamelModel):
    reason: str = ""


class ValidationSubmission(CamelModel):
    documents: List[Any] = []
    notes: str = ""


class ShareRequest(CamelModel):
    validation_proof_hash: str = ""


# -----------------------------------------------------------------------------
# Validator
# -----------------------------------------------------------------------------

class ValidationCreate(CamelModel):
    validation_id: str
    validator_id: str
    submission_hash: str = ""
    required_documents: List[Any] = []


class ValidationDecision(CamelModel):
    validation_id: Optional[str] = None
    status: str = "APPROVED"
    due_diligence_score: float = 8.5
    risk_score: float = 3.0
    risk_level: str = "LOW"
    comments: List[str] = ["Approved"]
    issues: List[str] = []
    required_documents: List[Any] = []
    submission_hash: str = ""


# -----------------------------------------------------------------------------
# Platform
# -----------------------------------------------------------------------------

class PublishRequest(CamelModel):
    validation_proof_hash: str = ""


# -----------------------------------------------------------------------------
# Investor
# -----------------------------------------------------------------------------

class CampaignView(CamelModel):
    view_record_id: Optional[str] = None
    investor_id: str


class InvestmentCreate(CamelModel):
    investment_id: str
    campaign_id: str
    investor_id: str
    amount: float
    currency: str


class ProposalCreate(CamelModel):
    proposal_id: str
    campaign_id: str
    investor_id: str
    startup_id: str
    investment_amount: float
    currency: str
    equity: str = "10"
    duration: str = "3 years"
    milestones: List[Any] = []
    proposed_terms: str = ""


class ValidationDetailsRequest(CamelModel):
    request_id: Optional[str] = None
    investor_id: str = "INVESTOR001"
