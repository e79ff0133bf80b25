"""
investor.py — Investor organization endpoints (API Layer)

Purpose:
- Browse published campaigns, record views, invest and propose terms,
  routed as the `investor` organization through InvestorContract.

Endpoints:
- GET  /investor/campaigns                         → published campaigns
- GET  /investor/campaigns/{campaign_id}           → campaign detail (404 when missing)
- POST /investor/view/{campaign_id}                → record a campaign view
- POST /investor/investments                       → make an investment
- POST /investor/proposals                         → create an investment proposal
- POST /investor/request-validation/{campaign_id}  → ask for validation details
- GET  /investor/viewed-campaigns                  → viewed campaigns (clients filter by investor)
- GET  /investor/my-investments                    → investments (clients filter by investor)
"""

from fastapi import APIRouter, Depends, HTTPException, status

from crowdledger.api.deps import generated_id, get_gateway, ok, safe_query, to_arg, to_json_arg
from crowdledger.api.v1.schemas import (
    CampaignView,
    InvestmentCreate,
    ProposalCreate,
    ValidationDetailsRequest,
)
from crowdledger.core.logging import get_logger
from crowdledger.core.security import require_role
from crowdledger.services.fabric import GatewayError, OrgConnectionGateway

logger = get_logger(__name__)

ORG = "investor"
CONTRACT = "InvestorContract"

router = APIRouter(
    prefix="/investor",
    tags=["investor"],
    dependencies=[Depends(require_role("INVESTOR"))],
)


# -----------------------------------------------------------------------------
# Campaign browsing
# -----------------------------------------------------------------------------

@router.get("/campaigns")
async def available_campaigns(gateway: OrgConnectionGateway = Depends(get_gateway)):
    return await safe_query(gateway, ORG, CONTRACT, "GetAvailableCampaigns")


@router.get("/campaigns/{campaign_id}")
async def campaign_details(campaign_id: str, gateway: OrgConnectionGateway = Depends(get_gateway)):
    try:
        result = await gateway.evaluate(ORG, CONTRACT, "ViewCampaignDetails", [campaign_id])
    except GatewayError as e:
        logger.warning("ViewCampaignDetails: %s", e)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")
    return ok(result)


@router.post("/view/{campaign_id}")
async def view_campaign(
    campaign_id: str,
    body: CampaignView,
    gateway: OrgConnectionGateway = Depends(get_gateway),
):
    view_id = body.view_record_id or generated_id("VIEW")
    result = await gateway.submit(ORG, CONTRACT, "ViewCampaign", [view_id, campaign_id, body.investor_id])
    return ok(result, viewRecordId=view_id)


@router.get("/viewed-campaigns")
async def viewed_campaigns(gateway: OrgConnectionGateway = Depends(get_gateway)):
    return await safe_query(gateway, ORG, CONTRACT, "GetViewedCampaigns")


# -----------------------------------------------------------------------------
# Investments & proposals
# -----------------------------------------------------------------------------

@router.post("/investments", status_code=status.HTTP_201_CREATED)
async def make_investment(body: InvestmentCreate, gateway: OrgConnectionGateway = Depends(get_gateway)):
    logger.info("Investment %s: %s %s into %s", body.investment_id, body.amount, body.currency, body.campaign_id)
    result = await gateway.submit(
        ORG, CONTRACT, "MakeInvestment",
        [body.investment_id, body.campaign_id, body.investor_id, to_arg(body.amount), body.currency],
    )
    return ok(result)


@router.post("/proposals", status_code=status.HTTP_201_CREATED)
async def create_proposal(body: ProposalCreate, gateway: OrgConnectionGateway = Depends(get_gateway)):
    result = await gateway.submit(
        ORG, CONTRACT, "CreateInvestmentProposal",
        [
            body.proposal_id, body.campaign_id, body.investor_id, body.startup_id,
            to_arg(body.investment_amount), body.currency, body.equity, body.duration,
            to_json_arg(body.milestones), body.proposed_terms,
        ],
    )
    return ok(result)


@router.get("/my-investments")
async def my_investments(gateway: OrgConnectionGateway = Depends(get_gateway)):
    return await safe_query(gateway, ORG, CONTRACT, "GetMyInvestments")


@router.post("/request-validation/{campaign_id}")
async def request_validation_details(
    campaign_id: str,
    body: ValidationDetailsRequest,
    gateway: OrgConnectionGateway = Depends(get_gateway),
):
    request_id = body.request_id or generated_id("REQ")
    result = await gateway.submit(
        ORG, CONTRACT, "RequestValidationDetails", [request_id, campaign_id, body.investor_id]
    )
    return ok(result, requestId=request_id)
