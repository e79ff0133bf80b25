"""
startup.py — Startup organization endpoints (API Layer)

Purpose:
- Startup and campaign lifecycle for startup owners, routed as the
  `startup` organization through StartupContract.

Endpoints:
- GET  /startup/campaigns                 → all campaigns, or one startup's (?startupId=)
- GET  /startup/campaigns/{campaign_id}   → single campaign (404 when missing)
- POST /startup/campaigns                 → create campaign (ID generated here)
- POST   /startup/campaigns/{campaign_id}/submit-validation → hand a campaign to validators
- POST   /startup/campaigns/{campaign_id}/share-to-platform → share a validated campaign
- GET    /startup/campaigns/{campaign_id}/deletion-fee      → fee preview
- DELETE /startup/campaigns/{campaign_id}                   → delete campaign (fee charged)
- POST /startup/startups                  → create startup (ID generated here)
- POST /startup/startups/{startup_id}/sync-to-chaincode → create a startup known elsewhere, once
- GET  /startup/startups/{startup_id}     → startup record
- GET  /startup/startups/owner/{owner_id} → startups owned by a user
- GET    /startup/startups/{startup_id}/deletion-fee → fee preview incl. campaigns
- DELETE /startup/startups/{startup_id}              → delete startup and its campaigns
- GET    /startup/deletions/{deletion_id}            → deletion record
"""

import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from crowdledger.api.deps import get_gateway, ok, safe_query, to_arg, to_json_arg
from crowdledger.api.v1.schemas import (
    CampaignCreate,
    DeletionRequest,
    ShareRequest,
    StartupCreate,
    StartupSync,
    ValidationSubmission,
)
from crowdledger.core.logging import get_logger
from crowdledger.core.security import require_role
from crowdledger.services.fabric import GatewayError, OrgConnectionGateway, TransactionFailed

logger = get_logger(__name__)

ORG = "startup"
CONTRACT = "StartupContract"
DEFAULT_DELETION_REASON = "User requested deletion"
MISSING_MARKERS = ("not found", "does not exist")

router = APIRouter(
    prefix="/startup",
    tags=["startup"],
    dependencies=[Depends(require_role("STARTUP"))],
)


def next_campaign_ids(startup_id: str) -> Dict[str, str]:
    """Random 6-hex suffix, so IDs survive server restarts without collisions."""
    seq = secrets.token_hex(3).upper()
    return {"campaignId": f"CAMP_{startup_id}_{seq}", "displayId": f"C-{seq}"}



def next_startup_ids(owner_id: str) -> Dict[str, str]:
    seq = secrets.token_hex(3).upper()
    return {"startupId": f"STU_{owner_id}_{seq}", "displayId": f"S-{seq}"}

@router.get("/campaigns")
async def list_campaigns(
    startup_id: Optional[str] = Query(None, alias="startupId"),
    gateway: OrgConnectionGateway = Depends(get_gateway),
):
    if startup_id:
        return await safe_query(gateway, ORG, CONTRACT, "GetCampaignsByStartupId", startup_id)
    return await safe_query(gateway, ORG, CONTRACT, "GetAllCampaigns")


@router.get("/campaigns/{campaign_id}")
async def get_campaign(campaign_id: str, gateway: OrgConnectionGateway = Depends(get_gateway)):
    try:
        result = await gateway.evaluate(ORG, CONTRACT, "GetCampaign", [campaign_id])
    except GatewayError as e:
        logger.warning("GetCampaign: %s", e)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")
    return ok(result)


@router.post("/campaigns", status_code=status.HTTP_201_CREATED)
async def create_campaign(body: CampaignCreate, gateway: OrgConnectionGateway = Depends(get_gateway)):
    ids = next_campaign_ids(body.startup_id)
    logger.info("Creating campaign %s for startup %s", ids["campaignId"], body.startup_id)

    result = await gateway.submit(
        ORG, CONTRACT, "CreateCampaign",
        [
            ids["campaignId"], body.startup_id, body.category, body.deadline, body.currency,
            to_arg(body.has_raised), to_arg(body.has_gov_grants),
            body.incorp_date, body.project_stage, body.sector,
            to_json_arg(body.tags), to_arg(body.team_available), to_arg(body.investor_committed),
            to_arg(body.duration), to_arg(body.funding_day), to_arg(body.funding_month), to_arg(body.funding_year),
            to_arg(body.goal_amount), body.investment_range, body.project_name, body.description,
            to_json_arg(body.documents),
        ],
    )
    data: Dict[str, Any] = {**result, **ids} if isinstance(result, dict) else {"result": result, **ids}
    return ok(data)


@router.post("/campaigns/{campaign_id}/submit-validation")
async def submit_for_validation(
    campaign_id: str,
    body: ValidationSubmission,
    gateway: OrgConnectionGateway = Depends(get_gateway),
):
    result = await gateway.submit(
        ORG, CONTRACT, "SubmitForValidation", [campaign_id, to_json_arg(body.documents), body.notes]
    )
    return ok(result)


@router.post("/campaigns/{campaign_id}/share-to-platform")
async def share_to_platform(
    campaign_id: str,
    body: ShareRequest,
    gateway: OrgConnectionGateway = Depends(get_gateway),
):
    result = await gateway.submit(
        ORG, CONTRACT, "ShareCampaignToPlatform", [campaign_id, body.validation_proof_hash]
    )
    return ok(result)


@router.get("/campaigns/{campaign_id}/deletion-fee")
async def campaign_deletion_fee(campaign_id: str, gateway: OrgConnectionGateway = Depends(get_gateway)):
    result = await gateway.evaluate(ORG, CONTRACT, "CalculateCampaignDeletionFee", [campaign_id])
    return ok(result)


@router.delete("/campaigns/{campaign_id}")
async def delete_campaign(
    campaign_id: str,
    body: Optional[DeletionRequest] = None,
    gateway: OrgConnectionGateway = Depends(get_gateway),
):
    reason = (body.reason if body else "") or DEFAULT_DELETION_REASON
    logger.info("Deleting campaign %s. Reason: %s", campaign_id, reason)

    result = await gateway.submit(ORG, CONTRACT, "DeleteCampaign", [campaign_id, reason])
    fee = result.get("feeCharged") if isinstance(result, dict) else None
    return ok(result, message=f"Campaign {campaign_id} deleted successfully. Fee charged: {fee} CFT")


@router.get("/startups/{startup_id}")
async def get_startup(startup_id: str, gateway: OrgConnectionGateway = Depends(get_gateway)):
    result = await gateway.evaluate(ORG, CONTRACT, "GetStartup", [startup_id])
    return ok(result)


@router.get("/startups/owner/{owner_id}")
async def list_startups_by_owner(owner_id: str, gateway: OrgConnectionGateway = Depends(get_gateway)):
    # Empty list on error: common when the owner has no startups yet
    return await safe_query(gateway, ORG, CONTRACT, "GetStartupsByOwner", owner_id)


@router.post("/startups", status_code=status.HTTP_201_CREATED)
async def create_startup(body: StartupCreate, gateway: OrgConnectionGateway = Depends(get_gateway)):
    ids = next_startup_ids(body.owner_id)
    logger.info("Creating startup %s for owner %s", ids["startupId"], body.owner_id)

    await gateway.submit(
        ORG, CONTRACT, "CreateStartup",
        [ids["startupId"], body.owner_id, body.name, body.description, ids["displayId"]],
    )
    return ok({
        **ids,
        "name": body.name,
        "description": body.description,
        "ownerId": body.owner_id,
        "campaignIds": [],
        "createdAt": datetime.now(timezone.utc).isoformat(),
    })


@router.post("/startups/{startup_id}/sync-to-chaincode")
async def sync_startup(startup_id: str, body: StartupSync, gateway: OrgConnectionGateway = Depends(get_gateway)):
    """Create the startup on the ledger unless GetStartup already finds it."""
    try:
        await gateway.evaluate(ORG, CONTRACT, "GetStartup", [startup_id])
        return {"success": True, "message": "Startup already exists in chaincode", "alreadyExists": True}
    except TransactionFailed as e:
        if not any(marker in e.reason.lower() for marker in MISSING_MARKERS):
            raise

    display_id = body.display_id or startup_id.split("_")[-1]
    logger.info("Syncing startup %s to chaincode for owner %s", startup_id, body.owner_id)
    await gateway.submit(
        ORG, CONTRACT, "CreateStartup",
        [startup_id, body.owner_id, body.name, body.description, display_id],
    )
    return ok(
        {"startupId": startup_id, "name": body.name, "ownerId": body.owner_id, "displayId": display_id},
        message="Startup synced to chaincode successfully",
    )


@router.get("/startups/{startup_id}/deletion-fee")
async def startup_deletion_fee(startup_id: str, gateway: OrgConnectionGateway = Depends(get_gateway)):
    result = await gateway.evaluate(ORG, CONTRACT, "CalculateStartupDeletionFee", [startup_id])
    return ok(result)


@router.delete("/startups/{startup_id}")
async def delete_startup(
    startup_id: str,
    body: Optional[DeletionRequest] = None,
    gateway: OrgConnectionGateway = Depends(get_gateway),
):
    reason = (body.reason if body else "") or DEFAULT_DELETION_REASON
    logger.info("Deleting startup %s and all campaigns. Reason: %s", startup_id, reason)

    result = await gateway.submit(ORG, CONTRACT, "DeleteStartup", [startup_id, reason])
    return ok(result, message=f"Startup {startup_id} and all campaigns deleted successfully")


@router.get("/deletions/{deletion_id}")
async def get_deletion_record(deletion_id: str, gateway: OrgConnectionGateway = Depends(get_gateway)):
    result = await gateway.evaluate(ORG, CONTRACT, "GetDeletionRecord", [deletion_id])
    return ok(result)
