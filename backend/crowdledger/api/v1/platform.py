"""
platform.py — Platform organization endpoints: shared campaigns and publishing.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from crowdledger.api.deps import get_gateway, ok, safe_query
from crowdledger.api.v1.schemas import PublishRequest
from crowdledger.core.logging import get_logger
from crowdledger.core.security import require_role
from crowdledger.services.fabric import GatewayError, OrgConnectionGateway

logger = get_logger(__name__)

ORG = "platform"
CONTRACT = "PlatformContract"

router = APIRouter(
    prefix="/platform",
    tags=["platform"],
    dependencies=[Depends(require_role("PLATFORM"))],
)


@router.get("/shared-campaigns")
async def shared_campaigns(gateway: OrgConnectionGateway = Depends(get_gateway)):
    return await safe_query(gateway, ORG, CONTRACT, "GetAllSharedCampaigns")


@router.get("/shared-campaigns/{campaign_id}")
async def shared_campaign(campaign_id: str, gateway: OrgConnectionGateway = Depends(get_gateway)):
    try:
        result = await gateway.evaluate(ORG, CONTRACT, "GetSharedCampaign", [campaign_id])
    except GatewayError as e:
        logger.warning("GetSharedCampaign: %s", e)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")
    return ok(result)


@router.post("/publish/{campaign_id}")
async def publish_campaign(
    campaign_id: str,
    body: PublishRequest,
    gateway: OrgConnectionGateway = Depends(get_gateway),
):
    result = await gateway.submit(
        ORG, CONTRACT, "PublishCampaignToPortal", [campaign_id, body.validation_proof_hash]
    )
    logger.info("Published %s to the investor portal", campaign_id)
    return ok(result)
