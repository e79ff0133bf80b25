"""
validator.py — Validator organization endpoints (API Layer)

Purpose:
- Due-diligence workflow on submitted campaigns, routed as the `validator`
  organization through ValidatorContract.

Endpoints:
- GET  /validator/pending-validations       → campaigns awaiting review
- GET  /validator/campaigns/{campaign_id}   → campaign detail (404 when missing)
- POST /validator/validate/{campaign_id}    → open a validation record
- POST /validator/approve/{campaign_id}     → record + decision in one call

This module does NOT:
- Score campaigns; the decision values come from the validator's client.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from crowdledger.api.deps import generated_id, get_gateway, ok, safe_query, to_arg, to_json_arg
from crowdledger.api.v1.schemas import ValidationCreate, ValidationDecision
from crowdledger.core.logging import get_logger
from crowdledger.core.security import require_role
from crowdledger.services.fabric import GatewayError, OrgConnectionGateway

logger = get_logger(__name__)

ORG = "validator"
CONTRACT = "ValidatorContract"
DEFAULT_VALIDATOR_ID = "VALIDATOR001"

guard = require_role("VALIDATOR")

router = APIRouter(prefix="/validator", tags=["validator"], dependencies=[Depends(guard)])


@router.get("/pending-validations")
async def pending_validations(gateway: OrgConnectionGateway = Depends(get_gateway)):
    return await safe_query(gateway, ORG, CONTRACT, "GetPendingValidations")


@router.get("/campaigns/{campaign_id}")
async def get_campaign(campaign_id: str, gateway: OrgConnectionGateway = Depends(get_gateway)):
    try:
        result = await gateway.evaluate(ORG, CONTRACT, "GetCampaign", [campaign_id])
    except GatewayError as e:
        logger.warning("GetCampaign: %s", e)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")
    return ok(result)


@router.post("/validate/{campaign_id}")
async def validate_campaign(
    campaign_id: str,
    body: ValidationCreate,
    gateway: OrgConnectionGateway = Depends(get_gateway),
):
    result = await gateway.submit(
        ORG, CONTRACT, "ValidateCampaign",
        [
            body.validation_id, campaign_id, body.validator_id,
            body.submission_hash, to_json_arg(body.required_documents),
        ],
    )
    return ok(result)


@router.post("/approve/{campaign_id}")
async def approve_campaign(
    campaign_id: str,
    body: ValidationDecision,
    user: Dict[str, Any] = Depends(guard),
    gateway: OrgConnectionGateway = Depends(get_gateway),
):
    """
    Two submits against the same connection:
      1. ValidateCampaign creates the validation record,
      2. ApproveOrRejectCampaign records the decision on it.
    A failure in step 1 stops before step 2 runs.
    """
    validation_id = body.validation_id or generated_id("VAL")
    validator_id = user.get("orgUserId") or DEFAULT_VALIDATOR_ID
    documents = to_json_arg(body.required_documents)

    await gateway.submit(
        ORG, CONTRACT, "ValidateCampaign",
        [validation_id, campaign_id, validator_id, body.submission_hash, documents],
    )
    logger.info("Validation %s opened for %s by %s", validation_id, campaign_id, validator_id)

    result = await gateway.submit(
        ORG, CONTRACT, "ApproveOrRejectCampaign",
        [
            validation_id, campaign_id, body.status,
            to_arg(body.due_diligence_score), to_arg(body.risk_score), body.risk_level,
            to_json_arg(body.comments), to_json_arg(body.issues), documents,
        ],
    )
    data = result if isinstance(result, dict) else {"result": result}
    return ok(data, validationId=validation_id)
