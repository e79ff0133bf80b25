"""
transactions.py — Generic chaincode dispatch endpoints.

Purpose:
- Expose the gateway's submit/evaluate operations for any configured
  organization, contract and function (admin tooling, integration tests).

Endpoints:
- POST /transactions/{org}/submit   → state-changing, waits for commit
- POST /transactions/{org}/evaluate → read-only query

Errors are not caught here: the app-level exception handlers turn gateway
errors into JSON error responses.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from crowdledger.api.deps import get_gateway, ok
from crowdledger.core.security import get_current_user
from crowdledger.services.fabric import OrgConnectionGateway

router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
    dependencies=[Depends(get_current_user)],
)

# -----------------------------------------------------------------------------
# Schemas
# -----------------------------------------------------------------------------

class TransactionIn(BaseModel):
    """Chaincode call. Arguments are strings; serialize numbers/JSON client-side."""
    contract: str = Field(..., description="Contract name inside the chaincode package, e.g. InvestorContract")
    function: str = Field(..., min_length=1, description="Function name, e.g. MakeInvestment")
    args: List[str] = Field(default_factory=list)
    transient: Optional[Dict[str, str]] = Field(None, description="Private data fields (submit only)")

    class Config:
        json_schema_extra = {
            "example": {
                "contract": "InvestorContract",
                "function": "MakeInvestment",
                "args": ["INV_001", "CAMP_S1_A7B3C2", "INVESTOR001", "5000", "INR"],
            }
        }


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------

@router.post("/{org}/submit")
async def submit_transaction(
    org: str,
    body: TransactionIn,
    gateway: OrgConnectionGateway = Depends(get_gateway),
) -> Dict[str, Any]:
    result = await gateway.submit(org, body.contract, body.function, body.args, transient=body.transient)
    return ok(result)


@router.post("/{org}/evaluate")
async def evaluate_transaction(
    org: str,
    body: TransactionIn,
    gateway: OrgConnectionGateway = Depends(get_gateway),
) -> Dict[str, Any]:
    result = await gateway.evaluate(org, body.contract, body.function, body.args)
    return ok(result)
