"""
deps.py — Shared FastAPI dependencies and response helpers for the routers.

- get_gateway(): the process-wide OrgConnectionGateway held on app.state.
- safe_query(): read endpoints that prefer an empty list over an error page,
  so dashboards keep rendering while a chaincode collection is still empty.
"""

import json
import time
from typing import Any, Dict, Iterable, Optional

from fastapi import Request

from crowdledger.core.logging import get_logger
from crowdledger.services.fabric import GatewayError, OrgConnectionGateway

logger = get_logger(__name__)


def get_gateway(request: Request) -> OrgConnectionGateway:
    return request.app.state.gateway


def ok(data: Any, **extra: Any) -> Dict[str, Any]:
    return {"success": True, "data": data, **extra}


async def safe_query(
    gateway: OrgConnectionGateway,
    org_key: str,
    contract_name: str,
    function_name: str,
    *args: str,
) -> Dict[str, Any]:
    """Evaluate; on any gateway failure log a warning and answer with an empty list."""
    try:
        result = await gateway.evaluate(org_key, contract_name, function_name, list(args))
    except GatewayError as e:
        logger.warning("%s: %s", function_name, e)
        return ok([])
    return ok(result if result is not None else [])


def to_arg(value: Optional[Any], default: str = "") -> str:
    """Stringify one chaincode argument (bools lower-case, like the chaincode parses them)."""
    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_json_arg(values: Optional[Iterable[Any]]) -> str:
    return json.dumps(list(values or []))


def generated_id(prefix: str) -> str:
    """Fallback record ID when the client did not supply one, e.g. VIEW_1718000000000."""
    return f"{prefix}_{int(time.time() * 1000)}"
