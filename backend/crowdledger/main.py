"""
main.py — FastAPI Application Entrypoint

Purpose:
- Initialize logging and the process-wide OrgConnectionGateway.
- Register API routers.
- Map gateway errors to JSON error responses.
- Define the root-level health endpoint.
- Provide `app` object used by ASGI server (uvicorn).

This file should stay clean: no ledger logic here.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crowdledger.api.v1 import investor, platform, startup, transactions, validator
from crowdledger.core.config import build_organization_profiles, settings
from crowdledger.core.logging import configure_logging, get_logger
from crowdledger.services.fabric import (
    GatewayError,
    IdentityNotFound,
    OrgConnectionGateway,
    PeerCliConnector,
    ProfileLoadError,
    TransactionFailed,
    UnknownOrganization,
)

logger = get_logger(__name__)


def build_gateway() -> OrgConnectionGateway:
    connector = PeerCliConnector(
        peer_binary=settings.PEER_BINARY,
        fabric_cfg_path=settings.FABRIC_CFG_PATH,
        work_dir=settings.FABRIC_WORK_DIR or None,
    )
    return OrgConnectionGateway(build_organization_profiles(), connector)


# -----------------------------------------------------------------------------
# Error Mapping
# -----------------------------------------------------------------------------

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def unknown_organization_handler(request: Request, exc: UnknownOrganization) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, str(exc))


async def configuration_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.error("Gateway configuration error: %s", exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


async def transaction_failed_handler(request: Request, exc: TransactionFailed) -> JSONResponse:
    logger.error("Transaction %s failed for %s: %s", exc.function, exc.org_key, exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.error("Gateway error: %s", exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


# -----------------------------------------------------------------------------
# App Factory
# -----------------------------------------------------------------------------

def create_app(gateway: Optional[OrgConnectionGateway] = None) -> FastAPI:
    """
    Build the application. Tests pass a pre-built gateway; otherwise one is
    created from settings when the app starts and shut down when it stops.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.gateway = gateway or build_gateway()
        logger.info(
            "Gateway ready: channel=%s chaincode=%s orgs=%s",
            settings.FABRIC_CHANNEL_NAME,
            settings.FABRIC_CHAINCODE_NAME,
            ", ".join(app.state.gateway.organizations),
        )
        try:
            yield
        finally:
            await app.state.gateway.shutdown()
            logger.info("Gateway shut down")

    app = FastAPI(
        title="CrowdLedger Gateway",
        description="Multi-organization Hyperledger Fabric gateway for the crowdfunding network",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Most specific first; Starlette resolves handlers along the exception MRO.
    app.add_exception_handler(UnknownOrganization, unknown_organization_handler)
    app.add_exception_handler(IdentityNotFound, configuration_error_handler)
    app.add_exception_handler(ProfileLoadError, configuration_error_handler)
    app.add_exception_handler(TransactionFailed, transaction_failed_handler)
    app.add_exception_handler(GatewayError, gateway_error_handler)

    # Mount all v1 API routers under /api/v1 prefix
    app.include_router(transactions.router, prefix="/api/v1")
    app.include_router(startup.router, prefix="/api/v1")
    app.include_router(validator.router, prefix="/api/v1")
    app.include_router(platform.router, prefix="/api/v1")
    app.include_router(investor.router, prefix="/api/v1")

    @app.get("/health")
    async def health(request: Request):
        return {
            "status": "ok",
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "channel": settings.FABRIC_CHANNEL_NAME,
            "chaincode": settings.FABRIC_CHAINCODE_NAME,
            "connected": request.app.state.gateway.connected_organizations(),
        }

    return app


# -----------------------------------------------------------------------------
# App Initialization
# -----------------------------------------------------------------------------

configure_logging(settings.LOG_LEVEL)  # Set logging defaults at startup

app = create_app()
