"""HTTP query interface for wallet balances."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.responses import JSONResponse

from .exceptions import AddressValidationError
from .logger import get_logger
from .service import BalanceService
from .settings import BalanceSettings
from .state import AppState

logger = get_logger(__name__)

router = APIRouter()


def get_state(request: Request) -> AppState:
    return request.app.state.app_state


def get_service(state: AppState = Depends(get_state)) -> BalanceService:
    return state.service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )


@router.get("/api/get-token-balances")
async def get_token_balances(
    address: str | None = Query(None, description="Wallet address to look up."),
    force: str | None = Query(None, description="'true' bypasses the cache."),
    service: BalanceService = Depends(get_service),
) -> Any:
    """Fetch stablecoin balances for a wallet across all configured chains.

    Returns:
        Ranked assets, USD total, token metadata and cache bookkeeping.
        400 for a missing or malformed address, 500 if the pipeline fails.
    """
    try:
        response = await service.query(address, force_refresh=force == "true")
    except AddressValidationError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except Exception:
        logger.exception("Error fetching token balances")
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch token balances"
        )
    return response.to_dict()


@router.get("/health")
def health(state: AppState = Depends(get_state)) -> dict[str, Any]:
    return {
        "status": "healthy",
        "chains_configured": len(state.service.registry.configured_chains()),
    }


def create_app(
    settings: BalanceSettings | None = None,
    service: BalanceService | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Effective settings, loaded from env/config when omitted
        service: Pre-built service (tests inject one with a fake reader)
    """
    settings = settings or BalanceSettings()
    state = AppState(
        settings=settings,
        logger=logging.getLogger("stable_balances"),
        service=service or BalanceService.from_settings(settings),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state.logger.info(
            "Balance API ready (%d chains configured)",
            len(state.service.registry.configured_chains()),
        )
        yield
        await state.service.close()

    app = FastAPI(
        title="stable-balances",
        description="Multi-chain stablecoin balance aggregation",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.app_state = state
    app.include_router(router)
    return app
