from fastapi import APIRouter, Depends, Path, HTTPException
from loguru import logger

from srg_market_history.api.routers import get_settings, get_subgraph_client
from srg_market_history.api.services.market_history_service import MarketHistoryService
from srg_market_history.base import (
    SubgraphSettings, ErrorContextManager, classify_error, get_service_name, get_metrics_registry,
    get_series_metrics
)
from srg_market_history.subgraph import MetricKind, InvalidTokenAddressError

router = APIRouter(
    tags=["market-history"],
    responses={
        400: {"description": "Invalid token address"},
        500: {"description": "Internal server error"}
    }
)

TOKEN_ADDRESS_EXAMPLE = "0x5e7d3a2bc1e4e3e8a6f1b0c9d8e7f6a5b4c3d2e1"


async def _serve_history(token_address: str, metric: MetricKind, client, settings: SubgraphSettings):
    service_name = get_service_name()
    error_ctx = ErrorContextManager(service_name)
    service = MarketHistoryService(client, settings, service_name, get_series_metrics(service_name))
    try:
        return await service.get_history(token_address, metric)
    except InvalidTokenAddressError as e:
        logger.warning(f"Rejected {metric.value} history request: {e}")
        raise HTTPException(status_code=400, detail="Invalid token address.")
    except Exception as e:
        error_ctx.log_error(
            f"Failed to fetch {metric.value} history",
            error=e,
            operation=f"{metric.value}_history",
            token_address=token_address,
        )
        registry = get_metrics_registry(service_name)
        if registry:
            registry.record_error(classify_error(e), component=f"{metric.value}_history")
        raise HTTPException(status_code=500, detail=f"Failed to fetch {metric.value} history.")
    finally:
        service.close()


@router.get(
    "/price-history/{token_address}",
    summary="Get Token Price History",
    description=(
        "Retrieves the hourly price history of a token.\n\n"
        "Transfers of the token are bucketed into hourly windows. For every hour with at least one "
        "transfer, the ticker's last price is read at the block of the hour's latest transfer. "
        "Hours without transfers have no point."
    ),
    response_description="Hourly price points, oldest first",
)
async def get_price_history(
        token_address: str = Path(..., description="Token contract address (case-insensitive)",
                                  examples=[TOKEN_ADDRESS_EXAMPLE]),
        client=Depends(get_subgraph_client),
        settings: SubgraphSettings = Depends(get_settings),
):
    return await _serve_history(token_address, MetricKind.PRICE, client, settings)


@router.get(
    "/volume-history/{token_address}",
    summary="Get Token Volume History",
    description=(
        "Retrieves the daily trading volume history of a token.\n\n"
        "The ticker exposes a cumulative volume counter. Each daily point is the difference between "
        "the counter at the end of the day and at the end of the previous day, so a day is only "
        "reported when the previous day also had transfers."
    ),
    response_description="Daily volume points, oldest first",
)
async def get_volume_history(
        token_address: str = Path(..., description="Token contract address (case-insensitive)",
                                  examples=[TOKEN_ADDRESS_EXAMPLE]),
        client=Depends(get_subgraph_client),
        settings: SubgraphSettings = Depends(get_settings),
):
    return await _serve_history(token_address, MetricKind.VOLUME, client, settings)


@router.get(
    "/liquidity-history/{token_address}",
    summary="Get Token Liquidity History",
    description=(
        "Retrieves the daily liquidity history of a token in USD.\n\n"
        "For every day with at least one transfer, the ticker's liquidity is read at the block of "
        "the day's latest transfer."
    ),
    response_description="Daily liquidity points, oldest first",
)
async def get_liquidity_history(
        token_address: str = Path(..., description="Token contract address (case-insensitive)",
                                  examples=[TOKEN_ADDRESS_EXAMPLE]),
        client=Depends(get_subgraph_client),
        settings: SubgraphSettings = Depends(get_settings),
):
    return await _serve_history(token_address, MetricKind.LIQUIDITY, client, settings)
