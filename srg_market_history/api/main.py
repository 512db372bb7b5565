from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.cors import CORSMiddleware

from srg_market_history.api.routers import market_history, get_settings
from srg_market_history.base import (
    setup_enhanced_logger, setup_metrics, get_series_metrics, log_service_start, log_service_stop,
    get_service_name, get_cors_origins, get_api_bind, get_logging_settings
)
from srg_market_history.api.middleware.prometheus_middleware import PrometheusMiddleware, create_metrics_endpoint
from srg_market_history.api.middleware.correlation_middleware import CorrelationMiddleware

version = "0.1.0"
service_name = get_service_name()
logs_dir, log_level = get_logging_settings()
setup_enhanced_logger(service_name, logs_dir=logs_dir, level=log_level)
metrics_registry = setup_metrics(service_name, version=version)
get_series_metrics(service_name)

cors_origins = get_cors_origins()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    log_service_start(
        service_name,
        version=version,
        subgraph_url=settings.url,
        page_size=settings.page_size,
        ticker_query_mode=settings.ticker_query_mode,
        volume_missing_previous_policy=settings.volume_missing_previous_policy,
        cors_origins=cors_origins,
    )
    yield
    log_service_stop(service_name)


app = FastAPI(
    title="SRG Market History API",
    description="Historical price, volume and liquidity series for SRG20 tokens",
    version=version,
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

app.add_middleware(PrometheusMiddleware, metrics_registry=metrics_registry, service_name=service_name)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)
# Added last so it runs first and every log line carries the correlation id
app.add_middleware(CorrelationMiddleware)

app.include_router(market_history.router)

metrics_endpoint = create_metrics_endpoint(metrics_registry)
app.get("/metrics", include_in_schema=False)(metrics_endpoint)


@app.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def index(request: Request):
    base_url = str(request.base_url).rstrip("/")
    return (
        "This retrieves historical market indicators for SRG20 tokens using a token entry.\n"
        "Use following URL handlers to get according data:\n"
        f" * Price history: {base_url}/price-history/:tokenAddress\n"
        f" * Volume history: {base_url}/volume-history/:tokenAddress\n"
        f" * Liquidity history: {base_url}/liquidity-history/:tokenAddress\n"
    )


@app.get("/health")
async def health_check():
    return {
        "status": "ok",
        "version": version
    }


if __name__ == "__main__":
    import uvicorn

    host, port = get_api_bind()
    uvicorn.run(app, host=host, port=port)
