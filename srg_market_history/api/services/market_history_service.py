from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from loguru import logger

from srg_market_history.base import SubgraphSettings, ErrorContextManager, SeriesMetrics
from srg_market_history.subgraph import MetricKind
from srg_market_history.subgraph.graphql_client import QueryRunner
from srg_market_history.subgraph.point_resolver import PointResolver
from srg_market_history.subgraph.queries import normalize_token_address
from srg_market_history.subgraph.transfer_fetcher import TransferFetcher
from srg_market_history.subgraph.transfer_grouping import merge_transfers, group_transfers
from srg_market_history.api.services.series_utils import assemble_series


class MarketHistoryService:
    def __init__(self, client, settings: SubgraphSettings, service_name: str = "srg-market-history-api",
                 metrics: Optional[SeriesMetrics] = None):
        """Initialize the service for one request

        Args:
            client: Object exposing request(query) -> dict, usually a GraphQLClient
            settings: Subgraph and aggregation settings
            service_name: Service label for error logging
            metrics: Optional series metrics
        """
        self.settings = settings
        self.executor = ThreadPoolExecutor(max_workers=settings.max_workers, thread_name_prefix="subgraph")
        self.runner = QueryRunner(client, self.executor, metrics)
        self.fetcher = TransferFetcher(self.runner, settings.page_size, metrics)
        self.resolver = PointResolver(
            self.runner,
            ticker_query_mode=settings.ticker_query_mode,
            volume_missing_previous_policy=settings.volume_missing_previous_policy,
            error_ctx=ErrorContextManager(service_name),
            metrics=metrics,
        )

    def close(self):
        """Release the query thread pool"""
        self.executor.shutdown(wait=False)

    async def get_history(self, token_address: str, metric: MetricKind) -> List[Dict[str, Any]]:
        """
        Returns the metric series of a token, one point per window with transfer activity

        Args:
            token_address: Token contract address, any letter case
            metric: Price (hourly), volume or liquidity (daily)

        Returns:
            List of points ordered by window start, oldest first

        Raises:
            InvalidTokenAddressError: before any query is sent
            SubgraphError: when the transfer history could not be fetched completely
        """
        token_address = normalize_token_address(token_address)

        from_transfers, to_transfers = await self.fetcher.fetch_both(token_address)
        transfers = merge_transfers(from_transfers, to_transfers)
        windows = group_transfers(transfers, metric.window_size)

        logger.info(
            f"Resolving {metric.value} history over {len(windows)} windows from {len(transfers)} unique blocks",
            token_address=token_address,
        )

        results = await self.resolver.resolve(windows, token_address, metric)
        series = assemble_series(results, metric)

        failed = sum(1 for result in results if not result.ok)
        if failed:
            logger.warning(
                f"{metric.value} history has {failed} failed windows",
                token_address=token_address,
            )
        return series
