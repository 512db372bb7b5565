import asyncio
from typing import Dict, List, Optional

from loguru import logger

from srg_market_history.base.decimal_utils import format_decimal, subtract_cumulative, ZERO
from srg_market_history.base.enhanced_logging import ErrorContextManager
from srg_market_history.subgraph import MetricKind
from srg_market_history.subgraph.graphql_client import QueryRunner
from srg_market_history.subgraph.models import TransferRecord, MetricPoint, WindowResult
from srg_market_history.subgraph.queries import build_ticker_query
from srg_market_history.subgraph.transfer_grouping import representative_block


class PointResolver:
    """
    Turns a window map into metric points by querying the ticker at each
    window's representative block.

    Windows are resolved one after another in ascending key order. A volume
    window needs two ticker readings (its own block and the previous window's
    block), and those two queries run concurrently. A failed query only
    drops its own window.
    """

    def __init__(self, runner: QueryRunner, ticker_query_mode: str = "scoped",
                 volume_missing_previous_policy: str = "skip",
                 error_ctx: Optional[ErrorContextManager] = None, metrics=None):
        if ticker_query_mode not in ("scoped", "unscoped"):
            raise ValueError(f"Unsupported ticker query mode: {ticker_query_mode}")
        if volume_missing_previous_policy not in ("skip", "zero"):
            raise ValueError(f"Unsupported volume policy: {volume_missing_previous_policy}")
        self.runner = runner
        self.ticker_query_mode = ticker_query_mode
        self.volume_missing_previous_policy = volume_missing_previous_policy
        self.error_ctx = error_ctx or ErrorContextManager("srg-market-history")
        self.metrics = metrics

    async def resolve(self, window_map: Dict[int, List[TransferRecord]], token_address: str,
                      metric: MetricKind) -> List[WindowResult]:
        results: List[WindowResult] = []
        has_points = False
        for key in sorted(window_map):
            if metric is MetricKind.VOLUME:
                result = await self._resolve_volume_window(window_map, key, token_address, leading=not has_points)
            else:
                result = await self._resolve_snapshot_window(window_map[key], key, token_address, metric)

            if result is not None:
                results.append(result)
                has_points = has_points or result.ok
                self._record_window(metric, "resolved" if result.ok else "failed")
            else:
                self._record_window(metric, "skipped")
        return results

    async def fetch_ticker_value(self, token_address: str, block_number: str, metric: MetricKind) -> str:
        """Ticker field at a block, "0" when the ticker or the field is missing"""
        query = build_ticker_query(token_address, block_number, metric.ticker_field, self.ticker_query_mode)
        data = await self.runner.run(query, f"ticker_{metric.value}")
        return self._extract_ticker_field(data, metric.ticker_field)

    def _extract_ticker_field(self, data: Dict, field: str) -> str:
        if self.ticker_query_mode == "scoped":
            ticker = data.get("ticker")
        else:
            tickers = data.get("tickers")
            ticker = tickers[0] if isinstance(tickers, list) and tickers else None

        if not isinstance(ticker, dict):
            return "0"
        value = ticker.get(field)
        if value is None or value == "":
            return "0"
        return str(value)

    async def _resolve_snapshot_window(self, transfers: List[TransferRecord], key: int,
                                       token_address: str, metric: MetricKind) -> WindowResult:
        block_number = representative_block(transfers)
        try:
            value = await self.fetch_ticker_value(token_address, block_number, metric)
        except Exception as e:
            return self._window_failure(e, key, block_number, metric)
        return WindowResult(window_key=key, point=MetricPoint(window_key=key, block_number=block_number, value=value))

    async def _resolve_volume_window(self, window_map: Dict[int, List[TransferRecord]], key: int,
                                     token_address: str, leading: bool = True) -> Optional[WindowResult]:
        """Delta of the cumulative volume against the previous window.

        Under the `skip` policy a zero delta is dropped while `leading` is set,
        i.e. before the series has its first volume point.
        """
        metric = MetricKind.VOLUME
        block_number = representative_block(window_map[key])
        previous_transfers = window_map.get(key - metric.window_size.value)

        if previous_transfers is None and self.volume_missing_previous_policy == "skip":
            logger.debug(f"No previous window for volume window {key}, skipping", token_address=token_address)
            return None

        try:
            if previous_transfers is None:
                current_volume = await self.fetch_ticker_value(token_address, block_number, metric)
                previous_volume = "0"
            else:
                previous_block = representative_block(previous_transfers)
                current_volume, previous_volume = await asyncio.gather(
                    self.fetch_ticker_value(token_address, block_number, metric),
                    self.fetch_ticker_value(token_address, previous_block, metric)
                )
        except Exception as e:
            return self._window_failure(e, key, block_number, metric)

        delta = subtract_cumulative(current_volume, previous_volume)
        if delta == ZERO and leading and self.volume_missing_previous_policy == "skip":
            self.error_ctx.log_business_decision(
                "omit_volume_window",
                "cumulative volume did not advance",
                window_key=key,
                block_number=block_number,
            )
            return None

        return WindowResult(
            window_key=key,
            point=MetricPoint(window_key=key, block_number=block_number, value=format_decimal(delta))
        )

    def _window_failure(self, error: Exception, key: int, block_number: str, metric: MetricKind) -> WindowResult:
        self.error_ctx.log_error(
            f"Error fetching {metric.value} for block {block_number}",
            error=error,
            operation="resolve_window",
            window_key=key,
            block_number=block_number,
            metric=metric.value,
        )
        return WindowResult(window_key=key, error=f"{type(error).__name__}: {error}")

    def _record_window(self, metric: MetricKind, outcome: str):
        if self.metrics:
            self.metrics.record_window(metric.value, outcome)
