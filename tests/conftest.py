import os
import re
import tempfile
import threading

import pytest

# main.py configures file logging at import time
os.environ.setdefault("LOGS_DIR", tempfile.mkdtemp(prefix="srg-market-history-logs-"))

from srg_market_history.base import SubgraphSettings
from srg_market_history.subgraph import SubgraphTransportError

TOKEN = "0x" + "ab" * 20


def transfer(block, timestamp):
    return {"blockNumber": str(block), "blockTimestamp": str(timestamp)}


class FakeSubgraphClient:
    """
    In-memory stand-in for GraphQLClient.

    Serves transfer pages by slicing the configured lists with the query's
    first/skip values and answers ticker queries from a block -> ticker map.
    Every query is recorded.
    """

    def __init__(self, from_transfers=None, to_transfers=None, tickers=None,
                 failing_blocks=(), fail_transfers_at_skip=None):
        self.from_transfers = from_transfers or []
        self.to_transfers = to_transfers or []
        self.tickers = tickers or {}
        self.failing_blocks = {str(block) for block in failing_blocks}
        self.fail_transfers_at_skip = fail_transfers_at_skip
        self.queries = []
        self._lock = threading.Lock()

    def request(self, query):
        with self._lock:
            self.queries.append(query)

        if "transfers(" in query:
            first = int(re.search(r"first: (\d+)", query).group(1))
            skip = int(re.search(r"skip: (\d+)", query).group(1))
            if self.fail_transfers_at_skip is not None and skip >= self.fail_transfers_at_skip:
                raise SubgraphTransportError(f"connection reset at skip={skip}")
            source = self.from_transfers if "where: {from:" in query else self.to_transfers
            return {"transfers": source[skip:skip + first]}

        block = re.search(r"number: (\d+)", query).group(1)
        if block in self.failing_blocks:
            raise SubgraphTransportError(f"ticker query failed at block {block}")
        ticker = self.tickers.get(block)
        if "tickers(" in query:
            return {"tickers": [ticker] if ticker is not None else []}
        return {"ticker": ticker}

    @property
    def transfer_queries(self):
        return [query for query in self.queries if "transfers(" in query]

    @property
    def ticker_queries(self):
        return [query for query in self.queries if "transfers(" not in query]

    def queried_blocks(self):
        return [re.search(r"number: (\d+)", query).group(1) for query in self.ticker_queries]


def make_settings(**overrides):
    values = dict(
        url="http://subgraph.test/graphql",
        timeout_seconds=5.0,
        page_size=1000,
        max_workers=4,
        ticker_query_mode="scoped",
        volume_missing_previous_policy="skip",
    )
    values.update(overrides)
    return SubgraphSettings(**values)


@pytest.fixture
def settings():
    return make_settings()
