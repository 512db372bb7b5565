import asyncio
import time
from concurrent.futures import Executor
from typing import Dict, Any, Optional

import requests
from loguru import logger

from srg_market_history.subgraph import (
    SubgraphTransportError, SubgraphTimeoutError, SubgraphQueryError, SubgraphResponseError
)


class GraphQLClient:
    """Blocking GraphQL-over-HTTP client for the subgraph endpoint.

    Every failure is raised as a SubgraphError subclass. Nothing is retried.
    """

    def __init__(self, url: str, timeout_seconds: float = 30.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})

    def request(self, query: str) -> Dict[str, Any]:
        """Send one query and return its `data` object.

        Raises:
            SubgraphTimeoutError: the endpoint did not answer within the timeout
            SubgraphTransportError: connection failure or non-2xx HTTP status
            SubgraphQueryError: the response contains GraphQL errors
            SubgraphResponseError: the body is not a GraphQL response
        """
        try:
            response = self.session.post(self.url, json={"query": query}, timeout=self.timeout_seconds)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise SubgraphTimeoutError(f"Subgraph query timed out after {self.timeout_seconds}s") from e
        except requests.exceptions.RequestException as e:
            raise SubgraphTransportError(f"Subgraph request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise SubgraphResponseError("Subgraph response is not valid JSON") from e

        if not isinstance(payload, dict):
            raise SubgraphResponseError(f"Unexpected subgraph response type: {type(payload).__name__}")

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(error.get("message", error)) if isinstance(error, dict) else str(error)
                                 for error in errors)
            raise SubgraphQueryError(f"GraphQL errors: {messages}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise SubgraphResponseError("Subgraph response has no data object")
        return data

    def close(self):
        self.session.close()


class QueryRunner:
    """Runs blocking client queries on an executor so callers can await and gather them"""

    def __init__(self, client, executor: Optional[Executor] = None, metrics=None):
        self.client = client
        self.executor = executor
        self.metrics = metrics

    async def run(self, query: str, query_type: str) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        start_time = time.time()
        try:
            data = await loop.run_in_executor(self.executor, self.client.request, query)
        except Exception:
            self._record(query_type, time.time() - start_time, success=False)
            raise
        self._record(query_type, time.time() - start_time, success=True)
        logger.debug(f"Subgraph {query_type} query completed in {time.time() - start_time:.3f}s")
        return data

    def _record(self, query_type: str, duration: float, success: bool):
        if self.metrics:
            self.metrics.record_query(query_type, duration, success)
