import asyncio
from typing import List, Tuple

from loguru import logger

from srg_market_history.subgraph import TransferRole, SubgraphResponseError
from srg_market_history.subgraph.graphql_client import QueryRunner
from srg_market_history.subgraph.models import TransferRecord
from srg_market_history.subgraph.queries import build_transfers_query


class TransferFetcher:
    """Pages through every transfer of a token in one direction.

    Pagination stops at the first page shorter than `page_size`. There is no
    cap on the number of pages, and any failed page fails the whole fetch.
    """

    def __init__(self, runner: QueryRunner, page_size: int = 1000, metrics=None):
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.runner = runner
        self.page_size = page_size
        self.metrics = metrics

    async def fetch(self, token_address: str, role: TransferRole) -> List[TransferRecord]:
        transfers: List[TransferRecord] = []
        skip = 0
        pages = 0

        while True:
            query = build_transfers_query(token_address, role, self.page_size, skip)
            data = await self.runner.run(query, "transfers")
            page = data.get("transfers")
            if not isinstance(page, list):
                raise SubgraphResponseError(f"Transfers page at skip={skip} is not a list")

            transfers.extend(TransferRecord.from_graphql(item) for item in page)
            pages += 1

            if len(page) < self.page_size:
                break
            skip += self.page_size

        logger.info(
            f"Fetched {len(transfers)} '{role.value}' transfers in {pages} pages",
            token_address=token_address,
            role=role.value,
        )
        if self.metrics:
            self.metrics.record_transfers_fetched(role.value, len(transfers))
        return transfers

    async def fetch_both(self, token_address: str) -> Tuple[List[TransferRecord], List[TransferRecord]]:
        """Fetch the `from` and `to` directions concurrently and wait for both.

        The first failure is re-raised once both fetches have settled.
        """
        from_transfers, to_transfers = await asyncio.gather(
            self.fetch(token_address, TransferRole.FROM),
            self.fetch(token_address, TransferRole.TO),
            return_exceptions=True
        )

        if isinstance(from_transfers, BaseException):
            raise from_transfers
        if isinstance(to_transfers, BaseException):
            raise to_transfers

        return from_transfers, to_transfers
