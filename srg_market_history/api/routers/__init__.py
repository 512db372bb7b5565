from functools import lru_cache

from srg_market_history.base import get_subgraph_settings, SubgraphSettings
from srg_market_history.subgraph.graphql_client import GraphQLClient


@lru_cache(maxsize=1)
def get_settings() -> SubgraphSettings:
    """Subgraph settings, read once per process"""
    return get_subgraph_settings()


@lru_cache(maxsize=1)
def get_subgraph_client() -> GraphQLClient:
    """
    Create the GraphQL client shared by all requests.

    Returns:
        GraphQLClient: client configured with the subgraph URL and timeout
    """
    settings = get_settings()
    return GraphQLClient(settings.url, timeout_seconds=settings.timeout_seconds)
