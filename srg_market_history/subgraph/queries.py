"""
GraphQL query builders for the transfers and ticker entities.

Values are interpolated into the query text, so every value is validated
first: token addresses must be 20-byte hex addresses and block numbers
non-negative integers.
"""

import re
from typing import Union

from srg_market_history.subgraph import TransferRole, InvalidTokenAddressError, InvalidBlockNumberError

TOKEN_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")
BLOCK_NUMBER_RE = re.compile(r"^[0-9]+$")


def normalize_token_address(token_address: str) -> str:
    """Lowercase and validate a token address.

    Examples:
        >>> normalize_token_address("0xABCDEFabcdef0123456789ABCDEFabcdef012345")
        '0xabcdefabcdef0123456789abcdefabcdef012345'
    """
    if not isinstance(token_address, str):
        raise InvalidTokenAddressError("Token address must be a string")
    normalized = token_address.strip().lower()
    if not TOKEN_ADDRESS_RE.match(normalized):
        raise InvalidTokenAddressError(f"Invalid token address: {token_address!r}")
    return normalized


def normalize_block_number(block_number: Union[str, int]) -> int:
    if isinstance(block_number, bool):
        raise InvalidBlockNumberError(f"Invalid block number: {block_number!r}")
    if isinstance(block_number, int):
        value = block_number
    elif isinstance(block_number, str) and BLOCK_NUMBER_RE.match(block_number.strip()):
        value = int(block_number.strip())
    else:
        raise InvalidBlockNumberError(f"Invalid block number: {block_number!r}")
    if value < 0:
        raise InvalidBlockNumberError(f"Invalid block number: {block_number!r}")
    return value


def build_transfers_query(token_address: str, role: TransferRole, first: int, skip: int) -> str:
    token_address = normalize_token_address(token_address)
    if first < 1 or skip < 0:
        raise ValueError(f"Invalid pagination window first={first} skip={skip}")
    return f"""
    {{
      transfers(first: {int(first)}, skip: {int(skip)}, orderBy: blockTimestamp, orderDirection: asc, where: {{{role.value}: "{token_address}"}}) {{
        blockNumber
        blockTimestamp
      }}
    }}
    """


def build_ticker_query(token_address: str, block_number: Union[str, int], field: str, mode: str = "scoped") -> str:
    """Ticker snapshot at a block.

    `scoped` asks for the token's own ticker entity, `unscoped` lists the
    tickers at the block and the caller takes the first one.
    """
    block = normalize_block_number(block_number)
    if not field.isidentifier():
        raise ValueError(f"Invalid ticker field: {field!r}")

    if mode == "scoped":
        token_address = normalize_token_address(token_address)
        return f"""
    {{
      ticker(id: "{token_address}", block: {{number: {block}}}) {{
        {field}
      }}
    }}
    """
    elif mode == "unscoped":
        return f"""
    {{
      tickers(block: {{number: {block}}}) {{
        {field}
      }}
    }}
    """
    raise ValueError(f"Unsupported ticker query mode: {mode}")
