from typing import Dict, Iterable, List, Union

from srg_market_history.subgraph import WindowSize
from srg_market_history.subgraph.models import TransferRecord


def merge_transfers(*sequences: Iterable[TransferRecord]) -> List[TransferRecord]:
    """Merge directional transfer lists into one list ordered by block time.

    A self-transfer shows up in both directions, and a block can hold several
    transfers, so only one record per block number is kept (the last seen).
    Timestamps are compared as integers; equal timestamps are ordered by
    block number so the result does not depend on the input order.
    """
    unique: Dict[str, TransferRecord] = {}
    for sequence in sequences:
        for transfer in sequence:
            unique[transfer.block_number] = transfer

    return sorted(unique.values(), key=lambda transfer: (transfer.timestamp, int(transfer.block_number)))


def window_key(timestamp: int, window_size: Union[WindowSize, int]) -> int:
    """Start of the fixed-width window containing `timestamp` (unix seconds)"""
    size = window_size.value if isinstance(window_size, WindowSize) else int(window_size)
    return (int(timestamp) // size) * size


def group_transfers(transfers: Iterable[TransferRecord],
                    window_size: Union[WindowSize, int]) -> Dict[int, List[TransferRecord]]:
    """Bucket time-ordered transfers by window start.

    Only windows with at least one transfer get a key. Each window keeps the
    input order, so feeding it the output of merge_transfers leaves the
    latest transfer last.
    """
    grouped: Dict[int, List[TransferRecord]] = {}
    for transfer in transfers:
        grouped.setdefault(window_key(transfer.timestamp, window_size), []).append(transfer)
    return grouped


def representative_block(window_transfers: List[TransferRecord]) -> str:
    """Block of the latest transfer in a window, used as the window's end-of-period snapshot"""
    if not window_transfers:
        raise ValueError("Cannot pick a representative block for an empty window")
    return window_transfers[-1].block_number
