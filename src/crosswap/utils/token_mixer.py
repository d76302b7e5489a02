"""Interleave tokens from different chains.

Results are grouped by chain, then drawn round-robin so one busy chain cannot
crowd the others out of a limited result list.
"""

from typing import Callable, Optional, TypeVar

T = TypeVar("T")


def _group_by_chain(items: list[T], chain_of: Callable[[T], int]) -> dict[int, list[T]]:
    groups: dict[int, list[T]] = {}
    for item in items:
        groups.setdefault(chain_of(item), []).append(item)
    return groups


def _round_robin(queues: list[list[T]], limit: int) -> list[T]:
    mixed: list[T] = []
    positions = [0] * len(queues)
    while len(mixed) < limit:
        added = False
        for i, queue in enumerate(queues):
            if len(mixed) >= limit:
                break
            if positions[i] < len(queue):
                mixed.append(queue[positions[i]])
                positions[i] += 1
                added = True
        if not added:
            break
    return mixed


def mix_tokens_by_chain(
    items: list[T],
    limit: int,
    chain_of: Callable[[T], int] = lambda t: t.chain_id,
) -> list[T]:
    """Round-robin interleave items by chain, keeping each chain's order."""
    if not items or limit <= 0:
        return []
    groups = _group_by_chain(items, chain_of)
    return _round_robin(list(groups.values()), limit)


def mix_tokens_with_priority(
    items: list[T],
    limit: int,
    priority_chain_id: Optional[int],
    per_chain_cap: int,
    priority_chain_cap: int,
    chain_of: Callable[[T], int] = lambda t: t.chain_id,
) -> list[T]:
    """Balanced mixing for all-network listings.

    Each ordinary chain contributes at most per_chain_cap items and the
    priority chain at most priority_chain_cap. The priority chain leads each
    round-robin pass. Input order within a chain is preserved, so callers
    should pass already-ranked items.
    """
    if not items or limit <= 0:
        return []

    groups = _group_by_chain(items, chain_of)
    queues: list[list[T]] = []

    if priority_chain_id is not None and priority_chain_id in groups:
        queues.append(groups.pop(priority_chain_id)[:priority_chain_cap])

    for chain_items in groups.values():
        queues.append(chain_items[:per_chain_cap])

    return _round_robin(queues, limit)
