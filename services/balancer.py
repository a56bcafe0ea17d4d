"""Deterministic round-robin interleave across category pools."""

from __future__ import annotations

from typing import Any, Callable, List, Mapping, Optional, Sequence, TypeVar

T = TypeVar("T")


class CategoryBalancer:
    """Merge per-category pools so no single category monopolizes a page.

    The canonical sequence visits the non-empty pools in a fixed order (sorted
    pool keys) and takes the head of each pool per round. Round ``r`` therefore
    contains item ``r`` of every pool longer than ``r``. Because the shape of
    each round depends only on pool lengths, position ``offset`` can be located
    arithmetically, and page N never replays pages 1..N-1.
    """

    def __init__(self, order_key: Optional[Callable[[Any], Any]] = None) -> None:
        self._order_key = order_key

    def ordered_pools(self, pools: Mapping[Any, Sequence[T]]) -> List[Sequence[T]]:
        keys = sorted(pools, key=self._order_key) if self._order_key else sorted(pools)
        return [pools[key] for key in keys if pools[key]]

    def total(self, pools: Mapping[Any, Sequence[T]]) -> int:
        return sum(len(pool) for pool in pools.values())

    def interleave(
        self,
        pools: Mapping[Any, Sequence[T]],
        target_count: int,
        offset: int = 0,
    ) -> List[T]:
        """Return positions ``[offset, offset + target_count)`` of the canonical interleave."""
        if target_count <= 0 or offset < 0:
            return []
        active = self.ordered_pools(pools)
        if not active:
            return []

        round_index = 0
        position = 0
        remaining = offset
        # Skip whole spans of rounds whose width (number of live pools) is constant.
        while active:
            width = len(active)
            shortest = min(len(pool) for pool in active)
            span_items = (shortest - round_index) * width
            if remaining < span_items:
                round_index += remaining // width
                position = remaining % width
                break
            remaining -= span_items
            round_index = shortest
            active = [pool for pool in active if len(pool) > round_index]
        if not active:
            return []

        result: List[T] = []
        while active and len(result) < target_count:
            for pool in active[position:]:
                result.append(pool[round_index])
                if len(result) >= target_count:
                    break
            position = 0
            round_index += 1
            active = [pool for pool in active if len(pool) > round_index]
        return result
