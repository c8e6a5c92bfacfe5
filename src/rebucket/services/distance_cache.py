"""Кэш попарных расстояний в рамках одного запуска кластеризации."""

from __future__ import annotations

from collections.abc import Hashable, Sequence

from rebucket.services.distance import pair_distance


class DistanceCache:
    """Lookup-or-compute кэш ``pair_distance`` по индексам репортов.

    Ключ — неупорядоченная пара индексов, поэтому каждая пара считается
    не более одного раза. Кэш принадлежит одному запуску: индексы ничего
    не значат вне того списка трейсов, с которым он создан.
    """

    def __init__(
        self,
        traces: Sequence[Sequence[Hashable]],
        recency_coefficient: float,
        offset_coefficient: float,
    ) -> None:
        self._traces = traces
        self._recency = recency_coefficient
        self._offset = offset_coefficient
        self._distances: dict[tuple[int, int], float] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def _key(i: int, j: int) -> tuple[int, int]:
        return (i, j) if i < j else (j, i)

    def distance(self, i: int, j: int) -> float:
        """Расстояние между репортами ``i`` и ``j`` (считается при первом запросе)."""
        key = self._key(i, j)
        cached = self._distances.get(key)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        d = pair_distance(
            self._traces[key[0]],
            self._traces[key[1]],
            self._recency,
            self._offset,
        )
        self._distances[key] = d
        return d

    def __len__(self) -> int:
        return len(self._distances)

    def __contains__(self, pair: object) -> bool:
        if not isinstance(pair, tuple) or len(pair) != 2:
            return False
        return self._key(*pair) in self._distances
