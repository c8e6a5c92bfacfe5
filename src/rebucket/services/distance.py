"""Попарное расстояние между двумя стек-трейсами (ReBucket).

Взвешенное выравнивание по схеме LCS:
- совпадение фреймов ближе к точке падения весит больше
  (затухание ``exp(-c * min(i, j))``);
- совпадение на разной глубине в двух трейсах штрафуется
  (``exp(-o * |i - j|)``).

Счёт нормируется на максимально достижимый (полное совпадение без смещения
на длине более короткого трейса), так что расстояние лежит в [0, 1]
и не зависит от длины трейсов.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence

import numpy as np


def match_weights(
    n1: int,
    n2: int,
    recency_coefficient: float,
    offset_coefficient: float,
) -> np.ndarray:
    """Матрица весов совпадения для позиций (0-based) двух трейсов."""
    pos1 = np.arange(n1, dtype=np.float64)[:, np.newaxis]
    pos2 = np.arange(n2, dtype=np.float64)[np.newaxis, :]
    return np.exp(-recency_coefficient * np.minimum(pos1, pos2)) * np.exp(
        -offset_coefficient * np.abs(pos1 - pos2)
    )


def pair_distance(
    c1: Sequence[Hashable],
    c2: Sequence[Hashable],
    recency_coefficient: float,
    offset_coefficient: float,
) -> float:
    """Расстояние между трейсами ``c1`` и ``c2`` в диапазоне [0, 1], 0 для идентичных.

    Если хотя бы один трейс пуст, возвращается 1.
    """
    n1 = len(c1)
    n2 = len(c2)
    if n1 == 0 or n2 == 0:
        return 1.0

    weights = match_weights(n1, n2, recency_coefficient, offset_coefficient)
    matches = np.array([[a == b for b in c2] for a in c1], dtype=bool)
    gains = np.where(matches, weights, 0.0).tolist()

    # M[i][j] построчно: prev хранит строку i-1, cur строку i
    prev = [0.0] * (n2 + 1)
    for i in range(1, n1 + 1):
        row_gains = gains[i - 1]
        cur = [0.0] * (n2 + 1)
        for j in range(1, n2 + 1):
            cur[j] = max(prev[j - 1] + row_gains[j - 1], prev[j], cur[j - 1])
        prev = cur

    # Диагональ весов равна exp(-c * k); суммируем в том же
    # порядке, что и DP, чтобы идентичные трейсы давали ровно 0.
    sig = sum(weights.diagonal().tolist())

    res = prev[n2] / sig
    return float(np.clip(1.0 - res, 0.0, 1.0))
