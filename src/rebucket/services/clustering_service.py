"""Сервис кластеризации дубликатов crash-репортов по структуре стек-трейса.

Алгоритм (ReBucket):
1. Каждый репорт — последовательность идентификаторов фреймов
   от точки падения к корню.
2. Попарное расстояние — взвешенное выравнивание трейсов
   (см. ``rebucket.services.distance``), считается лениво через
   ``DistanceCache``: одна пара — одно вычисление за запуск.
3. Agglomerative clustering (complete linkage): на каждом шаге сливаются
   два ближайших кластера, если расстояние между самыми далёкими их
   членами строго меньше порога. Цикл останавливается, когда ни одна пара
   кластеров порог не проходит.
"""

from __future__ import annotations

import hashlib
import logging
import math
from collections.abc import Hashable, Sequence
from dataclasses import dataclass

import numpy as np
from scipy.cluster.hierarchy import fcluster, linkage

from rebucket.exceptions import ConfigurationError
from rebucket.models.clustering import (
    Cluster,
    ClusteringReport,
    ClusterSignature,
    CrashCluster,
)
from rebucket.models.trace import CrashReport, FrameKey
from rebucket.services.distance_cache import DistanceCache

logger = logging.getLogger(__name__)

CLUSTERING_METHODS = ("greedy", "scipy")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ClusteringConfig:
    """Параметры алгоритма кластеризации."""

    distance_threshold: float = 1.0
    recency_coefficient: float = 1.0
    offset_coefficient: float = 1.0

    frame_key: FrameKey = "qualified"
    method: str = "greedy"

    max_common_frames: int = 5
    max_label_length: int = 120


# ---------------------------------------------------------------------------
# Complete-linkage engine
# ---------------------------------------------------------------------------

def cluster_distance(a: list[int], b: list[int], cache: DistanceCache) -> float:
    """Complete linkage: максимальное попарное расстояние между членами кластеров."""
    return max(cache.distance(i, j) for i in a for j in b)


def _find_closest_pair(
    clusters: list[list[int]],
    cache: DistanceCache,
    distance_threshold: float,
) -> tuple[int, int, float] | None:
    """Найти ближайшую пару живых кластеров в пределах порога.

    При равных расстояниях побеждает первая найденная пара (``a < b``
    в порядке списка).
    """
    best: tuple[int, int, float] | None = None
    min_d = math.inf
    for a in range(len(clusters)):
        for b in range(a + 1, len(clusters)):
            d = cluster_distance(clusters[a], clusters[b], cache)
            if d < distance_threshold and d < min_d:
                min_d = d
                best = (a, b, d)
    return best


def _greedy_complete_linkage(
    clusters: list[list[int]],
    cache: DistanceCache,
    distance_threshold: float,
) -> None:
    """Сливать ближайшие кластеры, пока есть пара под порогом (in-place)."""
    while True:
        closest = _find_closest_pair(clusters, cache, distance_threshold)
        if closest is None:
            return

        a, b, d = closest
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Слияние кластеров %s + %s (d=%.4f)",
                sorted(clusters[a]),
                sorted(clusters[b]),
                d,
            )
        clusters[a].extend(clusters[b])
        # Swap-remove: порядок кластеров не имеет значения
        clusters[b] = clusters[-1]
        clusters.pop()


def _scipy_complete_linkage(
    n: int,
    cache: DistanceCache,
    distance_threshold: float,
) -> list[list[int]]:
    """Та же кластеризация через scipy: полный dendrogram + срез под порогом.

    Считает все N*(N-1)/2 расстояний. Разбиение совпадает с жадным
    циклом, если среди кандидатов на слияние нет равных расстояний.
    """
    condensed = np.array(
        [cache.distance(i, j) for i in range(n) for j in range(i + 1, n)],
        dtype=np.float64,
    )
    linkage_matrix = linkage(condensed, method="complete")
    # fcluster сливает при d <= t, нам нужно строго d < threshold
    labels = fcluster(
        linkage_matrix,
        t=np.nextafter(distance_threshold, -np.inf),
        criterion="distance",
    )

    groups: dict[int, list[int]] = {}
    for idx, label in enumerate(labels.tolist()):
        groups.setdefault(label, []).append(idx)
    return list(groups.values())


def cluster_traces(
    traces: Sequence[Sequence[Hashable]],
    distance_threshold: float,
    recency_coefficient: float,
    offset_coefficient: float,
    *,
    method: str = "greedy",
    cache: DistanceCache | None = None,
) -> list[Cluster]:
    """Сгруппировать трейсы в кластеры дубликатов.

    Args:
        traces: Трейсы репортов; кластеры ссылаются на них по индексу.
        distance_threshold: Кластеры сливаются, если complete-linkage
            расстояние строго меньше порога.
        recency_coefficient: Затухание веса фрейма с глубиной.
        offset_coefficient: Штраф за разную глубину совпавших фреймов.
        method: ``"greedy"`` или ``"scipy"``.
        cache: Кэш расстояний для этого запуска. По умолчанию создаётся
            новый; передавать свой имеет смысл только для инспекции.

    Returns:
        Разбиение индексов ``0..N-1``. Порядок кластеров и индексов
        внутри кластера не гарантируется.
    """
    if method not in CLUSTERING_METHODS:
        raise ValueError(
            f"Unknown clustering method {method!r}, expected one of {CLUSTERING_METHODS}"
        )

    if cache is None:
        cache = DistanceCache(traces, recency_coefficient, offset_coefficient)

    n = len(traces)
    if n < 2:
        return [Cluster(indices=[i]) for i in range(n)]

    if method == "scipy":
        groups = _scipy_complete_linkage(n, cache, distance_threshold)
    else:
        groups = [[i] for i in range(n)]
        _greedy_complete_linkage(groups, cache, distance_threshold)

    logger.debug(
        "Кэш расстояний: %d пар, %d попаданий, %d вычислений",
        len(cache),
        cache.hits,
        cache.misses,
    )
    return [Cluster(indices=group) for group in groups]


# ---------------------------------------------------------------------------
# ClusteringService
# ---------------------------------------------------------------------------

class ClusteringService:
    """Группирует crash-репорты в кластеры по структуре стек-трейса.

    Обёртка над ``cluster_traces``: извлекает трейсы из ``CrashReport``,
    запускает кластеризацию и собирает ``ClusteringReport`` для вывода.
    """

    def __init__(self, config: ClusteringConfig | None = None) -> None:
        self._config = config or ClusteringConfig()
        if self._config.method not in CLUSTERING_METHODS:
            raise ConfigurationError(
                f"Неизвестный метод кластеризации: {self._config.method!r}"
            )
        if self._config.recency_coefficient < 0 or self._config.offset_coefficient < 0:
            raise ConfigurationError("Коэффициенты recency/offset должны быть >= 0")

    def cluster_reports(self, reports: list[CrashReport]) -> ClusteringReport:
        """Кластеризовать список репортов и вернуть ``ClusteringReport``."""
        config = self._config
        if not reports:
            return ClusteringReport(
                total_reports=0,
                cluster_count=0,
                distance_threshold=config.distance_threshold,
                recency_coefficient=config.recency_coefficient,
                offset_coefficient=config.offset_coefficient,
            )

        traces = [report.trace(config.frame_key) for report in reports]
        cache = DistanceCache(
            traces,
            config.recency_coefficient,
            config.offset_coefficient,
        )
        clusters = cluster_traces(
            traces,
            config.distance_threshold,
            config.recency_coefficient,
            config.offset_coefficient,
            method=config.method,
            cache=cache,
        )

        result_clusters = [
            self._build_cluster(cluster.indices, reports, traces)
            for cluster in clusters
        ]
        # Сортировка: самые крупные кластеры первыми, при равенстве — по ID
        result_clusters.sort(key=lambda c: (-c.member_count, c.cluster_id))

        unclustered = sum(1 for c in result_clusters if c.member_count == 1)

        logger.info(
            "Сгруппировано %d репортов в %d кластеров (%d одиночных), "
            "вычислено расстояний: %d",
            len(reports),
            len(result_clusters),
            unclustered,
            len(cache),
        )

        return ClusteringReport(
            total_reports=len(reports),
            cluster_count=len(result_clusters),
            clusters=result_clusters,
            unclustered_count=unclustered,
            distance_threshold=config.distance_threshold,
            recency_coefficient=config.recency_coefficient,
            offset_coefficient=config.offset_coefficient,
            distance_computations=len(cache),
        )

    # --- Cluster building ---

    def _build_cluster(
        self,
        indices: list[int],
        reports: list[CrashReport],
        traces: list[list[str]],
    ) -> CrashCluster:
        """Создать CrashCluster из группы индексов."""
        member_indices = sorted(indices)

        # Представитель: репорт с самым длинным трейсом, при равенстве — меньший индекс
        representative_index = max(
            member_indices,
            key=lambda i: (len(traces[i]), -i),
        )
        representative = reports[representative_index]

        common = _common_prefix([traces[i] for i in member_indices])
        signature = ClusterSignature(
            top_frame=traces[representative_index][0] if traces[representative_index] else None,
            common_frames=common[: self._config.max_common_frames],
        )

        return CrashCluster(
            cluster_id=self._generate_cluster_id(
                signature,
                [reports[i].source for i in member_indices],
            ),
            label=self._generate_label(signature, representative),
            signature=signature,
            member_indices=member_indices,
            member_sources=[reports[i].source for i in member_indices],
            member_count=len(member_indices),
            representative_index=representative_index,
            example_message=representative.message,
        )

    def _generate_label(
        self,
        signature: ClusterSignature,
        representative: CrashReport,
    ) -> str:
        """Сгенерировать метку кластера: верхний фрейм, иначе сообщение."""
        if signature.top_frame:
            return _truncate(signature.top_frame, self._config.max_label_length)

        if representative.message:
            first_line = representative.message.strip().split("\n", 1)[0]
            return _truncate(first_line, self._config.max_label_length)

        return f"Репорт: {representative.source or '<без источника>'}"

    @staticmethod
    def _generate_cluster_id(
        signature: ClusterSignature,
        member_sources: list[str],
    ) -> str:
        """Детерминированный ID кластера на основе SHA-256 хеша.

        В хеш входят общие фреймы и источники всех членов, поэтому
        разные кластеры с одинаковым верхом трейса не сталкиваются.
        """
        components = [
            signature.top_frame or "",
            "|".join(signature.common_frames),
            "|".join(sorted(member_sources)),
        ]
        raw = "\n".join(components)
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _common_prefix(traces: list[list[str]]) -> list[str]:
    """Общий префикс (от точки падения) всех трейсов группы."""
    if not traces:
        return []
    prefix: list[str] = []
    for frames in zip(*traces):
        if any(frame != frames[0] for frame in frames[1:]):
            break
        prefix.append(frames[0])
    return prefix


def _truncate(text: str, max_length: int) -> str:
    if len(text) > max_length:
        return text[: max_length - 3] + "..."
    return text
