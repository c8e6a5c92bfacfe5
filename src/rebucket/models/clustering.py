"""Pydantic-модели для результатов кластеризации crash-репортов."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Cluster(BaseModel):
    """Группа индексов репортов, признанных дубликатами.

    Порядок индексов не канонический.
    """

    indices: list[int] = Field(default_factory=list)


class ClusterSignature(BaseModel):
    """Сигнатура кластера — общие признаки, объединяющие репорты в группу."""

    top_frame: str | None = None
    common_frames: list[str] = Field(default_factory=list)


class CrashCluster(BaseModel):
    """Кластер — группа репортов, упавших по одной причине."""

    cluster_id: str
    label: str
    signature: ClusterSignature
    member_indices: list[int] = Field(default_factory=list)
    member_sources: list[str] = Field(default_factory=list)
    member_count: int = 0
    representative_index: int | None = None
    example_message: str | None = None


class ClusteringReport(BaseModel):
    """Результат кластеризации всех репортов одного запуска."""

    total_reports: int
    cluster_count: int
    clusters: list[CrashCluster] = Field(default_factory=list)
    unclustered_count: int = 0
    distance_threshold: float | None = None
    recency_coefficient: float | None = None
    offset_coefficient: float | None = None
    distance_computations: int = 0
