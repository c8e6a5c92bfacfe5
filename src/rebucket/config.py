"""Конфигурация приложения, загружаемая из переменных окружения."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Конфигурация приложения rebucket.

    Все значения задаются через переменные окружения с префиксом ``REBUCKET_``
    или через файл ``.env`` в рабочей директории.

    Коэффициенты по умолчанию (1, 1, 1) не откалиброваны. Подбор по размеченному
    корпусу дубликатов остаётся внешней задачей.
    """

    model_config = SettingsConfigDict(
        env_prefix="REBUCKET_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    traces_dir: str = Field(default=".", description="Директория с файлами стек-трейсов")
    file_pattern: str = Field(default="*", description="Glob-шаблон файлов внутри traces_dir")

    distance_threshold: float = Field(
        default=1.0, ge=0.0,
        description="Порог расстояния: кластеры сливаются, если complete-linkage расстояние строго меньше порога",
    )
    recency_coefficient: float = Field(
        default=1.0, ge=0.0,
        description="Коэффициент затухания веса фрейма по удалённости от точки падения",
    )
    offset_coefficient: float = Field(
        default=1.0, ge=0.0,
        description="Коэффициент штрафа за разную глубину совпавших фреймов в двух трейсах",
    )
    frame_key: Literal["name", "qualified"] = Field(
        default="qualified",
        description="Идентификатор фрейма для сравнения: имя функции или package.function",
    )
    clustering_method: Literal["greedy", "scipy"] = Field(
        default="greedy",
        description="Реализация complete-linkage: жадный цикл слияний или scipy.cluster.hierarchy",
    )

    log_level: str = Field(default="INFO", description="Уровень логирования")
