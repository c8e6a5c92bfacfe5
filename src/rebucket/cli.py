"""Точка входа CLI для группировки crash-репортов rebucket."""

from __future__ import annotations

import argparse
import logging
import sys

from rebucket import __version__

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rebucket",
        description="Группировка дубликатов crash-репортов по схожести стек-трейсов (ReBucket)",
    )
    parser.add_argument(
        "-d",
        "--dir",
        dest="traces_dir",
        default=None,
        help="Директория со стек-трейсами (переопределяет REBUCKET_TRACES_DIR)",
    )
    parser.add_argument(
        "--pattern",
        default=None,
        help="Glob-шаблон файлов (переопределяет REBUCKET_FILE_PATTERN)",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Порог расстояния для слияния (переопределяет REBUCKET_DISTANCE_THRESHOLD)",
    )
    parser.add_argument(
        "--recency",
        type=float,
        default=None,
        help="Коэффициент затухания по глубине (переопределяет REBUCKET_RECENCY_COEFFICIENT)",
    )
    parser.add_argument(
        "--offset",
        type=float,
        default=None,
        help="Коэффициент штрафа смещения (переопределяет REBUCKET_OFFSET_COEFFICIENT)",
    )
    parser.add_argument(
        "--frame-key",
        choices=["name", "qualified"],
        default=None,
        help="Идентификатор фрейма для сравнения (переопределяет REBUCKET_FRAME_KEY)",
    )
    parser.add_argument(
        "--method",
        choices=["greedy", "scipy"],
        default=None,
        help="Реализация complete linkage (переопределяет REBUCKET_CLUSTERING_METHOD)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Уровень логирования (переопределяет REBUCKET_LOG_LEVEL)",
    )
    parser.add_argument(
        "--output-format",
        choices=["text", "json"],
        default="text",
        help="Формат вывода (по умолчанию: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"rebucket {__version__}",
    )
    return parser


_OVERRIDES = {
    "traces_dir": "traces_dir",
    "pattern": "file_pattern",
    "threshold": "distance_threshold",
    "recency": "recency_coefficient",
    "offset": "offset_coefficient",
    "frame_key": "frame_key",
    "method": "clustering_method",
}


def run(args: argparse.Namespace) -> int:
    """Собрать зависимости и запустить группировку. Возвращает код выхода."""
    # Отложенные импорты — чтобы --help работал быстро
    from pydantic import ValidationError

    from rebucket.config import Settings
    from rebucket.exceptions import ConfigurationError, RebucketError
    from rebucket.logging_config import setup_logging
    from rebucket.services.clustering_service import ClusteringConfig, ClusteringService
    from rebucket.services.report_loader import load_reports

    # 1. Загрузка настроек
    try:
        overrides: dict[str, object] = {
            field: getattr(args, arg)
            for arg, field in _OVERRIDES.items()
            if getattr(args, arg) is not None
        }
        settings = Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        print(
            f"Ошибка конфигурации: {exc}\n\n"
            f"Параметры задаются флагами CLI или переменными окружения REBUCKET_*.",
            file=sys.stderr,
        )
        return 2

    # 2. Настройка логирования
    log_level = args.log_level or settings.log_level
    setup_logging(log_level)

    # 3. Загрузка и кластеризация
    try:
        loaded = load_reports(settings.traces_dir, settings.file_pattern)

        service = ClusteringService(
            ClusteringConfig(
                distance_threshold=settings.distance_threshold,
                recency_coefficient=settings.recency_coefficient,
                offset_coefficient=settings.offset_coefficient,
                frame_key=settings.frame_key,
                method=settings.clustering_method,
            )
        )
        report = service.cluster_reports(loaded.reports)
    except ConfigurationError as exc:
        logger.error("Ошибка конфигурации: %s", exc)
        return 2
    except RebucketError as exc:
        logger.error("Ошибка: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Прервано пользователем")
        return 130

    # 4. Вывод отчёта
    if args.output_format == "json":
        import json
        from dataclasses import asdict

        output = {
            "clustering_report": report.model_dump(),
            "skipped_files": [asdict(s) for s in loaded.skipped],
        }
        print(json.dumps(output, indent=2, ensure_ascii=False, default=str))
    else:
        _print_clustering_report(report)

    return 0


def _print_clustering_report(report: ClusteringReport) -> None:  # noqa: F821
    """Вывод отчёта кластеризации в stdout."""

    print(
        f"=== Кластеры crash-репортов "
        f"({report.cluster_count} уникальных проблем из {report.total_reports} репортов) ==="
    )
    print()

    for i, cluster in enumerate(report.clusters, 1):
        cluster_lines = [
            f"Кластер #{i} ({cluster.member_count} репортов)",
        ]
        if cluster.signature.top_frame:
            cluster_lines.append(f"Верхний фрейм: {cluster.signature.top_frame}")
        if cluster.example_message:
            msg = _normalize_single_line(cluster.example_message)
            if len(msg) > 200:
                msg = msg[:200] + "..."
            cluster_lines.append(f"Пример: {msg}")
        cluster_lines.append("Файлы:")
        cluster_lines.extend(f"  {source}" for source in cluster.member_sources)

        for line in _render_box(cluster_lines):
            print(line)
        print()


def _normalize_single_line(value: str) -> str:
    """Схлопнуть переводы строк/табуляцию в одну строку для рамочного вывода."""
    return " ".join(value.replace("\t", " ").split())


def _render_box(lines: list[str]) -> list[str]:
    """Отрендерить список строк в Unicode-рамку."""
    if not lines:
        return []

    width = max(len(line) for line in lines)
    top = f"╔{'═' * (width + 2)}╗"
    bottom = f"╚{'═' * (width + 2)}╝"
    body = [f"║ {line.ljust(width)} ║" for line in lines]

    return [top, *body, bottom]


def main() -> None:
    """Синхронная точка входа для CLI."""
    parser = build_parser()
    args = parser.parse_args()
    exit_code = run(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
