"""Загрузка crash-репортов из директории с файлами стек-трейсов."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from rebucket.exceptions import PanicParseError, ReportLoadError
from rebucket.models.trace import CrashReport
from rebucket.parsing.panic_parser import parse_panic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedFile:
    """Файл, который не удалось прочитать или разобрать."""

    path: str
    reason: str


@dataclass
class LoadResult:
    """Результат загрузки: разобранные репорты и пропущенные файлы."""

    reports: list[CrashReport] = field(default_factory=list)
    skipped: list[SkippedFile] = field(default_factory=list)


def load_reports(directory: str | Path, pattern: str = "*") -> LoadResult:
    """Прочитать и разобрать все файлы ``directory/pattern``.

    Нечитаемые и неразбираемые файлы пропускаются с WARNING в логе
    и попадают в ``LoadResult.skipped``.

    Raises:
        ReportLoadError: Директория не существует.
    """
    root = Path(directory)
    if not root.is_dir():
        raise ReportLoadError(str(root), "директория не найдена")

    result = LoadResult()
    for path in sorted(root.glob(pattern)):
        if not path.is_file():
            continue

        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Ошибка чтения %s: %s", path, exc)
            result.skipped.append(SkippedFile(path=str(path), reason=str(exc)))
            continue

        try:
            report = parse_panic(text, source=str(path))
        except PanicParseError as exc:
            logger.warning("Ошибка разбора паники %s: %s", path, exc)
            result.skipped.append(SkippedFile(path=str(path), reason=str(exc)))
            continue

        result.reports.append(report)

    logger.info(
        "Загружено %d репортов из %s (пропущено: %d)",
        len(result.reports),
        root,
        len(result.skipped),
    )
    return result
