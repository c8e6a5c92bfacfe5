"""Pydantic-модели стек-фреймов и crash-репортов."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

FrameKey = Literal["name", "qualified"]


class StackFrame(BaseModel):
    """Один фрейм стек-трейса.

    Для выравнивания трейсов важна только идентичность фрейма (см. ``key``),
    файл и номер строки сохраняются для вывода.
    """

    model_config = ConfigDict(frozen=True)

    function: str
    package: str = ""
    file: str | None = None
    line_number: int | None = None

    @property
    def qualified_name(self) -> str:
        if not self.package:
            return self.function
        return f"{self.package}.{self.function}"

    def key(self, frame_key: FrameKey = "qualified") -> str:
        """Идентификатор фрейма, по которому сравниваются трейсы."""
        if frame_key == "name":
            return self.function
        return self.qualified_name


class CrashReport(BaseModel):
    """Crash-репорт: разобранный стек-трейс и его источник.

    Фреймы упорядочены от точки падения (индекс 0, последний вызов)
    к корневому вызывающему (последний индекс).
    """

    source: str = ""
    message: str | None = None
    frames: list[StackFrame] = Field(default_factory=list)

    def trace(self, frame_key: FrameKey = "qualified") -> list[str]:
        """Последовательность идентификаторов фреймов для кластеризации."""
        return [frame.key(frame_key) for frame in self.frames]
