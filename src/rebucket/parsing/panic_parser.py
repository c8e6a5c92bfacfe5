"""Парсер вывода Go panic в ``CrashReport``.

Ожидаемый формат::

    panic: runtime error: index out of range

    goroutine 1 [running]:
    main.handler(0xc000010000, 0x3)
    	/src/app/main.go:42 +0x1d
    main.main()
    	/src/app/main.go:17 +0x25
    created by net/http.(*Server).Serve
    	/usr/local/go/src/net/http/server.go:3086 +0x5cb

Разбирается только стек горутины, упавшей первой (``[running]``).
Фреймы — пары строк «вызов / таб + файл:строка» до пустой строки
или до ``created by``.
"""

from __future__ import annotations

import re

from rebucket.exceptions import PanicParseError
from rebucket.models.trace import CrashReport, StackFrame

_PANIC_PREFIX = "panic: "
_CREATED_BY_PREFIX = "created by "

_GOROUTINE_RUNNING_RE = re.compile(r"^goroutine \d+ .*\[running\]:$")

# Go >= 1.21: "created by main.main in goroutine 1"
_IN_GOROUTINE_RE = re.compile(r" in goroutine \d+$")

# "\t/path/file.go:42 +0x1d" → file, line
_LOCATION_RE = re.compile(r"^\t(?P<file>.*):(?P<line>\d+)(?:\s.*)?$")


def parse_panic(text: str, source: str = "") -> CrashReport:
    """Разобрать текст паники и вернуть ``CrashReport``.

    Raises:
        PanicParseError: Текст не похож на Go panic или стек повреждён.
    """
    lines = text.replace("\r\n", "\n").strip().split("\n")

    first = lines[0]
    if not first.startswith(_PANIC_PREFIX):
        raise PanicParseError("invalid line (no panic prefix)", first)
    message = first[len(_PANIC_PREFIX):]

    i = 1
    while i < len(lines) and not _GOROUTINE_RUNNING_RE.match(lines[i].rstrip()):
        i += 1
    if i >= len(lines):
        raise PanicParseError("no running goroutine found")
    i += 1

    frames: list[StackFrame] = []
    while i < len(lines):
        call_line = lines[i].rstrip()
        if not call_line:
            break

        created_by = call_line.startswith(_CREATED_BY_PREFIX)
        if created_by:
            call_line = _IN_GOROUTINE_RE.sub("", call_line[len(_CREATED_BY_PREFIX):])

        i += 1
        if i >= len(lines):
            raise PanicParseError("invalid line (unpaired)", call_line)

        frames.append(_parse_frame(call_line, lines[i].rstrip(), created_by))
        i += 1
        if created_by:
            break

    return CrashReport(source=source, message=message, frames=frames)


def _parse_frame(call_line: str, location_line: str, created_by: bool) -> StackFrame:
    """Разобрать пару строк «вызов + расположение» в ``StackFrame``."""
    name = call_line
    paren = name.rfind("(")
    if paren == -1 and not created_by:
        raise PanicParseError("invalid line (no call)", call_line)
    # "(*Server).Serve" без аргументов: скобка не в конце, это часть имени
    if paren != -1 and (not created_by or name.endswith(")")):
        name = name[:paren]

    package = ""
    last_slash = name.rfind("/")
    if last_slash >= 0:
        package = name[: last_slash + 1]
        name = name[last_slash + 1:]
    period = name.find(".")
    if period >= 0:
        package += name[:period]
        name = name[period + 1:]
    name = name.replace("·", ".")

    if not location_line.startswith("\t"):
        raise PanicParseError("invalid line (no tab)", location_line)
    m = _LOCATION_RE.match(location_line)
    if m is None:
        raise PanicParseError("invalid line (no line number)", location_line)

    return StackFrame(
        function=name,
        package=package,
        file=m.group("file"),
        line_number=int(m.group("line")),
    )
