"""Тесты парсера Go panic."""

from __future__ import annotations

import pytest

from rebucket.exceptions import PanicParseError
from rebucket.parsing.panic_parser import parse_panic
from conftest import make_panic_text

_NIL_MAP_PANIC = """\
panic: assignment to entry in nil map

goroutine 17 [running]:
github.com/acme/shop/store.(*DB).Put(0x0, {0x6a1b2c, 0x5}, {0x5f3e40, 0xc00001c0a8})
\t/home/ci/shop/store/db.go:88 +0x65
main.main.func1()
\t/home/ci/shop/main.go:31 +0x3f
created by main.main in goroutine 1
\t/home/ci/shop/main.go:29 +0x8a

goroutine 1 [chan receive]:
main.main()
\t/home/ci/shop/main.go:40 +0x105
exit status 2
"""


def test_parses_message_and_frames() -> None:
    report = parse_panic(_NIL_MAP_PANIC, source="nil-map.txt")

    assert report.source == "nil-map.txt"
    assert report.message == "assignment to entry in nil map"
    assert [f.qualified_name for f in report.frames] == [
        "github.com/acme/shop/store.(*DB).Put",
        "main.main.func1",
        "main.main",
    ]


def test_splits_package_and_function() -> None:
    frame = parse_panic(_NIL_MAP_PANIC).frames[0]

    assert frame.package == "github.com/acme/shop/store"
    assert frame.function == "(*DB).Put"
    assert frame.file == "/home/ci/shop/store/db.go"
    assert frame.line_number == 88


def test_created_by_ends_the_stack() -> None:
    report = parse_panic(_NIL_MAP_PANIC)

    created_by = report.frames[-1]
    assert created_by.package == "main"
    assert created_by.function == "main"
    assert created_by.line_number == 29
    assert len(report.frames) == 3


def test_created_by_without_goroutine_suffix() -> None:
    text = (
        "panic: boom\n\n"
        "goroutine 5 [running]:\n"
        "main.worker()\n"
        "\t/src/main.go:12 +0x1d\n"
        "created by net/http.(*Server).Serve\n"
        "\t/usr/local/go/src/net/http/server.go:3086 +0x5cb\n"
    )

    frames = parse_panic(text).frames

    assert frames[-1].package == "net/http"
    assert frames[-1].function == "(*Server).Serve"


def test_middle_dot_in_function_name_is_replaced() -> None:
    text = (
        "panic: old closure\n\n"
        "goroutine 1 [running]:\n"
        "main.func·001()\n"
        "\t/src/main.go:7 +0x20\n"
    )

    frame = parse_panic(text).frames[0]

    assert frame.function == "func.001"
    assert frame.package == "main"


def test_only_first_running_goroutine_is_parsed() -> None:
    text = make_panic_text(calls=["main.handler", "main.serve", "main.main"])

    report = parse_panic(text)

    assert [f.key("name") for f in report.frames] == ["handler", "serve", "main"]
    assert report.message == "runtime error: index out of range [3] with length 3"


def test_leading_whitespace_and_crlf_are_tolerated() -> None:
    text = "\n\n" + make_panic_text(calls=["main.main"]).replace("\n", "\r\n")

    report = parse_panic(text)

    assert len(report.frames) == 1
    assert report.frames[0].file == "/src/app/main.go"
    assert report.message.endswith("length 3")


def test_stack_without_trailing_blank_line_is_accepted() -> None:
    text = "panic: x\n\ngoroutine 1 [running]:\nmain.main()\n\t/src/main.go:3 +0x1"

    assert len(parse_panic(text).frames) == 1


@pytest.mark.parametrize(
    "text, reason",
    [
        ("fatal error: all goroutines are asleep", "no panic prefix"),
        ("panic: x\n\ngoroutine 1 [chan receive]:\nmain.main()\n\t/src/main.go:3", "no running goroutine"),
        ("panic: x\n\ngoroutine 1 [running]:\nmain.main()", "unpaired"),
        ("panic: x\n\ngoroutine 1 [running]:\nmain.main()\n/src/main.go:3", "no tab"),
        ("panic: x\n\ngoroutine 1 [running]:\nmain.main()\n\t/src/main.go", "no line number"),
        ("panic: x\n\ngoroutine 1 [running]:\nmain.main()\n\t/src/main.go:abc", "no line number"),
        ("panic: x\n\ngoroutine 1 [running]:\nmain.main\n\t/src/main.go:3", "no call"),
    ],
)
def test_malformed_panics_raise(text, reason) -> None:
    with pytest.raises(PanicParseError, match=reason):
        parse_panic(text)
