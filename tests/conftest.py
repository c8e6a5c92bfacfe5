"""Общие фабрики и фикстуры для тестов rebucket."""

from __future__ import annotations

from rebucket.models.clustering import ClusteringReport, ClusterSignature, CrashCluster
from rebucket.models.trace import CrashReport, StackFrame


def make_stack_frame(**overrides) -> StackFrame:
    """Фабрика StackFrame с разумными дефолтами."""
    defaults: dict = {
        "function": "main",
        "package": "main",
        "file": "/src/app/main.go",
        "line_number": 1,
    }
    defaults.update(overrides)
    return StackFrame.model_validate(defaults)


def make_crash_report(functions: list[str] | None = None, **overrides) -> CrashReport:
    """Фабрика CrashReport; ``functions`` — qualified-имена фреймов сверху вниз."""
    frames = []
    for i, qualified in enumerate(functions or []):
        package, _, function = qualified.rpartition(".")
        frames.append(
            make_stack_frame(function=function, package=package, line_number=i + 1)
        )
    defaults: dict = {
        "source": "crash.txt",
        "message": "runtime error: invalid memory address or nil pointer dereference",
        "frames": frames,
    }
    defaults.update(overrides)
    return CrashReport.model_validate(defaults)


def make_panic_text(
    message: str = "runtime error: index out of range [3] with length 3",
    calls: list[str] | None = None,
) -> str:
    """Сгенерировать текст Go panic со стеком из ``calls`` (сверху вниз)."""
    calls = calls if calls is not None else ["main.handler", "main.main"]
    lines = [f"panic: {message}", "", "goroutine 1 [running]:"]
    for i, call in enumerate(calls):
        lines.append(f"{call}(0xc000012345, 0x3)")
        lines.append(f"\t/src/app/main.go:{10 + i} +0x{i + 16:x}")
    lines.append("exit status 2")
    return "\n".join(lines[:-1]) + "\n\n" + lines[-1] + "\n"


def make_crash_cluster(**overrides) -> CrashCluster:
    """Фабрика CrashCluster с разумными дефолтами."""
    defaults: dict = {
        "cluster_id": "c1",
        "label": "main.handler",
        "signature": ClusterSignature(top_frame="main.handler", common_frames=["main.handler"]),
        "member_indices": [0, 1],
        "member_sources": ["crash-1.txt", "crash-2.txt"],
        "member_count": 2,
        "representative_index": 0,
        "example_message": "runtime error: index out of range",
    }
    defaults.update(overrides)
    return CrashCluster.model_validate(defaults)


def make_clustering_report(**overrides) -> ClusteringReport:
    """Фабрика ClusteringReport с разумными дефолтами."""
    defaults: dict = {
        "total_reports": 2,
        "cluster_count": 1,
        "clusters": [make_crash_cluster()],
        "unclustered_count": 0,
    }
    defaults.update(overrides)
    return ClusteringReport.model_validate(defaults)
