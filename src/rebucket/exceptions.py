"""Custom exception hierarchy for the rebucket package."""


class RebucketError(Exception):
    """Base exception for all rebucket errors."""


class ConfigurationError(RebucketError):
    """Missing or invalid configuration."""


class PanicParseError(RebucketError):
    """Panic text could not be parsed into a stack trace."""

    def __init__(self, reason: str, line: str | None = None) -> None:
        self.reason = reason
        self.line = line
        if line is None:
            super().__init__(reason)
        else:
            super().__init__(f"{reason}: {line!r}")


class ReportLoadError(RebucketError):
    """Crash report directory is missing or unreadable."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")
