"""Custom exceptions for pwrtop."""


class PwrtopError(Exception):
    """Base exception for pwrtop errors."""


class ConfigError(PwrtopError):
    """Raised when startup configuration is invalid."""


class DisplayUnavailableError(PwrtopError):
    """Raised when no interactive terminal is available."""

    def __init__(self, message: str = "pwrtop needs an interactive terminal") -> None:
        super().__init__(message)
