from __future__ import annotations


class CleanmarkError(RuntimeError):
    def __init__(self, code: str, message: str, *, index: int | None = None) -> None:
        if index is not None:
            message = f"Item {index}: {message}"
        super().__init__(message)
        self.code = code
        self.index = index


class UsageError(CleanmarkError):
    """Raised before the pipeline when the caller supplied unusable input."""


class ConversionError(CleanmarkError):
    """Raised when a pipeline stage fails on otherwise valid input."""


__all__ = ["CleanmarkError", "ConversionError", "UsageError"]
