from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    REGISTRY_UNAVAILABLE = "REGISTRY_UNAVAILABLE"
    REGISTRY_RESPONSE_INVALID = "REGISTRY_RESPONSE_INVALID"
    DATASET_INVALID = "DATASET_INVALID"


class PluginRegistryError(Exception):
    """Failure that the collection pipeline cannot recover from locally."""

    def __init__(self, code: ErrorCode, message: str, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"
