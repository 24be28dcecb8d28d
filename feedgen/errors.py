"""Exception taxonomy for the orchestration core."""

from __future__ import annotations

from typing import Optional


class ProviderError(RuntimeError):
    """Transport or HTTP failure raised by a provider adapter."""

    def __init__(self, provider: str, cause: object, *, timed_out: bool = False) -> None:
        self.provider = provider
        self.cause = cause
        self.timed_out = timed_out
        verb = "timed out" if timed_out else "failed"
        super().__init__(f"{provider} request {verb}: {cause}")


class NormalizationError(ValueError):
    """A raw provider payload could not be inspected at all."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider} response could not be normalized: {message}")


class ReconciliationMiss(LookupError):
    """No provider job identifier could be recovered from an asset record."""

    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"No job id found for asset {asset_id}")


class EmptyBatchError(ValueError):
    """Raised when a batch is dispatched without any items."""


class AssetNotFoundError(KeyError):
    """Raised by the asset library for unknown ids."""

    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(asset_id)

    def __str__(self) -> str:
        return f"Asset not found: {self.asset_id}"


class InvalidTransitionError(ValueError):
    """Raised when a write would move a record out of a terminal state."""

    def __init__(self, asset_id: str, current: str, requested: Optional[str]) -> None:
        self.asset_id = asset_id
        self.current = current
        self.requested = requested
        super().__init__(f"Asset {asset_id} cannot move from {current} to {requested}")
