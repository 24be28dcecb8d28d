"""Utilities for keeping per-batch request and response logs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .files import ensure_dir, write_json


@dataclass(slots=True)
class StepLogPaths:
    """Convenience container with derived log file paths."""

    request_path: Path
    response_path: Path


class RunLogger:
    """Persists provider requests and responses under ``runs/<batch_id>``."""

    def __init__(self, base_dir: str | Path = "runs") -> None:
        self._base_dir = ensure_dir(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def step_paths(self, batch_id: str, step_name: str) -> StepLogPaths:
        """Return the paths used for logging a specific step."""
        run_root = ensure_dir(self._base_dir / batch_id)
        request_path = run_root / f"{step_name}-request.json"
        response_path = run_root / f"{step_name}-response.json"
        return StepLogPaths(request_path=request_path, response_path=response_path)

    def log_request(self, batch_id: str, step_name: str, request: Any) -> None:
        """Persist the outbound request payload."""
        paths = self.step_paths(batch_id, step_name)
        write_json(paths.request_path, request)

    def log_response(self, batch_id: str, step_name: str, response: Any) -> None:
        """Persist the structured response."""
        paths = self.step_paths(batch_id, step_name)
        write_json(paths.response_path, response)
