"""Configuration containers for the feed asset orchestrator."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar

DEFAULT_HEYGEN_AVATAR_ID = "DnDpLjqVDqOKVBhxJEn"
DEFAULT_HEYGEN_VOICE_ID = "sara"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(slots=True)
class FeedgenConfig:
    """Static configuration applied to every batch and reconciliation sweep."""

    env_prefix: ClassVar[str] = "FEEDGEN_"

    runs_dir: str = "runs"
    library_path: str = "library/assets.json"
    enable_mock_generation: bool = True
    request_delay_sec: float = 1.0
    request_timeout_sec: int = 60
    max_retries: int = 0
    openai_api_key: str | None = None
    openai_api_url: str | None = None
    openai_text_model: str = "gpt-4o-mini"
    openai_image_model: str = "dall-e-3"
    runway_api_key: str | None = None
    runway_api_url: str | None = None
    heygen_api_key: str | None = None
    heygen_api_url: str | None = None
    heygen_avatar_id: str = DEFAULT_HEYGEN_AVATAR_ID
    heygen_voice_id: str = DEFAULT_HEYGEN_VOICE_ID

    @classmethod
    def from_env(cls) -> "FeedgenConfig":
        """Create a config object populated from environment variables."""
        prefix = cls.env_prefix
        return cls(
            runs_dir=os.getenv(f"{prefix}RUNS_DIR", "runs"),
            library_path=os.getenv(f"{prefix}LIBRARY_PATH", "library/assets.json"),
            enable_mock_generation=os.getenv(f"{prefix}ENABLE_MOCKS", "true").lower() == "true",
            request_delay_sec=_env_float(f"{prefix}REQUEST_DELAY", 1.0),
            request_timeout_sec=_env_int(f"{prefix}REQUEST_TIMEOUT", 60),
            max_retries=max(0, _env_int(f"{prefix}MAX_RETRIES", 0)),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_api_url=os.getenv("OPENAI_API_URL"),
            openai_text_model=os.getenv("OPENAI_TEXT_MODEL", "gpt-4o-mini"),
            openai_image_model=os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3"),
            runway_api_key=os.getenv("RUNWAYML_API_KEY"),
            runway_api_url=os.getenv("RUNWAYML_API_URL"),
            heygen_api_key=os.getenv("HEYGEN_API_KEY"),
            heygen_api_url=os.getenv("HEYGEN_API_URL"),
            heygen_avatar_id=os.getenv("HEYGEN_AVATAR_ID", DEFAULT_HEYGEN_AVATAR_ID),
            heygen_voice_id=os.getenv("HEYGEN_VOICE_ID", DEFAULT_HEYGEN_VOICE_ID),
        )
