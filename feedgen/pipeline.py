"""High-level facade wiring provider clients, the dispatcher and reconciliation."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import FeedgenConfig
from .dispatcher import BatchDispatcher
from .library import AssetLibrary, JsonFileAssetLibrary
from .reconcile import ReconciliationEngine
from .services.heygen import HeyGenClient
from .services.openai_client import OpenAIClient
from .services.runway import RunwayClient
from .types import AssetRecord, BatchResult, CatalogItem, GenerationConfig, Provider, RecoveryEntry
from .utils.run_logger import RunLogger


class FeedGenerator:
    """Entry point exposing batch generation and pending-asset reconciliation."""

    def __init__(
        self,
        config: FeedgenConfig | None = None,
        library: AssetLibrary | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or FeedgenConfig.from_env()
        self.logger = RunLogger(base_dir=self.config.runs_dir)
        self.library = library if library is not None else JsonFileAssetLibrary(self.config.library_path)

        # Clients are created once and shared by every batch and sweep.
        self.openai = OpenAIClient(
            api_key=self.config.openai_api_key,
            api_url=self.config.openai_api_url,
            text_model=self.config.openai_text_model,
            image_model=self.config.openai_image_model,
            use_mock=self.config.enable_mock_generation,
            timeout=self.config.request_timeout_sec,
        )
        self.runway = RunwayClient(
            api_key=self.config.runway_api_key,
            api_url=self.config.runway_api_url,
            use_mock=self.config.enable_mock_generation,
            timeout=self.config.request_timeout_sec,
        )
        self.heygen = HeyGenClient(
            api_key=self.config.heygen_api_key,
            api_url=self.config.heygen_api_url,
            avatar_id=self.config.heygen_avatar_id,
            voice_id=self.config.heygen_voice_id,
            use_mock=self.config.enable_mock_generation,
            timeout=self.config.request_timeout_sec,
        )

        self.dispatcher = BatchDispatcher(
            {
                Provider.OPENAI: self.openai,
                Provider.RUNWAY: self.runway,
                Provider.HEYGEN: self.heygen,
            },
            self.library,
            self.logger,
            delay_sec=self.config.request_delay_sec,
            max_retries=self.config.max_retries,
            sleep=sleep,
        )
        self.engine = ReconciliationEngine(self.library, self.heygen, self.logger)

    def dispatch(self, items: Sequence[CatalogItem], config: GenerationConfig) -> BatchResult:
        return self.dispatcher.dispatch(items, config)

    def reconcile(self, asset_id: str) -> Optional[AssetRecord]:
        return self.engine.reconcile(asset_id)

    def recover_all(self) -> List[RecoveryEntry]:
        return self.engine.recover_all()

    def pending(self) -> List[AssetRecord]:
        return self.engine.pending()

    def handle_webhook(self, payload: Dict[str, Any]) -> Optional[AssetRecord]:
        return self.engine.apply_webhook_event(payload)

    def enhance_instruction(self, instruction: str, item: CatalogItem | None = None) -> str:
        return self.openai.enhance_instruction(instruction, item)
