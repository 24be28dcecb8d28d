"""Batch dispatcher: one generation request per catalog item, issued sequentially."""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from .errors import EmptyBatchError, ProviderError
from .formats import coerce_content_type, normalize_key, resolve
from .library import AssetLibrary, validate_for_saving
from .normalizer import FAILED_PLACEHOLDER, normalize
from .services.base import ProviderAdapter
from .types import (
    AssetRecord,
    AssetResult,
    AssetStatus,
    BatchEntry,
    BatchResult,
    CatalogItem,
    ContentType,
    GenerationConfig,
    GenerationRequest,
    Provider,
)
from .utils.run_logger import RunLogger

AVATAR_VIDEO_CHANNELS = {"youtube", "tiktok"}


def select_provider(content_type: ContentType, channel: Optional[str], has_image: bool) -> Provider:
    """Fixed routing rule from content type, channel and reference availability."""
    if content_type is ContentType.VIDEO:
        if normalize_key(channel) in AVATAR_VIDEO_CHANNELS:
            return Provider.HEYGEN
        return Provider.RUNWAY
    if content_type is ContentType.IMAGE:
        return Provider.RUNWAY if has_image else Provider.OPENAI
    return Provider.OPENAI


class BatchDispatcher:
    """Fans a batch out to provider adapters one item at a time.

    Items are processed in input order with ``delay_sec`` between provider
    calls. A failure on one item becomes a Failed entry for that item and
    never stops the remaining items.
    """

    def __init__(
        self,
        adapters: Mapping[Provider, ProviderAdapter],
        library: AssetLibrary,
        logger: Optional[RunLogger] = None,
        *,
        delay_sec: float = 1.0,
        max_retries: int = 0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._adapters = dict(adapters)
        self._library = library
        self._logger = logger
        self._delay_sec = max(0.0, delay_sec)
        self._max_retries = max(0, max_retries)
        self._sleep = sleep

    def dispatch(self, items: Sequence[CatalogItem], config: GenerationConfig) -> BatchResult:
        """Generate one asset per item and return the ordered batch result."""
        items = list(items)
        if not items:
            raise EmptyBatchError("No catalog items selected for generation.")

        batch = BatchResult(batch_id=self._new_batch_id())
        total = len(items)
        for index, item in enumerate(items, start=1):
            if index > 1:
                self._sleep(self._delay_sec)
            entry = self._process_item(batch.batch_id, index, item, config)
            batch.entries.append(entry)
            print(
                f"[dispatch] {index}/{total} item={item.id} "
                f"provider={entry.record.source_provider.value} status={entry.record.status.value}"
            )

        print(
            f"[dispatch] batch {batch.batch_id} finished: {batch.succeeded} succeeded, "
            f"{batch.failed} failed, {batch.pending} pending"
        )
        return batch

    def _process_item(
        self,
        batch_id: str,
        index: int,
        item: CatalogItem,
        config: GenerationConfig,
    ) -> BatchEntry:
        step = f"{index:03d}-{item.id}"
        content_type = coerce_content_type(config.content_type)
        reference = item.primary_image
        provider = select_provider(content_type, config.channel, bool(reference))
        raw: Any = None
        request: Optional[GenerationRequest] = None
        try:
            request = self._build_request(item, config, content_type, reference)
            if self._logger:
                self._logger.log_request(batch_id, step, _request_snapshot(provider, request))
            adapter = self._adapters.get(provider)
            if adapter is None:
                raise ProviderError(provider.value, "no adapter configured")
            raw = self._submit(adapter, request)
            result = normalize(provider, raw, content_type)
            record = self._build_record(item, config, content_type, provider, request, result)
            if record.status is AssetStatus.COMPLETED:
                validate_for_saving(record)
            if record.status is not AssetStatus.FAILED:
                record.id = self._library.create_asset(record)
        except Exception as exc:  # per-item isolation boundary
            message = str(exc) if isinstance(exc, ProviderError) else f"Generation failed: {exc}"
            record = self._failed_record(item, config, content_type, provider, request, message)
            if self._logger:
                self._logger.log_response(batch_id, step, {"error": message, "raw": raw})
            print(f"[dispatch] item={item.id} failed: {message}")
            return BatchEntry(record=record, error=message)

        if self._logger:
            self._logger.log_response(batch_id, step, {"record": record.to_dict(), "raw": raw})
        return BatchEntry(record=record, error=record.error_message)

    def _submit(self, adapter: ProviderAdapter, request: GenerationRequest) -> Dict[str, Any]:
        attempt = 0
        while True:
            attempt += 1
            try:
                return adapter.submit(request)
            except ProviderError as exc:
                if attempt > self._max_retries:
                    raise
                print(f"[dispatch] {adapter.name} attempt {attempt} failed, retrying: {exc}")
                self._sleep(self._delay_sec)

    @staticmethod
    def _build_request(
        item: CatalogItem,
        config: GenerationConfig,
        content_type: ContentType,
        reference: Optional[str],
    ) -> GenerationRequest:
        resolved = resolve(
            config.channel,
            content_type,
            config.format,
            item.name,
            orientation=config.orientation,
            instruction=config.instruction,
        )
        return GenerationRequest(
            item_id=item.id,
            item_name=item.name,
            item_description=item.description or "",
            channel=config.channel,
            content_type=content_type,
            format_spec=resolved.format_spec,
            instruction=resolved.instruction,
            format=config.format,
            reference_image_url=reference,
        )

    @staticmethod
    def _build_record(
        item: CatalogItem,
        config: GenerationConfig,
        content_type: ContentType,
        provider: Provider,
        request: GenerationRequest,
        result: AssetResult,
    ) -> AssetRecord:
        return AssetRecord(
            id=uuid.uuid4().hex,
            item_id=item.id,
            content_type=content_type,
            source_provider=provider,
            status=result.status,
            asset_url=result.asset_url,
            instruction=request.instruction,
            content=result.content,
            channel=config.channel,
            format=config.format,
            title=_title(item, config, content_type),
            description=_describe(item, provider, result),
            error_message=result.error_message,
        )

    @staticmethod
    def _failed_record(
        item: CatalogItem,
        config: GenerationConfig,
        content_type: ContentType,
        provider: Provider,
        request: Optional[GenerationRequest],
        message: str,
    ) -> AssetRecord:
        return AssetRecord(
            id=uuid.uuid4().hex,
            item_id=item.id,
            content_type=content_type,
            source_provider=provider,
            status=AssetStatus.FAILED,
            asset_url=FAILED_PLACEHOLDER,
            instruction=request.instruction if request else (config.instruction or ""),
            channel=config.channel,
            format=config.format,
            title=_title(item, config, content_type),
            error_message=message,
        )

    @staticmethod
    def _new_batch_id() -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        return f"{stamp}-{uuid.uuid4().hex[:6]}"


def _title(item: CatalogItem, config: GenerationConfig, content_type: ContentType) -> str:
    return f"{item.name} - {config.channel} {content_type.value}"


def _describe(item: CatalogItem, provider: Provider, result: AssetResult) -> str:
    if provider is Provider.HEYGEN and result.job_id:
        callback_id = None
        if isinstance(result.raw_payload, dict):
            callback_id = result.raw_payload.get("callback_id")
        description = f"HeyGen avatar video for {item.name} | video_id: {result.job_id}"
        if callback_id:
            description += f" | Callback: {callback_id}"
        return description
    return f"{provider.value} {result.status.value} asset for {item.name}"


def _request_snapshot(provider: Provider, request: GenerationRequest) -> Dict[str, Any]:
    spec = request.format_spec
    return {
        "provider": provider.value,
        "item_id": request.item_id,
        "item_name": request.item_name,
        "channel": request.channel,
        "content_type": request.content_type.value,
        "format": request.format,
        "format_spec": {
            "width": spec.width,
            "height": spec.height,
            "aspect_ratio": spec.aspect_ratio,
            "duration_sec": spec.duration_sec,
            "max_tokens": spec.max_tokens,
        },
        "instruction": request.instruction,
        "reference_image_url": request.reference_image_url,
    }
