"""Asset library sink: persistence boundary for generated asset records."""

from __future__ import annotations

import json
import threading
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from .errors import AssetNotFoundError, InvalidTransitionError
from .normalizer import PENDING_PREFIX
from .types import AssetRecord, AssetStatus, ContentType, Provider
from .utils.files import atomic_write, read_json

INVALID_URL_MARKERS = {"undefined", "null"}


class AssetLibrary(Protocol):
    """Atomic per-id storage used by the dispatcher and reconciliation engine."""

    def create_asset(self, record: AssetRecord) -> str:
        ...

    def get_asset(self, asset_id: str) -> AssetRecord:
        ...

    def update_asset(
        self,
        asset_id: str,
        *,
        url: Optional[str] = None,
        status: Optional[AssetStatus] = None,
        error_message: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        expected_status: Optional[AssetStatus] = None,
    ) -> Optional[AssetRecord]:
        ...

    def list_assets(
        self,
        status: Optional[AssetStatus] = None,
        source_provider: Optional[Provider] = None,
    ) -> List[AssetRecord]:
        ...


def validate_for_saving(record: AssetRecord) -> None:
    """Reject records whose URL cannot be shown to a user.

    Text assets are checked for content instead of a URL.
    """
    if record.content_type is ContentType.TEXT:
        if not (record.content or "").strip():
            raise ValueError(f"Text asset for item {record.item_id} has no content to save.")
        return
    url = (record.asset_url or "").strip()
    if not url:
        raise ValueError(f"Asset for item {record.item_id} has no URL.")
    if url.startswith(PENDING_PREFIX):
        raise ValueError(f"Asset for item {record.item_id} is still being generated.")
    if url.lower() in INVALID_URL_MARKERS:
        raise ValueError(f"Asset for item {record.item_id} has an invalid URL: {url}")


class InMemoryAssetLibrary:
    """Dictionary-backed library with compare-and-set updates."""

    def __init__(self) -> None:
        self._records: Dict[str, AssetRecord] = {}
        self._lock = threading.Lock()

    def create_asset(self, record: AssetRecord) -> str:
        with self._lock:
            self._refresh()
            if not record.id:
                record = replace(record, id=uuid.uuid4().hex)
            self._records[record.id] = replace(record)
            self._after_write()
            return record.id

    def get_asset(self, asset_id: str) -> AssetRecord:
        with self._lock:
            self._refresh()
            record = self._records.get(asset_id)
            if record is None:
                raise AssetNotFoundError(asset_id)
            return replace(record)

    def update_asset(
        self,
        asset_id: str,
        *,
        url: Optional[str] = None,
        status: Optional[AssetStatus] = None,
        error_message: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        expected_status: Optional[AssetStatus] = None,
    ) -> Optional[AssetRecord]:
        """Apply a partial update.

        Returns ``None`` without writing when ``expected_status`` does not
        match the stored status. Moving a Completed or Failed record to any
        other status raises :class:`InvalidTransitionError`.
        """
        with self._lock:
            self._refresh()
            current = self._records.get(asset_id)
            if current is None:
                raise AssetNotFoundError(asset_id)
            if expected_status is not None and current.status is not expected_status:
                return None
            if status is not None and current.status.is_terminal and status is not current.status:
                raise InvalidTransitionError(asset_id, current.status.value, status.value)

            updated = replace(current)
            if url is not None:
                updated.asset_url = url
            if status is not None:
                updated.status = status
            if error_message is not None:
                updated.error_message = error_message
            if thumbnail_url is not None:
                updated.thumbnail_url = thumbnail_url
            self._records[asset_id] = updated
            self._after_write()
            return replace(updated)

    def list_assets(
        self,
        status: Optional[AssetStatus] = None,
        source_provider: Optional[Provider] = None,
    ) -> List[AssetRecord]:
        with self._lock:
            self._refresh()
            records = [
                replace(record)
                for record in self._records.values()
                if (status is None or record.status is status)
                and (source_provider is None or record.source_provider is source_provider)
            ]
        records.sort(key=lambda record: record.created_at)
        return records

    def _refresh(self) -> None:
        """Hook invoked under the lock before every read or mutation."""

    def _after_write(self) -> None:
        """Hook invoked under the lock after every mutation."""


class JsonFileAssetLibrary(InMemoryAssetLibrary):
    """Library persisted to a single JSON document, rewritten atomically on each change.

    The document is re-read before every operation and merged by id, so a
    write from another instance (a recovery sweep running beside a batch, say)
    is seen before the compare-and-set check and is not overwritten.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self._path = Path(path)
        self._refresh()

    @property
    def path(self) -> Path:
        return self._path

    def _refresh(self) -> None:
        for item in read_json(self._path, default=[]) or []:
            record = AssetRecord.from_dict(item)
            self._records[record.id] = record

    def _after_write(self) -> None:
        payload = [record.to_dict() for record in self._records.values()]
        atomic_write(self._path, json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8"))
