"""Core data models shared by the dispatcher, normalizer and reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class AssetStatus(str, Enum):
    """Lifecycle states of a generated asset."""

    COMPLETED = "completed"
    PROCESSING = "processing"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not AssetStatus.PROCESSING


class ContentType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    TEXT = "text"


class Provider(str, Enum):
    """Generation backends the dispatcher can route to."""

    OPENAI = "openai"
    RUNWAY = "runway"
    HEYGEN = "heygen"


@dataclass(slots=True)
class CatalogItem:
    """Catalog entry as handed over by the inventory collaborator."""

    id: str
    name: str
    description: str = ""
    images: List[str] = field(default_factory=list)

    @property
    def primary_image(self) -> Optional[str]:
        return next((image for image in self.images if image), None)


@dataclass(slots=True)
class FormatSpec:
    """Concrete generation parameters derived for one channel/format."""

    width: Optional[int] = None
    height: Optional[int] = None
    aspect_ratio: Optional[str] = None
    duration_sec: Optional[int] = None
    max_tokens: Optional[int] = None


@dataclass(slots=True)
class GenerationConfig:
    """Per-batch generation settings chosen by the operator."""

    channel: str
    content_type: ContentType
    format: Optional[str] = None
    orientation: Optional[str] = None
    instruction: Optional[str] = None


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """Immutable request for one catalog item."""

    item_id: str
    item_name: str
    item_description: str
    channel: str
    content_type: ContentType
    format_spec: FormatSpec
    instruction: str
    format: Optional[str] = None
    reference_image_url: Optional[str] = None


@dataclass(slots=True)
class AssetResult:
    """Provider-agnostic outcome of a single generation call."""

    status: AssetStatus
    asset_url: str = ""
    content: Optional[str] = None
    error_message: Optional[str] = None
    job_id: Optional[str] = None
    raw_payload: Any = None


@dataclass(slots=True)
class AssetRecord:
    """Persisted asset entity."""

    id: str
    item_id: str
    content_type: ContentType
    source_provider: Provider
    status: AssetStatus
    asset_url: str
    instruction: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    content: Optional[str] = None
    channel: Optional[str] = None
    format: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    error_message: Optional[str] = None
    thumbnail_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "content_type": self.content_type.value,
            "source_provider": self.source_provider.value,
            "status": self.status.value,
            "asset_url": self.asset_url,
            "instruction": self.instruction,
            "created_at": self.created_at.isoformat(),
            "content": self.content,
            "channel": self.channel,
            "format": self.format,
            "title": self.title,
            "description": self.description,
            "error_message": self.error_message,
            "thumbnail_url": self.thumbnail_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssetRecord":
        return cls(
            id=data["id"],
            item_id=data["item_id"],
            content_type=ContentType(data["content_type"]),
            source_provider=Provider(data["source_provider"]),
            status=AssetStatus(data["status"]),
            asset_url=data.get("asset_url") or "",
            instruction=data.get("instruction") or "",
            created_at=datetime.fromisoformat(data["created_at"]),
            content=data.get("content"),
            channel=data.get("channel"),
            format=data.get("format"),
            title=data.get("title"),
            description=data.get("description"),
            error_message=data.get("error_message"),
            thumbnail_url=data.get("thumbnail_url"),
        )


@dataclass(slots=True)
class BatchEntry:
    """One slot of a batch result; ``error`` is set for failed items."""

    record: AssetRecord
    error: Optional[str] = None


@dataclass(slots=True)
class BatchResult:
    """Ordered per-item outcome of a dispatch call."""

    batch_id: str
    entries: List[BatchEntry] = field(default_factory=list)

    @property
    def records(self) -> List[AssetRecord]:
        return [entry.record for entry in self.entries]

    @property
    def succeeded(self) -> int:
        return sum(1 for entry in self.entries if entry.record.status is not AssetStatus.FAILED)

    @property
    def failed(self) -> int:
        return sum(1 for entry in self.entries if entry.record.status is AssetStatus.FAILED)

    @property
    def pending(self) -> int:
        return sum(1 for entry in self.entries if entry.record.status is AssetStatus.PROCESSING)


@dataclass(slots=True)
class JobStatus:
    """Normalized view of an asynchronous provider job."""

    job_id: str
    status: AssetStatus
    url: Optional[str] = None
    error_message: Optional[str] = None
    callback_id: Optional[str] = None
    gif_url: Optional[str] = None


@dataclass(slots=True)
class RecoveryEntry:
    """Outcome of applying one listed provider job during bulk recovery."""

    job_id: str
    updated: bool
    asset_id: Optional[str] = None
    status: Optional[AssetStatus] = None
