"""Maps provider-specific payloads onto :class:`AssetResult` and :class:`JobStatus`."""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional

from .errors import NormalizationError
from .types import AssetResult, AssetStatus, ContentType, JobStatus, Provider

PENDING_PREFIX = "pending_"
FAILED_PLACEHOLDER = "failed"

_MISSING = object()

OPENAI_TEXT_PATHS = (
    "choices.0.message.content",
    "result",
    "data.result",
    "output",
)
OPENAI_IMAGE_PATHS = (
    "data.0.url",
    "data.url",
    "url",
    "result",
    "image_url",
    "asset_url",
)
RUNWAY_OUTPUT_PATHS = (
    "output.0",
    "artifacts.0.url",
    "url",
    "output",
)
HEYGEN_JOB_ID_PATHS = (
    "data.video_id",
    "video_id",
    "data.id",
)
HEYGEN_VIDEO_URL_PATHS = (
    "video_url",
    "url",
    "data.video_url",
)

# Keys accepted by the breadth-first fallback walk.
_URL_KEYS = {"url", "image_url", "video_url", "asset_url"}
_TEXT_KEYS = {"content", "text", "result"}

RUNWAY_FAILED_STATUSES = {"FAILED", "CANCELLED", "CANCELED"}
HEYGEN_COMPLETED_STATUSES = {"completed"}
HEYGEN_FAILED_STATUSES = {"failed", "error"}


def make_pending_token(job_id: str) -> str:
    """Encode an async job id as a placeholder asset URL."""
    return f"{PENDING_PREFIX}{job_id}"


def parse_pending_token(value: Optional[str]) -> Optional[str]:
    """Return the job id embedded in a pending token, or None."""
    if not isinstance(value, str) or not value.startswith(PENDING_PREFIX):
        return None
    job_id = value[len(PENDING_PREFIX):].strip()
    return job_id or None


def map_job_status(value: Any) -> AssetStatus:
    """HeyGen job status string -> asset status; unknown strings stay Processing."""
    normalized = str(value or "").strip().lower()
    if normalized in HEYGEN_COMPLETED_STATUSES:
        return AssetStatus.COMPLETED
    if normalized in HEYGEN_FAILED_STATUSES:
        return AssetStatus.FAILED
    return AssetStatus.PROCESSING


def normalize(provider, raw: Any, content_type) -> AssetResult:
    """Turn one raw adapter payload into a provider-agnostic result.

    A synchronous provider that yields no locatable output produces a Failed
    result, never a Completed one with an empty URL. Missing output and
    present-but-empty output carry different error messages.
    """
    provider_name = getattr(provider, "value", provider)
    try:
        source = Provider(provider_name)
    except ValueError as exc:
        raise NormalizationError(str(provider_name), "unknown provider") from exc
    if not isinstance(raw, dict):
        raise NormalizationError(source.value, f"expected a JSON object, got {type(raw).__name__}")
    try:
        kind = ContentType(getattr(content_type, "value", content_type))
    except ValueError as exc:
        raise NormalizationError(source.value, f"unknown content type {content_type!r}") from exc

    if source is Provider.OPENAI:
        if kind is ContentType.TEXT:
            return _normalize_text(source, raw)
        b64 = _lookup(raw, "data.0.b64_json")
        if _lookup(raw, "data.0.url") in (_MISSING, None) and isinstance(b64, str) and b64:
            return AssetResult(
                status=AssetStatus.COMPLETED,
                asset_url=f"data:image/png;base64,{b64}",
                raw_payload=raw,
            )
        return _normalize_url(source, raw, kind, OPENAI_IMAGE_PATHS)
    if source is Provider.RUNWAY:
        return _normalize_runway(raw, kind)
    return _normalize_heygen(raw)


def normalize_job(raw: Any) -> JobStatus:
    """Normalize a HeyGen status response or one ``video.list`` entry."""
    if not isinstance(raw, dict):
        raise NormalizationError(Provider.HEYGEN.value, f"expected a JSON object, got {type(raw).__name__}")
    entry = raw.get("data") if isinstance(raw.get("data"), dict) else raw

    job_id = entry.get("video_id") or entry.get("id")
    if not job_id:
        raise NormalizationError(Provider.HEYGEN.value, "job entry carries no video id")

    status = map_job_status(entry.get("status"))
    url = _first_text(entry, HEYGEN_VIDEO_URL_PATHS)
    gif_url = _first_text(entry, ("gif_url",))
    error_message = None
    if status is AssetStatus.FAILED:
        error_message = _error_text(entry.get("error")) or "HeyGen reported the video as failed"
    elif status is AssetStatus.COMPLETED and not url:
        # A completed job without a URL is not usable yet.
        status = AssetStatus.PROCESSING

    callback_id = entry.get("callback_id")
    return JobStatus(
        job_id=str(job_id),
        status=status,
        url=url or None,
        error_message=error_message,
        callback_id=str(callback_id) if callback_id else None,
        gif_url=gif_url,
    )


def _normalize_text(source: Provider, raw: Dict[str, Any]) -> AssetResult:
    value = _first_present(raw, OPENAI_TEXT_PATHS)
    if value is _MISSING:
        value = _walk_for(raw, _TEXT_KEYS)
    if value is _MISSING or not isinstance(value, str):
        return _failed(f"{source.value} returned no usable text output", raw)
    if not value.strip():
        return _failed(f"{source.value} returned an empty text result", raw)
    return AssetResult(status=AssetStatus.COMPLETED, content=value.strip(), raw_payload=raw)


def _normalize_url(
    source: Provider,
    raw: Dict[str, Any],
    kind: ContentType,
    paths: Iterable[str],
) -> AssetResult:
    value = _first_present(raw, paths)
    if value is _MISSING:
        value = _walk_for(raw, _URL_KEYS)
    if value is _MISSING or not isinstance(value, str):
        return _failed(f"{source.value} returned no usable {kind.value} output", raw)
    if not value.strip():
        return _failed(f"{source.value} returned an empty {kind.value} URL", raw)
    return AssetResult(status=AssetStatus.COMPLETED, asset_url=value.strip(), raw_payload=raw)


def _normalize_runway(raw: Dict[str, Any], kind: ContentType) -> AssetResult:
    status = str(raw.get("status") or "").strip().upper()
    if status in RUNWAY_FAILED_STATUSES:
        reason = raw.get("failure") or raw.get("failureCode") or raw.get("error")
        message = _error_text(reason) or "Runway task failed"
        return _failed(f"runway task failed: {message}", raw, job_id=str(raw["id"]) if raw.get("id") else None)
    result = _normalize_url(Provider.RUNWAY, raw, kind, RUNWAY_OUTPUT_PATHS)
    result.job_id = str(raw["id"]) if raw.get("id") else None
    return result


def _normalize_heygen(raw: Dict[str, Any]) -> AssetResult:
    error = _error_text(raw.get("error"))
    if error:
        return _failed(f"heygen rejected the job: {error}", raw)
    job_id = _first_present(raw, HEYGEN_JOB_ID_PATHS)
    if job_id is _MISSING or not str(job_id).strip():
        return _failed("heygen returned no job id", raw)
    job_id = str(job_id).strip()
    return AssetResult(
        status=AssetStatus.PROCESSING,
        asset_url=make_pending_token(job_id),
        job_id=job_id,
        raw_payload=raw,
    )


def _failed(message: str, raw: Any, job_id: Optional[str] = None) -> AssetResult:
    return AssetResult(
        status=AssetStatus.FAILED,
        asset_url=FAILED_PLACEHOLDER,
        error_message=message,
        job_id=job_id,
        raw_payload=raw,
    )


def _error_text(error: Any) -> Optional[str]:
    if not error:
        return None
    if isinstance(error, dict):
        message = error.get("message") or error.get("detail") or error.get("code")
        return str(message) if message else None
    return str(error)


def _lookup(payload: Any, path: str) -> Any:
    current = payload
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return _MISSING
            current = current[part]
        elif isinstance(current, list):
            if not part.isdigit() or int(part) >= len(current):
                return _MISSING
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _first_present(payload: Dict[str, Any], paths: Iterable[str]) -> Any:
    for path in paths:
        value = _lookup(payload, path)
        if value is not _MISSING and value is not None and not isinstance(value, (dict, list)):
            return value
    return _MISSING


def _first_text(payload: Dict[str, Any], paths: Iterable[str]) -> Optional[str]:
    for path in paths:
        value = _lookup(payload, path)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _walk_for(payload: Dict[str, Any], keys: set) -> Any:
    for container in _candidate_containers(payload):
        for key, value in container.items():
            if key.lower() in keys and isinstance(value, str):
                return value
    return _MISSING


def _candidate_containers(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    containers: List[Dict[str, Any]] = []
    seen: set[int] = set()
    queue: Deque[Any] = deque([response])
    while queue:
        item = queue.popleft()
        if isinstance(item, dict):
            identifier = id(item)
            if identifier in seen:
                continue
            seen.add(identifier)
            containers.append(item)
            queue.extend(item.values())
        elif isinstance(item, list):
            queue.extend(item)
    return containers
