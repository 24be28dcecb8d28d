"""Pending-asset registry and reconciliation of asynchronous provider jobs."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import NormalizationError, ProviderError, ReconciliationMiss
from .library import AssetLibrary
from .normalizer import normalize_job, parse_pending_token
from .services.base import JobStatusSource
from .types import AssetRecord, AssetStatus, JobStatus, Provider, RecoveryEntry
from .utils.run_logger import RunLogger

VIDEO_ID_PATTERN = re.compile(r"video_id[:_\s]+(\w+)")
CALLBACK_PATTERN = re.compile(r"Callback: (feedgen_[^|\s]+)")

WEBHOOK_SUCCESS = "avatar_video.success"
WEBHOOK_FAIL = "avatar_video.fail"


def extract_job_id(record: AssetRecord) -> str:
    """Recover the provider job id for a pending record.

    The ``pending_<id>`` URL token wins; the ``video_id: <id>`` note in the
    description is only consulted for records that lack the token.
    """
    token = parse_pending_token(record.asset_url)
    if token:
        return token
    match = VIDEO_ID_PATTERN.search(record.description or "")
    if match:
        return match.group(1)
    raise ReconciliationMiss(record.id)


def extract_callback_id(record: AssetRecord) -> Optional[str]:
    match = CALLBACK_PATTERN.search(record.description or "")
    return match.group(1) if match else None


class ReconciliationEngine:
    """Resolves Processing records against the owning provider's job status.

    Every write goes through the library's compare-and-set update with
    ``expected_status=PROCESSING``, so Completed and Failed records are never
    touched and concurrent sweeps cannot regress a record.
    """

    def __init__(
        self,
        library: AssetLibrary,
        source: JobStatusSource,
        logger: Optional[RunLogger] = None,
        provider: Provider = Provider.HEYGEN,
    ) -> None:
        self._library = library
        self._source = source
        self._logger = logger
        self._provider = provider

    def pending(self) -> List[AssetRecord]:
        """Every record still waiting on a provider, oldest first."""
        return self._library.list_assets(status=AssetStatus.PROCESSING)

    def reconcile(self, asset_id: str) -> Optional[AssetRecord]:
        """Check one record's job and apply the transition.

        Returns the updated record, or ``None`` when nothing changed. A record
        without a recoverable job id falls back to :meth:`recover_all`.
        """
        record = self._library.get_asset(asset_id)
        if record.status is not AssetStatus.PROCESSING:
            print(f"[reconcile] asset={asset_id} already {record.status.value}; nothing to do")
            return None
        if record.source_provider is not self._provider:
            print(f"[reconcile] asset={asset_id} belongs to {record.source_provider.value}; skipping")
            return None

        try:
            job_id = extract_job_id(record)
        except ReconciliationMiss:
            print(f"[reconcile] asset={asset_id} has no job id; running bulk recovery")
            try:
                entries = self.recover_all()
            except ProviderError as exc:
                print(f"[reconcile] asset={asset_id} bulk recovery failed: {exc}")
                return None
            if any(entry.asset_id == asset_id and entry.updated for entry in entries):
                return self._library.get_asset(asset_id)
            return None

        raw = self._source.check_status(job_id)
        self._log(f"status-{job_id}", {"asset_id": asset_id, "job_id": job_id}, raw)
        job = normalize_job(raw)
        updated = self._apply(record, job)
        state = updated.status.value if updated else "unchanged"
        print(f"[reconcile] asset={asset_id} job={job_id} provider_status={job.status.value} -> {state}")
        return updated

    def recover_all(self) -> List[RecoveryEntry]:
        """List every provider job and apply each one to its matching pending record."""
        jobs = self._source.list_jobs()
        self._log("list-jobs", {"provider": self._provider.value}, jobs)

        by_job_id: Dict[str, AssetRecord] = {}
        by_callback: Dict[str, AssetRecord] = {}
        for record in self.pending():
            if record.source_provider is not self._provider:
                continue
            try:
                by_job_id[extract_job_id(record)] = record
            except ReconciliationMiss:
                pass
            callback_id = extract_callback_id(record)
            if callback_id:
                by_callback[callback_id] = record

        entries: List[RecoveryEntry] = []
        for raw in jobs:
            try:
                job = normalize_job(raw)
            except NormalizationError:
                job_id = raw.get("video_id") if isinstance(raw, dict) else None
                entries.append(RecoveryEntry(job_id=str(job_id or ""), updated=False))
                continue

            record = by_job_id.get(job.job_id)
            if record is None and job.callback_id:
                record = by_callback.get(job.callback_id)
            if record is None:
                entries.append(RecoveryEntry(job_id=job.job_id, updated=False))
                continue

            updated = self._apply(record, job)
            entries.append(
                RecoveryEntry(
                    job_id=job.job_id,
                    updated=updated is not None,
                    asset_id=record.id,
                    status=updated.status if updated else record.status,
                )
            )

        changed = sum(1 for entry in entries if entry.updated)
        print(f"[recover] {changed}/{len(entries)} provider jobs updated a pending asset")
        return entries

    def apply_webhook_event(self, payload: Dict[str, Any]) -> Optional[AssetRecord]:
        """Apply an ``avatar_video.success`` / ``avatar_video.fail`` notification."""
        if not isinstance(payload, dict):
            raise NormalizationError(self._provider.value, "webhook payload must be a JSON object")
        event_type = payload.get("event_type")
        data = payload.get("event_data") or {}
        if event_type not in {WEBHOOK_SUCCESS, WEBHOOK_FAIL} or not isinstance(data, dict):
            print(f"[webhook] ignoring event type {event_type!r}")
            return None

        job_id = data.get("video_id")
        if not job_id:
            raise NormalizationError(self._provider.value, "webhook event carries no video id")
        if event_type == WEBHOOK_SUCCESS:
            url = data.get("url") or data.get("video_url")
            status = AssetStatus.COMPLETED if url else AssetStatus.PROCESSING
            job = JobStatus(job_id=str(job_id), status=status, url=url, callback_id=data.get("callback_id"))
        else:
            message = data.get("msg") or data.get("message") or "HeyGen reported the video as failed"
            job = JobStatus(
                job_id=str(job_id),
                status=AssetStatus.FAILED,
                error_message=str(message),
                callback_id=data.get("callback_id"),
            )

        record = self._find_pending(job)
        if record is None:
            print(f"[webhook] no pending asset for job {job.job_id}")
            return None
        self._log(f"webhook-{job.job_id}", {"asset_id": record.id}, payload)
        return self._apply(record, job, share=False)

    def _find_pending(self, job: JobStatus) -> Optional[AssetRecord]:
        fallback = None
        for record in self.pending():
            if record.source_provider is not self._provider:
                continue
            try:
                if extract_job_id(record) == job.job_id:
                    return record
            except ReconciliationMiss:
                pass
            if job.callback_id and extract_callback_id(record) == job.callback_id:
                fallback = record
        return fallback

    def _apply(self, record: AssetRecord, job: JobStatus, share: bool = True) -> Optional[AssetRecord]:
        if job.status is AssetStatus.COMPLETED and job.url:
            url = self._share_url(job) if share else job.url
            return self._library.update_asset(
                record.id,
                url=url,
                status=AssetStatus.COMPLETED,
                thumbnail_url=job.gif_url,
                expected_status=AssetStatus.PROCESSING,
            )
        if job.status is AssetStatus.FAILED:
            return self._library.update_asset(
                record.id,
                status=AssetStatus.FAILED,
                error_message=job.error_message or "Provider reported the job as failed",
                expected_status=AssetStatus.PROCESSING,
            )
        return None

    def _share_url(self, job: JobStatus) -> str:
        """Prefer the permanent share link; the status URL expires."""
        try:
            shared = self._source.share_url(job.job_id)
        except ProviderError as exc:
            print(f"[reconcile] job={job.job_id} share link unavailable, keeping status URL: {exc}")
            return job.url
        return shared or job.url

    def _log(self, step: str, request: Any, response: Any) -> None:
        if not self._logger:
            return
        sweep_id = datetime.now(timezone.utc).strftime("reconcile-%Y%m%dT%H%M%S")
        self._logger.log_request(sweep_id, step, request)
        self._logger.log_response(sweep_id, step, response)
