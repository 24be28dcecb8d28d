"""Tests for pending-asset reconciliation and bulk recovery."""

from __future__ import annotations

import unittest

from feedgen.errors import AssetNotFoundError, ProviderError, ReconciliationMiss
from feedgen.library import InMemoryAssetLibrary
from feedgen.reconcile import ReconciliationEngine, extract_callback_id, extract_job_id
from feedgen.types import AssetRecord, AssetStatus, ContentType, Provider


class FakeJobSource:
    """Stands in for the HeyGen status endpoints."""

    name = "heygen"

    def __init__(self, statuses=None, jobs=None, shares=None, list_error=None) -> None:
        self.statuses = statuses or {}
        self.jobs = jobs or []
        self.shares = shares or {}
        self.list_error = list_error
        self.checked: list[str] = []
        self.list_calls = 0

    def check_status(self, job_id: str) -> dict:
        self.checked.append(job_id)
        outcome = self.statuses[job_id]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def list_jobs(self) -> list[dict]:
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return list(self.jobs)

    def share_url(self, job_id: str):
        outcome = self.shares.get(job_id)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _pending(asset_id: str, url: str = "", description: str = "", **overrides) -> AssetRecord:
    values = dict(
        id=asset_id,
        item_id=f"item-{asset_id}",
        content_type=ContentType.VIDEO,
        source_provider=Provider.HEYGEN,
        status=AssetStatus.PROCESSING,
        asset_url=url,
        instruction="Present the product",
        description=description,
    )
    values.update(overrides)
    return AssetRecord(**values)


def _status(job_id: str, status: str, url: str | None = None, **extra) -> dict:
    data = {"id": job_id, "status": status, "video_url": url}
    data.update(extra)
    return {"code": 100, "data": data}


class ExtractJobIdTest(unittest.TestCase):
    def test_pending_token(self) -> None:
        for job_id in ("abc123", "Z", "42", "f00dBEEF"):
            with self.subTest(job_id=job_id):
                self.assertEqual(extract_job_id(_pending("a1", url=f"pending_{job_id}")), job_id)

    def test_token_wins_over_description(self) -> None:
        record = _pending("a1", url="pending_fromurl", description="video_id: fromdescription")

        self.assertEqual(extract_job_id(record), "fromurl")

    def test_description_fallback(self) -> None:
        record = _pending("a1", url="https://placeholder", description="HeyGen avatar video | video_id: legacy42 | x")

        self.assertEqual(extract_job_id(record), "legacy42")

    def test_callback_id(self) -> None:
        record = _pending("a1", description="HeyGen avatar video | Callback: feedgen_sku-1_1700000000000")

        self.assertEqual(extract_callback_id(record), "feedgen_sku-1_1700000000000")
        self.assertIsNone(extract_callback_id(_pending("a2")))

    def test_miss(self) -> None:
        with self.assertRaises(ReconciliationMiss):
            extract_job_id(_pending("a1", url="", description="no identifiers here"))


class ReconcileTest(unittest.TestCase):
    def setUp(self) -> None:
        self.library = InMemoryAssetLibrary()

    def _engine(self, source: FakeJobSource) -> ReconciliationEngine:
        return ReconciliationEngine(self.library, source)

    def test_round_trip_to_completed(self) -> None:
        self.library.create_asset(_pending("a1", url="pending_abc123"))
        source = FakeJobSource(statuses={"abc123": _status("abc123", "completed", "X")})

        updated = self._engine(source).reconcile("a1")

        self.assertIs(updated.status, AssetStatus.COMPLETED)
        self.assertEqual(updated.asset_url, "X")
        self.assertEqual(source.checked, ["abc123"])
        self.assertIs(self.library.get_asset("a1").status, AssetStatus.COMPLETED)

    def test_status_payload_with_plain_url_key(self) -> None:
        self.library.create_asset(_pending("a1", url="pending_abc123"))
        source = FakeJobSource(statuses={"abc123": {"data": {"id": "abc123", "status": "completed", "url": "X"}}})

        updated = self._engine(source).reconcile("a1")

        self.assertIs(updated.status, AssetStatus.COMPLETED)
        self.assertEqual(updated.asset_url, "X")
        self.assertEqual(self.library.get_asset("a1").asset_url, "X")

    def test_completed_job_uses_share_link(self) -> None:
        self.library.create_asset(_pending("a1", url="pending_abc123"))
        source = FakeJobSource(
            statuses={
                "abc123": _status(
                    "abc123",
                    "completed",
                    "https://signed.heygen.example.com/abc123.mp4?Expires=1",
                    gif_url="https://heygen.example.com/abc123.gif",
                )
            },
            shares={"abc123": "https://app.heygen.com/share/abc123"},
        )

        updated = self._engine(source).reconcile("a1")

        self.assertIs(updated.status, AssetStatus.COMPLETED)
        self.assertEqual(updated.asset_url, "https://app.heygen.com/share/abc123")
        self.assertEqual(updated.thumbnail_url, "https://heygen.example.com/abc123.gif")

    def test_share_failure_keeps_status_url(self) -> None:
        self.library.create_asset(_pending("a1", url="pending_abc123"))
        source = FakeJobSource(
            statuses={"abc123": _status("abc123", "completed", "https://signed.heygen.example.com/abc123.mp4")},
            shares={"abc123": ProviderError("heygen", "HTTP 502: bad gateway")},
        )

        updated = self._engine(source).reconcile("a1")

        self.assertIs(updated.status, AssetStatus.COMPLETED)
        self.assertEqual(updated.asset_url, "https://signed.heygen.example.com/abc123.mp4")
        self.assertIsNone(updated.thumbnail_url)

    def test_inconclusive_status_is_noop(self) -> None:
        self.library.create_asset(_pending("a1", url="pending_abc123"))
        source = FakeJobSource(statuses={"abc123": _status("abc123", "processing")})

        self.assertIsNone(self._engine(source).reconcile("a1"))
        record = self.library.get_asset("a1")
        self.assertIs(record.status, AssetStatus.PROCESSING)
        self.assertEqual(record.asset_url, "pending_abc123")

    def test_failed_job(self) -> None:
        self.library.create_asset(_pending("a1", url="pending_abc123"))
        source = FakeJobSource(
            statuses={"abc123": _status("abc123", "failed", error={"message": "avatar not found"})}
        )

        updated = self._engine(source).reconcile("a1")

        self.assertIs(updated.status, AssetStatus.FAILED)
        self.assertEqual(updated.error_message, "avatar not found")

    def test_terminal_record_is_left_alone(self) -> None:
        self.library.create_asset(
            _pending("a1", url="https://cdn.example.com/final.mp4", status=AssetStatus.COMPLETED)
        )
        source = FakeJobSource(statuses={})

        self.assertIsNone(self._engine(source).reconcile("a1"))
        self.assertEqual(source.checked, [])
        self.assertEqual(source.list_calls, 0)

    def test_missing_job_id_falls_back_to_bulk_recovery(self) -> None:
        self.library.create_asset(_pending("a1", description="Callback: feedgen_item-a1_1700000000000"))
        source = FakeJobSource(
            jobs=[
                {
                    "video_id": "recovered1",
                    "status": "completed",
                    "video_url": "https://heygen.example.com/r1.mp4",
                    "callback_id": "feedgen_item-a1_1700000000000",
                }
            ]
        )

        updated = self._engine(source).reconcile("a1")

        self.assertEqual(source.list_calls, 1)
        self.assertIs(updated.status, AssetStatus.COMPLETED)
        self.assertEqual(updated.asset_url, "https://heygen.example.com/r1.mp4")

    def test_missing_job_id_without_match_never_raises(self) -> None:
        self.library.create_asset(_pending("a1"))
        source = FakeJobSource(jobs=[{"video_id": "other", "status": "completed", "video_url": "https://x/o.mp4"}])

        self.assertIsNone(self._engine(source).reconcile("a1"))
        self.assertIs(self.library.get_asset("a1").status, AssetStatus.PROCESSING)

    def test_missing_job_id_with_failing_listing_never_raises(self) -> None:
        self.library.create_asset(_pending("a1"))
        source = FakeJobSource(list_error=ProviderError("heygen", "HTTP 503: down"))

        self.assertIsNone(self._engine(source).reconcile("a1"))
        self.assertEqual(source.list_calls, 1)
        record = self.library.get_asset("a1")
        self.assertIs(record.status, AssetStatus.PROCESSING)
        self.assertEqual(record.asset_url, "")

    def test_unknown_asset(self) -> None:
        with self.assertRaises(AssetNotFoundError):
            self._engine(FakeJobSource()).reconcile("missing")

    def test_provider_error_propagates(self) -> None:
        self.library.create_asset(_pending("a1", url="pending_abc123"))
        source = FakeJobSource(statuses={"abc123": ProviderError("heygen", "HTTP 500: oops")})

        with self.assertRaises(ProviderError):
            self._engine(source).reconcile("a1")
        self.assertIs(self.library.get_asset("a1").status, AssetStatus.PROCESSING)

    def test_pending_lists_processing_records(self) -> None:
        self.library.create_asset(_pending("a1", url="pending_one"))
        self.library.create_asset(_pending("a2", url="https://x/a2.mp4", status=AssetStatus.COMPLETED))

        pending = self._engine(FakeJobSource()).pending()

        self.assertEqual([record.id for record in pending], ["a1"])


class RecoverAllTest(unittest.TestCase):
    def setUp(self) -> None:
        self.library = InMemoryAssetLibrary()
        for index in range(1, 6):
            self.library.create_asset(_pending(f"a{index}", url=f"pending_job{index}"))
        self.source = FakeJobSource(
            jobs=[
                {"video_id": "job1", "status": "completed", "video_url": "https://heygen.example.com/1.mp4"},
                {"video_id": "job2", "status": "processing"},
                {"video_id": "job3", "status": "completed", "video_url": "https://heygen.example.com/3.mp4"},
                {"video_id": "job4", "status": "waiting"},
                {"video_id": "job5", "status": "pending"},
            ]
        )
        self.engine = ReconciliationEngine(self.library, self.source)

    def test_reports_every_job(self) -> None:
        entries = self.engine.recover_all()

        self.assertEqual(len(entries), 5)
        self.assertEqual([entry.job_id for entry in entries if entry.updated], ["job1", "job3"])
        self.assertIs(self.library.get_asset("a1").status, AssetStatus.COMPLETED)
        self.assertIs(self.library.get_asset("a3").status, AssetStatus.COMPLETED)
        self.assertEqual(self.library.get_asset("a3").asset_url, "https://heygen.example.com/3.mp4")
        self.assertEqual(len(self.engine.pending()), 3)

    def test_second_sweep_is_idempotent(self) -> None:
        self.engine.recover_all()

        entries = self.engine.recover_all()

        self.assertEqual(len(entries), 5)
        self.assertFalse(any(entry.updated for entry in entries))
        self.assertIs(self.library.get_asset("a1").status, AssetStatus.COMPLETED)

    def test_completed_records_never_regress(self) -> None:
        self.engine.recover_all()
        self.source.jobs = [{"video_id": "job1", "status": "failed", "error": "late failure"}]

        entries = self.engine.recover_all()

        self.assertFalse(entries[0].updated)
        record = self.library.get_asset("a1")
        self.assertIs(record.status, AssetStatus.COMPLETED)
        self.assertIsNone(record.error_message)

    def test_unparseable_entries_are_reported(self) -> None:
        self.source.jobs = [{"status": "completed"}]

        entries = self.engine.recover_all()

        self.assertEqual(len(entries), 1)
        self.assertFalse(entries[0].updated)


class WebhookTest(unittest.TestCase):
    def setUp(self) -> None:
        self.library = InMemoryAssetLibrary()
        self.library.create_asset(_pending("a1", url="pending_job1"))
        self.engine = ReconciliationEngine(self.library, FakeJobSource())

    def test_success_event(self) -> None:
        updated = self.engine.apply_webhook_event(
            {"event_type": "avatar_video.success", "event_data": {"video_id": "job1", "url": "https://h/1.mp4"}}
        )

        self.assertIs(updated.status, AssetStatus.COMPLETED)
        self.assertEqual(updated.asset_url, "https://h/1.mp4")

    def test_fail_event(self) -> None:
        updated = self.engine.apply_webhook_event(
            {"event_type": "avatar_video.fail", "event_data": {"video_id": "job1", "msg": "render error"}}
        )

        self.assertIs(updated.status, AssetStatus.FAILED)
        self.assertEqual(updated.error_message, "render error")

    def test_unrelated_events_are_ignored(self) -> None:
        self.assertIsNone(self.engine.apply_webhook_event({"event_type": "avatar_video.started", "event_data": {}}))
        self.assertIsNone(
            self.engine.apply_webhook_event(
                {"event_type": "avatar_video.success", "event_data": {"video_id": "unknown", "url": "https://h/x.mp4"}}
            )
        )
        self.assertIs(self.library.get_asset("a1").status, AssetStatus.PROCESSING)


if __name__ == "__main__":
    unittest.main()
