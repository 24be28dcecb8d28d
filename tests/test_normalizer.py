"""Tests for provider payload normalization."""

from __future__ import annotations

import unittest

from feedgen.errors import NormalizationError
from feedgen.normalizer import (
    FAILED_PLACEHOLDER,
    make_pending_token,
    normalize,
    normalize_job,
    parse_pending_token,
)
from feedgen.types import AssetStatus, ContentType, Provider


class OpenAINormalizeTest(unittest.TestCase):
    def test_chat_completion_text(self) -> None:
        raw = {"choices": [{"message": {"role": "assistant", "content": "  HEADLINE: Hello  "}}]}

        result = normalize(Provider.OPENAI, raw, ContentType.TEXT)

        self.assertIs(result.status, AssetStatus.COMPLETED)
        self.assertEqual(result.content, "HEADLINE: Hello")
        self.assertIs(result.raw_payload, raw)

    def test_missing_and_empty_text_are_distinguished(self) -> None:
        missing = normalize("openai", {"id": "chatcmpl-1"}, "text")
        empty = normalize("openai", {"choices": [{"message": {"content": ""}}]}, "text")

        self.assertIs(missing.status, AssetStatus.FAILED)
        self.assertIs(empty.status, AssetStatus.FAILED)
        self.assertIn("no usable", missing.error_message)
        self.assertIn("empty", empty.error_message)
        self.assertNotEqual(missing.error_message, empty.error_message)

    def test_image_url(self) -> None:
        result = normalize(Provider.OPENAI, {"data": [{"url": "https://img.example.com/a.png"}]}, ContentType.IMAGE)

        self.assertIs(result.status, AssetStatus.COMPLETED)
        self.assertEqual(result.asset_url, "https://img.example.com/a.png")

    def test_b64_image_becomes_data_url(self) -> None:
        result = normalize(Provider.OPENAI, {"data": [{"b64_json": "aGVsbG8="}]}, ContentType.IMAGE)

        self.assertEqual(result.asset_url, "data:image/png;base64,aGVsbG8=")

    def test_nested_url_found_by_walk(self) -> None:
        raw = {"payload": {"asset": {"image_url": "https://img.example.com/deep.png"}}}

        result = normalize(Provider.OPENAI, raw, ContentType.IMAGE)

        self.assertEqual(result.asset_url, "https://img.example.com/deep.png")

    def test_walk_prefers_shallowest_match(self) -> None:
        raw = {
            "payload": {
                "asset": {"image_url": "https://img.example.com/shallow.png"},
                "history": {"previous": {"image_url": "https://img.example.com/deep.png"}},
            }
        }

        result = normalize(Provider.OPENAI, raw, ContentType.IMAGE)

        self.assertEqual(result.asset_url, "https://img.example.com/shallow.png")

    def test_missing_url_is_failed_not_completed(self) -> None:
        result = normalize(Provider.OPENAI, {"created": 1}, ContentType.IMAGE)

        self.assertIs(result.status, AssetStatus.FAILED)
        self.assertEqual(result.asset_url, FAILED_PLACEHOLDER)
        self.assertTrue(result.error_message)


class RunwayNormalizeTest(unittest.TestCase):
    def test_output_list(self) -> None:
        raw = {"id": "task-1", "status": "SUCCEEDED", "output": ["https://runway.example.com/v.mp4"]}

        result = normalize(Provider.RUNWAY, raw, ContentType.VIDEO)

        self.assertIs(result.status, AssetStatus.COMPLETED)
        self.assertEqual(result.asset_url, "https://runway.example.com/v.mp4")
        self.assertEqual(result.job_id, "task-1")

    def test_failed_task_carries_reason(self) -> None:
        raw = {"id": "task-2", "status": "FAILED", "failure": "Content moderation"}

        result = normalize(Provider.RUNWAY, raw, ContentType.IMAGE)

        self.assertIs(result.status, AssetStatus.FAILED)
        self.assertIn("Content moderation", result.error_message)

    def test_empty_output_list_is_failed(self) -> None:
        result = normalize(Provider.RUNWAY, {"id": "task-3", "status": "SUCCEEDED", "output": []}, ContentType.IMAGE)

        self.assertIs(result.status, AssetStatus.FAILED)
        self.assertIn("no usable image output", result.error_message)

    def test_empty_url_string_is_failed(self) -> None:
        result = normalize(Provider.RUNWAY, {"output": [""]}, ContentType.IMAGE)

        self.assertIs(result.status, AssetStatus.FAILED)
        self.assertIn("empty image URL", result.error_message)


class HeyGenNormalizeTest(unittest.TestCase):
    def test_job_handle_becomes_pending_token(self) -> None:
        raw = {"error": None, "data": {"video_id": "abc123"}}

        result = normalize(Provider.HEYGEN, raw, ContentType.VIDEO)

        self.assertIs(result.status, AssetStatus.PROCESSING)
        self.assertEqual(result.asset_url, "pending_abc123")
        self.assertEqual(result.job_id, "abc123")

    def test_rejected_job(self) -> None:
        result = normalize(Provider.HEYGEN, {"error": {"message": "invalid avatar"}, "data": None}, "video")

        self.assertIs(result.status, AssetStatus.FAILED)
        self.assertIn("invalid avatar", result.error_message)

    def test_missing_job_id(self) -> None:
        result = normalize(Provider.HEYGEN, {"data": {}}, "video")

        self.assertIs(result.status, AssetStatus.FAILED)


class NormalizeErrorsTest(unittest.TestCase):
    def test_non_mapping_payload(self) -> None:
        with self.assertRaises(NormalizationError):
            normalize(Provider.OPENAI, ["not", "a", "dict"], ContentType.TEXT)

    def test_unknown_provider(self) -> None:
        with self.assertRaises(NormalizationError):
            normalize("midjourney", {}, ContentType.IMAGE)


class PendingTokenTest(unittest.TestCase):
    def test_token_round_trip(self) -> None:
        for job_id in ("abc123", "A", "0", "3f9a0c2e7b"):
            with self.subTest(job_id=job_id):
                self.assertEqual(parse_pending_token(make_pending_token(job_id)), job_id)

    def test_non_tokens(self) -> None:
        self.assertIsNone(parse_pending_token("https://cdn.example.com/a.mp4"))
        self.assertIsNone(parse_pending_token("pending_"))
        self.assertIsNone(parse_pending_token(None))


class NormalizeJobTest(unittest.TestCase):
    def test_status_response(self) -> None:
        raw = {
            "code": 100,
            "data": {"id": "v1", "status": "completed", "video_url": "https://heygen.example.com/v1.mp4"},
        }

        job = normalize_job(raw)

        self.assertEqual(job.job_id, "v1")
        self.assertIs(job.status, AssetStatus.COMPLETED)
        self.assertEqual(job.url, "https://heygen.example.com/v1.mp4")

    def test_list_entry_failed(self) -> None:
        job = normalize_job(
            {"video_id": "v2", "status": "failed", "error": {"message": "voice unavailable"}, "callback_id": "feedgen_x_1"}
        )

        self.assertIs(job.status, AssetStatus.FAILED)
        self.assertEqual(job.error_message, "voice unavailable")
        self.assertEqual(job.callback_id, "feedgen_x_1")

    def test_other_statuses_stay_processing(self) -> None:
        for status in ("processing", "waiting", "pending", None):
            with self.subTest(status=status):
                self.assertIs(normalize_job({"video_id": "v3", "status": status}).status, AssetStatus.PROCESSING)

    def test_completed_without_url_stays_processing(self) -> None:
        self.assertIs(normalize_job({"video_id": "v4", "status": "completed"}).status, AssetStatus.PROCESSING)

    def test_url_candidates_in_order(self) -> None:
        plain = normalize_job({"data": {"id": "v5", "status": "completed", "url": "X"}})
        blank_first = normalize_job({"video_id": "v6", "status": "completed", "video_url": " ", "url": "https://h/v6.mp4"})
        both = normalize_job({"video_id": "v7", "status": "completed", "video_url": "https://h/a.mp4", "url": "https://h/b.mp4"})

        self.assertIs(plain.status, AssetStatus.COMPLETED)
        self.assertEqual(plain.url, "X")
        self.assertEqual(blank_first.url, "https://h/v6.mp4")
        self.assertEqual(both.url, "https://h/a.mp4")

    def test_gif_preview(self) -> None:
        job = normalize_job(
            {"video_id": "v8", "status": "completed", "video_url": "https://h/v8.mp4", "gif_url": "https://h/v8.gif"}
        )

        self.assertEqual(job.gif_url, "https://h/v8.gif")
        self.assertIsNone(normalize_job({"video_id": "v9", "status": "processing"}).gif_url)

    def test_entry_without_id(self) -> None:
        with self.assertRaises(NormalizationError):
            normalize_job({"status": "completed"})


if __name__ == "__main__":
    unittest.main()
