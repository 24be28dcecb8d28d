"""Tests for environment-driven configuration."""

from __future__ import annotations

import os
import unittest
from unittest import mock

from feedgen.config import DEFAULT_HEYGEN_AVATAR_ID, FeedgenConfig


class FromEnvTest(unittest.TestCase):
    def test_defaults(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            config = FeedgenConfig.from_env()

        self.assertTrue(config.enable_mock_generation)
        self.assertEqual(config.request_delay_sec, 1.0)
        self.assertEqual(config.max_retries, 0)
        self.assertIsNone(config.openai_api_key)
        self.assertEqual(config.heygen_avatar_id, DEFAULT_HEYGEN_AVATAR_ID)

    def test_overrides(self) -> None:
        env = {
            "FEEDGEN_ENABLE_MOCKS": "false",
            "FEEDGEN_REQUEST_DELAY": "2.5",
            "FEEDGEN_MAX_RETRIES": "3",
            "FEEDGEN_LIBRARY_PATH": "/tmp/assets.json",
            "HEYGEN_API_KEY": "hg-key",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            config = FeedgenConfig.from_env()

        self.assertFalse(config.enable_mock_generation)
        self.assertEqual(config.request_delay_sec, 2.5)
        self.assertEqual(config.max_retries, 3)
        self.assertEqual(config.library_path, "/tmp/assets.json")
        self.assertEqual(config.heygen_api_key, "hg-key")

    def test_malformed_numbers_fall_back(self) -> None:
        env = {"FEEDGEN_REQUEST_DELAY": "soon", "FEEDGEN_MAX_RETRIES": "-4", "FEEDGEN_REQUEST_TIMEOUT": "x"}
        with mock.patch.dict(os.environ, env, clear=True):
            config = FeedgenConfig.from_env()

        self.assertEqual(config.request_delay_sec, 1.0)
        self.assertEqual(config.max_retries, 0)
        self.assertEqual(config.request_timeout_sec, 60)


if __name__ == "__main__":
    unittest.main()
