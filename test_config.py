#!/usr/bin/env python3
"""
Tests for configuration loading and validation.
"""

import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import sys
sys.path.insert(0, str(Path(__file__).parent))

from webgit.config import Config, load_configuration, validate_configuration


class TestConfigDefaults(unittest.TestCase):
    """Defaults and __post_init__ validation."""

    def test_default_layout(self):
        config = Config()
        self.assertEqual(config.primary_name, "webroot")
        self.assertIn("localsite", config.submodules)
        self.assertIn("community", config.extras)
        self.assertEqual(config.all_repositories[0], "webroot")
        self.assertEqual(config.primary_branch, "main")
        self.assertEqual(config.fallback_branch, "master")
        self.assertFalse(config.assume_capitalized_access)
        self.assertFalse(config.unsafe_submodules)

    def test_log_level_is_normalised(self):
        self.assertEqual(Config(log_level="debug").log_level, "DEBUG")

    def test_invalid_log_level(self):
        with self.assertRaises(ValueError):
            Config(log_level="LOUD")

    def test_negative_retry_settings(self):
        with self.assertRaises(ValueError):
            Config(push_retry_attempts=-1)
        with self.assertRaises(ValueError):
            Config(push_retry_delay=-0.5)

    def test_name_in_both_lists(self):
        with self.assertRaises(ValueError) as ctx:
            Config(submodules=("home", "team"), extras=("team",))
        self.assertIn("team", str(ctx.exception))

    def test_string_paths_become_paths(self):
        config = Config(root_dir="/tmp", identity_cache_file="/tmp/last_user")
        self.assertIsInstance(config.root_dir, Path)
        self.assertIsInstance(config.identity_cache_file, Path)


class TestLoadConfiguration(unittest.TestCase):
    """Environment-driven configuration."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_reads_environment(self):
        env = {
            "WEBGIT_ROOT": str(self.temp_dir),
            "WEBGIT_SUBMODULES": "localsite, home",
            "WEBGIT_EXTRAS": "community",
            "WEBGIT_CANONICAL_ACCOUNT": "exampleorg",
            "WEBGIT_PUSH_RETRY_ATTEMPTS": "5",
            "WEBGIT_PUSH_RETRY_DELAY": "0.5",
            "WEBGIT_ASSUME_CAPITALIZED_ACCESS": "true",
            "WEBGIT_IDENTITY_CACHE": str(self.temp_dir / "cache"),
            "WEBGIT_LOG_LEVEL": "warning",
        }
        with patch.dict(os.environ, env):
            config = load_configuration()

        self.assertEqual(config.root_dir, self.temp_dir.resolve())
        self.assertEqual(config.submodules, ("localsite", "home"))
        self.assertEqual(config.extras, ("community",))
        self.assertEqual(config.canonical_account, "exampleorg")
        self.assertEqual(config.push_retry_attempts, 5)
        self.assertEqual(config.push_retry_delay, 0.5)
        self.assertTrue(config.assume_capitalized_access)
        self.assertEqual(config.identity_cache_file, self.temp_dir / "cache")
        self.assertEqual(config.log_level, "WARNING")

    def test_invalid_number_is_configuration_error(self):
        with patch.dict(os.environ, {"WEBGIT_PUSH_RETRY_ATTEMPTS": "many"}):
            with self.assertRaises(ValueError) as ctx:
                load_configuration()
        self.assertTrue(str(ctx.exception).startswith("Configuration error"))

    def test_validate_configuration_reports_missing_repository(self):
        config = Config(root_dir=self.temp_dir, push_retry_attempts=0)
        problems = validate_configuration(config)
        self.assertTrue(any("not a git repository" in p for p in problems))
        self.assertTrue(any(p.startswith("WARNING") for p in problems))


if __name__ == "__main__":
    unittest.main()
