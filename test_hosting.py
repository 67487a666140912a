#!/usr/bin/env python3
"""
Tests for the gh-backed hosting client with subprocess mocked out.
"""

import json
import subprocess
import unittest
from pathlib import Path
from unittest.mock import patch

import sys
sys.path.insert(0, str(Path(__file__).parent))

from webgit.errors import ForkFailed
from webgit.hosting import GitHubCLI


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=["gh"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestFindOpenPr(unittest.TestCase):

    def test_ignores_same_branch_from_another_account(self):
        listing = json.dumps([
            {"url": "https://github.com/modelearth/webroot/pull/42", "headRepositoryOwner": {"login": "bob"}},
        ])
        with patch("webgit.hosting.subprocess.run", return_value=completed(stdout=listing)) as run:
            url = GitHubCLI().find_open_pr("modelearth", "webroot", "alice", "main")

        self.assertIsNone(url)
        args = run.call_args[0][0]
        self.assertIn("url,headRepositoryOwner", args)
        self.assertEqual(args[args.index("--head") + 1], "main")

    def test_matches_head_owner_case_insensitively(self):
        listing = json.dumps([
            {"url": "https://github.com/modelearth/webroot/pull/42", "headRepositoryOwner": {"login": "bob"}},
            {"url": "https://github.com/modelearth/webroot/pull/43", "headRepositoryOwner": {"login": "Alice"}},
        ])
        with patch("webgit.hosting.subprocess.run", return_value=completed(stdout=listing)):
            url = GitHubCLI().find_open_pr("modelearth", "webroot", "alice", "main")

        self.assertEqual(url, "https://github.com/modelearth/webroot/pull/43")

    def test_gh_failure_means_no_open_pr(self):
        with patch("webgit.hosting.subprocess.run", return_value=completed(returncode=1, stderr="HTTP 404")):
            self.assertIsNone(GitHubCLI().find_open_pr("modelearth", "webroot", "alice", "main"))


class TestFork(unittest.TestCase):

    def test_returns_fork_clone_url(self):
        responses = [
            completed(stderr="alice/home already exists"),
            completed(stdout="alice"),
            completed(stdout="https://github.com/alice/home"),
        ]
        with patch("webgit.hosting.subprocess.run", side_effect=responses):
            self.assertEqual(GitHubCLI().fork("modelearth", "home"), "https://github.com/alice/home.git")

    def test_lost_authentication_after_fork_is_a_fork_failure(self):
        responses = [
            completed(),
            completed(returncode=1, stderr="HTTP 401: Bad credentials"),
        ]
        with patch("webgit.hosting.subprocess.run", side_effect=responses):
            with self.assertRaises(ForkFailed) as ctx:
                GitHubCLI().fork("modelearth", "home")

        self.assertEqual(ctx.exception.error_code, "FORK_FAILED")
        self.assertIn("Bad credentials", ctx.exception.message)

    def test_missing_gh_executable(self):
        with patch("webgit.hosting.subprocess.run", side_effect=FileNotFoundError):
            with self.assertRaises(ForkFailed):
                GitHubCLI().fork("modelearth", "home")


if __name__ == "__main__":
    unittest.main()
