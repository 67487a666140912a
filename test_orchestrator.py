#!/usr/bin/env python3
"""
End-to-end tests for the pull and push orchestrators on a local workspace.

Every repository's origin is a local bare repository, so the runs exercise
real fetches, merges and pushes without the network.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent))

from git_fixtures import FakeHosting, build_workspace, commit_file, git, init_bare, make_config
from webgit.errors import RepoNotRecognized
from webgit.git_sync.orchestrator import PullOrchestrator, PushOrchestrator, build_components
from webgit.git_sync.repository_info import PushOutcome, PushReport
from webgit.git_sync.runner import GitRunner


class OrchestratorTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.root = build_workspace(self.temp_dir)
        self.remotes = self.temp_dir / "remotes"
        for repo in (self.root, self.root / "localsite", self.root / "home", self.root / "community"):
            bare = init_bare(self.remotes / f"{repo.name}.git")
            git(repo, "remote", "add", "origin", str(bare))
            git(repo, "push", "-u", "origin", "main")

        self.hosting = FakeHosting(user="alice")
        self.components = build_components(
            make_config(self.root), runner=GitRunner(), hosting=self.hosting, sleep=lambda seconds: None
        )
        self.puller = PullOrchestrator(self.components)
        self.pusher = PushOrchestrator(self.components, self.puller)

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def remote_head(self, name: str) -> str:
        return git(self.remotes / f"{name}.git", "rev-parse", "main")


class TestPullOrchestrator(OrchestratorTestCase):

    def test_pull_all_on_clean_workspace(self):
        summary = self.puller.pull_all()
        self.assertTrue(summary.success, [r.message for r in summary.failures])

    def test_pull_merges_origin_changes(self):
        other = self.temp_dir / "other"
        git(self.temp_dir, "clone", str(self.remotes / "home.git"), str(other))
        git(other, "config", "user.name", "Other User")
        git(other, "config", "user.email", "other@example.com")
        git(other, "config", "commit.gpgsign", "false")
        remote_sha = commit_file(other, "news.md", "News\n", "Remote news")
        git(other, "push", "origin", "main")

        summary = self.puller.pull_repository("home")

        self.assertTrue(summary.success, [r.message for r in summary.failures])
        self.assertEqual(git(self.root / "home", "rev-parse", "HEAD"), remote_sha)

    def test_pull_conflict_is_reported_and_aborted(self):
        other = self.temp_dir / "other"
        git(self.temp_dir, "clone", str(self.remotes / "community.git"), str(other))
        git(other, "config", "user.name", "Other User")
        git(other, "config", "user.email", "other@example.com")
        git(other, "config", "commit.gpgsign", "false")
        commit_file(other, "README.md", "Theirs\n", "Remote edit")
        git(other, "push", "origin", "main")
        local = commit_file(self.root / "community", "README.md", "Ours\n", "Local edit")

        summary = self.puller.pull_repository("community")

        self.assertIn("MERGE_CONFLICT", [r.error_code for r in summary.failures])
        self.assertEqual(git(self.root / "community", "rev-parse", "HEAD"), local)
        self.assertFalse((self.root / "community" / ".git" / "MERGE_HEAD").exists())

    def test_unknown_repository_raises_before_touching_anything(self):
        with self.assertRaises(RepoNotRecognized):
            self.puller.pull_repository("bogusname")


class TestPushOrchestrator(OrchestratorTestCase):

    def test_clean_push_all_is_idempotent(self):
        heads_before = {name: self.remote_head(name) for name in ("webroot", "localsite", "home", "community")}

        for _ in range(2):
            summary = self.pusher.push_all(skip_pull=True)
            self.assertTrue(summary.success, [r.message for r in summary.failures])
            reports = [r for r in summary.results if isinstance(r, PushReport)]
            self.assertTrue(all(r.outcome == PushOutcome.NO_CHANGES for r in reports))

        heads_after = {name: self.remote_head(name) for name in heads_before}
        self.assertEqual(heads_before, heads_after)
        self.assertEqual(self.hosting.created_prs, [])

    def test_pull_then_push_twice_adds_no_commits(self):
        repos = {
            "webroot": self.root,
            "localsite": self.root / "localsite",
            "home": self.root / "home",
            "community": self.root / "community",
        }
        local_before = {name: git(path, "rev-parse", "HEAD") for name, path in repos.items()}
        remote_before = {name: self.remote_head(name) for name in repos}

        self.assertTrue(self.puller.pull_all().success)
        for _ in range(2):
            summary = self.pusher.push_all()
            self.assertTrue(summary.success, [r.message for r in summary.failures])

        self.assertEqual({name: git(path, "rev-parse", "HEAD") for name, path in repos.items()}, local_before)
        self.assertEqual({name: self.remote_head(name) for name in repos}, remote_before)
        self.assertEqual(self.hosting.created_prs, [])

    def test_push_submodule_updates_parent_reference(self):
        (self.root / "localsite" / "map.js").write_text("// map\n", encoding="utf-8")

        summary = self.pusher.push_repository("localsite", skip_pull=True)

        self.assertTrue(summary.success, [r.message for r in summary.failures])
        sub_head = git(self.root / "localsite", "rev-parse", "HEAD")
        self.assertEqual(self.remote_head("localsite"), sub_head)
        self.assertEqual(git(self.root, "rev-parse", "HEAD:localsite"), sub_head)
        self.assertEqual(self.remote_head("webroot"), git(self.root, "rev-parse", "HEAD"))

    def test_push_all_publishes_every_changed_repository(self):
        (self.root / "home" / "welcome.md").write_text("Welcome\n", encoding="utf-8")
        (self.root / "community" / "event.md").write_text("Event\n", encoding="utf-8")
        (self.root / "about.md").write_text("About\n", encoding="utf-8")

        summary = self.pusher.push_all()

        self.assertTrue(summary.success, [r.message for r in summary.failures])
        self.assertEqual(self.remote_head("home"), git(self.root / "home", "rev-parse", "HEAD"))
        self.assertEqual(self.remote_head("community"), git(self.root / "community", "rev-parse", "HEAD"))
        self.assertEqual(self.remote_head("webroot"), git(self.root, "rev-parse", "HEAD"))
        self.assertEqual(
            git(self.root, "rev-parse", "HEAD:home"),
            git(self.root / "home", "rev-parse", "HEAD")
        )

    def test_push_unknown_repository(self):
        with self.assertRaises(RepoNotRecognized):
            self.pusher.push_repository("bogusname")

    def test_final_sweep_pushes_leftover_commits(self):
        leftover = commit_file(self.root / "community", "late.md", "Late\n", "Committed by hand")

        summary = self.pusher.final_sweep()

        self.assertTrue(summary.success)
        self.assertEqual(self.remote_head("community"), leftover)

    def test_fix_heads_sweep(self):
        first = git(self.root / "home", "rev-parse", "HEAD")
        commit_file(self.root / "home", "next.md", "Next\n", "Next")
        git(self.root / "home", "checkout", "--detach", first)

        summary = self.puller.fix_heads()

        self.assertTrue(summary.success)
        self.assertEqual(git(self.root / "home", "rev-parse", "--abbrev-ref", "HEAD"), "main")


if __name__ == "__main__":
    unittest.main()
