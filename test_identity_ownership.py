#!/usr/bin/env python3
"""
Tests for ownership resolution and the user-change check.

The hosting platform is replaced by FakeHosting so the authenticated login
can be switched between cases.
"""

import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import sys
sys.path.insert(0, str(Path(__file__).parent))

from git_fixtures import FakeHosting, git, init_repo, make_config
from webgit.git_sync.identity import IdentityResolver
from webgit.git_sync.repository_info import RepositoryCategory, RepositoryDescriptor
from webgit.git_sync.runner import GitRunner


def descriptor_for(path: Path, origin_url, name: str = "localsite") -> RepositoryDescriptor:
    return RepositoryDescriptor(
        name=name,
        category=RepositoryCategory.SUBMODULE,
        path=path,
        origin_url=origin_url,
        upstream_url=None,
        parent_account="ModelEarth",
    )


class TestOwnership(unittest.TestCase):
    """is_owner across users, missing authentication and the capitalized namespace."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.hosting = FakeHosting(user="alice")
        self.config = make_config(self.temp_dir / "webroot")
        self.identity = IdentityResolver(self.config, GitRunner(), self.hosting)

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_origin_under_current_user(self):
        descriptor = descriptor_for(self.temp_dir, "https://github.com/alice/localsite.git")
        self.assertTrue(self.identity.is_owner(descriptor))

    def test_same_origin_for_another_user(self):
        descriptor = descriptor_for(self.temp_dir, "https://github.com/alice/localsite.git")
        self.hosting.user = "bob"
        self.assertFalse(self.identity.is_owner(descriptor))

    def test_login_comparison_ignores_case(self):
        descriptor = descriptor_for(self.temp_dir, "https://github.com/Alice/localsite.git")
        self.assertTrue(self.identity.is_owner(descriptor))

    def test_canonical_origin_is_not_owned(self):
        descriptor = descriptor_for(self.temp_dir, "https://github.com/modelearth/localsite.git")
        self.assertFalse(self.identity.is_owner(descriptor))

    def test_unauthenticated_presumes_non_canonical_account(self):
        self.hosting.user = None
        own = descriptor_for(self.temp_dir, "https://github.com/alice/localsite.git")
        canonical = descriptor_for(self.temp_dir, "https://github.com/ModelEarth/localsite.git")
        self.assertTrue(self.identity.is_owner(own))
        self.assertFalse(self.identity.is_owner(canonical))

    def test_capitalized_namespace_shortcut_is_configurable(self):
        descriptor = descriptor_for(self.temp_dir, "https://github.com/ModelEarth/localsite.git")
        self.hosting.user = "bob"
        self.assertFalse(self.identity.is_owner(descriptor))

        config = make_config(self.temp_dir / "webroot", assume_capitalized_access=True)
        identity = IdentityResolver(config, GitRunner(), self.hosting)
        self.assertTrue(identity.is_owner(descriptor))

    def test_no_origin(self):
        self.assertFalse(self.identity.is_owner(descriptor_for(self.temp_dir, None)))


class TestUserChange(unittest.TestCase):
    """check_user_change against real repositories."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.repo = init_repo(self.temp_dir / "home", origin="https://github.com/carol/home.git")
        self.hosting = FakeHosting(user="alice")
        self.config = make_config(self.temp_dir / "webroot")
        self.identity = IdentityResolver(self.config, GitRunner(), self.hosting)

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_origin_under_other_account_is_rewritten(self):
        descriptor = descriptor_for(self.repo, "https://github.com/carol/home.git", name="home")
        result = self.identity.check_user_change(descriptor)

        self.assertTrue(result.success)
        self.assertEqual(git(self.repo, "remote", "get-url", "origin"), "https://github.com/alice/home.git")

    def test_canonical_origin_is_left_alone(self):
        git(self.repo, "remote", "set-url", "origin", "https://github.com/ModelEarth/home.git")
        descriptor = descriptor_for(self.repo, "https://github.com/ModelEarth/home.git", name="home")
        result = self.identity.check_user_change(descriptor)

        self.assertTrue(result.success)
        self.assertEqual(git(self.repo, "remote", "get-url", "origin"), "https://github.com/ModelEarth/home.git")

    def test_unauthenticated_canonical_origin_requires_login(self):
        self.hosting.user = None
        descriptor = descriptor_for(self.repo, "https://github.com/modelearth/home.git", name="home")
        result = self.identity.check_user_change(descriptor)

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "AUTH_REQUIRED")

    def test_user_change_triggers_refresh_and_is_recorded(self):
        self.config.identity_cache_file.write_text("bob\n", encoding="utf-8")
        descriptor = descriptor_for(self.repo, "https://github.com/carol/home.git", name="home")

        with patch.object(IdentityResolver, "refresh_credentials", return_value=True) as refresh:
            self.identity.check_user_change(descriptor)
            refresh.assert_called_once()

        self.assertEqual(self.identity.read_last_user(), "alice")

    def test_same_user_does_not_refresh(self):
        self.identity.record_user("alice")
        descriptor = descriptor_for(self.repo, "https://github.com/carol/home.git", name="home")

        with patch.object(IdentityResolver, "refresh_credentials") as refresh:
            self.identity.check_user_change(descriptor)
            refresh.assert_not_called()

    def test_refresh_credentials_resyncs_gh(self):
        with patch("webgit.git_sync.identity.subprocess.run") as run, \
                patch("webgit.git_sync.identity.clear_os_credential_store", return_value=True) as clear:
            self.assertTrue(self.identity.refresh_credentials())

        self.assertEqual(run.call_args[0][0][1:], ["credential", "reject"])
        self.assertIn("host=github.com", run.call_args[1]["input"])
        clear.assert_called_once_with("github.com")
        self.assertIn(("setup-git",), self.hosting.calls)


if __name__ == "__main__":
    unittest.main()
