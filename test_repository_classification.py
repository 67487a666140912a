#!/usr/bin/env python3
"""
Tests for repository classification, remote URL parsing and workspace validation.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent))

from git_fixtures import build_workspace, git, init_repo, make_config
from webgit.config import Config
from webgit.errors import RepoNotRecognized, WorkspaceError
from webgit.git_sync.remote_utils import (
    build_remote_url,
    default_parent_account,
    get_parent_account,
    is_canonical_account,
    is_partner_account,
    parse_account,
    parse_remote,
)
from webgit.git_sync.repository_info import RepositoryCategory
from webgit.git_sync.runner import GitRunner
from webgit.git_sync.workspace import Workspace, classify


class TestClassify(unittest.TestCase):

    def setUp(self):
        self.config = Config(submodules=("localsite", "home"), extras=("community",))

    def test_categories(self):
        self.assertEqual(classify("webroot", self.config).category, RepositoryCategory.PRIMARY)
        self.assertEqual(classify("home", self.config).category, RepositoryCategory.SUBMODULE)
        self.assertEqual(classify("home", self.config).index, 1)
        self.assertEqual(classify("community", self.config).category, RepositoryCategory.EXTRA)

    def test_unrecognized_lists_valid_names(self):
        result = classify("bogusname", self.config)
        self.assertFalse(result.recognized)
        self.assertEqual(
            result.message,
            "Repository 'bogusname' not recognized. Valid names: webroot, localsite, home, community"
        )

    def test_names_are_case_sensitive(self):
        self.assertFalse(classify("LocalSite", self.config).recognized)


class TestRemoteParsing(unittest.TestCase):

    def test_url_formats(self):
        self.assertEqual(parse_remote("https://github.com/alice/localsite.git"), ("alice", "localsite"))
        self.assertEqual(parse_remote("https://github.com/alice/localsite"), ("alice", "localsite"))
        self.assertEqual(parse_remote("git@github.com:ModelEarth/home.git"), ("ModelEarth", "home"))
        self.assertEqual(parse_remote("ssh://git@github.com/bob/team.git"), ("bob", "team"))
        self.assertEqual(parse_remote("https://token@github.com/bob/team.git"), ("bob", "team"))

    def test_local_paths_have_no_account(self):
        self.assertIsNone(parse_account("/srv/git/localsite.git"))
        self.assertIsNone(parse_account(None))

    def test_build_remote_url(self):
        self.assertEqual(build_remote_url("github.com", "alice", "home"), "https://github.com/alice/home.git")

    def test_parent_account_casing(self):
        config = Config()
        self.assertEqual(default_parent_account("localsite", config), "ModelEarth")
        self.assertEqual(default_parent_account("feed", config), "modelearth")
        self.assertEqual(
            get_parent_account("feed", "https://github.com/OtherOrg/feed.git", config),
            "OtherOrg"
        )

    def test_account_predicates(self):
        config = Config()
        self.assertTrue(is_canonical_account("MODELEARTH", config))
        self.assertFalse(is_canonical_account("alice", config))
        self.assertTrue(is_partner_account("PartnerTools", config))
        self.assertFalse(is_partner_account(None, config))


class TestWorkspace(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.root = build_workspace(self.temp_dir)
        self.config = make_config(self.root)
        self.workspace = Workspace(self.config, GitRunner())

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_validate_accepts_primary_root(self):
        self.workspace.validate()

    def test_validate_rejects_plain_directory(self):
        other = self.temp_dir / "elsewhere"
        other.mkdir()
        with self.assertRaises(WorkspaceError):
            Workspace(make_config(other), GitRunner()).validate()

    def test_validate_accepts_renamed_checkout_by_origin(self):
        renamed = init_repo(self.temp_dir / "site", origin="https://github.com/alice/webroot.git")
        Workspace(make_config(renamed), GitRunner()).validate()

    def test_validate_rejects_other_repository(self):
        other = init_repo(self.temp_dir / "notes", origin="https://github.com/alice/notes.git")
        with self.assertRaises(WorkspaceError):
            Workspace(make_config(other), GitRunner()).validate()

    def test_descriptors_follow_configuration_order(self):
        names = [descriptor.name for descriptor in self.workspace.all()]
        self.assertEqual(names, ["webroot", "localsite", "home", "community"])
        self.assertTrue(self.workspace.primary().is_primary)
        self.assertEqual(self.workspace.primary().path, self.root)

    def test_descriptor_reads_live_remotes(self):
        git(self.root / "home", "remote", "add", "origin", "https://github.com/alice/home.git")
        git(self.root / "home", "remote", "add", "upstream", "https://github.com/ModelEarth/home.git")
        descriptor = self.workspace.descriptor("home")
        self.assertEqual(descriptor.origin_url, "https://github.com/alice/home.git")
        self.assertEqual(descriptor.parent_account, "ModelEarth")
        self.assertTrue(descriptor.is_submodule)

    def test_unknown_descriptor_raises(self):
        with self.assertRaises(RepoNotRecognized) as ctx:
            self.workspace.descriptor("bogusname")
        self.assertEqual(ctx.exception.valid_names, ["webroot", "localsite", "home", "community"])
        self.assertEqual(ctx.exception.error_code, "REPO_NOT_RECOGNIZED")

    def test_missing_checkout(self):
        shutil.rmtree(self.root / "community")
        descriptor = self.workspace.descriptor("community")
        self.assertFalse(self.workspace.is_checkout(descriptor))
        self.assertIsNone(descriptor.origin_url)


if __name__ == "__main__":
    unittest.main()
