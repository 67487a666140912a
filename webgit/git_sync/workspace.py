"""Repository classification and descriptor construction for a webroot workspace."""

import logging
from pathlib import Path
from typing import List

from ..config import Config
from ..errors import RepoNotRecognized, WorkspaceError
from .remote_utils import get_parent_account, get_remote_url, parse_remote
from .repository_info import Classification, RepositoryCategory, RepositoryDescriptor
from .runner import GitRunner


def classify(name: str, config: Config) -> Classification:
    """
    Determine the category of a repository name.

    Unrecognized names are reported through the returned Classification, not
    raised, so callers can show the list of valid names.
    """
    if name == config.primary_name:
        return Classification(name, RepositoryCategory.PRIMARY, 0)
    if name in config.submodules:
        return Classification(name, RepositoryCategory.SUBMODULE, config.submodules.index(name))
    if name in config.extras:
        return Classification(name, RepositoryCategory.EXTRA, config.extras.index(name))

    valid = ", ".join(config.all_repositories)
    return Classification(
        name,
        RepositoryCategory.UNRECOGNIZED,
        None,
        f"Repository '{name}' not recognized. Valid names: {valid}"
    )


class Workspace:
    """The primary repository root plus the configured submodules and extras under it."""

    def __init__(self, config: Config, runner: GitRunner):
        self.config = config
        self.runner = runner
        self.root = config.root_dir
        self.logger = logging.getLogger('webgit.git_sync.workspace')

    def validate(self) -> None:
        """
        Refuse to operate outside the primary repository.

        Raises:
            WorkspaceError: if the root is not a git checkout of the primary repository
        """
        if not self.runner.is_repository(self.root):
            raise WorkspaceError(f"{self.root} is not a git repository; run webgit from the {self.config.primary_name} root")

        if self.root.name == self.config.primary_name:
            return

        parsed = parse_remote(get_remote_url(self.runner, self.root, "origin"))
        if parsed and parsed[1] == self.config.primary_name:
            return

        raise WorkspaceError(
            f"{self.root} is not the {self.config.primary_name} repository; "
            f"run webgit from the {self.config.primary_name} root"
        )

    def path_for(self, name: str) -> Path:
        if name == self.config.primary_name:
            return self.root
        return self.root / name

    def descriptor(self, name: str) -> RepositoryDescriptor:
        """
        Build a fresh descriptor from configuration and the live remotes.

        Raises:
            RepoNotRecognized: for names outside the configured lists
        """
        classification = classify(name, self.config)
        if not classification.recognized:
            raise RepoNotRecognized(name, self.config.all_repositories)

        path = self.path_for(name)
        origin_url = None
        upstream_url = None
        if self.runner.is_repository(path):
            origin_url = get_remote_url(self.runner, path, "origin")
            upstream_url = get_remote_url(self.runner, path, "upstream")

        return RepositoryDescriptor(
            name=name,
            category=classification.category,
            path=path,
            origin_url=origin_url,
            upstream_url=upstream_url,
            parent_account=get_parent_account(name, upstream_url, self.config),
            index=classification.index
        )

    def refresh(self, descriptor: RepositoryDescriptor) -> RepositoryDescriptor:
        """Re-read a descriptor after its remotes changed."""
        return self.descriptor(descriptor.name)

    def is_checkout(self, descriptor: RepositoryDescriptor) -> bool:
        return self.runner.is_repository(descriptor.path)

    def primary(self) -> RepositoryDescriptor:
        return self.descriptor(self.config.primary_name)

    def submodules(self) -> List[RepositoryDescriptor]:
        return [self.descriptor(name) for name in self.config.submodules]

    def extras(self) -> List[RepositoryDescriptor]:
        return [self.descriptor(name) for name in self.config.extras]

    def all(self) -> List[RepositoryDescriptor]:
        """Primary, then submodules, then extras."""
        return [self.primary(), *self.submodules(), *self.extras()]
