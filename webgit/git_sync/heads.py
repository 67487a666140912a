"""Detached-HEAD detection and recovery."""

import logging
from typing import Optional

from ..config import Config
from ..errors import MergeConflict
from .branch_utils import check_local_branch_exists, is_detached_head
from .repository_info import RepositoryDescriptor
from .runner import GitRunner
from .utils import GitSyncResult, create_git_sync_result


class DetachedHeadReconciler:
    """Puts a repository back on its primary branch without dropping the detached commit."""

    def __init__(self, config: Config, runner: GitRunner):
        self.config = config
        self.runner = runner
        self.logger = logging.getLogger('webgit.git_sync.heads')

    def _switch_to_primary_branch(self, descriptor: RepositoryDescriptor) -> Optional[str]:
        for branch in (self.config.primary_branch, self.config.fallback_branch):
            if not check_local_branch_exists(self.runner, descriptor.path, branch):
                # Create the local branch from origin when only the remote one exists
                result = self.runner.run(descriptor.path, "checkout", "-b", branch, "--track", f"origin/{branch}")
            else:
                result = self.runner.run(descriptor.path, "checkout", branch)
            if result.ok:
                return branch
            self.logger.debug(f"{descriptor.name}: could not switch to {branch}: {result.stderr}")
        return None

    def reconcile(self, descriptor: RepositoryDescriptor) -> GitSyncResult:
        """
        Reattach a detached HEAD to the primary branch.

        The detached commit is merged into the branch unless the branch already
        contains it. A failed merge is aborted and reported as a conflict; the
        caller carries on with the next repository.
        """
        operation = "fix_detached_head"
        if not is_detached_head(self.runner, descriptor.path):
            return create_git_sync_result(True, "On a branch", operation, repository=descriptor.name)

        detached_sha = self.runner.output(descriptor.path, "rev-parse", "HEAD")
        if not detached_sha:
            return create_git_sync_result(
                False, "Cannot resolve detached HEAD commit", operation,
                error_code="HEAD_UNRESOLVED", repository=descriptor.name
            )

        self.logger.info(f"🔧 {descriptor.name}: detached HEAD at {detached_sha[:8]}")

        branch = self._switch_to_primary_branch(descriptor)
        if branch is None:
            message = (
                f"Could not switch {descriptor.name} to {self.config.primary_branch} "
                f"or {self.config.fallback_branch}"
            )
            self.logger.error(f"❌ {message}")
            return create_git_sync_result(
                False, message, operation, error_code="BRANCH_CHECKOUT_FAILED", repository=descriptor.name
            )

        if self.runner.run(descriptor.path, "merge-base", "--is-ancestor", detached_sha, branch).ok:
            self.logger.info(f"✓ {descriptor.name}: switched to {branch} (already contains {detached_sha[:8]})")
            return create_git_sync_result(
                True, f"Switched to {branch}", operation, repository=descriptor.name, branch_used=branch
            )

        merge = self.runner.run(
            descriptor.path, "merge", "--no-edit", "-m",
            f"Merge detached commit {detached_sha[:8]} into {branch}", detached_sha
        )
        if not merge.ok:
            self.runner.run(descriptor.path, "merge", "--abort")
            error = MergeConflict(
                f"Merging detached commit {detached_sha[:8]} into {branch} failed; resolve manually",
                descriptor.name
            )
            self.logger.warning(f"⚠️ {descriptor.name}: {error.message}")
            return create_git_sync_result(
                False, error.message, operation, error_code=error.error_code,
                repository=descriptor.name, branch_used=branch
            )

        self.logger.info(f"✓ {descriptor.name}: merged detached commit {detached_sha[:8]} into {branch}")
        return create_git_sync_result(
            True, f"Merged detached commit into {branch}", operation,
            repository=descriptor.name, branch_used=branch
        )
