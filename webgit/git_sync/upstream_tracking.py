"""Merging from origin and from the canonical upstream repository."""

import logging

from ..config import Config
from ..errors import MergeConflict
from .branch_utils import check_remote_branch_exists, detect_default_branch
from .error_strategies import categorize_error
from .error_types import ErrorCategory
from .remote_utils import RemoteRewriter, is_partner_account, parse_account
from .repository_info import RepositoryDescriptor
from .runner import GitRunner
from .utils import GitSyncResult, create_git_sync_result


def merge_remote_branch(
    runner: GitRunner,
    descriptor: RepositoryDescriptor,
    remote: str,
    branch: str,
    logger: logging.Logger
) -> GitSyncResult:
    """
    Merge ``<remote>/<branch>`` into the current checkout.

    "Already up to date" counts as success. A conflicting merge is aborted so
    the working tree is left as it was, and reported as MERGE_CONFLICT.
    """
    operation = f"merge_{remote}"
    ref = f"{remote}/{branch}"

    result = runner.run(descriptor.path, "merge", "--no-edit", ref)
    if result.ok:
        if categorize_error(result.output) == ErrorCategory.NOTHING_TO_MERGE:
            logger.debug(f"{descriptor.name}: {ref} already merged")
            return create_git_sync_result(True, "Already up to date", operation, repository=descriptor.name, branch_used=branch)
        logger.info(f"✓ {descriptor.name}: merged {ref}")
        return create_git_sync_result(True, f"Merged {ref}", operation, repository=descriptor.name, branch_used=branch)

    runner.run(descriptor.path, "merge", "--abort")
    category = categorize_error(result.output)
    if category == ErrorCategory.MERGE_CONFLICT:
        error = MergeConflict(f"Conflicts merging {ref} into {descriptor.name}; merge aborted", descriptor.name)
        logger.warning(f"⚠️ {error.message}")
        return create_git_sync_result(
            False, error.message, operation, error_code=error.error_code,
            repository=descriptor.name, branch_used=branch
        )

    logger.warning(f"⚠️ {descriptor.name}: merge of {ref} failed: {result.stderr}")
    return create_git_sync_result(
        False, f"Merge of {ref} failed: {result.stderr}", operation,
        error_code="MERGE_FAILED", repository=descriptor.name, branch_used=branch
    )


def merge_from_origin(config: Config, runner: GitRunner, descriptor: RepositoryDescriptor) -> GitSyncResult:
    """Fetch origin and merge its default branch."""
    logger = logging.getLogger('webgit.git_sync.upstream')

    if descriptor.origin_url is None:
        return create_git_sync_result(True, "No origin remote", "merge_origin", repository=descriptor.name)

    fetch = runner.run(descriptor.path, "fetch", "origin")
    if not fetch.ok:
        logger.warning(f"⚠️ {descriptor.name}: fetch origin failed: {fetch.stderr}")
        return create_git_sync_result(
            False, f"Fetch from origin failed: {fetch.stderr}", "merge_origin",
            error_code="FETCH_FAILED", repository=descriptor.name
        )

    branch = detect_default_branch(runner, descriptor.path, "origin", (config.primary_branch, config.fallback_branch))
    if not check_remote_branch_exists(runner, descriptor.path, branch, "origin"):
        return create_git_sync_result(True, f"origin has no {branch} branch yet", "merge_origin", repository=descriptor.name)

    return merge_remote_branch(runner, descriptor, "origin", branch, logger)


def merge_from_upstream(
    config: Config,
    runner: GitRunner,
    remotes: RemoteRewriter,
    descriptor: RepositoryDescriptor
) -> GitSyncResult:
    """
    Merge the canonical repository into a fork.

    Repositories whose origin sits under a partner namespace are left alone.
    The primary branch is tried first, then the fallback branch.
    """
    logger = logging.getLogger('webgit.git_sync.upstream')
    operation = "merge_upstream"

    if is_partner_account(parse_account(descriptor.origin_url), config):
        return create_git_sync_result(True, "Partner repository, upstream merge skipped", operation, repository=descriptor.name)

    upstream_url = remotes.ensure_upstream(descriptor)
    if upstream_url is None:
        return create_git_sync_result(
            False, "Could not configure upstream remote", operation,
            error_code="UPSTREAM_SETUP_FAILED", repository=descriptor.name
        )

    fetch = runner.run(descriptor.path, "fetch", "upstream")
    if not fetch.ok:
        logger.warning(f"⚠️ {descriptor.name}: fetch upstream failed: {fetch.stderr}")
        return create_git_sync_result(
            False, f"Fetch from upstream failed: {fetch.stderr}", operation,
            error_code="FETCH_FAILED", repository=descriptor.name
        )

    for branch in (config.primary_branch, config.fallback_branch):
        if check_remote_branch_exists(runner, descriptor.path, branch, "upstream"):
            return merge_remote_branch(runner, descriptor, "upstream", branch, logger)

    return create_git_sync_result(
        False,
        f"upstream has neither {config.primary_branch} nor {config.fallback_branch}",
        operation,
        error_code="REMOTE_BRANCH_NOT_FOUND",
        repository=descriptor.name
    )
