"""Branch utilities for Git synchronization."""

import logging
from pathlib import Path
from typing import Optional

from .runner import GitRunner


def get_current_local_branch(runner: GitRunner, git_repo_dir: Path) -> Optional[str]:
    """Name of the checked-out branch, or None when HEAD is detached."""
    return runner.output(git_repo_dir, "symbolic-ref", "--short", "-q", "HEAD") or None


def is_detached_head(runner: GitRunner, git_repo_dir: Path) -> bool:
    """True when no symbolic branch reference resolves for HEAD."""
    return not runner.run(git_repo_dir, "symbolic-ref", "-q", "HEAD").ok


def check_local_branch_exists(runner: GitRunner, git_repo_dir: Path, branch_name: str) -> bool:
    """Check if a branch exists in the local repository."""
    return runner.run(git_repo_dir, "show-ref", "--verify", "--quiet", f"refs/heads/{branch_name}").ok


def check_remote_branch_exists(runner: GitRunner, git_repo_dir: Path, branch_name: str, remote: str = "origin") -> bool:
    """Check if a remote-tracking branch is known locally (no network access)."""
    return runner.run(
        git_repo_dir, "show-ref", "--verify", "--quiet", f"refs/remotes/{remote}/{branch_name}"
    ).ok


def detect_default_branch(
    runner: GitRunner,
    git_repo_dir: Path,
    remote: str = "origin",
    candidates: tuple = ("main", "master")
) -> str:
    """
    Detect the default branch of a remote from local remote-tracking refs.

    This function attempts to determine the default branch name by:
    1. Reading the remote's symbolic HEAD (``refs/remotes/<remote>/HEAD``)
    2. Falling back to the first candidate branch that exists on the remote
    3. Defaulting to the first candidate if detection fails

    Args:
        runner: Git command runner
        git_repo_dir: Repository to inspect
        remote: Remote name
        candidates: Branch names to try, in order

    Returns:
        str: The detected default branch name
    """
    logger = logging.getLogger('webgit.git_sync.branch_utils')

    head = runner.output(git_repo_dir, "symbolic-ref", "--short", f"refs/remotes/{remote}/HEAD")
    if head and head.startswith(f"{remote}/"):
        branch_name = head[len(remote) + 1:]
        logger.debug(f"Detected default branch via {remote}/HEAD: {branch_name}")
        return branch_name

    for branch_name in candidates:
        if check_remote_branch_exists(runner, git_repo_dir, branch_name, remote):
            logger.debug(f"Found {remote} branch using fallback: {branch_name}")
            return branch_name

    logger.debug(f"Could not detect default branch for {remote}, falling back to: {candidates[0]}")
    return candidates[0]


def count_unpushed_commits(runner: GitRunner, git_repo_dir: Path, branch_name: str, remote: str = "origin") -> Optional[int]:
    """
    Commits in HEAD that the remote-tracking branch does not have.

    Returns:
        The count, or None when the remote-tracking ref does not exist
    """
    if not check_remote_branch_exists(runner, git_repo_dir, branch_name, remote):
        return None

    output = runner.output(git_repo_dir, "rev-list", "--count", f"{remote}/{branch_name}..HEAD")
    if output is None:
        return None
    try:
        return int(output)
    except ValueError:
        return None


def has_working_tree_changes(runner: GitRunner, git_repo_dir: Path) -> bool:
    """
    True if there is anything to commit.

    Dirty content inside submodules is ignored; moved submodule commits count.
    """
    output = runner.output(git_repo_dir, "status", "--porcelain", "--ignore-submodules=dirty")
    return bool(output)
