"""Recovery strategies and output patterns for git/hosting-platform failures."""

import logging
from typing import Dict, Optional

from .error_types import ErrorCategory, ErrorResolution, RecoveryAction


def build_error_strategies() -> Dict[ErrorCategory, ErrorResolution]:
    """Build recovery strategies for each error category."""
    return {
        ErrorCategory.PERMISSION_DENIED: ErrorResolution(
            category=ErrorCategory.PERMISSION_DENIED,
            action=RecoveryAction.FORK_AND_PR,
            user_message="No write access to this repository - pushing to your fork instead",
            resolution_steps=[
                "A fork will be created under your account if it does not exist",
                "Your commit is pushed to the fork",
                "A pull request is opened against the parent repository"
            ]
        ),

        ErrorCategory.WORKFLOW_SCOPE: ErrorResolution(
            category=ErrorCategory.WORKFLOW_SCOPE,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="Push rejected: your token lacks the 'workflow' scope",
            resolution_steps=[
                "Run 'gh auth refresh -h github.com -s workflow'",
                "Then run the same push command again"
            ]
        ),

        ErrorCategory.NON_FAST_FORWARD: ErrorResolution(
            category=ErrorCategory.NON_FAST_FORWARD,
            action=RecoveryAction.FORCE_WITH_LEASE,
            user_message="Remote branch has commits you do not have locally",
            resolution_steps=[
                "Run 'pull' to merge the remote commits first",
                "A force-with-lease push is attempted as a last resort"
            ]
        ),

        ErrorCategory.NETWORK: ErrorResolution(
            category=ErrorCategory.NETWORK,
            action=RecoveryAction.RETRY,
            user_message="Network connection issue detected",
            resolution_steps=[
                "Check your internet connection",
                "Run the same command again - every step is safe to re-run"
            ]
        ),

        ErrorCategory.AUTHENTICATION: ErrorResolution(
            category=ErrorCategory.AUTHENTICATION,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="Authentication failed - please check your credentials",
            resolution_steps=[
                "Run 'gh auth login'",
                "Run 'gh auth setup-git' so git uses the GitHub CLI credentials",
                "Or run the 'auth' command to refresh cached credentials"
            ]
        ),

        ErrorCategory.REPOSITORY_ACCESS: ErrorResolution(
            category=ErrorCategory.REPOSITORY_ACCESS,
            action=RecoveryAction.FEATURE_BRANCH,
            user_message="Repository not accessible at the configured remote",
            resolution_steps=[
                "Verify the origin remote with 'git remote -v'",
                "Run the 'remotes' command to realign remotes with your account"
            ]
        ),

        ErrorCategory.MERGE_CONFLICT: ErrorResolution(
            category=ErrorCategory.MERGE_CONFLICT,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="Merge conflicts detected - the merge was aborted",
            resolution_steps=[
                "Merge manually in the repository and resolve the conflicts",
                "Then run the same command again"
            ]
        ),

        ErrorCategory.NOTHING_TO_MERGE: ErrorResolution(
            category=ErrorCategory.NOTHING_TO_MERGE,
            action=RecoveryAction.IGNORE,
            user_message="Already up to date",
            resolution_steps=[]
        ),
    }


def build_error_patterns() -> Dict[str, ErrorCategory]:
    """Build mapping of output patterns to categories, most specific first."""
    return {
        # Workflow scope (checked before generic permission patterns)
        "without `workflow` scope": ErrorCategory.WORKFLOW_SCOPE,
        "without workflow scope": ErrorCategory.WORKFLOW_SCOPE,
        "refusing to allow an oauth app to create or update workflow": ErrorCategory.WORKFLOW_SCOPE,
        "refusing to allow a personal access token to create or update workflow": ErrorCategory.WORKFLOW_SCOPE,

        # Permission errors
        "permission to": ErrorCategory.PERMISSION_DENIED,
        "permission denied": ErrorCategory.PERMISSION_DENIED,
        "returned error: 403": ErrorCategory.PERMISSION_DENIED,
        "write access to repository not granted": ErrorCategory.PERMISSION_DENIED,

        # Authentication errors
        "authentication failed": ErrorCategory.AUTHENTICATION,
        "invalid username or password": ErrorCategory.AUTHENTICATION,
        "could not read username": ErrorCategory.AUTHENTICATION,
        "returned error: 401": ErrorCategory.AUTHENTICATION,

        # Non-fast-forward rejections
        "non-fast-forward": ErrorCategory.NON_FAST_FORWARD,
        "fetch first": ErrorCategory.NON_FAST_FORWARD,
        "stale info": ErrorCategory.NON_FAST_FORWARD,
        "updates were rejected": ErrorCategory.NON_FAST_FORWARD,

        # Repository access errors
        "repository not found": ErrorCategory.REPOSITORY_ACCESS,
        "does not appear to be a git repository": ErrorCategory.REPOSITORY_ACCESS,
        "could not read from remote repository": ErrorCategory.REPOSITORY_ACCESS,

        # Network errors
        "could not resolve host": ErrorCategory.NETWORK,
        "connection refused": ErrorCategory.NETWORK,
        "connection timed out": ErrorCategory.NETWORK,
        "network is unreachable": ErrorCategory.NETWORK,
        "timeout": ErrorCategory.NETWORK,

        # Merge results
        "already up to date": ErrorCategory.NOTHING_TO_MERGE,
        "already up-to-date": ErrorCategory.NOTHING_TO_MERGE,
        "automatic merge failed": ErrorCategory.MERGE_CONFLICT,
        "merge conflict": ErrorCategory.MERGE_CONFLICT,
        "unmerged paths": ErrorCategory.MERGE_CONFLICT,
        "conflict": ErrorCategory.MERGE_CONFLICT,
    }


_ERROR_PATTERNS = build_error_patterns()
_ERROR_STRATEGIES = build_error_strategies()


def categorize_error(output: str) -> ErrorCategory:
    """
    Categorize command output based on known substrings.

    Args:
        output: Combined stdout/stderr of the failed command

    Returns:
        ErrorCategory enum value
    """
    if not output:
        return ErrorCategory.UNKNOWN

    output_lower = output.lower()

    for pattern, category in _ERROR_PATTERNS.items():
        if pattern in output_lower:
            logging.getLogger('webgit.git_sync.errors').debug(
                f"Categorized error as {category}: pattern '{pattern}' found"
            )
            return category

    return ErrorCategory.UNKNOWN


def get_resolution(category: ErrorCategory) -> Optional[ErrorResolution]:
    """Get the recovery strategy for a category, if one is defined."""
    return _ERROR_STRATEGIES.get(category)


def describe_resolution(category: ErrorCategory) -> str:
    """Render a category's remediation as a short multi-line message."""
    resolution = get_resolution(category)
    if resolution is None:
        return "An unexpected error occurred; run the same command again"

    parts = [resolution.user_message]
    for i, step in enumerate(resolution.resolution_steps, 1):
        parts.append(f"   {i}. {step}")
    return "\n".join(parts)


def recovery_action(category: Optional[ErrorCategory]) -> RecoveryAction:
    """Recovery action for a failure category; uncategorised failures are retried."""
    resolution = get_resolution(category) if category is not None else None
    return resolution.action if resolution else RecoveryAction.RETRY
