"""Utility classes and functions for Git synchronization."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class GitSyncResult:
    """Result of a single synchronization step on one repository."""
    success: bool
    message: str
    operation: str
    attempts: int = 1
    error_code: Optional[str] = None
    repository: Optional[str] = None
    branch_used: Optional[str] = None


def create_git_sync_result(
    success: bool,
    message: str,
    operation: str,
    attempts: int = 1,
    error_code: Optional[str] = None,
    repository: Optional[str] = None,
    branch_used: Optional[str] = None
) -> GitSyncResult:
    """
    Helper function to create GitSyncResult instances.

    Args:
        success: Whether the operation was successful
        message: Descriptive message about the operation result
        operation: Name of the operation that was performed
        attempts: Number of attempts made (default: 1)
        error_code: Optional error code for failed operations
        repository: Name of the repository the step ran against
        branch_used: Optional branch name that was used in the operation

    Returns:
        GitSyncResult instance with all fields populated
    """
    return GitSyncResult(
        success=success,
        message=message,
        operation=operation,
        attempts=attempts,
        error_code=error_code,
        repository=repository,
        branch_used=branch_used
    )


def failure_from_error(error, operation: str, repository: Optional[str] = None) -> GitSyncResult:
    """Convert a raised WebgitError into a failed GitSyncResult."""
    return GitSyncResult(
        success=False,
        message=error.message,
        operation=operation,
        error_code=error.error_code,
        repository=repository or error.repository
    )
