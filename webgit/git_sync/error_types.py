"""Error types and categorization for git and hosting-platform output."""

from dataclasses import dataclass
from enum import Enum
from typing import List


class ErrorCategory(Enum):
    """Categories of command failures for appropriate handling."""
    PERMISSION_DENIED = "permission_denied"
    WORKFLOW_SCOPE = "workflow_scope"
    NON_FAST_FORWARD = "non_fast_forward"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    REPOSITORY_ACCESS = "repository_access"
    MERGE_CONFLICT = "merge_conflict"
    NOTHING_TO_MERGE = "nothing_to_merge"
    UNKNOWN = "unknown"


class RecoveryAction(Enum):
    """Types of recovery actions that can be taken."""
    RETRY = "retry"
    FORCE_WITH_LEASE = "force_with_lease"
    FORK_AND_PR = "fork_and_pr"
    FEATURE_BRANCH = "feature_branch"
    USER_ACTION_REQUIRED = "user_action_required"
    IGNORE = "ignore"


@dataclass
class ErrorResolution:
    """Information about how to resolve a specific error."""
    category: ErrorCategory
    action: RecoveryAction
    user_message: str
    resolution_steps: List[str]
