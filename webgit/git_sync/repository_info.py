"""Repository information and state data structures."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class RepositoryCategory(Enum):
    """Closed set of repository categories in a webroot workspace."""
    PRIMARY = "primary"
    SUBMODULE = "submodule"
    EXTRA = "extra"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying a repository name."""
    name: str
    category: RepositoryCategory
    index: Optional[int] = None
    message: str = ""

    @property
    def recognized(self) -> bool:
        return self.category != RepositoryCategory.UNRECOGNIZED


@dataclass(frozen=True)
class RepositoryDescriptor:
    """A repository as seen during one invocation; rebuilt every run."""
    name: str
    category: RepositoryCategory
    path: Path
    origin_url: Optional[str]
    upstream_url: Optional[str]
    parent_account: str
    index: Optional[int] = None

    @property
    def is_submodule(self) -> bool:
        return self.category == RepositoryCategory.SUBMODULE

    @property
    def is_primary(self) -> bool:
        return self.category == RepositoryCategory.PRIMARY


@dataclass(frozen=True)
class CommitReference:
    """A commit identified by hash, ordered by author timestamp."""
    sha: str
    timestamp: int

    def is_newer_than(self, other: "CommitReference") -> bool:
        return self.timestamp > other.timestamp


class PushOutcome(Enum):
    """Terminal states of the commit/push state machine."""
    NO_CHANGES = "clean"
    PUSHED_DIRECTLY = "pushed-directly"
    PUSHED_AFTER_FORCE = "pushed-after-force"
    PUSHED_TO_FORK = "pushed-to-fork"
    PUSHED_TO_BRANCH = "pushed-to-branch"
    PULL_REQUEST_CREATED = "pull-request-created"
    FAILED = "failed"

    @property
    def published(self) -> bool:
        return self not in (PushOutcome.NO_CHANGES, PushOutcome.FAILED)


@dataclass
class PushReport:
    """What happened when committing and pushing one repository."""
    repository: str
    outcome: PushOutcome
    message: str
    commit_sha: Optional[str] = None
    branch: Optional[str] = None
    error_code: Optional[str] = None
    pr_url: Optional[str] = None
    fork_url: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome != PushOutcome.FAILED


class PagesStatus(Enum):
    """State of the static-site feature on a user's fork."""
    ENABLED = "enabled"
    NOT_ENABLED = "not-enabled"
    ENABLE_ATTEMPTED = "enable-attempted"


class PagesDecision(Enum):
    """Operator choice when the static-site feature could not be enabled."""
    PROCEED = "proceed"
    SKIP_PR = "skip_pr"
    ABORT = "abort"


class SubmoduleAction(Enum):
    """What the submodule updater did to one submodule."""
    ADVANCED = "advanced"             # Checked out the newer commit the parent references
    STAGED_PARENT = "staged_parent"   # Parent reference advanced to the submodule's newer HEAD
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FORCED_REMOTE = "forced_remote"   # Unsafe remote-tracking checkout


@dataclass
class SubmoduleUpdate:
    """Result of reconciling one submodule."""
    name: str
    action: SubmoduleAction
    message: str
    current: Optional[CommitReference] = None
    referenced: Optional[CommitReference] = None

    @property
    def success(self) -> bool:
        return self.action != SubmoduleAction.SKIPPED
