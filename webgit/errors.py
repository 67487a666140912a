"""Error taxonomy for webgit.

Lower layers (the hosting CLI client, the workspace) raise these; the
orchestration components catch them at the repository boundary and report a
result carrying ``error_code`` so one failing repository never stops the run.
"""

from typing import Iterable, Optional


class WebgitError(Exception):
    """Base class for all webgit errors."""

    error_code = "WEBGIT_ERROR"

    def __init__(self, message: str, repository: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.repository = repository


class AuthUnavailable(WebgitError):
    """The hosting-platform CLI is not authenticated."""

    error_code = "AUTH_UNAVAILABLE"


class AuthRequired(WebgitError):
    """An operation needs an authenticated identity and none is available."""

    error_code = "AUTH_REQUIRED"


class PermissionDenied(WebgitError):
    """A push was rejected for lack of write access."""

    error_code = "PERMISSION_DENIED"


class ForkFailed(WebgitError):
    """The hosting platform could not produce a fork URL."""

    error_code = "FORK_FAILED"


class PRCreationFailed(WebgitError):
    """The hosting platform rejected a pull request."""

    error_code = "PR_CREATION_FAILED"


class MergeConflict(WebgitError):
    """A merge stopped on conflicts and was aborted."""

    error_code = "MERGE_CONFLICT"


class MissingWorkflowScope(WebgitError):
    """The push touched workflow files but the token lacks the workflow scope."""

    error_code = "MISSING_WORKFLOW_SCOPE"


class UnpushedAfterRetries(WebgitError):
    """Commits remain unpushed after the bounded retry loop."""

    error_code = "UNPUSHED_AFTER_RETRIES"


class WorkspaceError(WebgitError):
    """The working directory is not the recognized primary repository."""

    error_code = "WORKSPACE_INVALID"


class RepoNotRecognized(WebgitError):
    """A repository name is neither the primary, a submodule nor an extra repository."""

    error_code = "REPO_NOT_RECOGNIZED"

    def __init__(self, name: str, valid_names: Iterable[str]):
        self.valid_names = list(valid_names)
        message = (
            f"Repository '{name}' not recognized. "
            f"Valid names: {', '.join(self.valid_names)}"
        )
        super().__init__(message, repository=name)
