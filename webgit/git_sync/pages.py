"""GitHub Pages check and pull request enrichment for the primary repository."""

import logging
from typing import Callable, Optional

from ..config import Config
from ..errors import AuthUnavailable
from ..hosting import GitHubCLI
from .branch_utils import get_current_local_branch
from .identity import IdentityResolver
from .push import CommitPushEngine
from .remote_utils import parse_account
from .repository_info import PagesDecision, PagesStatus, RepositoryDescriptor
from .utils import GitSyncResult, create_git_sync_result, failure_from_error


DecisionCallback = Callable[[str, str], PagesDecision]

PR_BODY_TEMPLATE = """Changes from {user}/{repo}.

- Preview: {preview_url}
- Fork: {fork_url}
- GitHub Pages: {pages_status}
"""


def prompt_pages_decision(user: str, repo: str) -> PagesDecision:
    """Ask on the terminal what to do when Pages could not be enabled."""
    choices = {
        "1": PagesDecision.PROCEED,
        "2": PagesDecision.SKIP_PR,
        "3": PagesDecision.ABORT,
    }
    print(f"\nGitHub Pages could not be enabled on {user}/{repo}.")
    print("  1) Create the pull request anyway")
    print("  2) Skip the pull request")
    print("  3) Abort the push")
    while True:
        try:
            answer = input("Choose 1, 2 or 3: ").strip()
        except EOFError:
            logging.getLogger('webgit.git_sync.pages').warning(
                f"⚠️ No terminal input available; skipping the pull request for {user}/{repo}"
            )
            return PagesDecision.SKIP_PR
        if answer in choices:
            return choices[answer]


class PagesEnricher:
    """
    Opens the primary repository's pull request from the user's fork.

    Before the pull request is created, GitHub Pages is checked on the fork
    (so reviewers get a preview link) and enabled if needed. When enabling
    fails the injected ``decide`` callback chooses between going ahead,
    skipping the pull request, and aborting the push.
    """

    def __init__(
        self,
        config: Config,
        hosting: GitHubCLI,
        identity: IdentityResolver,
        engine: CommitPushEngine,
        decide: Optional[DecisionCallback] = None
    ):
        self.config = config
        self.hosting = hosting
        self.identity = identity
        self.engine = engine
        self.decide = decide or prompt_pages_decision
        self.logger = logging.getLogger('webgit.git_sync.pages')

    def ensure_pages(self, user: str, repo: str, branch: str) -> PagesStatus:
        """Check Pages on ``user/repo`` and try to enable it when missing."""
        if self.hosting.pages_enabled(user, repo):
            return PagesStatus.ENABLED

        self.logger.info(f"GitHub Pages not enabled on {user}/{repo}, enabling from {branch}")
        if self.hosting.enable_pages(user, repo, branch):
            return PagesStatus.ENABLE_ATTEMPTED
        return PagesStatus.NOT_ENABLED

    def build_body(self, user: str, repo: str, status: PagesStatus) -> str:
        return PR_BODY_TEMPLATE.format(
            user=user,
            repo=repo,
            preview_url=f"https://{user.lower()}.github.io/{repo}/",
            fork_url=f"https://{self.config.host}/{user}/{repo}",
            pages_status=status.value,
        )

    def open_pull_request(self, descriptor: RepositoryDescriptor) -> GitSyncResult:
        """
        Enrich and open the pull request for ``descriptor``.

        Returns:
            GitSyncResult; ``error_code`` is ``PR_ABORTED`` when the operator
            chose to abort, ``PR_SKIPPED`` when the pull request was skipped
        """
        operation = "pages_pull_request"
        name = descriptor.name

        try:
            self.identity.current_user()
        except AuthUnavailable as e:
            return failure_from_error(e, operation, name)

        origin_account = parse_account(descriptor.origin_url)
        if not origin_account or origin_account.lower() == descriptor.parent_account.lower():
            return create_git_sync_result(
                True, "origin is the parent repository, no pull request needed", operation, repository=name
            )

        branch = get_current_local_branch(self.engine.runner, descriptor.path) or self.config.primary_branch
        status = self.ensure_pages(origin_account, name, branch)

        if status == PagesStatus.NOT_ENABLED:
            decision = self.decide(origin_account, name)
            self.logger.info(f"{name}: Pages decision: {decision.value}")
            if decision == PagesDecision.ABORT:
                return create_git_sync_result(False, "Push aborted by user", operation, error_code="PR_ABORTED", repository=name)
            if decision == PagesDecision.SKIP_PR:
                return create_git_sync_result(True, "Pull request skipped by user", operation, error_code="PR_SKIPPED", repository=name)

        return self.engine.open_pull_request(
            descriptor.parent_account,
            name,
            head_account=origin_account,
            head_branch=branch,
            base=self.config.primary_branch,
            title=f"Update {name} from {origin_account}",
            body=self.build_body(origin_account, name, status)
        )
