"""Commit and push engine with fork/pull-request fallback.

A repository moves through ``clean -> staged -> committed`` and then ends in
one of the PushOutcome states. Push fallbacks are ordered lists of
PushStrategy values run by ``dispatch_push``; the first strategy that succeeds
wins, and a failure whose category is in ``stop_on`` ends the chain early.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import Config
from ..errors import AuthUnavailable, MissingWorkflowScope, PermissionDenied, PRCreationFailed, UnpushedAfterRetries
from ..hosting import GitHubCLI
from .branch_utils import count_unpushed_commits, get_current_local_branch, has_working_tree_changes
from .error_strategies import categorize_error, describe_resolution, recovery_action
from .error_types import ErrorCategory, RecoveryAction
from .heads import DetachedHeadReconciler
from .identity import IdentityResolver
from .remote_utils import RemoteRewriter, get_remote_url, parse_account
from .repository_info import PushOutcome, PushReport, RepositoryDescriptor
from .runner import GitRunner
from .utils import GitSyncResult, create_git_sync_result, failure_from_error
from .workspace import Workspace


@dataclass(frozen=True)
class PushStrategy:
    """One way of pushing, as git arguments."""
    name: str
    args: Tuple[str, ...]
    forced: bool = False


@dataclass
class PushAttempt:
    """Tagged result of running a chain of push strategies."""
    success: bool
    strategy: Optional[PushStrategy]
    category: Optional[ErrorCategory]
    output: str
    attempts: int


def owner_strategies(branch: str) -> List[PushStrategy]:
    return [
        PushStrategy("explicit-ref", ("push", "origin", f"HEAD:refs/heads/{branch}")),
        PushStrategy("same-name", ("push", "origin", branch)),
        PushStrategy("plain", ("push",)),
    ]


def force_strategy(branch: str) -> PushStrategy:
    return PushStrategy(
        "force-with-lease",
        ("push", "--force-with-lease", "origin", f"HEAD:refs/heads/{branch}"),
        forced=True
    )


def retry_strategies(branch: str) -> List[PushStrategy]:
    """Progressively more aggressive pushes for the unpushed-commit retry loop."""
    return [
        PushStrategy("set-upstream", ("push", "-u", "origin", f"HEAD:refs/heads/{branch}")),
        PushStrategy("same-name", ("push", "origin", branch)),
        force_strategy(branch),
    ]


def dispatch_push(
    runner: GitRunner,
    descriptor: RepositoryDescriptor,
    strategies: Sequence[PushStrategy],
    stop_on: Iterable[ErrorCategory] = (ErrorCategory.WORKFLOW_SCOPE,)
) -> PushAttempt:
    """Run ``strategies`` in order until one succeeds or a stop category is hit."""
    logger = logging.getLogger('webgit.git_sync.push')
    stop_on = set(stop_on)
    last = PushAttempt(False, None, ErrorCategory.UNKNOWN, "no push strategy attempted", 0)

    for attempt, strategy in enumerate(strategies, 1):
        result = runner.run(descriptor.path, *strategy.args)
        if result.ok:
            logger.debug(f"{descriptor.name}: push strategy '{strategy.name}' succeeded")
            return PushAttempt(True, strategy, None, result.output, attempt)

        category = categorize_error(result.output)
        logger.debug(f"{descriptor.name}: push strategy '{strategy.name}' failed ({category.value})")
        last = PushAttempt(False, strategy, category, result.output, attempt)
        if category in stop_on:
            break

    return last


class CommitPushEngine:
    """Stages, commits and publishes one repository at a time."""

    def __init__(
        self,
        config: Config,
        runner: GitRunner,
        workspace: Workspace,
        hosting: GitHubCLI,
        identity: IdentityResolver,
        remotes: RemoteRewriter,
        heads: DetachedHeadReconciler,
        sleep=time.sleep
    ):
        self.config = config
        self.runner = runner
        self.workspace = workspace
        self.hosting = hosting
        self.identity = identity
        self.remotes = remotes
        self.heads = heads
        self._sleep = sleep
        self.logger = logging.getLogger('webgit.git_sync.push')

    def commit_and_push(self, descriptor: RepositoryDescriptor, nopr: bool = False) -> PushReport:
        """
        Commit any local changes in ``descriptor`` and publish them.

        Repositories without changes end in NO_CHANGES: nothing is committed and
        no credentials or remotes are touched.
        """
        name = descriptor.name
        if not self.workspace.is_checkout(descriptor):
            self.logger.debug(f"{name}: not checked out, skipping")
            return PushReport(name, PushOutcome.NO_CHANGES, "Not checked out", error_code="NOT_A_CHECKOUT")

        head_result = self.heads.reconcile(descriptor)
        if not head_result.success:
            self.logger.warning(f"⚠️ {name}: {head_result.message}")

        if not has_working_tree_changes(self.runner, descriptor.path):
            self.logger.info(f"✓ {name}: no changes to commit")
            return PushReport(name, PushOutcome.NO_CHANGES, "No changes to commit")

        identity_result = self.identity.check_user_change(descriptor)
        if not identity_result.success:
            return PushReport(name, PushOutcome.FAILED, identity_result.message, error_code=identity_result.error_code)

        # origin may have been rewritten by the identity check
        descriptor = self.workspace.refresh(descriptor)

        commit_sha = self._commit(descriptor)
        if commit_sha is None:
            return PushReport(name, PushOutcome.FAILED, "Commit failed", error_code="COMMIT_FAILED")

        return self.publish(descriptor, commit_sha, nopr)

    def _commit(self, descriptor: RepositoryDescriptor) -> Optional[str]:
        staged = self.runner.run(descriptor.path, "add", "-A")
        if not staged.ok:
            self.logger.error(f"❌ {descriptor.name}: git add failed: {staged.stderr}")
            return None

        message = self.config.commit_message.format(repo=descriptor.name)
        commit = self.runner.run(descriptor.path, "commit", "-m", message)
        if not commit.ok:
            self.logger.error(f"❌ {descriptor.name}: commit failed: {commit.output}")
            return None

        sha = self.runner.output(descriptor.path, "rev-parse", "HEAD")
        self.logger.info(f"✓ {descriptor.name}: committed {sha[:8] if sha else '?'}")
        return sha

    def publish(self, descriptor: RepositoryDescriptor, commit_sha: Optional[str], nopr: bool = False) -> PushReport:
        """Push an already committed HEAD, choosing the owner or contributor path."""
        branch = get_current_local_branch(self.runner, descriptor.path) or self.config.primary_branch

        if self.identity.is_owner(descriptor):
            report = self._push_as_owner(descriptor, branch)
        else:
            report = self._push_as_contributor(descriptor, branch, nopr)
        report.commit_sha = commit_sha

        if report.outcome.published and report.branch == branch:
            self.ensure_pushed(descriptor, branch)

        if (descriptor.is_submodule and report.fork_url
                and report.outcome in (PushOutcome.PUSHED_TO_FORK, PushOutcome.PULL_REQUEST_CREATED)):
            self.propagate_submodule_reference(descriptor, report, nopr)

        self._log_report(report)
        return report

    def _log_report(self, report: PushReport) -> None:
        if report.outcome == PushOutcome.FAILED:
            self.logger.error(f"❌ {report.repository}: {report.message}")
        else:
            self.logger.info(f"✓ {report.repository}: {report.outcome.value} - {report.message}")

    def _user_action_failure(self, name: str, branch: str, category: ErrorCategory) -> PushReport:
        if category == ErrorCategory.WORKFLOW_SCOPE:
            error = MissingWorkflowScope(describe_resolution(category), name)
            return PushReport(name, PushOutcome.FAILED, error.message, branch=branch, error_code=error.error_code)
        return PushReport(name, PushOutcome.FAILED, describe_resolution(category), branch=branch, error_code="PUSH_FAILED")

    def _push_as_owner(self, descriptor: RepositoryDescriptor, branch: str) -> PushReport:
        name = descriptor.name
        attempt = dispatch_push(self.runner, descriptor, owner_strategies(branch))
        if attempt.success:
            return PushReport(name, PushOutcome.PUSHED_DIRECTLY, f"Pushed to origin/{branch}", branch=branch)

        if recovery_action(attempt.category) == RecoveryAction.USER_ACTION_REQUIRED:
            return self._user_action_failure(name, branch, attempt.category)

        self.logger.warning(f"⚠️ {name}: regular pushes failed, trying force-with-lease")
        forced = dispatch_push(self.runner, descriptor, [force_strategy(branch)])
        if forced.success:
            return PushReport(name, PushOutcome.PUSHED_AFTER_FORCE, f"Force-pushed (with lease) to origin/{branch}", branch=branch)

        return PushReport(
            name, PushOutcome.FAILED,
            describe_resolution(forced.category or ErrorCategory.UNKNOWN),
            branch=branch, error_code="PUSH_FAILED"
        )

    def _push_as_contributor(self, descriptor: RepositoryDescriptor, branch: str, nopr: bool) -> PushReport:
        name = descriptor.name
        direct = dispatch_push(
            self.runner, descriptor,
            owner_strategies(branch)[:1],
            stop_on=(ErrorCategory.WORKFLOW_SCOPE, ErrorCategory.PERMISSION_DENIED)
        )
        if direct.success:
            return PushReport(name, PushOutcome.PUSHED_DIRECTLY, f"Pushed to origin/{branch}", branch=branch)

        action = recovery_action(direct.category)
        if action == RecoveryAction.USER_ACTION_REQUIRED:
            return self._user_action_failure(name, branch, direct.category)

        if action == RecoveryAction.FORK_AND_PR:
            self.logger.info(f"{name}: no write access, continuing through your fork")
            return self._push_via_fork(descriptor, branch, nopr)

        self.logger.info(f"{name}: direct push failed ({direct.category.value}), pushing a feature branch")
        return self._push_feature_branch(descriptor, branch, nopr)

    def _push_via_fork(self, descriptor: RepositoryDescriptor, branch: str, nopr: bool) -> PushReport:
        name = descriptor.name
        parent_account = descriptor.parent_account

        fork = self.remotes.setup_fork(descriptor, parent_account)
        if not fork.success:
            return PushReport(name, PushOutcome.FAILED, fork.message, branch=branch, error_code=fork.error_code)
        fork_url = fork.message

        fork_descriptor = self.workspace.refresh(descriptor)
        attempt = dispatch_push(
            self.runner, fork_descriptor,
            [PushStrategy("fork", ("push", "origin", f"HEAD:refs/heads/{branch}")), force_strategy(branch)]
        )
        if not attempt.success:
            if attempt.category == ErrorCategory.PERMISSION_DENIED:
                error = PermissionDenied(f"Push to your fork {fork_url} was denied; check 'gh auth status'", name)
                return PushReport(name, PushOutcome.FAILED, error.message, branch=branch, error_code=error.error_code, fork_url=fork_url)
            return PushReport(
                name, PushOutcome.FAILED,
                f"Push to fork failed: {describe_resolution(attempt.category or ErrorCategory.UNKNOWN)}",
                branch=branch, error_code="FORK_PUSH_FAILED", fork_url=fork_url
            )

        report = PushReport(name, PushOutcome.PUSHED_TO_FORK, f"Pushed to fork {fork_url}", branch=branch, fork_url=fork_url)
        if nopr:
            return report

        try:
            user = self.identity.current_user()
        except AuthUnavailable as e:
            report.error_code = e.error_code
            report.message += "; pull request skipped (not authenticated)"
            return report

        pr = self.open_pull_request(parent_account, name, head_account=user, head_branch=branch, base=branch)
        if pr.success:
            report.outcome = PushOutcome.PULL_REQUEST_CREATED
            report.pr_url = pr.message
            report.message = f"Pull request: {pr.message}"
        else:
            report.error_code = pr.error_code
            report.message += f"; {pr.message}"
        return report

    def _push_feature_branch(self, descriptor: RepositoryDescriptor, base: str, nopr: bool) -> PushReport:
        name = descriptor.name
        try:
            user = self.identity.current_user()
        except AuthUnavailable:
            user = parse_account(descriptor.origin_url) or "webgit"

        feature = f"{user}-{name}-{datetime.now():%Y%m%d%H%M%S}"
        attempt = dispatch_push(
            self.runner, descriptor,
            [PushStrategy("feature-branch", ("push", "origin", f"HEAD:refs/heads/{feature}"))]
        )
        if not attempt.success:
            return PushReport(
                name, PushOutcome.FAILED,
                describe_resolution(attempt.category or ErrorCategory.UNKNOWN),
                branch=feature, error_code="PUSH_FAILED"
            )

        report = PushReport(name, PushOutcome.PUSHED_TO_BRANCH, f"Pushed feature branch {feature}", branch=feature)
        if nopr:
            return report

        head_account = parse_account(descriptor.origin_url) or user
        pr = self.open_pull_request(descriptor.parent_account, name, head_account=head_account, head_branch=feature, base=base)
        if pr.success:
            report.outcome = PushOutcome.PULL_REQUEST_CREATED
            report.pr_url = pr.message
            report.message = f"Pull request from {feature}: {pr.message}"
        else:
            report.error_code = pr.error_code
            report.message += f"; {pr.message}"
        return report

    def open_pull_request(
        self,
        parent_account: str,
        repo: str,
        head_account: str,
        head_branch: str,
        base: str,
        title: Optional[str] = None,
        body: Optional[str] = None
    ) -> GitSyncResult:
        """
        Open (or reuse) a pull request into ``parent_account/repo``.

        Returns:
            GitSyncResult whose ``message`` is the PR URL on success
        """
        operation = "create_pull_request"
        same_account = head_account.lower() == parent_account.lower()
        head = head_branch if same_account else f"{head_account}:{head_branch}"

        existing = self.hosting.find_open_pr(parent_account, repo, head_account, head_branch)
        if existing:
            self.logger.info(f"{repo}: pull request already open: {existing}")
            return create_git_sync_result(True, existing, operation, repository=repo, branch_used=head_branch)

        title = title or f"Update {repo} from {head_account}"
        body = body or f"Changes to {repo} pushed from {head_account}/{repo} ({head_branch})."
        try:
            url = self.hosting.create_pr(parent_account, repo, head, base, title, body)
        except PRCreationFailed as e:
            return failure_from_error(e, operation, repo)
        return create_git_sync_result(True, url, operation, repository=repo, branch_used=head_branch)

    def propagate_submodule_reference(self, descriptor: RepositoryDescriptor, report: PushReport, nopr: bool) -> Optional[PushReport]:
        """
        Record a submodule's fork commit in the parent and publish the parent.

        The parent's gitlink and ``.gitmodules`` URL are updated, committed and
        pushed with the same owner/contributor logic as any other repository.
        """
        primary = self.workspace.primary()
        root = primary.path
        relative = descriptor.path.relative_to(root).as_posix()

        paths = [relative]
        self.runner.run(root, "add", "--", relative)
        if report.fork_url and (root / ".gitmodules").exists():
            self.runner.run(root, "config", "-f", ".gitmodules", f"submodule.{relative}.url", report.fork_url)
            self.runner.run(root, "add", ".gitmodules")
            paths.append(".gitmodules")

        if self.runner.run(root, "diff", "--cached", "--quiet", "--", *paths).ok:
            return None

        # Only the reference paths; anything else already staged stays staged
        short_sha = report.commit_sha[:8] if report.commit_sha else "HEAD"
        commit = self.runner.run(
            root, "commit", "-m", f"Update {descriptor.name} submodule reference to {short_sha}", "--", *paths
        )
        if not commit.ok:
            self.logger.error(f"❌ {primary.name}: could not commit {descriptor.name} reference: {commit.output}")
            return None

        self.logger.info(f"{primary.name}: publishing updated {descriptor.name} reference")
        return self.publish(primary, self.runner.output(root, "rev-parse", "HEAD"), nopr)

    def ensure_pushed(self, descriptor: RepositoryDescriptor, branch: Optional[str] = None) -> GitSyncResult:
        """
        Retry pushing until ``origin/<branch>`` contains HEAD.

        Makes up to ``push_retry_attempts`` attempts, ``push_retry_delay``
        seconds apart, escalating the push strategy each time. Running out of
        attempts is reported as a warning; it does not stop the run.
        """
        operation = "ensure_pushed"
        name = descriptor.name

        if get_remote_url(self.runner, descriptor.path, "origin") is None:
            return create_git_sync_result(True, "No origin remote", operation, repository=name)

        branch = branch or get_current_local_branch(self.runner, descriptor.path)
        if branch is None:
            return create_git_sync_result(True, "Detached HEAD, nothing to verify", operation, repository=name)

        max_attempts = self.config.push_retry_attempts
        strategies = retry_strategies(branch)

        for attempt in range(1, max_attempts + 1):
            unpushed = count_unpushed_commits(self.runner, descriptor.path, branch)
            if unpushed == 0:
                return create_git_sync_result(
                    True, f"origin/{branch} is up to date", operation,
                    attempts=attempt, repository=name, branch_used=branch
                )

            strategy = strategies[min(attempt - 1, len(strategies) - 1)]
            self.logger.warning(
                f"⚠️ {name}: {unpushed if unpushed is not None else 'unknown number of'} unpushed commit(s), "
                f"pushing with '{strategy.name}' (attempt {attempt}/{max_attempts})"
            )
            self.runner.run(descriptor.path, *strategy.args)
            if attempt < max_attempts:
                self._sleep(self.config.push_retry_delay)

        unpushed = count_unpushed_commits(self.runner, descriptor.path, branch)
        if unpushed == 0:
            return create_git_sync_result(
                True, f"origin/{branch} is up to date", operation,
                attempts=max_attempts, repository=name, branch_used=branch
            )

        error = UnpushedAfterRetries(
            f"{name} still has unpushed commits on {branch} after {max_attempts} attempts; run push again",
            name
        )
        self.logger.warning(f"⚠️ {error.message}")
        return create_git_sync_result(
            False, error.message, operation, attempts=max_attempts,
            error_code=error.error_code, repository=name, branch_used=branch
        )
