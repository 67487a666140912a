"""Pull and push orchestration across the primary repository, submodules and extras."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..config import Config
from ..errors import RepoNotRecognized
from ..hosting import GitHubCLI
from .branch_utils import check_remote_branch_exists, count_unpushed_commits
from .heads import DetachedHeadReconciler
from .identity import IdentityResolver
from .pages import DecisionCallback, PagesEnricher
from .push import CommitPushEngine
from .remote_utils import RemoteRewriter, get_remote_url, parse_remote
from .repository_info import PushOutcome, PushReport, RepositoryCategory, RepositoryDescriptor
from .runner import GitRunner
from .submodules import SafeSubmoduleUpdater
from .upstream_tracking import merge_from_origin, merge_from_upstream
from .utils import create_git_sync_result
from .workspace import Workspace, classify


@dataclass
class SyncComponents:
    """The collaborating services one command run works with."""
    config: Config
    runner: GitRunner
    workspace: Workspace
    hosting: GitHubCLI
    identity: IdentityResolver
    remotes: RemoteRewriter
    heads: DetachedHeadReconciler
    updater: SafeSubmoduleUpdater
    engine: CommitPushEngine
    pages: PagesEnricher


def build_components(
    config: Config,
    runner: Optional[GitRunner] = None,
    hosting: Optional[GitHubCLI] = None,
    decide: Optional[DecisionCallback] = None,
    sleep=time.sleep
) -> SyncComponents:
    """Wire the services for ``config``; collaborators can be swapped for tests."""
    runner = runner or GitRunner()
    hosting = hosting or GitHubCLI(config.host, config.gh_timeout)

    workspace = Workspace(config, runner)
    identity = IdentityResolver(config, runner, hosting)
    remotes = RemoteRewriter(config, runner, hosting, identity)
    heads = DetachedHeadReconciler(config, runner)
    updater = SafeSubmoduleUpdater(config, runner, workspace)
    engine = CommitPushEngine(config, runner, workspace, hosting, identity, remotes, heads, sleep=sleep)
    pages = PagesEnricher(config, hosting, identity, engine, decide=decide)

    return SyncComponents(
        config=config,
        runner=runner,
        workspace=workspace,
        hosting=hosting,
        identity=identity,
        remotes=remotes,
        heads=heads,
        updater=updater,
        engine=engine,
        pages=pages,
    )


@dataclass
class OperationSummary:
    """Per-repository results of one command, in execution order."""
    operation: str
    results: List[Any] = field(default_factory=list)
    aborted: bool = False

    def add(self, result: Any) -> Any:
        self.results.append(result)
        return result

    def extend(self, other: "OperationSummary") -> None:
        self.results.extend(other.results)
        self.aborted = self.aborted or other.aborted

    @property
    def failures(self) -> List[Any]:
        return [result for result in self.results if not result.success]

    @property
    def success(self) -> bool:
        return not self.aborted and not self.failures


def _require_recognized(name: str, config: Config) -> None:
    if not classify(name, config).recognized:
        raise RepoNotRecognized(name, config.all_repositories)


class PullOrchestrator:
    """Brings every checkout up to date with origin and the canonical upstream."""

    def __init__(self, components: SyncComponents):
        self.components = components
        self.config = components.config
        self.workspace = components.workspace
        self.logger = logging.getLogger('webgit.git_sync.pull')

    def _pull_one(self, descriptor: RepositoryDescriptor, summary: OperationSummary) -> None:
        if not self.workspace.is_checkout(descriptor):
            self.logger.debug(f"{descriptor.name}: not checked out, skipping pull")
            return

        self.logger.info(f"⬇️ Pulling {descriptor.name}")
        summary.add(merge_from_origin(self.config, self.components.runner, descriptor))

        # Local or file remotes have no hosting namespace to derive an upstream from
        if parse_remote(descriptor.origin_url) is None:
            return

        descriptor = self.workspace.refresh(descriptor)
        summary.add(merge_from_upstream(self.config, self.components.runner, self.components.remotes, descriptor))

    def pull_all(self) -> OperationSummary:
        """
        Pull primary, submodules and extras, then run the submodule and
        detached-HEAD sweeps.
        """
        summary = OperationSummary("pull")
        for descriptor in self.workspace.all():
            self._pull_one(descriptor, summary)

        for update in self.components.updater.reconcile_all():
            summary.add(update)

        summary.extend(self.fix_heads())
        return summary

    def pull_repository(self, name: str) -> OperationSummary:
        """
        Pull a single repository.

        Raises:
            RepoNotRecognized: before anything is touched, for unknown names
        """
        _require_recognized(name, self.config)
        summary = OperationSummary(f"pull {name}")

        descriptor = self.workspace.descriptor(name)
        self._pull_one(descriptor, summary)

        if descriptor.is_submodule and self.workspace.is_checkout(descriptor):
            summary.add(self.components.updater.reconcile(descriptor))

        if self.workspace.is_checkout(descriptor):
            summary.add(self.components.heads.reconcile(descriptor))
        return summary

    def fix_heads(self) -> OperationSummary:
        """Reattach every detached HEAD in the workspace."""
        summary = OperationSummary("fix-heads")
        for descriptor in self.workspace.all():
            if self.workspace.is_checkout(descriptor):
                summary.add(self.components.heads.reconcile(descriptor))
        return summary


class PushOrchestrator:
    """Commits and publishes the workspace in dependency order."""

    def __init__(self, components: SyncComponents, puller: Optional[PullOrchestrator] = None):
        self.components = components
        self.config = components.config
        self.workspace = components.workspace
        self.engine = components.engine
        self.puller = puller or PullOrchestrator(components)
        self.logger = logging.getLogger('webgit.git_sync.push')

    def _has_commits_for_upstream(self, descriptor: RepositoryDescriptor) -> bool:
        runner = self.components.runner
        if get_remote_url(runner, descriptor.path, "upstream") is None:
            return False
        for branch in (self.config.primary_branch, self.config.fallback_branch):
            if check_remote_branch_exists(runner, descriptor.path, branch, "upstream"):
                unpushed = count_unpushed_commits(runner, descriptor.path, branch, remote="upstream")
                return bool(unpushed)
        return False

    def _push_primary(self, summary: OperationSummary, nopr: bool) -> PushReport:
        """Commit/push the primary repository and run Pages enrichment when it applies."""
        primary = self.workspace.primary()
        report = summary.add(self.engine.commit_and_push(primary, nopr))

        if nopr or report.outcome in (PushOutcome.FAILED, PushOutcome.PULL_REQUEST_CREATED):
            return report

        primary = self.workspace.refresh(primary)
        if self.workspace.is_checkout(primary) and self._has_commits_for_upstream(primary):
            pr = summary.add(self.components.pages.open_pull_request(primary))
            if pr.error_code == "PR_ABORTED":
                self.logger.warning("⚠️ Push aborted; remaining repositories were not pushed")
                summary.aborted = True
            elif pr.success and pr.message.startswith("http"):
                report.pr_url = pr.message
        return report

    def _push_submodule(self, descriptor: RepositoryDescriptor, summary: OperationSummary, nopr: bool) -> PushReport:
        report = summary.add(self.engine.commit_and_push(descriptor, nopr))

        # Fork outcomes already carried their reference into the parent
        if report.outcome in (PushOutcome.NO_CHANGES, PushOutcome.PUSHED_DIRECTLY, PushOutcome.PUSHED_AFTER_FORCE) \
                and report.error_code != "NOT_A_CHECKOUT":
            parent_report = self.engine.propagate_submodule_reference(descriptor, report, nopr)
            if parent_report is not None:
                summary.add(parent_report)
        return report

    def push_all(self, nopr: bool = False, skip_pull: bool = False) -> OperationSummary:
        """Pull, then push primary, submodules, primary again, extras, and sweep."""
        summary = OperationSummary("push all")
        if not skip_pull:
            summary.extend(self.puller.pull_all())

        self._push_primary(summary, nopr)
        if summary.aborted:
            return summary

        for descriptor in self.workspace.submodules():
            summary.add(self.engine.commit_and_push(descriptor, nopr))

        for update in self.components.updater.reconcile_all():
            summary.add(update)
        summary.add(self.engine.commit_and_push(self.workspace.primary(), nopr))

        for descriptor in self.workspace.extras():
            summary.add(self.engine.commit_and_push(descriptor, nopr))

        summary.extend(self.final_sweep())
        return summary

    def push_submodules(self, nopr: bool = False, skip_pull: bool = False) -> OperationSummary:
        """Push every submodule, then record the new references in the primary repository."""
        summary = OperationSummary("push submodules")
        if not skip_pull:
            for descriptor in self.workspace.submodules():
                summary.extend(self.puller.pull_repository(descriptor.name))

        for descriptor in self.workspace.submodules():
            summary.add(self.engine.commit_and_push(descriptor, nopr))

        for update in self.components.updater.reconcile_all():
            summary.add(update)
        summary.add(self.engine.commit_and_push(self.workspace.primary(), nopr))
        return summary

    def push_repository(self, name: str, nopr: bool = False, skip_pull: bool = False) -> OperationSummary:
        """
        Push a single repository.

        Raises:
            RepoNotRecognized: before anything is touched, for unknown names
        """
        _require_recognized(name, self.config)
        summary = OperationSummary(f"push {name}")

        if not skip_pull:
            summary.extend(self.puller.pull_repository(name))

        descriptor = self.workspace.descriptor(name)
        if descriptor.category == RepositoryCategory.PRIMARY:
            self._push_primary(summary, nopr)
        elif descriptor.category == RepositoryCategory.SUBMODULE:
            if self.workspace.is_checkout(descriptor):
                summary.add(self.components.updater.update_single(descriptor))
            self._push_submodule(descriptor, summary, nopr)
        else:
            summary.add(self.engine.commit_and_push(descriptor, nopr))
        return summary

    def final_sweep(self) -> OperationSummary:
        """Re-push anything still ahead of its origin branch."""
        summary = OperationSummary("final sweep")
        for descriptor in self.workspace.all():
            if not self.workspace.is_checkout(descriptor):
                continue
            summary.add(self.engine.ensure_pushed(descriptor))
        return summary

    def update_remotes(self) -> OperationSummary:
        """Align every checkout's origin with the authenticated account."""
        summary = OperationSummary("update-remotes")
        for descriptor in self.workspace.all():
            if self.workspace.is_checkout(descriptor):
                summary.add(self.components.identity.check_user_change(descriptor))
        return summary

    def refresh_auth(self) -> OperationSummary:
        """Flush cached credentials, re-sync with gh, then re-check remotes."""
        summary = OperationSummary("refresh-auth")
        refreshed = self.components.identity.refresh_credentials()
        summary.add(create_git_sync_result(
            refreshed,
            "git credentials re-synced with gh" if refreshed else "gh auth setup-git failed; run 'gh auth login'",
            "refresh_auth",
            error_code=None if refreshed else "AUTH_REFRESH_FAILED"
        ))
        summary.extend(self.update_remotes())
        return summary
