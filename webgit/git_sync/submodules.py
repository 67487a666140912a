"""Safe submodule reference reconciliation.

A parent repository must never silently move a submodule back in time. Each
submodule's checked-out commit is compared with the commit the parent's index
references using author timestamps:

- referenced commit newer: check it out (the parent is ahead);
- referenced commit older: keep the submodule where it is and stage the
  submodule path in the parent, so the parent's reference moves forward;
- equal: nothing to do.

When either timestamp cannot be read the submodule is left untouched.
"""

import logging
from pathlib import Path
from typing import List, Optional

from ..config import Config
from .branch_utils import detect_default_branch, get_current_local_branch
from .repository_info import CommitReference, RepositoryDescriptor, SubmoduleAction, SubmoduleUpdate
from .runner import GitRunner
from .workspace import Workspace


class SafeSubmoduleUpdater:
    """Reconciles submodule checkouts with the parent's references."""

    def __init__(self, config: Config, runner: GitRunner, workspace: Workspace):
        self.config = config
        self.runner = runner
        self.workspace = workspace
        self.logger = logging.getLogger('webgit.git_sync.submodules')

    def commit_reference(self, git_repo_dir: Path, revision: str, fetch_missing: bool = False) -> Optional[CommitReference]:
        """
        Resolve ``revision`` to a hash and author timestamp in ``git_repo_dir``.

        With ``fetch_missing`` a single ``git fetch origin`` is attempted when
        the commit is not in the local object store.
        """
        sha = self.runner.output(git_repo_dir, "rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}")
        if not sha and fetch_missing:
            self.logger.debug(f"{git_repo_dir.name}: {revision[:8]} not present locally, fetching origin")
            self.runner.run(git_repo_dir, "fetch", "origin")
            sha = self.runner.output(git_repo_dir, "rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}")
        if not sha:
            return None

        timestamp = self.runner.output(git_repo_dir, "log", "-1", "--format=%at", sha)
        try:
            return CommitReference(sha=sha, timestamp=int(timestamp))
        except (TypeError, ValueError):
            return None

    def parent_reference(self, descriptor: RepositoryDescriptor) -> Optional[str]:
        """Commit the parent's index records for the submodule path."""
        relative = descriptor.path.relative_to(self.workspace.root).as_posix()
        output = self.runner.output(self.workspace.root, "ls-files", "--stage", "--", relative)
        if not output:
            return None

        # "<mode> <sha> <stage>\t<path>"
        fields = output.splitlines()[0].split()
        if len(fields) < 2 or fields[0] != "160000":
            return None
        return fields[1]

    def _skip(self, descriptor: RepositoryDescriptor, message: str, **refs) -> SubmoduleUpdate:
        self.logger.warning(f"⚠️ {descriptor.name}: {message}")
        return SubmoduleUpdate(descriptor.name, SubmoduleAction.SKIPPED, message, **refs)

    def reconcile(self, descriptor: RepositoryDescriptor) -> SubmoduleUpdate:
        """Reconcile one submodule against the parent's index reference."""
        if self.config.unsafe_submodules:
            return self.force_remote_checkout(descriptor)

        if not self.workspace.is_checkout(descriptor):
            return self._skip(descriptor, "not a valid checkout")

        current = self.commit_reference(descriptor.path, "HEAD")
        if current is None:
            return self._skip(descriptor, "cannot read current commit timestamp")

        referenced_sha = self.parent_reference(descriptor)
        if referenced_sha is None:
            return self._skip(descriptor, "parent does not reference this submodule", current=current)

        if referenced_sha == current.sha:
            return SubmoduleUpdate(descriptor.name, SubmoduleAction.UNCHANGED, "Already at referenced commit", current, current)

        referenced = self.commit_reference(descriptor.path, referenced_sha, fetch_missing=True)
        if referenced is None:
            return self._skip(
                descriptor,
                f"cannot read timestamp of referenced commit {referenced_sha[:8]}; leaving untouched",
                current=current
            )

        if referenced.is_newer_than(current):
            checkout = self.runner.run(descriptor.path, "checkout", referenced.sha)
            if not checkout.ok:
                return self._skip(descriptor, f"checkout of {referenced.sha[:8]} failed: {checkout.stderr}", current=current, referenced=referenced)
            self.logger.info(f"✓ {descriptor.name}: advanced to referenced commit {referenced.sha[:8]}")
            return SubmoduleUpdate(
                descriptor.name, SubmoduleAction.ADVANCED,
                f"Checked out newer referenced commit {referenced.sha[:8]}", current, referenced
            )

        if current.is_newer_than(referenced):
            relative = descriptor.path.relative_to(self.workspace.root).as_posix()
            staged = self.runner.run(self.workspace.root, "add", "--", relative)
            if not staged.ok:
                return self._skip(descriptor, f"could not stage reference update: {staged.stderr}", current=current, referenced=referenced)
            self.logger.info(
                f"✓ {descriptor.name}: kept newer {current.sha[:8]}, "
                f"parent reference moves forward from {referenced.sha[:8]}"
            )
            return SubmoduleUpdate(
                descriptor.name, SubmoduleAction.STAGED_PARENT,
                f"Kept newer commit {current.sha[:8]} and staged it in the parent", current, referenced
            )

        return SubmoduleUpdate(descriptor.name, SubmoduleAction.UNCHANGED, "Same timestamp, no action", current, referenced)

    def reconcile_all(self) -> List[SubmoduleUpdate]:
        """Reconcile every configured submodule, in configuration order."""
        if self.config.unsafe_submodules:
            self.logger.warning(
                "⚠️ UNSAFE submodule mode: checking out remote-tracking commits unconditionally; "
                "this may revert submodules to older commits"
            )

        return [self.reconcile(descriptor) for descriptor in self.workspace.submodules()]

    def force_remote_checkout(self, descriptor: RepositoryDescriptor) -> SubmoduleUpdate:
        """Check out the remote-tracking tip regardless of timestamps."""
        if not self.workspace.is_checkout(descriptor):
            return self._skip(descriptor, "not a valid checkout")

        current = self.commit_reference(descriptor.path, "HEAD")
        self.runner.run(descriptor.path, "fetch", "origin")
        branch = detect_default_branch(
            self.runner, descriptor.path, "origin",
            (self.config.primary_branch, self.config.fallback_branch)
        )
        checkout = self.runner.run(descriptor.path, "checkout", "--detach", f"origin/{branch}")
        if not checkout.ok:
            return self._skip(descriptor, f"remote checkout of origin/{branch} failed: {checkout.stderr}", current=current)

        remote = self.commit_reference(descriptor.path, "HEAD")
        self.logger.warning(f"⚠️ {descriptor.name}: forced to origin/{branch} ({remote.sha[:8] if remote else '?'})")
        return SubmoduleUpdate(
            descriptor.name, SubmoduleAction.FORCED_REMOTE,
            f"Checked out origin/{branch} unconditionally", current, remote
        )

    def update_single(self, descriptor: RepositoryDescriptor) -> SubmoduleUpdate:
        """
        Bring one submodule up to its own remote-tracking tip when that tip is newer.

        Uses the same timestamp rule as ``reconcile`` but compares against
        ``origin/<branch>`` instead of the parent's reference.
        """
        if self.config.unsafe_submodules:
            return self.force_remote_checkout(descriptor)

        if not self.workspace.is_checkout(descriptor):
            return self._skip(descriptor, "not a valid checkout")

        fetch = self.runner.run(descriptor.path, "fetch", "origin")
        if not fetch.ok:
            self.logger.warning(f"⚠️ {descriptor.name}: fetch failed, comparing against last known remote state")

        branch = get_current_local_branch(self.runner, descriptor.path) or detect_default_branch(
            self.runner, descriptor.path, "origin",
            (self.config.primary_branch, self.config.fallback_branch)
        )

        current = self.commit_reference(descriptor.path, "HEAD")
        remote = self.commit_reference(descriptor.path, f"origin/{branch}")
        if current is None or remote is None:
            return self._skip(descriptor, f"cannot compare HEAD with origin/{branch}", current=current, referenced=remote)

        if current.sha == remote.sha or not remote.is_newer_than(current):
            message = "Up to date" if current.sha == remote.sha else f"Local commit is not older than origin/{branch}"
            return SubmoduleUpdate(descriptor.name, SubmoduleAction.UNCHANGED, message, current, remote)

        merge = self.runner.run(descriptor.path, "merge", "--no-edit", f"origin/{branch}")
        if not merge.ok:
            self.runner.run(descriptor.path, "merge", "--abort")
            return self._skip(descriptor, f"merge of origin/{branch} failed; resolve manually", current=current, referenced=remote)

        self.logger.info(f"✓ {descriptor.name}: updated to newer origin/{branch} ({remote.sha[:8]})")
        return SubmoduleUpdate(
            descriptor.name, SubmoduleAction.ADVANCED,
            f"Merged newer origin/{branch}", current, remote
        )
