"""Remote repository utilities: URL parsing, remote rewriting and fork setup."""

import logging
import re
from pathlib import Path
from typing import Optional, TYPE_CHECKING

from ..config import Config
from ..errors import AuthUnavailable, AuthRequired, ForkFailed
from .runner import GitRunner
from .utils import GitSyncResult, create_git_sync_result

if TYPE_CHECKING:
    from ..hosting import GitHubCLI
    from .identity import IdentityResolver
    from .repository_info import RepositoryDescriptor


_REMOTE_PATTERN = re.compile(
    r'^(?:https?://(?:[^@/]+@)?[^/]+/|ssh://git@[^/]+/|git@[^:]+:)([^/]+)/([^/]+?)(?:\.git)?/?$'
)


def parse_remote(url: Optional[str]) -> Optional[tuple[str, str]]:
    """Split a hosting-platform remote URL into (account, repository)."""
    if not url:
        return None
    match = _REMOTE_PATTERN.match(url.strip())
    if not match:
        return None
    return match.group(1), match.group(2)


def parse_account(url: Optional[str]) -> Optional[str]:
    """Account segment of a remote URL, or None for local paths and unknown formats."""
    parsed = parse_remote(url)
    return parsed[0] if parsed else None


def build_remote_url(host: str, account: str, repo: str) -> str:
    """Canonical HTTPS clone URL for ``account/repo`` on ``host``."""
    return f"https://{host}/{account}/{repo}.git"


def get_remote_url(runner: GitRunner, git_repo_dir: Path, remote: str = "origin") -> Optional[str]:
    """URL of ``remote``, or None if the remote is not configured."""
    return runner.output(git_repo_dir, "remote", "get-url", remote) or None


def set_remote_url(runner: GitRunner, git_repo_dir: Path, remote: str, url: str) -> bool:
    """Point ``remote`` at ``url``, adding the remote when missing."""
    logger = logging.getLogger('webgit.git_sync.remote_utils')

    if get_remote_url(runner, git_repo_dir, remote) is None:
        result = runner.run(git_repo_dir, "remote", "add", remote, url)
    else:
        result = runner.run(git_repo_dir, "remote", "set-url", remote, url)

    if not result.ok:
        logger.error(f"Failed to set {remote} to {url} in {git_repo_dir.name}: {result.stderr}")
        return False

    logger.info(f"✓ {git_repo_dir.name}: {remote} -> {url}")
    return True


def default_parent_account(name: str, config: Config) -> str:
    """
    Account casing for a repository's canonical namespace.

    The hosting platform's account names are case-sensitive in API paths and the
    canonical namespace is spelled differently across repositories, so the casing
    is looked up from configuration.
    """
    if name in config.capitalized_repos:
        return config.capitalized_account
    return config.canonical_account


def get_parent_account(name: str, upstream_url: Optional[str], config: Config) -> str:
    """Parent account from the upstream remote, else the configured casing rule."""
    account = parse_account(upstream_url)
    if account:
        return account
    return default_parent_account(name, config)


def is_canonical_account(account: Optional[str], config: Config) -> bool:
    """True for either spelling of the canonical namespace."""
    if not account:
        return False
    return account.lower() in (config.canonical_account.lower(), config.capitalized_account.lower())


def is_partner_account(account: Optional[str], config: Config) -> bool:
    """True if the account is an excluded partner namespace."""
    if not account:
        return False
    return account.lower() in (partner.lower() for partner in config.partner_accounts)


class RemoteRewriter:
    """Keeps origin on the user's fork and upstream on the canonical source."""

    def __init__(self, config: Config, runner: GitRunner, hosting: "GitHubCLI", identity: "IdentityResolver"):
        self.config = config
        self.runner = runner
        self.hosting = hosting
        self.identity = identity
        self.logger = logging.getLogger('webgit.git_sync.remotes')

    def ensure_upstream(self, descriptor: "RepositoryDescriptor") -> Optional[str]:
        """
        Make sure an ``upstream`` remote points at the canonical repository.

        Returns:
            The upstream URL, or None if it could not be configured
        """
        current = get_remote_url(self.runner, descriptor.path, "upstream")
        if current:
            return current

        upstream_url = build_remote_url(self.config.host, descriptor.parent_account, descriptor.name)
        if set_remote_url(self.runner, descriptor.path, "upstream", upstream_url):
            return upstream_url
        return None

    def setup_fork(self, descriptor: "RepositoryDescriptor", parent_account: str) -> GitSyncResult:
        """
        Fork ``parent_account/<repo>`` for the current user and point origin at it.

        Does nothing for repositories the user already owns.

        Returns:
            GitSyncResult whose ``message`` holds the fork URL on success
        """
        if self.identity.is_owner(descriptor):
            return create_git_sync_result(
                success=True,
                message=descriptor.origin_url or "",
                operation="setup_fork",
                repository=descriptor.name
            )

        try:
            user = self.identity.current_user()
        except AuthUnavailable as e:
            error = AuthRequired(f"Forking {descriptor.name} requires 'gh auth login': {e.message}", descriptor.name)
            self.logger.error(f"❌ {error.message}")
            return create_git_sync_result(
                success=False,
                message=error.message,
                operation="setup_fork",
                error_code=error.error_code,
                repository=descriptor.name
            )

        try:
            fork_url = self.hosting.fork(parent_account, descriptor.name)
        except ForkFailed as e:
            self.logger.error(f"❌ {e.message}")
            return create_git_sync_result(
                success=False,
                message=e.message,
                operation="setup_fork",
                error_code=e.error_code,
                repository=descriptor.name
            )

        if not set_remote_url(self.runner, descriptor.path, "origin", fork_url):
            return create_git_sync_result(
                success=False,
                message=f"Fork created but origin could not be updated to {fork_url}",
                operation="setup_fork",
                error_code="REMOTE_REWRITE_FAILED",
                repository=descriptor.name
            )

        # Keep the parent reachable for later merges
        if get_remote_url(self.runner, descriptor.path, "upstream") is None:
            set_remote_url(
                self.runner, descriptor.path, "upstream",
                build_remote_url(self.config.host, parent_account, descriptor.name)
            )

        self.logger.info(f"✓ {descriptor.name}: origin now points at {user}'s fork")
        return create_git_sync_result(
            success=True,
            message=fork_url,
            operation="setup_fork",
            repository=descriptor.name
        )
