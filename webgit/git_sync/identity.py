"""Identity and ownership resolution against the hosting platform."""

import logging
import subprocess
from typing import Optional

from ..config import Config
from ..errors import AuthUnavailable, AuthRequired
from ..hosting import GitHubCLI
from ..platform import clear_os_credential_store, get_git_executable
from .remote_utils import (
    build_remote_url,
    is_canonical_account,
    parse_account,
    set_remote_url,
)
from .repository_info import RepositoryDescriptor
from .runner import GitRunner
from .utils import GitSyncResult, create_git_sync_result


class IdentityResolver:
    """
    Decides who is pushing and whether they control each repository.

    The last authenticated login is the only state kept between runs; it lives in
    a plain text file so a change of account can be detected and stale
    credentials flushed before anything is pushed.
    """

    def __init__(self, config: Config, runner: GitRunner, hosting: GitHubCLI):
        self.config = config
        self.runner = runner
        self.hosting = hosting
        self.logger = logging.getLogger('webgit.git_sync.identity')

    def current_user(self) -> str:
        """
        Authenticated login on the hosting platform.

        Raises:
            AuthUnavailable: if the platform CLI is not authenticated
        """
        return self.hosting.current_user()

    def _try_current_user(self) -> Optional[str]:
        try:
            return self.current_user()
        except AuthUnavailable as e:
            self.logger.debug(f"No authenticated user: {e.message}")
            return None

    def read_last_user(self) -> Optional[str]:
        """Login recorded by the previous run, if any."""
        cache_file = self.config.identity_cache_file
        try:
            value = cache_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            self.logger.warning(f"Could not read identity cache {cache_file}: {e}")
            return None
        return value or None

    def record_user(self, user: str) -> None:
        cache_file = self.config.identity_cache_file
        try:
            cache_file.parent.mkdir(parents=True, exist_ok=True)
            cache_file.write_text(f"{user}\n", encoding="utf-8")
        except OSError as e:
            self.logger.warning(f"Could not write identity cache {cache_file}: {e}")

    def is_owner(self, descriptor: RepositoryDescriptor, user: Optional[str] = None) -> bool:
        """
        Whether the current user can push to the repository's origin.

        True when origin's account is the current user; when no user can be
        determined, any non-canonical account is presumed to be the user's own;
        remotes under the capitalized canonical namespace count as accessible
        while ``assume_capitalized_access`` is enabled.
        """
        account = parse_account(descriptor.origin_url)
        if not account:
            return False

        if (self.config.assume_capitalized_access
                and account == self.config.capitalized_account
                and account != self.config.canonical_account):
            return True

        if user is None:
            user = self._try_current_user()

        if user is None:
            return not is_canonical_account(account, self.config)

        return account.lower() == user.lower()

    def refresh_credentials(self) -> bool:
        """
        Flush cached hosting credentials and re-sync git with the gh identity.

        Returns:
            True if git's credential helper was re-synced
        """
        host = self.config.host
        self.logger.info(f"🔄 Refreshing cached credentials for {host}")

        try:
            subprocess.run(
                [get_git_executable(), "credential", "reject"],
                input=f"protocol=https\nhost={host}\n\n",
                capture_output=True,
                text=True,
                timeout=15
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            self.logger.warning(f"Could not clear git credential helper cache: {e}")

        clear_os_credential_store(host)
        return self.hosting.setup_git_credentials()

    def check_user_change(self, descriptor: RepositoryDescriptor) -> GitSyncResult:
        """
        Align credentials and origin with the authenticated account.

        Owners pass straight through. Otherwise the user must be authenticated
        (unless origin already sits under a non-canonical account, in which case
        it is presumed to be the user's). A change of account since the last run
        triggers a credential refresh; origin under someone else's account is
        rewritten to the current user's.
        """
        operation = "check_user_change"
        if self.is_owner(descriptor):
            return create_git_sync_result(True, "Repository owned by current user", operation, repository=descriptor.name)

        account = parse_account(descriptor.origin_url)
        try:
            user = self.current_user()
        except AuthUnavailable as e:
            if account and not is_canonical_account(account, self.config):
                self.logger.warning(f"⚠️ {descriptor.name}: not authenticated, assuming {account} is your account")
                return create_git_sync_result(True, "Unauthenticated; origin presumed user-owned", operation, repository=descriptor.name)
            error = AuthRequired(f"Authentication required for {descriptor.name}: run 'gh auth login' ({e.message})", descriptor.name)
            self.logger.error(f"❌ {error.message}")
            return create_git_sync_result(False, error.message, operation, error_code=error.error_code, repository=descriptor.name)

        last_user = self.read_last_user()
        if last_user and last_user != user:
            self.logger.info(f"GitHub user changed from {last_user} to {user}")
            self.refresh_credentials()
        self.record_user(user)

        if account is None or is_canonical_account(account, self.config) or account.lower() == user.lower():
            return create_git_sync_result(True, f"Remotes consistent with {user}", operation, repository=descriptor.name)

        expected_url = build_remote_url(self.config.host, user, descriptor.name)
        if descriptor.origin_url == expected_url:
            return create_git_sync_result(True, f"Remotes consistent with {user}", operation, repository=descriptor.name)

        self.logger.info(f"{descriptor.name}: origin points at {account}, updating for {user}")
        if not set_remote_url(self.runner, descriptor.path, "origin", expected_url):
            return create_git_sync_result(
                False,
                f"Could not update origin of {descriptor.name} to {expected_url}",
                operation,
                error_code="REMOTE_REWRITE_FAILED",
                repository=descriptor.name
            )

        return create_git_sync_result(True, f"origin updated to {expected_url}", operation, repository=descriptor.name)

