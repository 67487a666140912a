"""GitHub operations via the gh CLI."""

import json
import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from .errors import AuthUnavailable, ForkFailed, PRCreationFailed
from .platform import get_gh_executable


@dataclass
class GhResult:
    """Exit status and output of one gh invocation."""
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitHubCLI:
    """Hosting-platform client backed by the ``gh`` command."""

    def __init__(self, host: str = "github.com", timeout: int = 60):
        self.host = host
        self.timeout = timeout
        self.logger = logging.getLogger('webgit.hosting')

    def _run(self, *args: str) -> GhResult:
        try:
            result = subprocess.run(
                [get_gh_executable(), *args],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            self.logger.error(f"gh {args[0]} timed out after {self.timeout}s")
            return GhResult(returncode=124, stdout="", stderr="timeout")
        except FileNotFoundError:
            self.logger.error("gh CLI not found. Please install GitHub CLI.")
            return GhResult(returncode=127, stdout="", stderr="gh CLI not found")
        return GhResult(result.returncode, result.stdout.strip(), result.stderr.strip())

    def current_user(self) -> str:
        """
        Login of the authenticated account.

        Raises:
            AuthUnavailable: if gh is not authenticated or returns no login
        """
        result = self._run("api", "user", "--jq", ".login")
        if not result.ok or not result.stdout:
            raise AuthUnavailable(
                f"GitHub CLI is not authenticated: {result.stderr or 'no login returned'}"
            )
        return result.stdout

    def setup_git_credentials(self) -> bool:
        """Point git's credential helper at the gh identity."""
        result = self._run("auth", "setup-git", "--hostname", self.host)
        if not result.ok:
            self.logger.warning(f"gh auth setup-git failed: {result.stderr}")
        return result.ok

    def fork(self, parent_account: str, repo: str) -> str:
        """
        Fork ``parent_account/repo`` into the user's account.

        Forking an already forked repository succeeds, so this is safe to repeat.

        Returns:
            Clone URL of the fork

        Raises:
            ForkFailed: if the fork cannot be created or located, including when
                the account owning it cannot be looked up
        """
        result = self._run("repo", "fork", f"{parent_account}/{repo}", "--clone=false")
        if not result.ok and "already exists" not in result.stderr.lower():
            raise ForkFailed(f"Could not fork {parent_account}/{repo}: {result.stderr}", repository=repo)

        try:
            user = self.current_user()
        except AuthUnavailable as e:
            raise ForkFailed(f"Could not look up the fork of {parent_account}/{repo}: {e.message}", repository=repo) from e

        view = self._run("repo", "view", f"{user}/{repo}", "--json", "url", "--jq", ".url")
        if not view.ok or not view.stdout:
            raise ForkFailed(f"Fork of {parent_account}/{repo} not found under {user}", repository=repo)

        fork_url = view.stdout.rstrip("/") + ".git"
        self.logger.info(f"Fork ready: {fork_url}")
        return fork_url

    def create_pr(
        self,
        owner: str,
        repo: str,
        head: str,
        base: str,
        title: str,
        body: str,
    ) -> str:
        """Create a Pull Request.

        Args:
            owner: Parent repository owner
            repo: Repository name
            head: Head ref, ``user:branch`` for cross-repository PRs
            base: Base branch (target)
            title: PR title
            body: PR description

        Returns:
            PR URL.

        Raises:
            PRCreationFailed: if gh rejects the request
        """
        result = self._run(
            "pr", "create",
            "--repo", f"{owner}/{repo}",
            "--head", head,
            "--base", base,
            "--title", title,
            "--body", body,
        )
        if not result.ok:
            raise PRCreationFailed(f"Failed to create PR for {owner}/{repo}: {result.stderr}", repository=repo)

        # gh pr create outputs the PR URL
        pr_url = result.stdout.splitlines()[-1] if result.stdout else ""
        self.logger.info(f"Created PR: {pr_url}")
        return pr_url

    def find_open_pr(self, owner: str, repo: str, head_account: str, head_branch: str) -> Optional[str]:
        """
        URL of an open PR from ``head_account:head_branch``, if any.

        ``gh pr list --head`` matches the branch name only, so PRs from other
        accounts' branches of the same name are filtered out by head owner.
        """
        result = self._run(
            "pr", "list",
            "--repo", f"{owner}/{repo}",
            "--state", "open",
            "--head", head_branch,
            "--json", "url,headRepositoryOwner",
        )
        if not result.ok:
            return None
        try:
            prs: List[dict] = json.loads(result.stdout or "[]")
        except json.JSONDecodeError:
            return None

        for pr in prs:
            login = (pr.get("headRepositoryOwner") or {}).get("login", "")
            if login.lower() == head_account.lower():
                return pr.get("url")
        return None

    def pages_enabled(self, owner: str, repo: str) -> bool:
        """True if GitHub Pages is configured on ``owner/repo``."""
        return self._run("api", f"repos/{owner}/{repo}/pages").ok

    def enable_pages(self, owner: str, repo: str, branch: str) -> bool:
        """Request GitHub Pages for ``owner/repo`` served from ``branch`` root."""
        result = self._run(
            "api", "-X", "POST", f"repos/{owner}/{repo}/pages",
            "-f", f"source[branch]={branch}",
            "-f", "source[path]=/",
        )
        if not result.ok:
            self.logger.warning(f"Enabling Pages on {owner}/{repo} failed: {result.stderr}")
        return result.ok
