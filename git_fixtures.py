"""Throwaway git repositories and a scripted hosting client for the test suites."""

import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from webgit.config import Config
from webgit.errors import AuthUnavailable
from webgit.git_sync.runner import CommandResult, GitRunner


def git(cwd: Path, *args: str, timestamp: Optional[int] = None) -> str:
    """Run git in ``cwd`` and return stripped stdout; raises on failure."""
    env = dict(os.environ)
    if timestamp is not None:
        env["GIT_AUTHOR_DATE"] = f"{timestamp} +0000"
        env["GIT_COMMITTER_DATE"] = f"{timestamp} +0000"
    result = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True, env=env)
    return result.stdout.strip()


def init_repo(path: Path, origin: Optional[str] = None) -> Path:
    """Create a repository on ``main`` with a committer identity and one commit."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init")
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(path, "config", "user.name", "Test User")
    git(path, "config", "user.email", "test@example.com")
    git(path, "config", "commit.gpgsign", "false")
    commit_file(path, "README.md", f"# {path.name}\n", "Initial commit", timestamp=1_600_000_000)
    if origin:
        git(path, "remote", "add", "origin", origin)
    return path


def init_bare(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "--bare")
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    return path


def commit_file(repo: Path, filename: str, content: str, message: str, timestamp: Optional[int] = None) -> str:
    """Write ``filename`` and commit it; returns the new commit hash."""
    (repo / filename).write_text(content, encoding="utf-8")
    git(repo, "add", filename)
    git(repo, "commit", "-m", message, timestamp=timestamp)
    return git(repo, "rev-parse", "HEAD")


def record_gitlink(parent: Path, name: str, sha: str) -> None:
    """Point the parent's index at ``sha`` for the submodule directory ``name``."""
    git(parent, "update-index", "--add", "--cacheinfo", f"160000,{sha},{name}")


def build_workspace(base: Path, submodules=("localsite", "home"), extras=("community",)) -> Path:
    """
    Create ``base/webroot`` with nested submodule checkouts and extra repositories.

    Each submodule is recorded in the parent as a gitlink at its current HEAD;
    extra repositories are ignored by the parent.
    """
    root = init_repo(base / "webroot")
    (root / ".gitignore").write_text("".join(f"/{name}/\n" for name in extras), encoding="utf-8")
    git(root, "add", ".gitignore")

    for name in submodules:
        sub = init_repo(root / name)
        record_gitlink(root, name, git(sub, "rev-parse", "HEAD"))
    git(root, "commit", "-m", "Register submodules", timestamp=1_600_000_100)

    for name in extras:
        init_repo(root / name)
    return root


def make_config(root: Path, **overrides) -> Config:
    settings = dict(
        root_dir=root,
        submodules=("localsite", "home"),
        extras=("community",),
        identity_cache_file=root.parent / "webgit_last_user",
        push_retry_attempts=2,
        push_retry_delay=0,
    )
    settings.update(overrides)
    return Config(**settings)


class FakeHosting:
    """Records hosting calls instead of talking to GitHub."""

    def __init__(self, user: Optional[str] = "alice", host: str = "github.com"):
        self.host = host
        self.user = user
        self.calls: List[tuple] = []
        self.fork_urls: Dict[str, str] = {}
        self.created_prs: List[dict] = []
        # (head account, head branch) -> PR url
        self.open_prs: Dict[tuple, str] = {}
        self.pages = True
        self.enable_ok = True
        self.setup_git_ok = True

    def current_user(self) -> str:
        if self.user is None:
            raise AuthUnavailable("GitHub CLI is not authenticated: not logged in")
        return self.user

    def setup_git_credentials(self) -> bool:
        self.calls.append(("setup-git",))
        return self.setup_git_ok

    def fork(self, parent_account: str, repo: str) -> str:
        self.calls.append(("fork", parent_account, repo))
        return self.fork_urls[repo]

    def create_pr(self, owner, repo, head, base, title, body) -> str:
        self.calls.append(("create_pr", owner, repo, head, base))
        self.created_prs.append(dict(owner=owner, repo=repo, head=head, base=base, title=title, body=body))
        return f"https://github.com/{owner}/{repo}/pull/{len(self.created_prs)}"

    def find_open_pr(self, owner, repo, head_account, head_branch) -> Optional[str]:
        return self.open_prs.get((head_account.lower(), head_branch))

    def pages_enabled(self, owner, repo) -> bool:
        self.calls.append(("pages_enabled", owner, repo))
        return self.pages

    def enable_pages(self, owner, repo, branch) -> bool:
        self.calls.append(("enable_pages", owner, repo, branch))
        return self.enable_ok


DENIED_STDERR = (
    "remote: Permission to {account}/{repo}.git denied to alice.\n"
    "fatal: unable to access 'https://github.com/{account}/{repo}.git/': "
    "The requested URL returned error: 403"
)


class HostingRemoteRunner(GitRunner):
    """
    GitRunner that scripts pushes to hosting URLs.

    Pushes whose origin is an ``https://`` URL return ``push_stderr`` instead of
    touching the network; pushes to local paths run for real. Every push is
    recorded as (repository directory name, origin URL, args).
    """

    def __init__(self, push_stderr: str = DENIED_STDERR):
        super().__init__()
        self.push_stderr = push_stderr
        self.pushes: List[tuple] = []

    def run(self, path: Path, *args: str) -> CommandResult:
        if args and args[0] in ("push", "fetch"):
            origin = super().output(path, "remote", "get-url", "origin") or ""
            if args[0] == "push":
                self.pushes.append((Path(path).name, origin, args))
            if origin.startswith("https://"):
                if args[0] == "fetch":
                    return CommandResult(status=128, stdout="", stderr="fatal: could not resolve host: github.com")
                account, repo = origin[len("https://github.com/"):].removesuffix(".git").split("/")
                return CommandResult(status=128, stdout="", stderr=self.push_stderr.format(account=account, repo=repo))
        return super().run(path, *args)
