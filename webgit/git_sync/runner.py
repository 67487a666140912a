"""Version-control command interface built on GitPython's command wrapper."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import git

from ..platform import get_git_executable


@dataclass
class CommandResult:
    """Exit status and captured output of one git invocation."""
    status: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.status == 0

    @property
    def output(self) -> str:
        """Combined output, stderr last, for pattern matching and reporting."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class GitRunner:
    """
    Run git commands against an explicit repository path.

    Every call names the repository it operates on, so nothing depends on the
    process working directory. Failures are returned, never raised: callers
    inspect ``CommandResult.ok`` and categorize ``output`` themselves.
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        self.logger = logging.getLogger('webgit.git_sync.runner')
        self._env = dict(env) if env else None
        self._executable = get_git_executable()

    def run(self, path: Path, *args: str) -> CommandResult:
        """Execute ``git <args>`` inside ``path``."""
        command = [self._executable, *args]
        self.logger.debug(f"[{Path(path).name}] git {' '.join(args)}")

        try:
            status, stdout, stderr = git.Git(str(path)).execute(
                command,
                with_extended_output=True,
                with_exceptions=False,
                env=self._env
            )
        except git.GitCommandNotFound as e:
            self.logger.error(f"Git executable not found: {e}")
            return CommandResult(status=127, stdout="", stderr=str(e))
        except OSError as e:
            # Missing working directory and similar process-level failures
            return CommandResult(status=128, stdout="", stderr=str(e))

        result = CommandResult(status=status, stdout=stdout or "", stderr=stderr or "")
        if not result.ok:
            self.logger.debug(f"[{Path(path).name}] git {args[0] if args else ''} exited {status}: {result.stderr}")
        return result

    def output(self, path: Path, *args: str) -> Optional[str]:
        """Stripped stdout of a successful command, or None on failure."""
        result = self.run(path, *args)
        if not result.ok:
            return None
        return result.stdout.strip()

    def is_repository(self, path: Path) -> bool:
        """True when ``path`` is the top level of its own git checkout."""
        path = Path(path)
        if not (path / ".git").exists():
            return False
        return self.run(path, "rev-parse", "--git-dir").ok
