"""Command-line entry point for webgit."""

import argparse
import logging
import os
import sys
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from .config import Config, load_configuration, validate_configuration
from .errors import RepoNotRecognized, WorkspaceError
from .git_sync.orchestrator import OperationSummary, PullOrchestrator, PushOrchestrator, build_components
from .git_sync.repository_info import PushReport
from .git_sync.workspace import classify
from .platform import validate_git_availability


COMMAND_ALIASES = {
    "pull": "pull",
    "pull-all": "pull",
    "push": "push",
    "push-all": "push",
    "fix": "fix-heads",
    "fix-heads": "fix-heads",
    "remotes": "update-remotes",
    "update-remotes": "update-remotes",
    "auth": "refresh-auth",
    "refresh-auth": "refresh-auth",
}

REJECTED_COMMANDS = {
    "update": "'update' is not a webgit command. Use 'webgit pull' to bring repositories up to date.",
    "commit": "'commit' is not a webgit command. Use 'webgit push' to commit and push your changes.",
}

USAGE = """usage: webgit <command> [target] [nopr] [--unsafe-submodules] [--skip-pull] [--log-level LEVEL]

commands:
  pull [repo]                      merge origin and upstream into every repository (or one)
  push [repo|submodules|all] [nopr] commit and push, opening pull requests unless 'nopr'
  fix                              reattach detached HEADs to the primary branch
  remotes                          point origins at the authenticated account
  auth                             flush cached credentials and re-check remotes
"""


def setup_logging(config: Config) -> None:
    """Configure console logging for the webgit loggers."""
    class OperationFormatter(logging.Formatter):
        def format(self, record):
            if hasattr(record, 'operation'):
                record.msg = f"[{record.operation}] {record.msg}"
            return super().format(record)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    loggers = [
        'webgit.cli',
        'webgit.config',
        'webgit.git_sync',
        'webgit.hosting',
    ]

    formatter = OperationFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, config.log_level))

        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="webgit", add_help=True, usage=USAGE)
    parser.add_argument("command", nargs="?")
    parser.add_argument("tokens", nargs="*")
    parser.add_argument("--unsafe-submodules", action="store_true",
                        help="check out remote submodule commits even when older than the current ones")
    parser.add_argument("--skip-pull", action="store_true", help="do not pull before pushing")
    parser.add_argument("--log-level", default=None, help="override WEBGIT_LOG_LEVEL")
    return parser


def split_tokens(tokens: Sequence[str]) -> Tuple[Optional[str], bool]:
    """
    Separate the optional target from the pull-request opt-out.

    ``nopr`` and the two-word ``no pr`` are accepted anywhere after the command.
    """
    remaining: List[str] = []
    nopr = False
    index = 0
    while index < len(tokens):
        token = tokens[index].lower()
        if token == "nopr":
            nopr = True
        elif token == "no" and index + 1 < len(tokens) and tokens[index + 1].lower() == "pr":
            nopr = True
            index += 1
        else:
            remaining.append(tokens[index])
        index += 1

    return (remaining[0] if remaining else None), nopr


def report_summary(summary: OperationSummary) -> None:
    """Log the outcome of a command run."""
    logger = logging.getLogger('webgit.cli')
    extra = {'operation': summary.operation}

    for result in summary.results:
        if isinstance(result, PushReport) and result.pr_url:
            logger.info(f"🔗 {result.repository}: {result.pr_url}", extra=extra)

    failures = summary.failures
    for result in failures:
        name = getattr(result, 'repository', None) or getattr(result, 'name', '?')
        code = getattr(result, 'error_code', None)
        suffix = f" ({code})" if code else ""
        logger.warning(f"⚠️ {name}: {result.message}{suffix}", extra=extra)

    if summary.aborted:
        logger.warning("⚠️ Run aborted before all repositories were processed", extra=extra)
    elif failures:
        logger.info(f"Completed with {len(failures)} problem(s)", extra=extra)
    else:
        logger.info("✓ Completed", extra=extra)


def run_command(command: str, target: Optional[str], nopr: bool, skip_pull: bool, config: Config) -> OperationSummary:
    components = build_components(config)
    components.workspace.validate()

    puller = PullOrchestrator(components)
    pusher = PushOrchestrator(components, puller)

    if command == "pull":
        if target is None or target == "all":
            return puller.pull_all()
        return puller.pull_repository(target)

    if command == "push":
        if target is None or target == "all":
            return pusher.push_all(nopr=nopr, skip_pull=skip_pull)
        if target == "submodules":
            return pusher.push_submodules(nopr=nopr, skip_pull=skip_pull)
        return pusher.push_repository(target, nopr=nopr, skip_pull=skip_pull)

    if command == "fix-heads":
        return puller.fix_heads()

    if command == "update-remotes":
        return pusher.update_remotes()

    return pusher.refresh_auth()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run webgit; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_intermixed_args(argv)

    if args.command is None:
        print(USAGE, file=sys.stderr)
        return 1

    raw_command = args.command.lower()
    if raw_command in REJECTED_COMMANDS:
        print(REJECTED_COMMANDS[raw_command], file=sys.stderr)
        return 1

    command = COMMAND_ALIASES.get(raw_command)
    if command is None:
        print(f"Unknown command: {args.command}\n", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 1

    try:
        config = load_configuration()
        config = replace(
            config,
            unsafe_submodules=config.unsafe_submodules or args.unsafe_submodules,
            log_level=args.log_level or config.log_level,
        )
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1

    setup_logging(config)
    logger = logging.getLogger('webgit.cli')

    for problem in validate_configuration(config):
        logger.warning(problem)

    git_available, git_error = validate_git_availability()
    if not git_available:
        logger.error(f"❌ {git_error}")
        return 1

    target, nopr = split_tokens(args.tokens)
    if target is not None and target not in ("all", "submodules"):
        classification = classify(target, config)
        if not classification.recognized:
            logger.error(f"❌ {classification.message}")
            print(classification.message, file=sys.stderr)
            return 1
    if target == "submodules" and command != "push":
        print(f"'{command} submodules' is not supported; use 'webgit push submodules'", file=sys.stderr)
        return 1

    try:
        summary = run_command(command, target, nopr, args.skip_pull, config)
    except WorkspaceError as e:
        logger.error(f"❌ {e.message}")
        return 1
    except RepoNotRecognized as e:
        logger.error(f"❌ {e.message}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user (Ctrl+C)")
        return 130
    finally:
        if config.root_dir.is_dir():
            os.chdir(config.root_dir)

    report_summary(summary)
    return 0
