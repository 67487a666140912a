"""Configuration management for webgit."""

import os
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Tuple

from dotenv import load_dotenv

from .platform import get_platform_specific_defaults, normalize_path


DEFAULT_SUBMODULES = (
    "cloud",
    "comparison",
    "feed",
    "home",
    "localsite",
    "products",
    "projects",
    "realitystream",
    "swiper",
    "team",
)

DEFAULT_EXTRAS = (
    "community",
    "nisar",
    "data-pipeline",
)

# Repositories whose canonical account on the hosting platform uses the capitalized namespace
DEFAULT_CAPITALIZED_REPOS = (
    "localsite",
    "home",
    "webroot",
)

IDENTITY_CACHE_TOKEN = "webgit_last_user"


@dataclass
class Config:
    """Configuration class for webgit with validation and defaults."""

    # Workspace layout
    root_dir: Path = field(default_factory=Path.cwd)
    primary_name: str = "webroot"
    submodules: Tuple[str, ...] = DEFAULT_SUBMODULES
    extras: Tuple[str, ...] = DEFAULT_EXTRAS

    # Hosting platform namespaces
    host: str = "github.com"
    canonical_account: str = "modelearth"
    capitalized_account: str = "ModelEarth"
    capitalized_repos: Tuple[str, ...] = DEFAULT_CAPITALIZED_REPOS
    partner_accounts: Tuple[str, ...] = ("partnertools",)
    assume_capitalized_access: bool = False

    # Branches
    primary_branch: str = "main"
    fallback_branch: str = "master"

    # Push behaviour
    push_retry_attempts: int = 3
    push_retry_delay: float = 2.0
    commit_message: str = "Update {repo} via webgit push"
    unsafe_submodules: bool = False

    # Identity cache (the only state surviving across runs)
    identity_cache_file: Path = field(
        default_factory=lambda: Path(tempfile.gettempdir()) / IDENTITY_CACHE_TOKEN
    )

    # Hosting CLI
    gh_timeout: int = 60

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.root_dir, str):
            self.root_dir = Path(self.root_dir)
        self.root_dir = normalize_path(self.root_dir)

        if isinstance(self.identity_cache_file, str):
            self.identity_cache_file = Path(self.identity_cache_file)

        self.submodules = tuple(self.submodules)
        self.extras = tuple(self.extras)
        self.capitalized_repos = tuple(self.capitalized_repos)
        self.partner_accounts = tuple(self.partner_accounts)

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_log_levels:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}")
        self.log_level = self.log_level.upper()

        if self.push_retry_attempts < 0:
            raise ValueError("push_retry_attempts must be non-negative")

        if self.push_retry_delay < 0:
            raise ValueError("push_retry_delay must be non-negative")

        if not self.primary_name:
            raise ValueError("primary_name must not be empty")

        if not self.canonical_account:
            raise ValueError("canonical_account must not be empty")

        overlap = set(self.submodules) & set(self.extras)
        if overlap:
            raise ValueError(f"Repositories listed as both submodule and extra: {sorted(overlap)}")

    @property
    def all_repositories(self) -> List[str]:
        """Every configured repository name, primary first."""
        return [self.primary_name, *self.submodules, *self.extras]


def _split_list(value: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


def load_configuration() -> Config:
    """Load configuration from environment variables with platform-specific defaults."""
    load_dotenv()

    try:
        platform_defaults = get_platform_specific_defaults()

        cache_file = os.getenv("WEBGIT_IDENTITY_CACHE")

        config = Config(
            root_dir=Path(os.getenv("WEBGIT_ROOT", str(Path.cwd()))),
            primary_name=os.getenv("WEBGIT_PRIMARY_NAME", "webroot"),
            submodules=_split_list(os.getenv("WEBGIT_SUBMODULES"), DEFAULT_SUBMODULES),
            extras=_split_list(os.getenv("WEBGIT_EXTRAS"), DEFAULT_EXTRAS),
            host=os.getenv("WEBGIT_HOST", "github.com"),
            canonical_account=os.getenv("WEBGIT_CANONICAL_ACCOUNT", "modelearth"),
            capitalized_account=os.getenv("WEBGIT_CAPITALIZED_ACCOUNT", "ModelEarth"),
            capitalized_repos=_split_list(os.getenv("WEBGIT_CAPITALIZED_REPOS"), DEFAULT_CAPITALIZED_REPOS),
            partner_accounts=_split_list(os.getenv("WEBGIT_PARTNER_ACCOUNTS"), ("partnertools",)),
            assume_capitalized_access=os.getenv("WEBGIT_ASSUME_CAPITALIZED_ACCESS", "false").lower() == "true",
            primary_branch=os.getenv("WEBGIT_PRIMARY_BRANCH", "main"),
            fallback_branch=os.getenv("WEBGIT_FALLBACK_BRANCH", "master"),
            push_retry_attempts=int(os.getenv("WEBGIT_PUSH_RETRY_ATTEMPTS", str(platform_defaults['push_retry_attempts']))),
            push_retry_delay=float(os.getenv("WEBGIT_PUSH_RETRY_DELAY", str(platform_defaults['push_retry_delay']))),
            log_level=os.getenv("WEBGIT_LOG_LEVEL", platform_defaults['log_level']).upper(),
        )
        if cache_file:
            config.identity_cache_file = Path(cache_file)
        return config
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any errors or warnings."""
    errors = []

    if not (config.root_dir / ".git").exists():
        errors.append(f"ERROR: {config.root_dir} is not a git repository")

    for name in config.all_repositories:
        if "/" in name or name.startswith("."):
            errors.append(f"ERROR: Invalid repository name: {name}")

    if config.push_retry_attempts == 0:
        errors.append("WARNING: push_retry_attempts is 0, unpushed commits will not be retried")

    if config.assume_capitalized_access:
        logging.getLogger('webgit.config').debug(
            f"Remotes under '{config.capitalized_account}' are treated as writable"
        )

    return errors
