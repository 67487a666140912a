"""Cross-platform compatibility utilities for webgit."""

import logging
import platform
import subprocess
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Union


class PlatformType(Enum):
    """Supported platform types."""
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    UNKNOWN = "unknown"


class PlatformInfo:
    """Platform information and utilities."""

    def __init__(self):
        """Initialize platform detection."""
        self._platform_type = self._detect_platform()

    def _detect_platform(self) -> PlatformType:
        """Detect the current platform."""
        system = platform.system().lower()

        if system == "windows":
            return PlatformType.WINDOWS
        elif system == "darwin":
            return PlatformType.MACOS
        elif system == "linux":
            return PlatformType.LINUX
        else:
            return PlatformType.UNKNOWN

    @property
    def is_windows(self) -> bool:
        return self._platform_type == PlatformType.WINDOWS

    @property
    def is_macos(self) -> bool:
        return self._platform_type == PlatformType.MACOS

    def get_platform_name(self) -> str:
        """Get human-readable platform name."""
        return self._platform_type.value


# Global platform info instance
_platform_info: Optional[PlatformInfo] = None


def get_platform_info() -> PlatformInfo:
    """Get the global platform info instance."""
    global _platform_info
    if _platform_info is None:
        _platform_info = PlatformInfo()
    return _platform_info


def normalize_path(path: Union[str, Path]) -> Path:
    """
    Normalize a path for the current platform.

    Args:
        path: Path to normalize

    Returns:
        Normalized Path object
    """
    if isinstance(path, str):
        path = Path(path)

    return path.expanduser().resolve()


def get_platform_specific_defaults() -> Dict[str, Any]:
    """
    Get platform-specific configuration defaults.

    Returns:
        Dictionary of platform-specific defaults
    """
    platform_info = get_platform_info()

    defaults = {
        'log_level': "INFO",
        'push_retry_attempts': 3,
        'push_retry_delay': 2.0,
    }

    if platform_info.is_windows:
        # Credential manager prompts make Windows pushes slower to settle
        defaults.update({
            'push_retry_attempts': 4,
            'push_retry_delay': 3.0,
        })

    return defaults


def get_git_executable() -> str:
    """Get the Git executable name for the current platform."""
    if get_platform_info().is_windows:
        return "git.exe"
    return "git"


def get_gh_executable() -> str:
    """Get the GitHub CLI executable name for the current platform."""
    if get_platform_info().is_windows:
        return "gh.exe"
    return "gh"


def validate_git_availability() -> tuple[bool, Optional[str]]:
    """
    Validate that Git is available on the current platform.

    Returns:
        Tuple of (is_available, error_message)
    """
    git_cmd = get_git_executable()

    try:
        result = subprocess.run(
            [git_cmd, "--version"],
            capture_output=True,
            text=True,
            timeout=10
        )

        if result.returncode == 0:
            return True, None
        else:
            return False, f"Git command failed: {result.stderr}"

    except FileNotFoundError:
        return False, f"Git executable '{git_cmd}' not found"
    except subprocess.TimeoutExpired:
        return False, "Git command timed out"


def clear_os_credential_store(host: str) -> bool:
    """
    Erase cached credentials for ``host`` from the operating system's credential store.

    macOS keeps git credentials in the keychain and Windows in the credential
    manager; Linux relies on the git credential helper alone, which is cleared
    separately with ``git credential reject``.

    Returns:
        True if an OS-level entry was erased (or nothing needed erasing)
    """
    logger = logging.getLogger('webgit.platform')
    platform_info = get_platform_info()

    try:
        if platform_info.is_macos:
            result = subprocess.run(
                [get_git_executable(), "credential-osxkeychain", "erase"],
                input=f"protocol=https\nhost={host}\n\n",
                capture_output=True,
                text=True,
                timeout=15
            )
        elif platform_info.is_windows:
            result = subprocess.run(
                ["cmdkey", f"/delete:git:https://{host}"],
                capture_output=True,
                text=True,
                timeout=15
            )
        else:
            return True
    except FileNotFoundError as e:
        logger.debug(f"Credential store tool not available: {e}")
        return False
    except subprocess.TimeoutExpired:
        logger.warning(f"Timed out clearing credential store for {host}")
        return False

    if result.returncode != 0:
        logger.debug(f"Credential store erase returned {result.returncode}: {result.stderr.strip()}")
        return False

    logger.debug(f"Cleared {platform_info.get_platform_name()} credential store entry for {host}")
    return True
