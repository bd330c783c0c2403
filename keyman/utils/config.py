"""Locating the keyman configuration file."""

from pathlib import Path

from .xdg import get_keyman_config_dir


LOCAL_CONFIG_NAME = ".keyman.toml"
REPO_CONFIG_NAME = "keyman.toml"
USER_CONFIG_NAME = "config.toml"


def find_git_root(path: Path | None = None) -> Path | None:
    """Closest directory at or above ``path`` (default: cwd) containing ``.git``."""
    start = (path or Path.cwd()).resolve()
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def config_file_candidates() -> list[Path]:
    """Configuration files in lookup order, whether or not they exist."""
    candidates = [Path.cwd() / LOCAL_CONFIG_NAME]
    git_root = find_git_root()
    if git_root is not None:
        candidates.append(git_root / REPO_CONFIG_NAME)
    candidates.append(get_keyman_config_dir() / USER_CONFIG_NAME)
    return candidates


def find_toml_config_file() -> Path | None:
    """The first existing file from :func:`config_file_candidates`."""
    return next((path for path in config_file_candidates() if path.is_file()), None)
