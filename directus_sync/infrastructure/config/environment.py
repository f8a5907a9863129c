"""Instance credentials from the process environment and an optional .env file."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

ENV_VARS = {
    "DIRECTUS_SOURCE_URL": "Base URL of the instance items are read from",
    "DIRECTUS_SOURCE_TOKEN": "Static token of a source user allowed to read the collection and its files",
    "DIRECTUS_TARGET_URL": "Base URL of the instance items are written to",
    "DIRECTUS_TARGET_TOKEN": "Static token of a target user allowed to write items, files and folders",
    "DIRECTUS_SYNC_CONFIG": "Path of the TOML settings file (default: directus-sync.toml)",
}

_TRUTHY = {"true", "1", "yes", "on"}
_FALSY = {"false", "0", "no", "off"}


def load_environment_variables(dotenv_path: Path | str | None = None) -> None:
    """
    Merge a .env file into the environment without overriding set variables.

    Args:
        dotenv_path: Explicit .env file; when omitted the nearest .env from the
            working directory upwards is used, if any
    """
    if dotenv_path is None:
        found = find_dotenv(usecwd=True)
        if not found:
            return
        dotenv_path = found

    path = Path(dotenv_path)
    if not path.is_file():
        logger.debug(f"No .env file at {path}")
        return
    load_dotenv(path, override=False)
    logger.debug(f"Loaded .env file from {path}", extra={"dotenv_path": str(path)})


def get_env(key: str, default: str | None = None) -> str | None:
    return os.getenv(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Read a yes/no flag; unset or unrecognized values fall back to ``default``."""
    value = os.getenv(key, "").strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    return default


def get_optional_api_key(key: str, description: str | None = None) -> str | None:
    """Return a non-empty variable or None, noting the absence at debug level."""
    value = get_env(key)
    if value:
        return value
    logger.debug(f"{key} not set ({description or ENV_VARS.get(key, 'optional')})")
    return None


def require_api_key(key: str, context: str | None = None, description: str | None = None) -> str:
    """
    Return a variable that a command cannot run without.

    Args:
        key: Variable name, e.g. DIRECTUS_SOURCE_TOKEN
        context: Command that needs it, shown in the error
        description: Overrides the built-in description of the variable

    Raises:
        ValueError: If the variable is unset or empty
    """
    value = get_env(key)
    if value:
        return value

    needed_by = f" ({context})" if context else ""
    message = (
        f"Required setting '{key}' is missing{needed_by}.\n"
        f"  {description or ENV_VARS.get(key, 'No description available')}\n"
        f"  Export {key} or add '{key}=...' to the .env file next to directus-sync.toml."
    )
    logger.error(message, extra={"env_key": key})
    raise ValueError(message)


def get_instance_config(role: str) -> dict[str, str]:
    """
    Collect the url/token overrides of one instance.

    Args:
        role: "source" or "target"

    Returns:
        Only the keys whose variables are set and non-empty
    """
    prefix = f"DIRECTUS_{role.upper()}_"
    return {
        name: value
        for name in ("url", "token")
        if (value := get_env(prefix + name.upper()))
    }


load_environment_variables()
