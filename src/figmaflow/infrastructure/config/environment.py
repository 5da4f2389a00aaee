"""Environment variable loading from .env files; system environment wins."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ACCESS_TOKEN_ENV = "FIGMA_ACCESS_TOKEN"
API_BASE_URL_ENV = "FIGMA_API_BASE_URL"
CONFIG_PATH_ENV = "FIGMAFLOW_CONFIG"

OPTIONAL_VARIABLES = {
    API_BASE_URL_ENV: "REST API base URL (defaults to https://api.figma.com/v1)",
    CONFIG_PATH_ENV: "Custom configuration file path (defaults to figmaflow.toml)",
}

REQUIRED_VARIABLES = {
    ACCESS_TOKEN_ENV: "Personal access token (required for fetching design files)",
}

DOTENV_SEARCH_DEPTH = 3


def load_environment_variables(dotenv_path: Path | str | None = None) -> None:
    """
    Load variables from a .env file without overriding the system environment.

    Args:
        dotenv_path: Optional path to a .env file. If None, the current
            directory and up to three parent directories are searched and
            the first .env found is used.
    """
    if dotenv_path is None:
        current = Path.cwd()
        candidates = [current, *current.parents[:DOTENV_SEARCH_DEPTH]]
        for directory in candidates:
            path = directory / ".env"
            if path.exists():
                dotenv_path = path
                break
        else:
            logger.debug("No .env file found")
            return

    dotenv_path = Path(dotenv_path)
    if dotenv_path.exists():
        load_dotenv(dotenv_path, override=False)
        logger.debug(f"Loaded .env file from: {dotenv_path}")
    else:
        logger.debug(f".env file not found at: {dotenv_path}")


def get_env(key: str, default: str | None = None) -> str | None:
    return os.getenv(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """
    Get a boolean environment variable.

    'true', '1', 'yes', 'on' are True; 'false', '0', 'no', 'off' are False
    (case-insensitive). Unset or unrecognized values give ``default``.
    """
    value = os.getenv(key, "").lower().strip()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def get_access_token() -> str | None:
    """Access token if set; commands that only parse local files work without one."""
    token = get_env(ACCESS_TOKEN_ENV)
    if not token:
        logger.debug(f"{ACCESS_TOKEN_ENV} not set")
        return None
    return token


def require_api_key(
    key: str = ACCESS_TOKEN_ENV,
    context: str | None = None,
    description: str | None = None,
) -> str:
    """
    Require an environment variable, failing with guidance when it is missing.

    Raises:
        ValueError: If the variable is missing or empty
    """
    value = get_env(key)
    if value:
        return value

    desc = description or REQUIRED_VARIABLES.get(key, "required setting")
    context_msg = f" ({context})" if context else ""
    error_msg = (
        f"Required variable '{key}' is missing{context_msg}.\n"
        f"  Description: {desc}\n"
        f"  How to fix: Set {key} in your environment or add it to a .env file in the project root.\n"
        f"  Example: {key}=figd_your-token-here"
    )
    logger.error(error_msg)
    raise ValueError(error_msg)
