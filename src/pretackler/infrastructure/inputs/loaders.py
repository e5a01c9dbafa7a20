"""Prompt template and API key loading."""

from __future__ import annotations

import os
from pathlib import Path

from pretackler.domain.errors import ConfigurationError

DEFAULT_KEY_FILE = "deepseek_api_key.secret"
API_KEY_ENV = "DEEPSEEK_API_KEY"
API_KEY_FILE_ENV = "DEEPSEEK_API_KEY_FILE"


def load_prompt(path: Path) -> str:
    """Read and strip the system prompt; reject missing or empty templates."""

    try:
        prompt = path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigurationError(f"Cannot read prompt template {path}: {exc}") from exc
    if not prompt:
        raise ConfigurationError(f"Prompt template {path} is empty.")
    return prompt


def load_api_key(explicit_file: Path | None = None) -> str:
    """Resolve the API key.

    Lookup order: `explicit_file`, the file named by `DEEPSEEK_API_KEY_FILE`,
    `./deepseek_api_key.secret`, then the `DEEPSEEK_API_KEY` variable.
    """

    if explicit_file is not None:
        key = _read_key_file(explicit_file)
        if key is None:
            raise ConfigurationError(f"API key file does not exist: {explicit_file}")
        return key

    env_file = os.environ.get(API_KEY_FILE_ENV)
    if env_file:
        key = _read_key_file(Path(env_file))
        if key is None:
            raise ConfigurationError(f"API key file does not exist: {env_file}")
        return key

    key = _read_key_file(Path(DEFAULT_KEY_FILE))
    if key is not None:
        return key

    env_key = os.environ.get(API_KEY_ENV)
    if env_key is not None:
        env_key = env_key.strip()
        if not env_key:
            raise ConfigurationError(f"Environment variable {API_KEY_ENV} is empty.")
        return env_key

    raise ConfigurationError(
        f"No API key found. Place `{DEFAULT_KEY_FILE}` in the working directory "
        f"or set {API_KEY_ENV}."
    )


def _read_key_file(path: Path) -> str | None:
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ConfigurationError(f"Cannot read API key file {path}: {exc}") from exc

    key = content.strip()
    if not key:
        raise ConfigurationError(f"API key file {path} is empty.")
    return key


__all__ = [
    "API_KEY_ENV",
    "API_KEY_FILE_ENV",
    "DEFAULT_KEY_FILE",
    "load_api_key",
    "load_prompt",
]
