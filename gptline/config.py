"""
Config loader for gptline.
Reads ~/.config/gptline/config.yaml once at startup and hands back a Config.
A missing file triggers the interactive first-run setup, which writes one.
String values may reference ${ENV_VAR}; a .env in the working directory is
loaded first.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Callable

import yaml
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://127.0.0.1:8080/v1"
DEFAULT_MODEL = "gpt-oss-20b"
DEFAULT_USERNAME = "User"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_TIMEOUT = 120


class ConfigError(Exception):
    """Config file could not be read, parsed, or written."""


@dataclass
class Config:
    api_endpoint: str = DEFAULT_ENDPOINT
    api_key: str = ""
    model: str = DEFAULT_MODEL
    username: str = DEFAULT_USERNAME
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    timeout: float = DEFAULT_TIMEOUT
    logging: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        known = {f for f in cls.__dataclass_fields__}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))
        cfg = cls(**{k: v for k, v in data.items() if k in known and v is not None})
        # Older files may lack a username
        if not cfg.username:
            cfg.username = DEFAULT_USERNAME
        for key in ("api_endpoint", "model"):
            value = getattr(cfg, key)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"'{key}' must be a non-empty string, got {value!r}")
        if not isinstance(cfg.logging, dict):
            raise ConfigError("'logging' must be a mapping")
        try:
            cfg.timeout = float(cfg.timeout)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"'timeout' must be a number, got {cfg.timeout!r}") from e
        return cfg

    def to_dict(self) -> dict:
        data = asdict(self)
        if not data["logging"]:
            del data["logging"]
        return data


def default_config_path() -> Path:
    """Config location: $GPTLINE_CONFIG, else ~/.config/gptline/config.yaml."""
    override = os.environ.get("GPTLINE_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "gptline" / "config.yaml"


def _resolve_env_vars(value: str) -> str:
    """Replace ${ENV_VAR} patterns with actual environment variable values."""
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, "")
    return re.sub(r"\$\{(\w+)\}", replacer, value)


def _walk_and_resolve(obj):
    """Recursively resolve env vars in all string values."""
    if isinstance(obj, dict):
        return {k: _walk_and_resolve(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_walk_and_resolve(v) for v in obj]
    elif isinstance(obj, str):
        return _resolve_env_vars(obj)
    return obj


def load_config(path: Path) -> Config:
    """Load config from a YAML file. Raises ConfigError on bad files."""
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")

    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"could not decode config file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config {path} must be a mapping, got {type(raw).__name__}")

    return Config.from_dict(_walk_and_resolve(raw))


def save_config(cfg: Config, path: Path) -> None:
    """Write config to YAML, creating the parent directory."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True, mode=0o750)
        with open(path, "w") as f:
            yaml.safe_dump(cfg.to_dict(), f, default_flow_style=False, allow_unicode=True)
    except OSError as e:
        raise ConfigError(f"could not write config file {path}: {e}") from e
    logger.debug("Wrote config to %s", path)


def _ask(input_fn: Callable[[str], str], prompt: str, default: str = "") -> str:
    try:
        answer = input_fn(prompt).strip()
    except EOFError:
        answer = ""
    return answer or default


def prompt_for_config(input_fn: Callable[[str], str] = input) -> Config:
    """Ask the user for the basics. Enter accepts the bracketed default."""
    endpoint = _ask(input_fn, f"Enter API Endpoint URL [{DEFAULT_ENDPOINT}]: ", DEFAULT_ENDPOINT)
    api_key = _ask(input_fn, "Enter API Key (optional, press Enter to skip): ")
    model = _ask(input_fn, f"Enter Model Name [{DEFAULT_MODEL}]: ", DEFAULT_MODEL)
    username = _ask(input_fn, f"Enter your name to be displayed [{DEFAULT_USERNAME}]: ", DEFAULT_USERNAME)
    return Config(api_endpoint=endpoint, api_key=api_key, model=model, username=username)


def load_or_init_config(
    path: Path | None = None,
    input_fn: Callable[[str], str] = input,
) -> Config:
    """Load the config file, running first-time setup if it doesn't exist."""
    config_path = path or default_config_path()

    if not config_path.exists():
        print("Configuration file not found. Let's set it up.")
        cfg = prompt_for_config(input_fn)
        save_config(cfg, config_path)
        print(f"Configuration saved to {config_path}")
        return cfg

    cfg = load_config(config_path)
    logger.info("Configuration loaded from %s", config_path)
    return cfg
