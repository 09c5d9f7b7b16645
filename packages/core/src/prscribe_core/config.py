import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "openai",
    "model_name": None,  # None = provider default (gpt-5 / claude-sonnet-4)
    "max_comments": 3,
    "max_chars_per_file": 20000,
    "approval_phrase": "Everything looks good!",
}

_INT_KEYS = ("max_comments", "max_chars_per_file")

_API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def _env(name: str) -> Optional[str]:
    """Read a variable directly or as a GitHub Actions input (INPUT_<NAME>)."""
    return os.environ.get(name) or os.environ.get(f"INPUT_{name}")


def load_config(config_path: str = ".prscribe.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prscribe.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping, got {type(file_config).__name__}.")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    for key in _INT_KEYS:
        value = config.get(key)
        if value is None:
            continue
        try:
            config[key] = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Config key {key!r} must be an integer, got {value!r}.") from None

    # Resolve credentials from environment variables
    config["github_token"] = _env("GITHUB_TOKEN")
    config["openai_api_key"] = _env("OPENAI_API_KEY")
    config["anthropic_api_key"] = _env("ANTHROPIC_API_KEY")

    return config


def api_key_env_var(model: str) -> str:
    return _API_KEY_ENV.get(model, f"{model.upper()}_API_KEY")


def get_api_key(config: dict) -> Optional[str]:
    """Return the credential for the configured provider, or None if unset."""
    model = config["model"]
    if model not in _API_KEY_ENV:
        raise ValueError(f"Unknown model provider: {model!r}. Choose 'openai' or 'anthropic'.")
    return config.get(f"{model}_api_key")
