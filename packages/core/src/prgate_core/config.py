import os
from pathlib import Path
from typing import Mapping, Optional

import yaml

from prgate_core.errors import ConfigurationError
from prgate_core.models import GateConfig, PullRequestContext

DEFAULT_CONFIG: dict = {
    "provider": "anthropic",
    "model": None,  # None = provider default
    "agent": None,  # path to the reviewer's system prompt; required at run time
    "thresholds": {"architecture": 7, "code_quality": 7, "testing": 8},
    "max_files": 50,
    "max_diff_bytes": 300_000,  # ~75K tokens
    "max_output_tokens": 8192,
    "request_timeout": 600,
    "extensions": [".py"],
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "migrations/")
    "remote": "origin",
}

# Environment variable → PullRequestContext field. PR_BODY is optional.
_RUN_CONTEXT_ENV = {
    "PR_NUMBER": "number",
    "PR_TITLE": "title",
    "PR_AUTHOR": "author",
    "BASE_REF": "base_ref",
    "HEAD_REF": "head_ref",
    "HEAD_SHA": "head_sha",
    "REPOSITORY": "repository",
}

_API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}


def load_config(config_path: str = ".prgate.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prgate.yml in the current directory
      3. CLI argument overrides

    ``thresholds`` is merged key by key so a config file can override one
    threshold without restating the others.
    """
    config = {
        **DEFAULT_CONFIG,
        "thresholds": dict(DEFAULT_CONFIG["thresholds"]),
        "extensions": list(DEFAULT_CONFIG["extensions"]),
        "exclude": list(DEFAULT_CONFIG["exclude"]),
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            try:
                file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping, got {type(file_config).__name__}.")
        thresholds = file_config.pop("thresholds", None) or {}
        if not isinstance(thresholds, dict):
            raise ConfigurationError(f"'thresholds' in {config_path} must be a mapping.")
        config.update(file_config)
        config["thresholds"].update(thresholds)

    apply_overrides(config, cli_overrides)

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GH_TOKEN") or os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def apply_overrides(config: dict, cli_overrides: Optional[dict]) -> dict:
    """Apply CLI overrides in place. None values are ignored; threshold keys go under ``thresholds``."""
    for key, value in (cli_overrides or {}).items():
        if value is None:
            continue
        if key in config["thresholds"]:
            config["thresholds"][key] = value
        else:
            config[key] = value
    return config


def validate_limits(config: dict) -> None:
    """Reject size and timeout settings that are not positive numbers."""
    for key, kind in (("max_diff_bytes", int), ("max_output_tokens", int), ("request_timeout", float)):
        value = config.get(key)
        try:
            valid = not isinstance(value, bool) and kind(value) > 0
        except (TypeError, ValueError):
            valid = False
        if not valid:
            raise ConfigurationError(f"Invalid configuration: {key} must be a positive number, got {value!r}.")


def gate_config(config: dict) -> GateConfig:
    thresholds = config["thresholds"]
    try:
        return GateConfig(
            architecture=int(thresholds["architecture"]),
            code_quality=int(thresholds["code_quality"]),
            testing=int(thresholds["testing"]),
            max_files=int(config["max_files"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid gate configuration: {e}")


def validate_inputs(config: dict, environ: Optional[Mapping[str, str]] = None) -> PullRequestContext:
    """Check credentials and CI run context, then build the PR context.

    Every missing value is collected first so the error lists them all at
    once rather than failing on the first.
    """
    validate_limits(config)
    env = os.environ if environ is None else environ
    missing = missing_credentials(config) + [name for name in _RUN_CONTEXT_ENV if not env.get(name)]
    if missing:
        raise ConfigurationError(f"Missing required inputs: {' '.join(missing)}", missing=missing)
    return load_run_context(env)


def load_run_context(environ: Optional[Mapping[str, str]] = None) -> PullRequestContext:
    """Build the PR context from CI environment variables."""
    env = os.environ if environ is None else environ
    missing = [name for name in _RUN_CONTEXT_ENV if not env.get(name)]
    if missing:
        raise ConfigurationError(f"Missing required inputs: {' '.join(missing)}", missing=missing)

    values = {field: env[name] for name, field in _RUN_CONTEXT_ENV.items()}
    try:
        values["number"] = int(values["number"])
    except ValueError:
        raise ConfigurationError(f"PR_NUMBER must be an integer, got {values['number']!r}.")
    return PullRequestContext(body=env.get("PR_BODY") or "", **values)


def missing_credentials(config: dict) -> list[str]:
    """Return the names of credentials the configured provider needs but lacks."""
    missing = []
    if not config.get("agent"):
        missing.append("--agent")
    provider = config.get("provider")
    key_env = _API_KEY_ENV.get(provider)
    if key_env is None:
        raise ConfigurationError(f"Unknown reviewer provider: {provider!r}. Choose 'anthropic' or 'openai'.")
    if not config.get(f"{provider}_api_key"):
        missing.append(key_env)
    if not config.get("github_token"):
        missing.append("GH_TOKEN")
    return missing


def load_agent_prompt(config: dict) -> str:
    """Load the reviewer's system instructions from the configured agent file."""
    agent_path = config.get("agent")
    if not agent_path:
        raise ConfigurationError("Missing required inputs: --agent", missing=["--agent"])
    p = Path(agent_path)
    if not p.is_file():
        raise ConfigurationError(f"Agent file not found: {agent_path}")
    return p.read_text()
