from __future__ import annotations

from prgate_core.errors import ConfigurationError
from prgate_core.providers.base import BaseReviewer


def get_reviewer(config: dict) -> BaseReviewer:
    provider = config["provider"]
    options = {
        "model": config.get("model"),
        "max_tokens": int(config.get("max_output_tokens", 8192)),
        "timeout": float(config.get("request_timeout", 600)),
    }
    if provider == "anthropic":
        from prgate_core.providers.anthropic import AnthropicReviewer

        return AnthropicReviewer(api_key=config["anthropic_api_key"], **options)
    if provider == "openai":
        from prgate_core.providers.openai import OpenAIReviewer

        try:
            return OpenAIReviewer(api_key=config["openai_api_key"], **options)
        except ImportError as e:
            raise ConfigurationError(str(e)) from e
    raise ConfigurationError(f"Unknown reviewer provider: {provider!r}. Choose 'anthropic' or 'openai'.")
