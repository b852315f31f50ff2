"""Base reviewer implementing the Template Method pattern.

All providers share the same contract:
    generate(system, user) → _call_api()   ← only this differs per provider
                           → validate text

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

Each review is exactly one request. A transport error or an empty payload
raises ReviewerUnavailable and aborts the run; SDK clients are created with
max_retries=0.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from prgate_core.errors import ReviewerUnavailable

logger = logging.getLogger(__name__)

_MAX_TOKENS = 8192
_TIMEOUT_SECONDS = 600.0


class BaseReviewer(ABC):
    MODEL: str = ""

    def __init__(self, model: str | None = None, max_tokens: int = _MAX_TOKENS, timeout: float = _TIMEOUT_SECONDS):
        self.model = model or self.MODEL
        self.max_tokens = max_tokens
        self.timeout = timeout

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Send one review request and return the raw Markdown response."""
        logger.debug(
            "%s request: model=%s max_tokens=%d prompt=%d chars",
            self.__class__.__name__,
            self.model,
            self.max_tokens,
            len(user_prompt),
        )
        try:
            text = self._call_api(system_prompt, user_prompt)
        except Exception as e:
            raise ReviewerUnavailable(f"{self.__class__.__name__} API call failed: {e}") from e

        if not isinstance(text, str) or not text.strip():
            raise ReviewerUnavailable(f"{self.__class__.__name__} returned no review text.")
        return text

    # ------------------------------------------------------------------ #
    # Abstract — implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure; generate() turns that into ReviewerUnavailable.
        """
