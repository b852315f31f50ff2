from __future__ import annotations

from anthropic import Anthropic
from anthropic.types import TextBlock

from prgate_core.providers.base import BaseReviewer


class AnthropicReviewer(BaseReviewer):
    MODEL = "claude-opus-4-20250514"

    def __init__(self, api_key: str, **kwargs):
        super().__init__(**kwargs)
        self.client = Anthropic(api_key=api_key, timeout=self.timeout, max_retries=0)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            max_tokens=self.max_tokens,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
