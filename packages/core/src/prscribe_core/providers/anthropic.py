from __future__ import annotations

from anthropic import Anthropic
from anthropic.types import TextBlock

from prscribe_core.providers.base import BaseReviewer


class AnthropicReviewer(BaseReviewer):
    MODEL = "claude-sonnet-4-20250514"
    # The messages API has no response-schema constraint, so replies are
    # always interpreted as free text.
    STRUCTURED_OUTPUT = False
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, model_name: str | None = None):
        super().__init__(model_name)
        self.client = Anthropic(api_key=api_key)

    def _call_api(self, prompt: str) -> str:
        response = self.client.messages.create(
            model=self.model,
            system=prompt,
            messages=[{"role": "user", "content": "Review this pull request."}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
