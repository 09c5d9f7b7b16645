from __future__ import annotations

from openai import OpenAI

from prscribe_core.prompt import RESPONSE_SCHEMA
from prscribe_core.providers.base import BaseReviewer


class OpenAIReviewer(BaseReviewer):
    MODEL = "gpt-5"
    STRUCTURED_OUTPUT = True

    def __init__(self, api_key: str, model_name: str | None = None):
        super().__init__(model_name)
        self.client = OpenAI(api_key=api_key)

    def _call_api(self, prompt: str) -> str:
        # The whole review prompt goes in as the system message; the
        # json_schema response format asks for a single verdict object.
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "system", "content": prompt}],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "feedback", "schema": RESPONSE_SCHEMA},
            },
        )
        return response.choices[0].message.content
