"""Base completion client implementing the Template Method pattern.

All providers share the same call sequence:
    complete() → _call_api()   ← only this differs per provider
               → _to_response()

Subclasses implement two things only:
  - __init__: store the SDK client
  - _call_api: make one raw API call and return the text response

A failed call is not retried; the exception propagates to run_review's caller.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from prscribe_core.models import ModelResponse, StructuredResponse, UnstructuredResponse
from prscribe_core.utils.extract import parse_json_object

logger = logging.getLogger(__name__)

_MAX_TOKENS = 4096


class BaseReviewer(ABC):
    MODEL: str = ""
    MAX_TOKENS: int = _MAX_TOKENS
    # True when the provider is asked to honour RESPONSE_SCHEMA.
    STRUCTURED_OUTPUT: bool = False

    def __init__(self, model_name: str | None = None):
        self.model = model_name or self.MODEL

    def complete(self, prompt: str) -> ModelResponse:
        """Send the prompt and return the reply tagged as structured or free text."""
        raw = self._call_api(prompt)
        if raw is None:
            raw = ""
        logger.debug("%s response: %s", self.__class__.__name__, raw[:500])
        return self._to_response(raw)

    @abstractmethod
    def _call_api(self, prompt: str) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure.
        """

    def _to_response(self, raw: str) -> ModelResponse:
        if self.STRUCTURED_OUTPUT:
            payload = parse_json_object(raw.strip())
            if payload is not None:
                return StructuredResponse(payload=payload, raw=raw)
            logger.warning("%s: response did not match the schema; treating it as text", self.__class__.__name__)
        return UnstructuredResponse(text=raw)
