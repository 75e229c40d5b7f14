"""
OpenAI chat-completions client.

Works against api.openai.com or any compatible endpoint set via base_url.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import openai

from jobvet.llm.provider import LLMClient, LLMConfig, LLMResponse

logger = logging.getLogger(__name__)


class OpenAIClient(LLMClient):
    """LLMClient backed by openai.AsyncOpenAI."""

    def __init__(self, config: LLMConfig, client: Optional[openai.AsyncOpenAI] = None):
        super().__init__(config)
        self._async_client = client

    def _get_async_client(self) -> openai.AsyncOpenAI:
        """Lazily build the async OpenAI client."""
        if self._async_client is None:
            kwargs: Dict[str, Any] = {"api_key": self.config.api_key}
            if self.config.base_url:
                kwargs["base_url"] = self.config.base_url
            self._async_client = openai.AsyncOpenAI(**kwargs)
        return self._async_client

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_schema: Optional[Dict[str, Any]] = None,
        schema_name: str = "result",
    ) -> LLMResponse:
        """Generate a completion using the chat completions API."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs: Dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        if json_schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": json_schema, "strict": True},
            }

        try:
            response = await self._get_async_client().chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            logger.debug("OpenAI request failed: %s", e)
            return LLMResponse(error=str(e))

        content = response.choices[0].message.content or ""
        tokens_used = response.usage.total_tokens if response.usage else 0
        return LLMResponse(content=content, tokens_used=tokens_used)
