"""
Language-model client interface used by the enrichment layer.

Clients take a prompt plus an optional strict JSON schema and return
an LLMResponse; failures are reported on the response, not raised.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jobvet.config import Settings


@dataclass
class LLMConfig:
    """Model, endpoint and generation settings for an LLM client."""

    api_key: str = ""
    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None

    # Generation
    max_tokens: int = 800
    temperature: float = 0.2

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMConfig":
        return cls(
            api_key=settings.openai_api_key or "",
            model=settings.openai_model,
            base_url=settings.openai_base_url,
        )

    @property
    def is_configured(self) -> bool:
        """An API key is the only hard requirement."""
        return bool(self.api_key)


@dataclass
class LLMResponse:
    """Raw completion text, or an error description."""
    content: str = ""
    tokens_used: int = 0
    error: str = ""

    @property
    def ok(self) -> bool:
        return bool(self.content) and not self.error


class LLMClient(ABC):
    """Async completion client."""

    def __init__(self, config: LLMConfig):
        self.config = config

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_schema: Optional[Dict[str, Any]] = None,
        schema_name: str = "result",
    ) -> LLMResponse:
        """
        Run one chat completion.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            json_schema: If set, request strict JSON output matching this schema
            schema_name: Name reported to the API for the schema

        Returns:
            LLMResponse with content, or with `error` set on failure
        """
        raise NotImplementedError


def get_llm_client(config: LLMConfig) -> Optional[LLMClient]:
    """
    Build the client for `config`.

    Returns None when no API key is configured (deterministic-only mode).
    """
    if not config.is_configured:
        return None

    from jobvet.llm.openai_client import OpenAIClient
    return OpenAIClient(config)
