"""
LLM integration for JobVet.

Provides the validated enrichment and analysis calls over an
OpenAI-compatible client.
"""

from jobvet.llm.enrichment import (
    AnalysisResult,
    EnrichmentClient,
    EnrichmentResult,
    local_analysis,
    merge_enrichment,
)
from jobvet.llm.provider import LLMClient, LLMConfig, LLMResponse, get_llm_client

__all__ = [
    "AnalysisResult",
    "EnrichmentClient",
    "EnrichmentResult",
    "LLMClient",
    "LLMConfig",
    "LLMResponse",
    "get_llm_client",
    "local_analysis",
    "merge_enrichment",
]
