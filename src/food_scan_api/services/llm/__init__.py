"""LLM access: model factory and policy-wrapped client."""

from .client import LLMClient, LLMErrorCategory, LLMProviderError, classify_llm_error
from .factory import get_llm, get_llm_info

__all__ = [
    "LLMClient",
    "LLMErrorCategory",
    "LLMProviderError",
    "classify_llm_error",
    "get_llm",
    "get_llm_info",
]
