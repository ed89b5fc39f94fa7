"""Provider adapters for different LLM APIs."""

from providers.base import BaseAdapter
from providers.openai_compatible_adapter import OpenAICompatibleAdapter

__all__ = ['BaseAdapter', 'OpenAICompatibleAdapter']
