"""Abstract base class for LLM provider adapters."""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional


class BaseAdapter(ABC):
    """Abstract base class for LLM provider adapters."""

    @abstractmethod
    def chat_complete(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send chat completion request.

        Args:
            messages: List of message dicts (OpenAI format)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            response_format: Optional structured output hint, e.g. {"type": "json_object"}

        Returns:
            Response dict in OpenAI format:
            {
                "choices": [{
                    "message": {"content": "..."},
                    "finish_reason": "stop"
                }],
                "usage": {"prompt_tokens": 10, "completion_tokens": 20}
            }
        """
        pass
