"""LLM client for OpenAI-compatible chat completions API."""

from typing import List, Dict, Any, Optional

from config import API_URL, API_KEY, MODEL, MAX_TOKENS, TIMEOUT, TEMPERATURE
from providers.openai_compatible_adapter import OpenAICompatibleAdapter


class LLMClient:
    """Client for the text-generation provider (OpenAI-compatible)."""

    def __init__(
        self,
        api_url: str = API_URL,
        model: str = MODEL,
        max_tokens: int = MAX_TOKENS,
        timeout: int = TIMEOUT,
        temperature: float = TEMPERATURE,
        auth_token: Optional[str] = API_KEY,
    ):
        self.adapter = OpenAICompatibleAdapter(
            api_url=api_url,
            model=model,
            max_tokens=max_tokens,
            timeout=timeout,
            temperature=temperature,
            auth_token=auth_token,
        )
        self.api_url = api_url
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.temperature = temperature
        self.auth_token = auth_token

    def chat_complete(
        self,
        messages: List[Dict[str, Any]],
        response_format: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send chat completion request to LLM.

        Args:
            messages: List of message dicts with 'role' and 'content'
            response_format: Optional structured output hint

        Returns:
            Full API response as dict

        Raises:
            RuntimeError: If API call fails
        """
        return self.adapter.chat_complete(
            messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format=response_format,
        )

    def extract_content(self, response: Dict[str, Any]) -> Optional[str]:
        """
        Extract text content from assistant message.

        Args:
            response: Full API response dict

        Returns:
            Message content string or None
        """
        if "choices" not in response or len(response["choices"]) == 0:
            return None

        choice = response["choices"][0]
        if "message" not in choice:
            return None

        message = choice["message"]
        return message.get("content")

    def extract_finish_reason(self, response: Dict[str, Any]) -> Optional[str]:
        """Extract finish_reason from API response."""
        if "choices" not in response or len(response["choices"]) == 0:
            return None

        return response["choices"][0].get("finish_reason")
