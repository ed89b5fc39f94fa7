"""Adapter for OpenAI-compatible chat completion APIs."""

import requests
import time
from typing import List, Dict, Any, Optional
from providers.base import BaseAdapter


class OpenAICompatibleAdapter(BaseAdapter):
    """Adapter for OpenAI and OpenAI-compatible chat completion endpoints."""

    def __init__(
        self,
        api_url: str,
        model: str,
        max_tokens: int = 2048,
        timeout: int = 60,
        temperature: float = 0.7,
        auth_token: Optional[str] = None,
        max_retries: int = 3,
    ):
        self.api_url = api_url
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.temperature = temperature
        self.auth_token = auth_token
        self.max_retries = max_retries

    def _headers(self) -> Dict[str, str]:
        headers = {}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _backoff(self, attempt: int, base_delay: float = 0.5) -> None:
        # Exponential backoff with jitter (±20%)
        delay = base_delay * (2 ** attempt)
        jitter = delay * 0.2 * (2 * (time.time() % 1) - 1)
        time.sleep(delay + jitter)

    def chat_complete(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send chat completion request to OpenAI-compatible API.

        Uses instance temperature/max_tokens if not provided.
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature if temperature is not None else self.temperature,
            "max_tokens": max_tokens if max_tokens is not None else self.max_tokens,
        }
        if response_format:
            payload["response_format"] = response_format

        # Retry on: network errors, HTTP 429, HTTP 5xx
        # Do NOT retry on: HTTP 4xx (except 429), auth errors
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            try:
                response = requests.post(
                    self.api_url,
                    json=payload,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
                response.raise_for_status()
                response_data = response.json()

                if not self._validate_response(response_data):
                    raise RuntimeError(f"Invalid API response structure: {response_data}")

                return response_data

            except requests.Timeout:
                if attempt < self.max_retries:
                    self._backoff(attempt)
                    continue
                raise RuntimeError(f"LLM API call timed out after {self.timeout}s (tried {attempts} times).")

            except requests.ConnectionError:
                if attempt < self.max_retries:
                    self._backoff(attempt)
                    continue
                raise RuntimeError(f"Could not connect to API at {self.api_url} (tried {attempts} times).")

            except requests.HTTPError as e:
                status_code = e.response.status_code
                if 400 <= status_code < 500 and status_code != 429:
                    raise RuntimeError(f"LLM API client error (HTTP {status_code}): {e.response.text}") from e
                if attempt < self.max_retries:
                    self._backoff(attempt)
                    continue
                raise RuntimeError(f"LLM API server error (HTTP {status_code}, tried {attempts} times): {e}") from e

            except requests.RequestException as e:
                if attempt < self.max_retries:
                    self._backoff(attempt)
                    continue
                raise RuntimeError(f"LLM API call failed (tried {attempts} times): {e}") from e

    def _validate_response(self, response: Dict[str, Any]) -> bool:
        """Check the OpenAI response shape: a non-empty choices list with a message."""
        choices = response.get("choices")
        if not isinstance(choices, list) or len(choices) == 0:
            return False
        return "message" in choices[0]
