import logging
import httpx
from typing import Dict, Any, List
from paperchat.config.settings import settings
from paperchat.core.errors import GenerationFailure

logger = logging.getLogger(__name__)

class LLMClient:
    """
    OpenRouter API client for the Generation Service.
    One bounded request per call: no retries, no model fallback. Callers
    decide what to do with a GenerationFailure.
    """

    def __init__(self):
        self.api_key = settings.openrouter_api_key
        self.config = settings.llm
        self.base_url = f"{self.config.base_url.rstrip('/')}/chat/completions"
        self.headers = {
            "Authorization": f"Bearer {self.api_key}" if self.api_key else "",
            "HTTP-Referer": "https://paperchat.internal",
            "X-Title": "PaperChat",
            "Content-Type": "application/json"
        }

    def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """
        Sends a single prompt and returns the generated text.
        The persona and task instructions travel inside the prompt itself.
        Raises GenerationFailure on transport errors, non-2xx status, timeouts
        and empty or malformed payloads.
        """
        messages: List[Dict[str, str]] = [{"role": "user", "content": prompt}]

        payload = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "stream": False
        }

        if not self.api_key:
            logger.warning("OPENROUTER_API_KEY is not set. LLM calls will fail.")

        return self._sync_response(payload)

    def _sync_response(self, payload: Dict[str, Any]) -> str:
        try:
            with httpx.Client(timeout=self.config.timeout_seconds) as client:
                response = client.post(self.base_url, headers=self.headers, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise GenerationFailure(f"Generation timed out after {self.config.timeout_seconds}s") from e
        except httpx.HTTPStatusError as e:
            raise GenerationFailure(f"Generation service returned {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise GenerationFailure(f"Generation request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationFailure("Malformed response from generation service") from e

        if not content or not content.strip():
            raise GenerationFailure("Empty response from generation service")
        return content.strip()
