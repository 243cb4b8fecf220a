"""
Text-generation client (OpenRouter via the OpenAI SDK).

Used only by fallbacks: low-confidence intent classification and
entity extraction. Callers treat an empty string as "no answer".
"""

import re
from typing import Optional

from ...config import LLMConfig
from ...logger import get_logger
from .rate_limiter import LLMRateLimiter

logger = get_logger(__name__)


class LLMClient:
    """
    Thin wrapper around chat completions with rate limiting.

    Example:
        >>> client = LLMClient(LLMConfig())
        >>> client.generate("Classify: how does X work?")
    """

    DEFAULT_SYSTEM_PROMPT = "You analyse questions about a Java codebase. Answer tersely."

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        rate_limiter: Optional[LLMRateLimiter] = None,
        openai_client=None,
    ):
        """
        Args:
            config: Model settings
            rate_limiter: Shared limiter (one is created from config otherwise)
            openai_client: Pre-configured OpenAI client
        """
        self.config = config or LLMConfig()
        self.rate_limiter = rate_limiter or LLMRateLimiter(
            delay_ms=self.config.rate_limit_delay_ms,
            max_retries=self.config.max_retries,
            min_interval_ms=self.config.min_interval_ms,
        )
        self._client = openai_client

    @property
    def is_available(self) -> bool:
        return self._client is not None or self.config.is_configured

    @property
    def client(self):
        """Lazy-load OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            if not self.config.api_key:
                raise ValueError(
                    "OPENROUTER_API_KEY not set. "
                    "Get a key at https://openrouter.ai/keys"
                )

            self._client = OpenAI(
                api_key=self.config.api_key,
                base_url=self.config.api_base,
                timeout=self.config.request_timeout,
                # retries are handled by the rate limiter
                max_retries=0,
            )
        return self._client

    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Run one completion.

        Raises when the model stays unavailable after the limiter's
        retries; callers own the fallback decision.
        """
        client = self.client

        def _call():
            response = client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system_prompt or self.DEFAULT_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt}
                ],
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature
            )
            return response.choices[0].message.content or ""

        text = self.rate_limiter.execute(_call, description=f"completion ({self.config.model})")
        return self._clean_response(text)

    @staticmethod
    def _clean_response(text: str) -> str:
        """Remove reasoning blocks some models prepend."""
        text = re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL)
        text = re.sub(r"<reasoning>.*?</reasoning>", "", text, flags=re.DOTALL)
        return text.strip()
