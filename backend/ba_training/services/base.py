"""Base classes for services with shared functionality."""

import logging
from typing import Any

from anthropic import AsyncAnthropic

from ba_training.config import settings
from ba_training.utils.text import extract_json_object, strip_markdown_json

logger = logging.getLogger(__name__)


class BaseAnalyzer:
    """
    Base class for Claude-assisted analyzers.

    Provides common functionality for:
    - Claude client initialization
    - API call handling
    - JSON parsing with fallbacks

    A missing key leaves ``client`` as None; subclasses fall back to local
    logic.
    """

    def __init__(
        self,
        client: AsyncAnthropic | None = None,
        model: str | None = None,
    ) -> None:
        self.model = model or settings.model_feedback

        if client is not None:
            self.client: AsyncAnthropic | None = client
        else:
            # Strip quotes if present (common .env issue)
            api_key = settings.anthropic_api_key.strip().strip('"').strip("'")
            if api_key:
                # One attempt per analysis
                self.client = AsyncAnthropic(api_key=api_key, max_retries=0)
            else:
                logger.warning(
                    f"[{self.__class__.__name__}] No ANTHROPIC_API_KEY found, "
                    "remote analysis disabled"
                )
                self.client = None

        logger.info(f"[{self.__class__.__name__}] Using model: {self.model}")

    @property
    def has_client(self) -> bool:
        return self.client is not None

    async def _call_claude(
        self,
        prompt: str,
        max_tokens: int = 1000,
        system: str | None = None,
    ) -> str:
        """
        Call Claude API and return the response text.

        Args:
            prompt: The user prompt
            max_tokens: Maximum tokens to generate
            system: Optional system prompt

        Returns:
            The response text with any markdown fence stripped
        """
        if self.client is None:
            raise RuntimeError(f"{self.__class__.__name__} has no Anthropic client")

        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        response = await self.client.messages.create(**kwargs)
        return strip_markdown_json(response.content[0].text)

    async def _call_claude_json(
        self,
        prompt: str,
        max_tokens: int = 1000,
        system: str | None = None,
    ) -> dict[str, Any] | None:
        """Call Claude API and pull a JSON object out of the response, or None."""
        response_text = await self._call_claude(prompt, max_tokens, system)
        return extract_json_object(response_text)
