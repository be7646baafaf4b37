"""
Completion gateway.

Single entry point for chat completions. Every caller (bots, bot preview,
AI file tools, AI chat) goes through generate() with the same signature:
message, system prompt, prior turns and a sampling config.

One attempt per call, no retries.
"""

from dataclasses import dataclass
from typing import Optional

import openai
from openai import AsyncOpenAI

from app.config import get_settings
from app.errors import GenerationError
from app.logging_config import service_logger as logger


@dataclass
class SamplingConfig:
    """Model and sampling parameters for one completion."""
    model: str
    temperature: float = 0.7
    max_tokens: int = 150


class CompletionGateway:
    """Thin wrapper around the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str = "",
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        self._api_key = api_key
        self._base_url = base_url or None
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise GenerationError("OpenAI API key is not configured")
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    async def generate(
        self,
        message: str,
        system_prompt: str,
        history: Optional[list[dict]] = None,
        config: Optional[SamplingConfig] = None,
        fallback: Optional[str] = None
    ) -> str:
        """
        Generate a reply to `message`.

        Args:
            message: Latest user message
            system_prompt: Personality / instructions
            history: Prior turns, oldest first, as {"role", "content"} dicts
            config: Sampling config (defaults to the configured model)
            fallback: Returned when the model answers with empty content.
                Without it, empty content raises GenerationError.

        Returns:
            Generated text
        """
        if config is None:
            config = SamplingConfig(model=get_settings().openai_default_model)

        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": message})

        client = self._get_client()

        try:
            response = await client.chat.completions.create(
                model=config.model,
                messages=messages,
                temperature=config.temperature,
                max_tokens=config.max_tokens
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI API error ({config.model}): {e}")
            raise GenerationError("Failed to generate response from GPT") from e

        content = None
        if response.choices:
            content = response.choices[0].message.content

        if content and content.strip():
            return content

        if fallback is not None:
            logger.warning(f"Empty completion from {config.model}, using fallback")
            return fallback

        raise GenerationError("Completion service returned no content")

    async def validate_configuration(self, config: SamplingConfig) -> bool:
        """Probe the model with a 1-token request. Never raises."""
        try:
            client = self._get_client()
            await client.chat.completions.create(
                model=config.model,
                messages=[{"role": "user", "content": "test"}],
                max_tokens=1
            )
            return True
        except (GenerationError, openai.OpenAIError) as e:
            logger.warning(f"OpenAI configuration validation failed for {config.model}: {e}")
            return False


# Global instance
_completion_gateway: Optional[CompletionGateway] = None


def get_completion_gateway() -> CompletionGateway:
    """Get or create completion gateway singleton."""
    global _completion_gateway
    if _completion_gateway is None:
        settings = get_settings()
        _completion_gateway = CompletionGateway(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url
        )
    return _completion_gateway
