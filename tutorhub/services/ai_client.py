"""AI providers for lesson-plan generation (OpenAI and Anthropic).

Usage:
    from tutorhub.services.ai_client import build_provider_chain, generate_with_fallback

    providers = build_provider_chain(settings)
    text, provider_name = await generate_with_fallback(prompt, providers)

Providers are tried in order; the first success wins. When every provider
fails, AllProvidersFailedError carries one error message per provider.

API clients are created lazily inside each call, and missing credentials
surface as AIConfigurationError at call time rather than at import time.
"""

import logging
from enum import Enum
from typing import Protocol

from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from tutorhub.config import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an expert English teacher. Always respond with valid JSON only, no additional text."


class AIProvider(str, Enum):
    OPENAI = "openai"
    CLAUDE = "claude"


class AIConfigurationError(RuntimeError):
    """Raised when a provider is called without usable credentials."""


class AllProvidersFailedError(RuntimeError):
    """Raised when every provider in the chain failed."""

    def __init__(self, errors: list[tuple[str, str]]):
        self.errors = errors
        detail = "; ".join(f"{name}: {message}" for name, message in errors)
        super().__init__(f"AI lesson plan generation failed with all providers ({detail})")


class Provider(Protocol):
    name: str

    async def generate(self, prompt: str) -> str: ...


def _is_placeholder(api_key: str) -> bool:
    return not api_key or "placeholder" in api_key or api_key.startswith("your-")


def _log_retry(retry_state):
    logger.warning(
        "%s call failed (attempt %d), retrying: %s",
        retry_state.fn.__qualname__.split(".")[0],
        retry_state.attempt_number,
        retry_state.outcome.exception(),
    )


_retry_policy = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception_type(Exception),
    before_sleep=_log_retry,
    reraise=True,
)


class OpenAIProvider:
    name = AIProvider.OPENAI.value

    def __init__(self, api_key: str, model: str, max_tokens: int = 4000, temperature: float = 0.7):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _client(self):
        if _is_placeholder(self.api_key):
            raise AIConfigurationError("OPENAI_API_KEY is not configured or is placeholder")
        from openai import AsyncOpenAI

        return AsyncOpenAI(api_key=self.api_key)

    async def generate(self, prompt: str) -> str:
        client = self._client()
        return await self._complete(client, prompt)

    @_retry_policy
    async def _complete(self, client, prompt: str) -> str:
        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
        if not content:
            raise ValueError("No content received from OpenAI")
        return content


class ClaudeProvider:
    name = AIProvider.CLAUDE.value

    def __init__(self, api_key: str, model: str, max_tokens: int = 4000, temperature: float = 0.7):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _client(self):
        if _is_placeholder(self.api_key):
            raise AIConfigurationError("ANTHROPIC_API_KEY is not configured")
        import anthropic

        return anthropic.AsyncAnthropic(api_key=self.api_key)

    async def generate(self, prompt: str) -> str:
        client = self._client()
        return await self._complete(client, prompt)

    @_retry_policy
    async def _complete(self, client, prompt: str) -> str:
        response = await client.messages.create(
            model=self.model,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        block = response.content[0]
        if block.type != "text":
            raise ValueError("Invalid response type from Claude")
        return block.text


def build_provider_chain(settings: Settings) -> list[Provider]:
    """Return [primary, secondary] according to AI_PRIMARY_PROVIDER."""
    openai_provider = OpenAIProvider(
        settings.openai_api_key,
        settings.openai_model,
        settings.ai_max_tokens,
        settings.ai_temperature,
    )
    claude_provider = ClaudeProvider(
        settings.anthropic_api_key,
        settings.claude_model,
        settings.ai_max_tokens,
        settings.ai_temperature,
    )
    if settings.ai_primary_provider.lower() == AIProvider.OPENAI.value:
        return [openai_provider, claude_provider]
    return [claude_provider, openai_provider]


async def generate_with_fallback(prompt: str, providers: list[Provider], parse=None):
    """Try each provider in order and return (result, provider_name).

    ``parse`` optionally post-processes the raw text; a parse failure is
    treated like a provider failure and moves on to the next provider.
    """
    errors: list[tuple[str, str]] = []
    for provider in providers:
        try:
            text = await provider.generate(prompt)
            result = parse(text) if parse else text
        except Exception as exc:
            logger.warning("Provider %s failed: %s", provider.name, exc)
            errors.append((provider.name, str(exc) or type(exc).__name__))
            continue
        return result, provider.name

    logger.error("All AI providers failed: %s", errors)
    raise AllProvidersFailedError(errors)


async def check_providers(settings: Settings) -> dict:
    """Send a tiny request to each provider and report availability."""
    checks = [
        OpenAIProvider(settings.openai_api_key, settings.openai_check_model, max_tokens=5),
        ClaudeProvider(settings.anthropic_api_key, settings.claude_check_model, max_tokens=5),
    ]
    results = {}
    for provider in checks:
        try:
            text = await provider.generate("Hello")
            results[provider.name] = {"available": bool(text), "error": None}
        except Exception as exc:
            results[provider.name] = {"available": False, "error": str(exc)}
    return results
