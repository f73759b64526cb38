"""OpenRouter API client used for newsletter generation."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-4o-mini"


class OpenRouterClient:
    """Minimal chat-completions client for OpenRouter."""

    def __init__(self, api_key: Optional[str], model: Optional[str] = None, settings=None):
        """Initialize OpenRouter client.

        Args:
            api_key: OpenRouter API key
            model: Model to use (defaults to the configured model)
            settings: Settings instance for configuration values
        """
        self.api_key = api_key
        self.base_url = "https://openrouter.ai/api/v1"
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": "https://github.com/briefwise/briefwise",  # Required by OpenRouter
            "X-Title": "Briefwise Newsletter",
        }

        configured_model = settings.openrouter_model if settings else None
        self.default_model = model or configured_model or DEFAULT_MODEL
        self.model_fallbacks: List[str] = [
            m for m in [DEFAULT_MODEL, "google/gemini-flash-1.5-8b"] if m != self.default_model
        ]

        self.last_request_time = 0.0
        if settings:
            self.min_request_interval = settings.openrouter_min_request_interval
            self.timeout = settings.openrouter_timeout
        else:
            self.min_request_interval = 3.2  # ~18.75 requests/minute
            self.timeout = 60.0

    @classmethod
    def from_settings(cls, settings) -> "OpenRouterClient":
        return cls(settings.openrouter_api_key, settings=settings)

    async def generate_text(
        self, prompt: str, max_tokens: int = 4000, temperature: float = 0.7
    ) -> Optional[str]:
        """Send a prompt and return the assistant's reply text.

        Returns:
            Reply text, or None when no model produced a response
        """
        if not self.api_key:
            logger.warning("No OpenRouter API key - cannot generate text")
            return None

        response = await self._make_request(prompt, max_tokens=max_tokens, temperature=temperature)
        if not response:
            return None

        try:
            return response["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            logger.error(f"Data parsing error in OpenRouter response: {e}")
            return None

    async def _rate_limit_delay(self):
        """Keep a minimum interval between consecutive requests."""
        time_since_last = time.time() - self.last_request_time

        if time_since_last < self.min_request_interval:
            delay = self.min_request_interval - time_since_last
            logger.debug(
                f"Rate limiting: waiting {delay:.1f}s before next OpenRouter request"
            )
            await asyncio.sleep(delay)

        self.last_request_time = time.time()

    async def _make_request(
        self,
        prompt: str,
        max_tokens: int = 100,
        temperature: float = 0.3,
        model: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Make a request to OpenRouter, falling back across models.

        Args:
            prompt: The prompt to send
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            model: Specific model to use (overrides default and fallbacks)

        Returns:
            API response or None if every model failed
        """
        models_to_try = [model] if model else [self.default_model] + self.model_fallbacks

        for attempt_model in models_to_try:
            payload = {
                "model": attempt_model,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": max_tokens,
                "temperature": temperature,
                "stream": False,
            }
            result = await self._make_single_request(payload)
            if result:
                if attempt_model != self.default_model:
                    logger.info(f"Using fallback model: {attempt_model}")
                return result
            logger.warning(f"Model {attempt_model} returned no response")

        logger.error("All models failed")
        return None

    async def _make_single_request(
        self, payload: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        try:
            await self._rate_limit_delay()

            async with aiohttp.ClientSession() as session:
                async with session.post(
                    f"{self.base_url}/chat/completions",
                    headers=self.headers,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status == 200:
                        return await response.json()
                    error_text = await response.text()
                    logger.error(
                        f"OpenRouter API error: {response.status} - {error_text[:200]}"
                    )
                    return None

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Network error in OpenRouter API request: {e}")
            return None
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Data parsing error in OpenRouter API response: {e}")
            return None

    async def test_connection(self) -> bool:
        """Test the OpenRouter API connection."""
        response = await self._make_request("Hello, world!", max_tokens=5)
        if response and "choices" in response:
            logger.info("OpenRouter API connection successful")
            return True
        logger.error("OpenRouter API connection failed - no valid response")
        return False
