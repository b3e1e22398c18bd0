"""
Groq LLM Client
---------------
Implementation of BaseLLMClient for the Groq API.

Groq is the primary provider: fast hosted inference of open models
(Llama, Mixtral, Gemma) with JSON-mode support.
"""

import asyncio
import logging
from typing import List, Optional

from groq import APIError, AsyncGroq, RateLimitError

from studyplan.config import settings
from studyplan.llm.base_client import BaseLLMClient, LLMMessage, LLMResponse, MessageRole

logger = logging.getLogger(__name__)


class GroqClient(BaseLLMClient):
    """
    Groq API client implementation.

    FEATURES:
    - Optional transport retry on rate limits (settings.LLM_MAX_RETRIES)
    - Token counting
    - JSON mode

    USAGE:
    client = GroqClient(model="llama-3.3-70b-versatile")
    response = await client.generate("Hello, world!")
    """

    provider_name = "groq"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None
    ):
        """
        ARGS:
        - api_key: Groq API key (defaults to settings.GROQ_API_KEY)
        - model: Model name (defaults to settings.GROQ_MODEL)
        - timeout: Request timeout (defaults to settings.LLM_TIMEOUT)
        - max_retries: Attempts per call; 1 means a single request
        """
        self.api_key = api_key or settings.GROQ_API_KEY
        timeout = timeout or settings.LLM_TIMEOUT
        self.max_retries = max(1, max_retries or settings.LLM_MAX_RETRIES)

        super().__init__(model=model or settings.GROQ_MODEL, timeout=timeout)

        # The SDK has its own retry loop; disable it so attempts are counted here only
        self.client = AsyncGroq(
            api_key=self.api_key,
            timeout=self.timeout,
            max_retries=0
        )

        logger.info(f"Groq client initialized with model: {self.model}")

    async def generate(
        self,
        prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """Groq only exposes the chat API, so wrap the prompt as a user message"""
        messages = [LLMMessage(role=MessageRole.USER, content=prompt)]
        return await self.chat(messages, max_tokens, temperature, json_mode=json_mode, **kwargs)

    async def chat(
        self,
        messages: List[LLMMessage],
        max_tokens: int = 1000,
        temperature: float = 0.7,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """
        Chat completion.

        HANDLES:
        - Rate limit errors (retries with backoff while attempts remain)
        - API errors (logged, retried while attempts remain, then raised)
        """
        formatted_messages = self._format_messages(messages)
        if json_mode:
            kwargs.setdefault("response_format", {"type": "json_object"})

        for attempt in range(self.max_retries):
            try:
                completion = await self.client.chat.completions.create(
                    model=self.model,
                    messages=formatted_messages,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    **kwargs
                )

                content = completion.choices[0].message.content or ""

                response = LLMResponse(
                    content=content,
                    model=self.model,
                    provider=self.provider_name,
                    usage={
                        "prompt_tokens": completion.usage.prompt_tokens,
                        "completion_tokens": completion.usage.completion_tokens,
                        "total_tokens": completion.usage.total_tokens
                    },
                    metadata={
                        "finish_reason": completion.choices[0].finish_reason,
                        "model": completion.model
                    }
                )

                logger.info(
                    f"Groq request successful. "
                    f"Tokens: {response.usage['total_tokens']}, "
                    f"Model: {self.model}"
                )

                return response

            except RateLimitError:
                wait_time = 2 ** attempt  # Exponential backoff: 1s, 2s, 4s
                if attempt < self.max_retries - 1:
                    logger.warning(
                        f"Groq rate limit hit. Retrying in {wait_time}s "
                        f"(attempt {attempt + 1}/{self.max_retries})"
                    )
                    await asyncio.sleep(wait_time)
                else:
                    logger.error("Groq rate limit - no attempts left")
                    raise

            except APIError as e:
                logger.error(f"Groq API error: {e}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(1)
                else:
                    raise

    async def is_available(self) -> bool:
        """
        Check if Groq API is configured and reachable.

        Lists models instead of sending a completion, so the check costs
        no tokens.
        """
        if not self.api_key:
            logger.warning("❌ Groq API key is not configured")
            return False

        try:
            await self.client.models.list(timeout=5)
            logger.info("✅ Groq API is available")
            return True

        except Exception as e:
            logger.warning(f"❌ Groq API unavailable: {e}")
            return False
