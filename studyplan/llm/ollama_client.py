"""
Ollama LLM Client
-----------------
Implementation of BaseLLMClient for a local Ollama server.

WHEN TO USE:
- Groq API key not configured or Groq is down
- Development without internet

SETUP:
1. Install Ollama: https://ollama.ai/download
2. Pull a model: ollama pull llama3.2
"""

import logging
from typing import List, Optional

import httpx

from studyplan.config import settings
from studyplan.llm.base_client import BaseLLMClient, LLMMessage, LLMResponse, MessageRole

logger = logging.getLogger(__name__)


class OllamaClient(BaseLLMClient):
    """
    Ollama local LLM client.

    LIMITATIONS:
    - Slower than Groq (depends on your hardware)
    - Limited to models you've pulled

    USAGE:
    client = OllamaClient(model="llama3.2:latest")
    response = await client.generate("Hello!")
    """

    provider_name = "ollama"

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None
    ):
        self.base_url = (base_url or settings.OLLAMA_BASE_URL).rstrip('/')
        super().__init__(model=model or settings.OLLAMA_MODEL, timeout=timeout or settings.LLM_TIMEOUT)

        logger.info(f"Ollama client initialized: {self.base_url}, model: {self.model}")

    async def generate(
        self,
        prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """Generate completion using the Ollama generate API"""
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "num_predict": max_tokens,
                "temperature": temperature
            }
        }
        if json_mode:
            payload["format"] = "json"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()

            except httpx.HTTPError as e:
                logger.error(f"Ollama HTTP error: {e}")
                raise

        llm_response = LLMResponse(
            content=data.get("response", ""),
            model=self.model,
            provider=self.provider_name,
            usage={
                "prompt_tokens": data.get("prompt_eval_count", 0),
                "completion_tokens": data.get("eval_count", 0),
                "total_tokens": data.get("prompt_eval_count", 0) + data.get("eval_count", 0)
            },
            metadata={
                "total_duration": data.get("total_duration"),
                "eval_duration": data.get("eval_duration")
            }
        )

        logger.info(
            f"Ollama request successful. "
            f"Tokens: {llm_response.usage['total_tokens']}, "
            f"Duration: {(data.get('total_duration') or 0) / 1e9:.2f}s"
        )

        return llm_response

    async def chat(
        self,
        messages: List[LLMMessage],
        max_tokens: int = 1000,
        temperature: float = 0.7,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """
        Chat completion using Ollama.

        Conversation history is flattened into a single prompt:
        System: {system}\nUser: {user}\nAssistant:
        """
        prompt_parts = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                prompt_parts.append(f"System: {msg.content}")
            elif msg.role == MessageRole.USER:
                prompt_parts.append(f"User: {msg.content}")
            elif msg.role == MessageRole.ASSISTANT:
                prompt_parts.append(f"Assistant: {msg.content}")

        prompt_parts.append("Assistant:")
        prompt = "\n".join(prompt_parts)

        return await self.generate(prompt, max_tokens, temperature, json_mode=json_mode, **kwargs)

    async def is_available(self) -> bool:
        """True if the Ollama server is running and has our model pulled"""
        try:
            async with httpx.AsyncClient(timeout=5) as client:
                response = await client.get(f"{self.base_url}/api/tags")

                if response.status_code != 200:
                    return False

                models = response.json().get("models", [])
                if any(m.get("name") == self.model for m in models):
                    logger.info(f"✅ Ollama is available with model: {self.model}")
                    return True

                logger.warning(
                    f"⚠️  Ollama is running but model '{self.model}' not found. "
                    f"Run: ollama pull {self.model}"
                )
                return False

        except Exception as e:
            logger.warning(f"❌ Ollama unavailable: {e}")
            return False
