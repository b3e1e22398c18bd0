"""
LLM Gateway
-----------
Router that manages multiple LLM providers.

WHAT THIS DOES:
1. Orders providers: Groq first, Ollama as local backup
2. Skips providers whose availability check failed
3. Optionally falls back to the next provider when a call fails

FALLBACK AND PLAN GENERATION:
A fallback is a second generation request. Plan generation must issue
exactly one request per attempt, so the planner calls the gateway with
`allow_fallback=False`: the first available provider is used and its error
is raised to the caller unchanged. Such a failure does not mark the
provider unavailable, so a manual retry reaches it again.
"""

import logging
from typing import Dict, List, Optional, Sequence

from studyplan.config import settings
from studyplan.llm.base_client import BaseLLMClient, LLMMessage, LLMResponse

logger = logging.getLogger(__name__)


class NoProviderAvailable(RuntimeError):
    """Raised when every configured provider failed its availability check"""


class LLMGateway:
    """
    LLM gateway over an ordered list of providers.

    USAGE:
    gateway = LLMGateway()
    response = await gateway.chat(messages, allow_fallback=False)
    print(response.provider)
    """

    def __init__(self, clients: Optional[Sequence[BaseLLMClient]] = None):
        """
        ARGS:
        - clients: Providers in preference order. Defaults to Groq, then
          Ollama when settings.LLM_FALLBACK_ENABLED is set.
        """
        if clients is None:
            from studyplan.llm.groq_client import GroqClient
            from studyplan.llm.ollama_client import OllamaClient

            clients = [GroqClient()]
            if settings.LLM_FALLBACK_ENABLED:
                clients.append(OllamaClient())

        self.clients: List[BaseLLMClient] = list(clients)

        # Cache provider availability (avoids repeated checks)
        self._available: Dict[int, Optional[bool]] = {i: None for i in range(len(self.clients))}

        logger.info(
            "LLM Gateway initialized with providers: "
            + ", ".join(c.provider_name for c in self.clients)
        )

    async def _check_provider_availability(self, force: bool = False):
        """Refresh the cached availability of every provider that needs it"""
        for index, client in enumerate(self.clients):
            if force or self._available[index] is None:
                logger.info(f"Checking {client.provider_name} availability...")
                self._available[index] = await client.is_available()

    async def _ordered_providers(self) -> List[BaseLLMClient]:
        await self._check_provider_availability()
        providers = [c for i, c in enumerate(self.clients) if self._available[i]]
        if not providers:
            raise NoProviderAvailable(
                "No LLM provider is available. Check the Groq API key and the Ollama installation."
            )
        return providers

    async def chat(
        self,
        messages: List[LLMMessage],
        max_tokens: int = 1000,
        temperature: float = 0.7,
        allow_fallback: bool = True,
        **kwargs
    ) -> LLMResponse:
        """
        Chat completion using the best available provider.

        ARGS:
        - allow_fallback: try the next provider when one fails. With False,
          exactly one request is made.

        RAISES:
        NoProviderAvailable, or the provider's own error
        """
        providers = await self._ordered_providers()
        if not allow_fallback:
            providers = providers[:1]

        last_error: Optional[Exception] = None
        for client in providers:
            try:
                logger.info(f"Attempting chat with {client.provider_name}...")
                response = await client.chat(
                    messages=messages,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    **kwargs
                )
                logger.info(
                    f"✅ {client.provider_name} succeeded. "
                    f"Tokens: {response.usage.get('total_tokens', 0)}"
                )
                return response

            except Exception as e:
                logger.warning(f"❌ {client.provider_name} failed: {e}")
                # Without fallback the caller retries on the same provider
                if allow_fallback:
                    self._available[self.clients.index(client)] = False
                last_error = e

        raise last_error

    async def health_check(self) -> dict:
        """
        Check health of all providers.

        RETURNS:
        {"groq": {"available": True, "model": "llama-3.3-70b-versatile"}, ...}
        """
        await self._check_provider_availability(force=True)

        return {
            client.provider_name: {
                "available": bool(self._available[i]),
                "model": client.model if self._available[i] else None
            }
            for i, client in enumerate(self.clients)
        }


# =============================================================================
# GLOBAL GATEWAY INSTANCE
# =============================================================================
_gateway: Optional[LLMGateway] = None


def get_llm_gateway() -> LLMGateway:
    """Get the global LLM gateway instance"""
    global _gateway
    if _gateway is None:
        _gateway = LLMGateway()
    return _gateway
