"""
LLM Package
-----------
Provider clients and the gateway that routes between them.

USAGE:
from studyplan.llm import get_llm_gateway, LLMMessage, MessageRole

gateway = get_llm_gateway()
response = await gateway.chat([LLMMessage(role=MessageRole.USER, content="Hi")])
"""

from studyplan.llm.base_client import BaseLLMClient, LLMMessage, LLMResponse, MessageRole
from studyplan.llm.gateway import LLMGateway, NoProviderAvailable, get_llm_gateway

__all__ = [
    # Base classes
    "BaseLLMClient",
    "LLMMessage",
    "LLMResponse",
    "MessageRole",

    # Gateway
    "LLMGateway",
    "NoProviderAvailable",
    "get_llm_gateway",
]
